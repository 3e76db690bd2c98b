from secret_santa.db.models import (
    AppState,
    AssignmentModel,
    Base,
    GeneratedListModel,
    GroupModel,
    ParticipantModel,
    group_members,
)
from secret_santa.db.session import get_session, init_engine

__all__ = [
    "AppState",
    "AssignmentModel",
    "Base",
    "GeneratedListModel",
    "GroupModel",
    "ParticipantModel",
    "group_members",
    "get_session",
    "init_engine",
]

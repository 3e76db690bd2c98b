from __future__ import annotations

from typing import List, Optional

from sqlalchemy import func, select

from secret_santa.db.models import (
    AppState,
    AssignmentModel,
    GeneratedListModel,
    GroupModel,
    ParticipantModel,
)
from secret_santa.services.assignment import Assignment, GeneratedList
from secret_santa.services.roster import Group, Participant
from secret_santa.services.snapshot import (
    dump_group,
    dump_participant,
    load_group,
    load_participant,
)

STATE_ID = 1


def participant_from_model(model: ParticipantModel) -> Participant:
    return Participant(id=model.id, name=model.name, created_at=model.created_at)


def group_from_model(model: GroupModel) -> Group:
    return Group(
        id=model.id,
        name=model.name,
        participant_ids=tuple(member.id for member in model.members),
        created_at=model.created_at,
    )


def list_participants(session) -> List[ParticipantModel]:
    return list(
        session.scalars(
            select(ParticipantModel).order_by(ParticipantModel.created_at, ParticipantModel.id)
        ).all()
    )


def get_participant(session, participant_id: str) -> Optional[ParticipantModel]:
    return session.get(ParticipantModel, participant_id)


def add_participant(session, participant: Participant) -> ParticipantModel:
    model = ParticipantModel(
        id=participant.id,
        name=participant.name,
        name_key=participant.name.lower(),
        created_at=participant.created_at,
    )
    session.add(model)
    session.flush()
    return model


def delete_participant(session, participant: ParticipantModel) -> None:
    for group in list(participant.groups):
        group.members.remove(participant)
    session.delete(participant)
    session.flush()


def list_groups(session) -> List[GroupModel]:
    return list(session.scalars(select(GroupModel).order_by(GroupModel.created_at, GroupModel.id)).all())


def get_group(session, group_id: str) -> Optional[GroupModel]:
    return session.get(GroupModel, group_id)


def add_group(session, group: Group) -> GroupModel:
    model = GroupModel(
        id=group.id,
        name=group.name,
        name_key=group.name.lower(),
        created_at=group.created_at,
    )
    if group.participant_ids:
        model.members = [
            member
            for member in (
                get_participant(session, pid) for pid in dict.fromkeys(group.participant_ids)
            )
            if member is not None
        ]
    session.add(model)
    session.flush()
    return model


def delete_group(session, group: GroupModel) -> None:
    # detach members first so their loaded `groups` collections stay in sync
    group.members.clear()
    session.delete(group)
    session.flush()


def delete_empty_groups(session) -> int:
    empty = [group for group in list_groups(session) if not group.members]
    for group in empty:
        session.delete(group)
    session.flush()
    return len(empty)


def clear_groups(session) -> None:
    for group in list_groups(session):
        delete_group(session, group)


def clear_participants(session) -> None:
    for participant in list_participants(session):
        delete_participant(session, participant)


def get_state(session) -> AppState:
    state = session.get(AppState, STATE_ID)
    if state is None:
        state = AppState(id=STATE_ID)
        session.add(state)
        session.flush()
    return state


def _next_sequence(session) -> int:
    return (session.scalar(select(func.max(GeneratedListModel.sequence))) or 0) + 1


def create_generated_list(session, generated: GeneratedList, in_history: bool = True) -> GeneratedListModel:
    model = GeneratedListModel(
        id=generated.id,
        sequence=_next_sequence(session),
        created_at=generated.timestamp,
        seed=generated.seed,
        attempts=generated.attempts,
        in_history=in_history,
        participants_snapshot=[dump_participant(p) for p in generated.participants],
        groups_snapshot=[dump_group(g) for g in generated.groups],
    )
    model.assignments = [
        AssignmentModel(
            id=assignment.id,
            position=position,
            giver_id=assignment.giver_id,
            receiver_id=assignment.receiver_id,
            revealed=assignment.revealed,
            revealed_at=assignment.revealed_at,
        )
        for position, assignment in enumerate(generated.assignments)
    ]
    session.add(model)
    session.flush()
    return model


def generated_list_from_model(model: GeneratedListModel) -> GeneratedList:
    return GeneratedList(
        id=model.id,
        timestamp=model.created_at,
        assignments=[
            Assignment(
                id=row.id,
                giver_id=row.giver_id,
                receiver_id=row.receiver_id,
                revealed=row.revealed,
                revealed_at=row.revealed_at,
            )
            for row in model.assignments
        ],
        participants=[load_participant(item) for item in model.participants_snapshot],
        groups=[load_group(item) for item in model.groups_snapshot],
        seed=model.seed,
        attempts=model.attempts,
    )


def get_generated_list(session, list_id: str) -> Optional[GeneratedListModel]:
    return session.get(GeneratedListModel, list_id)


def list_history(session) -> List[GeneratedListModel]:
    return list(
        session.scalars(
            select(GeneratedListModel)
            .where(GeneratedListModel.in_history.is_(True))
            .order_by(GeneratedListModel.sequence.desc())
        ).all()
    )


def get_current_list(session) -> Optional[GeneratedListModel]:
    return get_state(session).current_list


def set_current_list(session, generated: Optional[GeneratedListModel]) -> None:
    state = get_state(session)
    state.current_list = generated
    session.flush()
    prune_detached_lists(session)


def remove_from_history(session, lists: List[GeneratedListModel]) -> int:
    for generated in lists:
        generated.in_history = False
    session.flush()
    prune_detached_lists(session)
    return len(lists)


def prune_detached_lists(session) -> int:
    """Deletes lists that are neither in history nor current."""
    state = get_state(session)
    detached = list(
        session.scalars(
            select(GeneratedListModel).where(GeneratedListModel.in_history.is_(False))
        ).all()
    )
    removed = 0
    for generated in detached:
        if generated.id == state.current_list_id:
            continue
        session.delete(generated)
        removed += 1
    session.flush()
    return removed


def get_assignment(session, list_id: str, assignment_id: str) -> Optional[AssignmentModel]:
    return session.scalar(
        select(AssignmentModel).where(
            AssignmentModel.list_id == list_id,
            AssignmentModel.id == assignment_id,
        )
    )


def delete_all_generated_lists(session) -> None:
    state = get_state(session)
    state.current_list = None
    session.flush()
    for generated in session.scalars(select(GeneratedListModel)).all():
        session.delete(generated)
    session.flush()

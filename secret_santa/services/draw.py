from __future__ import annotations

import copy
import random
from dataclasses import dataclass
from typing import List, Optional

from loguru import logger
from sqlalchemy.exc import IntegrityError

from secret_santa.core.config import MAX_HISTORY_COUNT, MIN_HISTORY_COUNT, Settings
from secret_santa.db import GeneratedListModel, GroupModel, ParticipantModel, repo
from secret_santa.services import roster
from secret_santa.services.assignment import (
    Assignment,
    GeneratedList,
    GenerationConfig,
    find_assignment_for_giver,
    generate_assignments,
    validate_assignments,
)
from secret_santa.services.roster import Group, Participant

DEFAULT_MAX_HISTORY_COUNT = 5


class RosterError(RuntimeError):
    pass


class DrawError(RuntimeError):
    pass


@dataclass(frozen=True)
class HistorySettings:
    max_history_count: int
    allow_history_assignment_view: bool


def _raise_if_invalid(result: roster.ValidationResult, error_cls=RosterError) -> None:
    if not result.is_valid:
        raise error_cls(result.error_message)


def list_participants(session) -> List[Participant]:
    return [repo.participant_from_model(model) for model in repo.list_participants(session)]


def list_groups(session) -> List[Group]:
    return [repo.group_from_model(model) for model in repo.list_groups(session)]


def _require_participant(session, participant_id: str) -> ParticipantModel:
    participant = repo.get_participant(session, participant_id)
    if participant is None:
        raise RosterError("Participant not found")
    return participant


def _require_group(session, group_id: str) -> GroupModel:
    group = repo.get_group(session, group_id)
    if group is None:
        raise RosterError("Group not found")
    return group


def add_participant(session, name: str) -> Participant:
    _raise_if_invalid(roster.validate_participant_name(name, list_participants(session)))
    participant = roster.create_participant(name)
    try:
        repo.add_participant(session, participant)
    except IntegrityError as exc:
        raise RosterError("A participant with this name already exists") from exc
    logger.bind(participant_id=participant.id).info("Participant added")
    return participant


def remove_participant(session, participant_id: str) -> None:
    participant = _require_participant(session, participant_id)
    repo.delete_participant(session, participant)
    dropped = repo.delete_empty_groups(session)
    logger.bind(participant_id=participant_id, dropped_groups=dropped).info("Participant removed")


def clear_participants(session) -> None:
    repo.clear_groups(session)
    repo.clear_participants(session)


def participant_exists(session, name: str) -> bool:
    key = name.strip().lower()
    return any(p.name.lower() == key for p in list_participants(session))


def create_group(session, name: str) -> Group:
    _raise_if_invalid(roster.validate_group_name(name, list_groups(session)))
    group = roster.create_group(name)
    try:
        repo.add_group(session, group)
    except IntegrityError as exc:
        raise RosterError("A group with this name already exists") from exc
    logger.bind(group_id=group.id).info("Group created")
    return group


def remove_group(session, group_id: str) -> None:
    repo.delete_group(session, _require_group(session, group_id))


def clear_groups(session) -> None:
    repo.clear_groups(session)


def add_group_member(session, group_id: str, participant_id: str) -> Group:
    group = _require_group(session, group_id)
    participant = _require_participant(session, participant_id)
    if participant in group.members:
        raise RosterError("Participant is already in this group")
    group.members.append(participant)
    session.flush()
    return repo.group_from_model(group)


def remove_group_member(session, group_id: str, participant_id: str) -> Optional[Group]:
    """
    Removes one member. A group left without members is deleted and
    None is returned.
    """
    group = _require_group(session, group_id)
    member = next((m for m in group.members if m.id == participant_id), None)
    if member is None:
        raise RosterError("Participant not in this group")
    group.members.remove(member)
    session.flush()
    if not group.members:
        repo.delete_group(session, group)
        return None
    return repo.group_from_model(group)


def groups_for_participant(session, participant_id: str) -> List[Group]:
    return [g for g in list_groups(session) if g.has_member(participant_id)]


def is_in_same_group(session, first_id: str, second_id: str) -> bool:
    return any(g.has_member(first_id) and g.has_member(second_id) for g in list_groups(session))


def get_history_settings(session, settings: Optional[Settings] = None) -> HistorySettings:
    state = repo.get_state(session)
    max_count = state.max_history_count
    if max_count is None:
        max_count = settings.max_history_count if settings else DEFAULT_MAX_HISTORY_COUNT
    allow_view = state.allow_history_assignment_view
    if allow_view is None:
        allow_view = settings.allow_history_assignment_view if settings else False
    return HistorySettings(max_history_count=max_count, allow_history_assignment_view=allow_view)


def set_max_history_count(session, count: int, settings: Optional[Settings] = None) -> None:
    if not MIN_HISTORY_COUNT <= count <= MAX_HISTORY_COUNT:
        raise DrawError(
            f"Max history count must be between {MIN_HISTORY_COUNT} and {MAX_HISTORY_COUNT}"
        )
    previous = get_history_settings(session, settings).max_history_count
    repo.get_state(session).max_history_count = count
    if count < previous:
        trim_history(session, count)


def set_allow_history_assignment_view(session, allow: bool) -> None:
    repo.get_state(session).allow_history_assignment_view = allow


def reset_history_settings(session) -> None:
    state = repo.get_state(session)
    state.max_history_count = None
    state.allow_history_assignment_view = None


def can_generate(session) -> bool:
    return len(repo.list_participants(session)) >= roster.MIN_PARTICIPANTS


def generate_list(
    session,
    settings: Optional[Settings] = None,
    seed: Optional[int] = None,
) -> GeneratedList:
    participants = list_participants(session)
    groups = list_groups(session)

    _raise_if_invalid(roster.validate_minimum_participants(participants), DrawError)
    if groups:
        _raise_if_invalid(roster.validate_group_configuration(groups, participants), DrawError)

    if seed is None:
        seed = random.randint(1, 2**31 - 1)
    config = GenerationConfig(max_attempts=settings.max_attempts) if settings else GenerationConfig()

    result = generate_assignments(participants, groups, config=config, seed=seed)
    if not result.success:
        logger.bind(error_kind=result.error_kind, attempts=result.attempts).warning(
            "Generation failed: {error}", error=result.error
        )
        raise DrawError(result.error or "Failed to generate assignments")

    generated = GeneratedList(
        id=roster.generate_id(),
        timestamp=roster.utcnow(),
        assignments=result.assignments,
        participants=copy.deepcopy(participants),
        groups=copy.deepcopy(groups),
        seed=seed,
        attempts=result.attempts,
    )
    model = repo.create_generated_list(session, generated)
    repo.set_current_list(session, model)
    trim_history(session, get_history_settings(session, settings).max_history_count)

    logger.bind(list_id=generated.id, seed=seed, attempts=result.attempts).info("Assignments generated")
    return generated


def get_current_list(session) -> Optional[GeneratedList]:
    model = repo.get_current_list(session)
    return repo.generated_list_from_model(model) if model else None


def clear_current(session) -> None:
    repo.set_current_list(session, None)


def list_history(session) -> List[GeneratedList]:
    return [repo.generated_list_from_model(model) for model in repo.list_history(session)]


def clear_history(session) -> None:
    repo.remove_from_history(session, repo.list_history(session))


def trim_history(session, max_count: int) -> int:
    """Keeps the newest max_count history entries, returns how many were evicted."""
    evicted: List[GeneratedListModel] = repo.list_history(session)[max_count:]
    if not evicted:
        return 0
    repo.remove_from_history(session, evicted)
    logger.bind(evicted=len(evicted), max_count=max_count).debug("History trimmed")
    return len(evicted)


def load_from_history(session, list_id: str) -> GeneratedList:
    model = repo.get_generated_list(session, list_id)
    if model is None or not model.in_history:
        raise DrawError("List not found in history")

    generated = repo.generated_list_from_model(model)
    if not validate_assignments(generated.assignments, generated.participants, generated.groups):
        logger.bind(list_id=list_id).warning("Refusing to load an invalid list from history")
        raise DrawError("This historical list contains invalid assignments")

    repo.set_current_list(session, model)
    return generated


def reveal_assignment(session, assignment_id: str, claimed_name: Optional[str] = None) -> Assignment:
    current = repo.get_current_list(session)
    if current is None:
        raise DrawError("No current list to reveal")

    row = repo.get_assignment(session, current.id, assignment_id)
    if row is None:
        raise DrawError("Assignment not found")

    if claimed_name is not None:
        giver = next(
            (p for p in repo.generated_list_from_model(current).participants if p.id == row.giver_id),
            None,
        )
        if giver is None:
            raise DrawError("Giver is missing from this list")
        _raise_if_invalid(roster.validate_verification_name(claimed_name, giver.name), DrawError)

    # current list and its history entry share this row
    if not row.revealed:
        row.revealed = True
        row.revealed_at = roster.utcnow()
        session.flush()
        logger.bind(list_id=current.id, assignment_id=assignment_id).info("Assignment revealed")

    return Assignment(
        id=row.id,
        giver_id=row.giver_id,
        receiver_id=row.receiver_id,
        revealed=row.revealed,
        revealed_at=row.revealed_at,
    )


def revealed(generated: Optional[GeneratedList]) -> List[Assignment]:
    if generated is None:
        return []
    return [a for a in generated.assignments if a.revealed]


def unrevealed(generated: Optional[GeneratedList]) -> List[Assignment]:
    if generated is None:
        return []
    return [a for a in generated.assignments if not a.revealed]


def assignment_for_giver(generated: Optional[GeneratedList], giver_id: str) -> Optional[Assignment]:
    if generated is None:
        return None
    return find_assignment_for_giver(giver_id, generated.assignments)

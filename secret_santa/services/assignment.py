from __future__ import annotations

import datetime
import enum
import random
from dataclasses import dataclass
from typing import Dict, FrozenSet, List, Optional, Sequence, Set

from loguru import logger

from secret_santa.services.roster import (
    MIN_PARTICIPANTS,
    Group,
    Participant,
    generate_id,
)


class GenerationErrorKind(str, enum.Enum):
    INSUFFICIENT_PARTICIPANTS = "insufficient_participants"
    IMPOSSIBLE_CONFIGURATION = "impossible_configuration"
    EXHAUSTED_ATTEMPTS = "exhausted_attempts"


@dataclass
class Assignment:
    id: str
    giver_id: str
    receiver_id: str
    revealed: bool = False
    revealed_at: Optional[datetime.datetime] = None


@dataclass
class GeneratedList:
    """A finished draw together with the roster it was drawn from."""

    id: str
    timestamp: datetime.datetime
    assignments: List[Assignment]
    participants: List[Participant]
    groups: List[Group]
    seed: Optional[int] = None
    attempts: int = 0


@dataclass(frozen=True)
class GenerationConfig:
    allow_self_assignment: bool = False
    enforce_group_constraints: bool = True
    max_attempts: int = 1000


DEFAULT_CONFIG = GenerationConfig()


@dataclass(frozen=True)
class GenerationResult:
    success: bool
    attempts: int
    assignments: Optional[List[Assignment]] = None
    error: Optional[str] = None
    error_kind: Optional[GenerationErrorKind] = None


@dataclass(frozen=True)
class AssignmentStats:
    total_assignments: int
    revealed_count: int
    unrevealed_count: int
    participants_with_groups: int
    participants_without_groups: int


@dataclass(frozen=True)
class _Feasibility:
    impossible: bool
    reason: Optional[str] = None


def groups_for_participant(participant_id: str, groups: Sequence[Group]) -> List[Group]:
    return [group for group in groups if group.has_member(participant_id)]


def are_in_same_group(giver_id: str, receiver_id: str, groups: Sequence[Group]) -> bool:
    return any(group.has_member(giver_id) and group.has_member(receiver_id) for group in groups)


def _grouped_ids(groups: Sequence[Group]) -> FrozenSet[str]:
    return frozenset(pid for group in groups for pid in group.participant_ids)


def is_valid_assignment(
    giver_id: str,
    receiver_id: str,
    groups: Sequence[Group],
    config: GenerationConfig = DEFAULT_CONFIG,
) -> bool:
    if not config.allow_self_assignment and giver_id == receiver_id:
        return False
    if config.enforce_group_constraints and are_in_same_group(giver_id, receiver_id, groups):
        return False
    return True


def _check_feasibility(participants: Sequence[Participant], groups: Sequence[Group]) -> _Feasibility:
    for group in groups:
        if len(group.participant_ids) == len(participants):
            return _Feasibility(
                True,
                f'Group "{group.name}" contains all participants. No valid assignments possible.',
            )

    for participant in participants:
        forbidden = {participant.id}
        for group in groups_for_participant(participant.id, groups):
            forbidden.update(group.participant_ids)
        if not any(candidate.id not in forbidden for candidate in participants):
            return _Feasibility(
                True,
                f'Participant "{participant.name}" has no valid receivers due to group constraints.',
            )

    return _Feasibility(False)


def _attempt(
    participants: Sequence[Participant],
    groups: Sequence[Group],
    config: GenerationConfig,
    rng: random.Random,
) -> Optional[List[Assignment]]:
    grouped = _grouped_ids(groups)
    # Grouped givers first: they have fewer options and pick while the pool is widest.
    givers = [p for p in participants if p.id in grouped] + [
        p for p in participants if p.id not in grouped
    ]
    receivers = list(participants)
    rng.shuffle(receivers)

    assignments: List[Assignment] = []
    used: Set[str] = set()
    for giver in givers:
        receiver = next(
            (
                candidate
                for candidate in receivers
                if candidate.id not in used
                and is_valid_assignment(giver.id, candidate.id, groups, config)
            ),
            None,
        )
        if receiver is None:
            return None
        assignments.append(Assignment(id=generate_id(), giver_id=giver.id, receiver_id=receiver.id))
        used.add(receiver.id)

    return assignments


def generate_assignments(
    participants: Sequence[Participant],
    groups: Sequence[Group] = (),
    config: Optional[GenerationConfig] = None,
    seed: Optional[int] = None,
) -> GenerationResult:
    config = config or DEFAULT_CONFIG

    if len(participants) < MIN_PARTICIPANTS:
        return GenerationResult(
            success=False,
            attempts=0,
            error=f"At least {MIN_PARTICIPANTS} participants are required for Secret Santa",
            error_kind=GenerationErrorKind.INSUFFICIENT_PARTICIPANTS,
        )

    feasibility = _check_feasibility(participants, groups)
    if feasibility.impossible:
        return GenerationResult(
            success=False,
            attempts=0,
            error=feasibility.reason,
            error_kind=GenerationErrorKind.IMPOSSIBLE_CONFIGURATION,
        )

    rng = random.Random(seed)
    for attempt_number in range(1, config.max_attempts + 1):
        assignments = _attempt(participants, groups, config, rng)
        if assignments is None:
            continue

        if not validate_assignments(assignments, participants, groups):
            logger.bind(attempt=attempt_number).error(
                "Generated assignments failed validation, retrying"
            )
            continue

        logger.bind(attempts=attempt_number, participants=len(participants)).debug(
            "Assignments generated"
        )
        return GenerationResult(success=True, attempts=attempt_number, assignments=assignments)

    return GenerationResult(
        success=False,
        attempts=config.max_attempts,
        error=(
            f"Could not generate valid assignments after {config.max_attempts} attempts. "
            "Try removing some group constraints."
        ),
        error_kind=GenerationErrorKind.EXHAUSTED_ATTEMPTS,
    )


def validate_assignments(
    assignments: Sequence[Assignment],
    participants: Sequence[Participant],
    groups: Sequence[Group],
) -> bool:
    if len({a.giver_id for a in assignments}) != len(participants):
        return False
    if len({a.receiver_id for a in assignments}) != len(participants):
        return False
    return all(
        is_valid_assignment(a.giver_id, a.receiver_id, groups, DEFAULT_CONFIG) for a in assignments
    )


def find_assignment_for_giver(giver_id: str, assignments: Sequence[Assignment]) -> Optional[Assignment]:
    return next((a for a in assignments if a.giver_id == giver_id), None)


def find_assignment_for_receiver(
    receiver_id: str, assignments: Sequence[Assignment]
) -> Optional[Assignment]:
    return next((a for a in assignments if a.receiver_id == receiver_id), None)


def get_assignment_stats(
    assignments: Sequence[Assignment],
    participants: Sequence[Participant],
    groups: Sequence[Group],
) -> AssignmentStats:
    revealed_count = sum(1 for a in assignments if a.revealed)
    grouped = _grouped_ids(groups)
    with_groups = sum(1 for p in participants if p.id in grouped)
    return AssignmentStats(
        total_assignments=len(assignments),
        revealed_count=revealed_count,
        unrevealed_count=len(assignments) - revealed_count,
        participants_with_groups=with_groups,
        participants_without_groups=len(participants) - with_groups,
    )


def as_mapping(assignments: Sequence[Assignment]) -> Dict[str, str]:
    return {a.giver_id: a.receiver_id for a in assignments}

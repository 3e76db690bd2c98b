from __future__ import annotations

import datetime
import re
import secrets
from dataclasses import dataclass, field
from typing import Iterable, Optional, Sequence, Tuple

PARTICIPANT_NAME_MIN = 2
PARTICIPANT_NAME_MAX = 50
GROUP_NAME_MIN = 2
GROUP_NAME_MAX = 30
MIN_PARTICIPANTS = 2

_NAME_PATTERN = re.compile(r"^[a-zA-Z0-9\s\-']+$")


def utcnow() -> datetime.datetime:
    return datetime.datetime.now(tz=datetime.timezone.utc)


def generate_id() -> str:
    return secrets.token_hex(8)


@dataclass(frozen=True)
class Participant:
    id: str
    name: str
    created_at: datetime.datetime = field(default_factory=utcnow)


@dataclass(frozen=True)
class Group:
    """Participants who must not draw each other (a couple, a household)."""

    id: str
    name: str
    participant_ids: Tuple[str, ...] = ()
    created_at: datetime.datetime = field(default_factory=utcnow)

    def has_member(self, participant_id: str) -> bool:
        return participant_id in self.participant_ids


@dataclass(frozen=True)
class ValidationResult:
    is_valid: bool
    error_message: Optional[str] = None


_VALID = ValidationResult(True)


def _invalid(message: str) -> ValidationResult:
    return ValidationResult(False, message)


def create_participant(name: str) -> Participant:
    return Participant(id=generate_id(), name=name.strip())


def create_group(name: str, participant_ids: Iterable[str] = ()) -> Group:
    return Group(id=generate_id(), name=name.strip(), participant_ids=tuple(participant_ids))


def validate_participant_name(
    name: str,
    existing: Sequence[Participant] = (),
) -> ValidationResult:
    trimmed = name.strip()
    if not trimmed:
        return _invalid("Name cannot be empty")
    if len(trimmed) < PARTICIPANT_NAME_MIN:
        return _invalid(f"Name must be at least {PARTICIPANT_NAME_MIN} characters long")
    if len(trimmed) > PARTICIPANT_NAME_MAX:
        return _invalid(f"Name cannot exceed {PARTICIPANT_NAME_MAX} characters")
    if not _NAME_PATTERN.match(trimmed):
        return _invalid("Name contains invalid characters")
    if any(p.name.lower() == trimmed.lower() for p in existing):
        return _invalid("A participant with this name already exists")
    return _VALID


def validate_group_name(name: str, existing: Sequence[Group] = ()) -> ValidationResult:
    trimmed = name.strip()
    if not trimmed:
        return _invalid("Group name cannot be empty")
    if len(trimmed) < GROUP_NAME_MIN:
        return _invalid(f"Group name must be at least {GROUP_NAME_MIN} characters long")
    if len(trimmed) > GROUP_NAME_MAX:
        return _invalid(f"Group name cannot exceed {GROUP_NAME_MAX} characters")
    if any(g.name.lower() == trimmed.lower() for g in existing):
        return _invalid("A group with this name already exists")
    return _VALID


def validate_group_configuration(
    groups: Sequence[Group],
    participants: Sequence[Participant],
) -> ValidationResult:
    """
    Checks the group rules that must hold before a draw:
    every group has at least two members, no group holds everyone, and
    groups only reference participants that still exist.
    """
    for group in groups:
        if not group.participant_ids:
            return _invalid(
                f'Group "{group.name}" is empty. Please add participants or remove the group.'
            )
    for group in groups:
        if len(group.participant_ids) == 1:
            return _invalid(
                f'Group "{group.name}" has only one member. '
                "Groups should have at least 2 members or be removed."
            )
    for group in groups:
        if len(group.participant_ids) == len(participants):
            return _invalid(
                f'Group "{group.name}" contains all participants. '
                "This makes it impossible to generate assignments."
            )

    known_ids = {p.id for p in participants}
    for group in groups:
        if any(pid not in known_ids for pid in group.participant_ids):
            return _invalid(f'Group "{group.name}" contains participants that no longer exist.')
    return _VALID


def validate_minimum_participants(participants: Sequence[Participant]) -> ValidationResult:
    if len(participants) < MIN_PARTICIPANTS:
        return _invalid(f"At least {MIN_PARTICIPANTS} participants are required for Secret Santa")
    return _VALID


def validate_verification_name(input_name: str, expected_name: str) -> ValidationResult:
    trimmed = input_name.strip()
    if not trimmed:
        return _invalid("Please enter your name")
    if trimmed.lower() != expected_name.strip().lower():
        return _invalid("Name does not match. Please try again.")
    return _VALID

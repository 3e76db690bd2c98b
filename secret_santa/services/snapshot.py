from __future__ import annotations

import datetime
from typing import Any, Dict, Optional

from secret_santa.services.assignment import Assignment, GeneratedList
from secret_santa.services.roster import Group, Participant


class SnapshotError(ValueError):
    pass


def _dump_time(value: Optional[datetime.datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _load_time(value: Any, key: str) -> datetime.datetime:
    if not isinstance(value, str):
        raise SnapshotError(f"{key} should be an ISO-8601 string.")
    try:
        return datetime.datetime.fromisoformat(value)
    except ValueError as exc:
        raise SnapshotError(f"{key} is not a valid timestamp: {value!r}") from exc


def _require(data: Any, key: str, kind: type) -> Any:
    if not isinstance(data, dict):
        raise SnapshotError(f"Expected an object, got {type(data).__name__}.")
    if key not in data:
        raise SnapshotError(f"Missing field: {key}")
    value = data[key]
    if not isinstance(value, kind):
        raise SnapshotError(f"Field {key} should be {kind.__name__}.")
    return value


def _optional_int(data: Any, key: str, default: Optional[int]) -> Optional[int]:
    value = data.get(key, default) if isinstance(data, dict) else default
    # bool is an int subclass
    if value is not None and (not isinstance(value, int) or isinstance(value, bool)):
        raise SnapshotError(f"Field {key} should be int.")
    return value


def dump_participant(participant: Participant) -> Dict[str, Any]:
    return {
        "id": participant.id,
        "name": participant.name,
        "created_at": _dump_time(participant.created_at),
    }


def load_participant(data: Any) -> Participant:
    return Participant(
        id=_require(data, "id", str),
        name=_require(data, "name", str),
        created_at=_load_time(_require(data, "created_at", str), "created_at"),
    )


def dump_group(group: Group) -> Dict[str, Any]:
    return {
        "id": group.id,
        "name": group.name,
        "participant_ids": list(group.participant_ids),
        "created_at": _dump_time(group.created_at),
    }


def load_group(data: Any) -> Group:
    participant_ids = _require(data, "participant_ids", list)
    if not all(isinstance(pid, str) for pid in participant_ids):
        raise SnapshotError("Field participant_ids should only contain strings.")
    return Group(
        id=_require(data, "id", str),
        name=_require(data, "name", str),
        participant_ids=tuple(participant_ids),
        created_at=_load_time(_require(data, "created_at", str), "created_at"),
    )


def dump_assignment(assignment: Assignment) -> Dict[str, Any]:
    return {
        "id": assignment.id,
        "giver_id": assignment.giver_id,
        "receiver_id": assignment.receiver_id,
        "revealed": assignment.revealed,
        "revealed_at": _dump_time(assignment.revealed_at),
    }


def load_assignment(data: Any) -> Assignment:
    revealed_at = data.get("revealed_at") if isinstance(data, dict) else None
    return Assignment(
        id=_require(data, "id", str),
        giver_id=_require(data, "giver_id", str),
        receiver_id=_require(data, "receiver_id", str),
        revealed=_require(data, "revealed", bool),
        revealed_at=_load_time(revealed_at, "revealed_at") if revealed_at is not None else None,
    )


def dump_generated_list(generated: GeneratedList) -> Dict[str, Any]:
    return {
        "id": generated.id,
        "timestamp": _dump_time(generated.timestamp),
        "seed": generated.seed,
        "attempts": generated.attempts,
        "assignments": [dump_assignment(a) for a in generated.assignments],
        "participants": [dump_participant(p) for p in generated.participants],
        "groups": [dump_group(g) for g in generated.groups],
    }


def load_generated_list(data: Any) -> GeneratedList:
    seed = _optional_int(data, "seed", None)
    attempts = _optional_int(data, "attempts", 0) or 0
    return GeneratedList(
        id=_require(data, "id", str),
        timestamp=_load_time(_require(data, "timestamp", str), "timestamp"),
        assignments=[load_assignment(item) for item in _require(data, "assignments", list)],
        participants=[load_participant(item) for item in _require(data, "participants", list)],
        groups=[load_group(item) for item in _require(data, "groups", list)],
        seed=seed,
        attempts=attempts,
    )

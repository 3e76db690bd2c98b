import datetime

import pytest

from secret_santa.services.assignment import Assignment, GeneratedList
from secret_santa.services.roster import Group, Participant
from secret_santa.services.snapshot import (
    SnapshotError,
    dump_generated_list,
    dump_participant,
    load_assignment,
    load_generated_list,
    load_group,
    load_participant,
)

CREATED = datetime.datetime(2025, 12, 1, 18, 30, tzinfo=datetime.timezone.utc)


def sample_list():
    return GeneratedList(
        id="list-1",
        timestamp=CREATED,
        assignments=[
            Assignment(id="a1", giver_id="1", receiver_id="2", revealed=True, revealed_at=CREATED),
            Assignment(id="a2", giver_id="2", receiver_id="1"),
        ],
        participants=[
            Participant(id="1", name="Alice", created_at=CREATED),
            Participant(id="2", name="Bob", created_at=CREATED),
        ],
        groups=[Group(id="g1", name="Friends", participant_ids=("1",), created_at=CREATED)],
        seed=42,
        attempts=3,
    )


def test_generated_list_survives_encoding():
    original = sample_list()
    assert load_generated_list(dump_generated_list(original)) == original


def test_participant_timestamps_are_iso_strings():
    data = dump_participant(Participant(id="1", name="Alice", created_at=CREATED))
    assert data["created_at"] == "2025-12-01T18:30:00+00:00"


@pytest.mark.parametrize(
    "data",
    [
        None,
        [],
        {"name": "Alice", "created_at": "2025-12-01T18:30:00+00:00"},
        {"id": 1, "name": "Alice", "created_at": "2025-12-01T18:30:00+00:00"},
        {"id": "1", "name": "Alice", "created_at": "yesterday"},
    ],
)
def test_malformed_participant_raises(data):
    with pytest.raises(SnapshotError):
        load_participant(data)


def test_group_members_must_be_strings():
    with pytest.raises(SnapshotError):
        load_group({"id": "g", "name": "Family", "participant_ids": [1, 2], "created_at": CREATED.isoformat()})


def test_assignment_revealed_must_be_bool():
    with pytest.raises(SnapshotError):
        load_assignment({"id": "a", "giver_id": "1", "receiver_id": "2", "revealed": "yes"})


def test_generated_list_seed_must_be_int():
    data = dump_generated_list(sample_list())
    data["seed"] = "42"
    with pytest.raises(SnapshotError):
        load_generated_list(data)

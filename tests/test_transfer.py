import json

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from secret_santa.db.models import Base
from secret_santa.services import draw
from secret_santa.services.transfer import TransferError, export_data, import_data


def create_session():
    engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine, expire_on_commit=False)()


def build_event(session):
    alice = draw.add_participant(session, "Alice")
    bob = draw.add_participant(session, "Bob")
    draw.add_participant(session, "Charlie")
    draw.add_participant(session, "Diana")
    couple = draw.create_group(session, "Couple")
    draw.add_group_member(session, couple.id, alice.id)
    draw.add_group_member(session, couple.id, bob.id)
    first = draw.generate_list(session)
    second = draw.generate_list(session)
    draw.reveal_assignment(session, second.assignments[0].id)
    return first, second


def test_export_then_import_restores_everything():
    source = create_session()
    first, second = build_event(source)
    payload = export_data(source)

    target = create_session()
    import_data(target, payload)

    assert {p.name for p in draw.list_participants(target)} == {"Alice", "Bob", "Charlie", "Diana"}
    groups = draw.list_groups(target)
    assert [g.name for g in groups] == ["Couple"]
    assert len(groups[0].participant_ids) == 2
    assert [item.id for item in draw.list_history(target)] == [second.id, first.id]

    current = draw.get_current_list(target)
    assert current.id == second.id
    assert [a.id for a in draw.revealed(current)] == [second.assignments[0].id]


def test_export_is_json():
    session = create_session()
    build_event(session)
    data = json.loads(export_data(session))
    assert set(data) == {"participants", "groups", "history", "current_list", "exported_at"}


def test_import_skips_invalid_entries():
    session = create_session()
    payload = json.dumps(
        {
            "participants": [
                {"id": "1", "name": "Alice", "created_at": "2025-12-01T10:00:00+00:00"},
                {"id": "2", "name": "Bob"},
            ]
        }
    )
    import_data(session, payload)
    assert [p.name for p in draw.list_participants(session)] == ["Alice"]


def test_import_leaves_missing_sections_alone():
    session = create_session()
    build_event(session)
    history_before = [item.id for item in draw.list_history(session)]
    import_data(session, json.dumps({"groups": []}))
    assert draw.list_groups(session) == []
    assert len(draw.list_participants(session)) == 4
    assert [item.id for item in draw.list_history(session)] == history_before


@pytest.mark.parametrize("payload", ["{not json", "[1, 2, 3]"])
def test_import_rejects_corrupted_payload(payload):
    session = create_session()
    with pytest.raises(TransferError):
        import_data(session, payload)


def test_import_skips_participants_with_repeated_names():
    session = create_session()
    payload = json.dumps(
        {
            "participants": [
                {"id": "1", "name": "Alice", "created_at": "2025-12-01T10:00:00+00:00"},
                {"id": "2", "name": "alice", "created_at": "2025-12-01T10:01:00+00:00"},
                {"id": "3", "name": "Bob", "created_at": "2025-12-01T10:02:00+00:00"},
            ]
        }
    )
    import_data(session, payload)
    assert [(p.id, p.name) for p in draw.list_participants(session)] == [("1", "Alice"), ("3", "Bob")]


def test_import_skips_repeated_ids():
    session = create_session()
    payload = json.dumps(
        {
            "participants": [
                {"id": "1", "name": "Alice", "created_at": "2025-12-01T10:00:00+00:00"},
                {"id": "1", "name": "Bob", "created_at": "2025-12-01T10:01:00+00:00"},
                {"id": "2", "name": "Charlie", "created_at": "2025-12-01T10:02:00+00:00"},
            ],
            "groups": [
                {
                    "id": "g1",
                    "name": "Pair",
                    "participant_ids": ["1", "2", "2"],
                    "created_at": "2025-12-01T10:03:00+00:00",
                },
                {
                    "id": "g1",
                    "name": "Other",
                    "participant_ids": ["1", "2"],
                    "created_at": "2025-12-01T10:04:00+00:00",
                },
            ],
        }
    )
    import_data(session, payload)
    assert [p.name for p in draw.list_participants(session)] == ["Alice", "Charlie"]
    groups = draw.list_groups(session)
    assert [g.name for g in groups] == ["Pair"]
    assert sorted(groups[0].participant_ids) == ["1", "2"]


def test_import_skips_repeated_history_lists():
    source = create_session()
    first, second = build_event(source)
    data = json.loads(export_data(source))
    data["history"].append(data["history"][0])

    target = create_session()
    import_data(target, json.dumps(data))
    assert [item.id for item in draw.list_history(target)] == [second.id, first.id]


def test_import_that_cannot_be_stored_leaves_data_untouched():
    source = create_session()
    build_event(source)
    data = json.loads(export_data(source))
    newer, older = data["history"]
    for mine, theirs in zip(newer["assignments"], older["assignments"]):
        mine["id"] = theirs["id"]

    target = create_session()
    draw.add_participant(target, "Zed")
    with pytest.raises(TransferError):
        import_data(target, json.dumps(data))
    assert [p.name for p in draw.list_participants(target)] == ["Zed"]
    assert draw.list_history(target) == []

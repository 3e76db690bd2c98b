from __future__ import annotations

import json
from typing import Any, Callable, List, Optional, Set, TypeVar

from loguru import logger
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.exc import FlushError

from secret_santa.core.config import Settings
from secret_santa.db import repo
from secret_santa.services import draw, roster
from secret_santa.services.snapshot import (
    SnapshotError,
    dump_generated_list,
    dump_group,
    dump_participant,
    load_generated_list,
    load_group,
    load_participant,
)

T = TypeVar("T")

_CORRUPTED = "Failed to import data. The file might be corrupted."


class TransferError(RuntimeError):
    pass


def export_data(session) -> str:
    current = draw.get_current_list(session)
    data = {
        "participants": [dump_participant(p) for p in draw.list_participants(session)],
        "groups": [dump_group(g) for g in draw.list_groups(session)],
        "history": [dump_generated_list(item) for item in draw.list_history(session)],
        "current_list": dump_generated_list(current) if current else None,
        "exported_at": roster.utcnow().isoformat(),
    }
    return json.dumps(data, indent=2)


def _load_valid(items: Any, loader: Callable[[Any], T], section: str) -> List[T]:
    if not isinstance(items, list):
        return []
    loaded: List[T] = []
    for index, item in enumerate(items):
        try:
            loaded.append(loader(item))
        except SnapshotError as exc:
            logger.bind(section=section, index=index).warning(
                "Skipping invalid entry: {error}", error=str(exc)
            )
    return loaded


def _drop_duplicates(items: List[T], section: str, by_name: bool = False) -> List[T]:
    """Keeps the first entry per id (and per case-insensitive name when asked)."""
    seen_ids: Set[str] = set()
    seen_names: Set[str] = set()
    unique: List[T] = []
    for item in items:
        name_key = item.name.lower() if by_name else None
        if item.id in seen_ids or name_key in seen_names:
            logger.bind(section=section, entry_id=item.id).warning("Skipping duplicate entry")
            continue
        seen_ids.add(item.id)
        if name_key is not None:
            seen_names.add(name_key)
        unique.append(item)
    return unique


def import_data(session, payload: str, settings: Optional[Settings] = None) -> None:
    """
    Restores a backup produced by export_data. Each section present in the
    payload replaces what is stored; entries that fail to decode or repeat an
    earlier id or name are skipped. If the rows still cannot be stored the
    session is left as it was and TransferError is raised.
    """
    try:
        data = json.loads(payload)
    except (TypeError, ValueError) as exc:
        raise TransferError(_CORRUPTED) from exc
    if not isinstance(data, dict):
        raise TransferError(_CORRUPTED)

    try:
        with session.begin_nested():
            _replace(session, data, settings)
    except (IntegrityError, FlushError) as exc:
        logger.bind(error=str(exc)).warning("Import rolled back")
        raise TransferError(_CORRUPTED) from exc


def _replace(session, data: dict, settings: Optional[Settings]) -> None:
    if isinstance(data.get("participants"), list):
        participants = _drop_duplicates(
            _load_valid(data["participants"], load_participant, "participants"),
            "participants",
            by_name=True,
        )
        draw.clear_participants(session)
        for participant in participants:
            repo.add_participant(session, participant)

    if isinstance(data.get("groups"), list):
        groups = _drop_duplicates(
            _load_valid(data["groups"], load_group, "groups"), "groups", by_name=True
        )
        repo.clear_groups(session)
        for group in groups:
            repo.add_group(session, group)

    history = None
    if isinstance(data.get("history"), list):
        history = _drop_duplicates(
            _load_valid(data["history"], load_generated_list, "history"), "history"
        )
    current = None
    if isinstance(data.get("current_list"), dict):
        current = _load_valid([data["current_list"]], load_generated_list, "current_list")

    if history is None and current is None:
        return

    keep_history = history if history is not None else draw.list_history(session)
    keep_current = current[0] if current else draw.get_current_list(session)

    max_count = draw.get_history_settings(session, settings).max_history_count
    repo.delete_all_generated_lists(session)
    # history is newest first, insert oldest first to keep the ordering
    for item in reversed(keep_history[:max_count]):
        repo.create_generated_list(session, item)
    if keep_current is not None:
        model = repo.get_generated_list(session, keep_current.id)
        if model is None:
            model = repo.create_generated_list(session, keep_current, in_history=False)
        repo.set_current_list(session, model)
    logger.bind(history=len(keep_history), current=keep_current is not None).info("Data imported")

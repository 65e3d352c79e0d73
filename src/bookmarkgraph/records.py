from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Bookmark:
    id: str
    title: str
    url: str | None = None
    folder: str | None = None
    created_at: datetime | None = None


@dataclass(frozen=True)
class HistoryEntry:
    url: str
    title: str
    visit_count: int = 0
    last_visit: datetime | None = None


def parse_timestamp(value: Any) -> datetime | None:
    """Accept ISO-8601 strings (trailing Z allowed) or epoch seconds."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, bool):
        raise ValueError(f"Not a timestamp: {value!r}")
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(float(value), tz=timezone.utc)
        except (OverflowError, OSError) as e:
            raise ValueError(f"Timestamp out of range: {value!r}") from e

    raw = str(value).strip()
    if raw.endswith("Z"):
        raw = raw[:-1] + "+00:00"
    return datetime.fromisoformat(raw)


def load_bookmarks(path: Path) -> list[Bookmark]:
    """Load bookmark records from a JSON export.

    The file holds either a list of records or an object with a "bookmarks"
    key. Records may nest "children"; nested records inherit the folder path
    of their parents.
    """
    rows = _read_rows(path, key="bookmarks")
    out: list[Bookmark] = []
    for row in _flatten(rows, parent=None):
        try:
            out.append(_bookmark_from_row(row, default_id=f"row-{len(out) + 1}"))
        except (TypeError, ValueError) as e:
            logger.warning("Dropping bookmark row %r: %s", row.get("id") or row.get("title"), e)
    return out


def load_history(path: Path) -> list[HistoryEntry]:
    rows = _read_rows(path, key="history")
    out: list[HistoryEntry] = []
    for row in rows:
        if not isinstance(row, dict):
            logger.warning("Dropping history row: expected an object, got %s", type(row).__name__)
            continue
        try:
            out.append(_history_from_row(row))
        except (TypeError, ValueError) as e:
            logger.warning("Dropping history row %r: %s", row.get("url"), e)
    return out


def _read_rows(path: Path, *, key: str) -> list[Any]:
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    if isinstance(data, dict):
        data = data.get(key) or []
    if not isinstance(data, list):
        raise ValueError(f"{path}: expected a JSON list of {key} records")
    return data


def _flatten(rows: Iterable[Any], *, parent: str | None) -> Iterable[dict[str, Any]]:
    for row in rows:
        if not isinstance(row, dict):
            logger.warning("Dropping bookmark row: expected an object, got %s", type(row).__name__)
            continue

        children = row.get("children")
        if isinstance(children, list):
            # Folder entry: its title extends the path of everything below it.
            name = str(row.get("title") or "").strip()
            path = "/".join(p for p in (parent, name) if p)
            yield from _flatten(children, parent=path or parent)
            if not row.get("url"):
                continue

        if parent and not row.get("folder"):
            row = {**row, "folder": parent}
        yield row


def _bookmark_from_row(row: dict[str, Any], *, default_id: str) -> Bookmark:
    url = row.get("url")
    folder = row.get("folder")
    return Bookmark(
        id=str(row.get("id") or default_id),
        title=str(row.get("title") or ""),
        url=(str(url) if url else None),
        folder=(str(folder) if folder else None),
        created_at=parse_timestamp(row.get("created_at", row.get("date_added"))),
    )


def _history_from_row(row: dict[str, Any]) -> HistoryEntry:
    url = row.get("url")
    if not url:
        raise ValueError("missing url")
    return HistoryEntry(
        url=str(url),
        title=str(row.get("title") or ""),
        visit_count=int(row.get("visit_count") or 0),
        last_visit=parse_timestamp(row.get("last_visit")),
    )

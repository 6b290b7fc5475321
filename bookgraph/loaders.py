# -*- coding: utf-8 -*-
"""Read bookmark/history export files (YAML or JSON) into model records.

An export is either a list of browser records::

    - browser: chrome
      profile: Default
      bookmarks: [...]
      history: {urls: [...]}

a single such mapping, or a bare list of bookmark mappings. Nested bookmark
trees (``children``) are flattened with their folder path.
"""
import dataclasses
import json
import os
import re
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional, Set, Tuple

import yaml

from .models import Bookmark, HistoryEntry, flatten_bookmarks, format_timestamp


class LoaderError(ValueError):
    """Raised when an export file cannot be read as bookmark data."""


def is_json_path(path: str) -> bool:
    return os.path.splitext(path)[1].lower() == ".json"


def parse_datetime(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    return None


def bookmark_from_dict(data: Dict, fallback_id: str) -> Bookmark:
    raw_id = data.get("id")
    bookmark_id = str(raw_id) if raw_id is not None else fallback_id
    children = data.get("children")
    child_items = None
    if isinstance(children, list):
        child_items = [
            bookmark_from_dict(c, f"{bookmark_id}_{i}") for i, c in enumerate(children) if isinstance(c, dict)
        ]
    url = str(data.get("url") or "").strip() or None
    folder = data.get("folder")
    return Bookmark(
        id=bookmark_id,
        title=str(data.get("title") or "").strip(),
        url=url,
        folder=str(folder) if folder else None,
        date_added=parse_datetime(data.get("date_added")),
        children=child_items,
    )


def history_from_dict(data: Dict) -> Optional[HistoryEntry]:
    url = str(data.get("url") or "").strip()
    if not url:
        return None
    try:
        visits = int(data.get("visit_count") or 0)
    except (TypeError, ValueError):
        visits = 0
    return HistoryEntry(
        url=url,
        title=str(data.get("title") or "").strip(),
        visit_count=max(0, visits),
        last_visit=parse_datetime(data.get("last_visit")),
    )


def read_document(path: str) -> Any:
    with open(path, "r", encoding="utf-8") as f:
        content = f.read()
    try:
        if is_json_path(path):
            return json.loads(content)
        return yaml.safe_load(content)
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        raise LoaderError(f"{path}: cannot parse export: {exc}") from exc


def _records(document: Any, path: str) -> List[Dict]:
    if document is None:
        return []
    if isinstance(document, dict):
        return [document]
    if isinstance(document, list):
        if document and all(isinstance(d, dict) and ("bookmarks" in d or "history" in d) for d in document):
            return document
        return [{"bookmarks": document}]
    raise LoaderError(f"{path}: expected a list or mapping, got {type(document).__name__}")


def _record_prefix(record: Dict, index: int) -> str:
    browser = str(record.get("browser") or "").strip().lower()
    return re.sub(r"\s+", "_", browser) if browser else f"r{index}"


def _unique_id(bookmark_id: str, prefix: str, seen: Set[str]) -> str:
    if bookmark_id not in seen:
        return bookmark_id
    candidate = f"{prefix}_{bookmark_id}"
    n = 2
    while candidate in seen:
        candidate = f"{prefix}_{bookmark_id}_{n}"
        n += 1
    return candidate


def load_export(path: str) -> Tuple[List[Bookmark], List[HistoryEntry]]:
    """Return the flattened bookmarks and history entries found in ``path``.

    Browsers number their bookmarks independently, so an id already taken by an
    earlier record is prefixed with the record's browser name (``firefox_1``).
    """
    document = read_document(path)
    bookmarks: List[Bookmark] = []
    history: List[HistoryEntry] = []
    seen: Set[str] = set()
    for index, record in enumerate(_records(document, path)):
        raw_bookmarks = record.get("bookmarks") or []
        if not isinstance(raw_bookmarks, list):
            raise LoaderError(f"{path}: 'bookmarks' must be a list")
        offset = len(bookmarks)
        tree = [bookmark_from_dict(b, f"bm_{offset + i}") for i, b in enumerate(raw_bookmarks) if isinstance(b, dict)]
        prefix = _record_prefix(record, index)
        for bookmark in flatten_bookmarks(tree):
            bookmark_id = _unique_id(bookmark.id, prefix, seen)
            if bookmark_id != bookmark.id:
                bookmark = dataclasses.replace(bookmark, id=bookmark_id)
            seen.add(bookmark_id)
            bookmarks.append(bookmark)

        raw_history = record.get("history") or []
        if isinstance(raw_history, dict):
            raw_history = raw_history.get("urls") or []
        if not isinstance(raw_history, list):
            raise LoaderError(f"{path}: 'history' must be a list or a mapping with 'urls'")
        for entry in raw_history:
            if isinstance(entry, dict):
                parsed = history_from_dict(entry)
                if parsed:
                    history.append(parsed)
    return bookmarks, history


def load_bookmarks(path: str) -> List[Bookmark]:
    return load_export(path)[0]


def load_history(path: str) -> List[HistoryEntry]:
    return load_export(path)[1]


def bookmark_to_dict(bookmark: Bookmark) -> Dict:
    data = {
        "id": bookmark.id,
        "title": bookmark.title,
        "url": bookmark.url,
        "folder": bookmark.folder,
        "date_added": format_timestamp(bookmark.date_added),
    }
    if bookmark.children is not None:
        data["children"] = [bookmark_to_dict(c) for c in bookmark.children]
    return data


def history_to_dict(entry: HistoryEntry) -> Dict:
    return {
        "url": entry.url,
        "title": entry.title,
        "visit_count": entry.visit_count,
        "last_visit": format_timestamp(entry.last_visit),
    }


def save_export(
    path: str,
    bookmarks: List[Bookmark],
    history: Optional[List[HistoryEntry]] = None,
    browser: str = "processed",
    profile: str = "bookgraph",
) -> None:
    """Write one browser record, so history survives a rewrite of the bookmarks."""
    record: Dict[str, Any] = {
        "browser": browser,
        "profile": profile,
        "bookmarks": [bookmark_to_dict(b) for b in bookmarks],
    }
    if history:
        record["history"] = {"urls": [history_to_dict(h) for h in history]}
    dir_name = os.path.dirname(path)
    if dir_name:
        os.makedirs(dir_name, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        if is_json_path(path):
            json.dump([record], f, ensure_ascii=False, indent=2)
        else:
            yaml.safe_dump([record], f, allow_unicode=True, sort_keys=False)

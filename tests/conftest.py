"""
Pytest configuration and shared fixtures
"""

import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import List

import pytest

PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from bookgraph.models import Bookmark, HistoryEntry


def utc(year: int, month: int = 1, day: int = 1) -> datetime:
    return datetime(year, month, day, tzinfo=timezone.utc)


@pytest.fixture
def sample_bookmarks() -> List[Bookmark]:
    """Four bookmarks, two of them on github.com."""
    now = datetime.now(timezone.utc)
    return [
        Bookmark(id="1", title="GitHub Home", url="https://github.com", folder="Development", date_added=now),
        Bookmark(id="2", title="GitHub Repo", url="https://github.com/user/repo", folder="Development", date_added=now),
        Bookmark(id="3", title="Rust Docs", url="https://doc.rust-lang.org", folder="Development", date_added=now),
        Bookmark(id="4", title="Amazon", url="https://www.amazon.com", folder="Shopping", date_added=now),
    ]


@pytest.fixture
def sample_history() -> List[HistoryEntry]:
    now = datetime.now(timezone.utc)
    return [
        HistoryEntry(url="https://github.com", title="GitHub", visit_count=10, last_visit=now),
        HistoryEntry(url="https://www.reddit.com", title="Reddit", visit_count=5, last_visit=now),
    ]

# -*- coding: utf-8 -*-
"""Substring search over bookmark titles and URLs."""
from typing import List, Optional

from .models import Bookmark


def search_bookmarks(
    bookmarks: List[Bookmark],
    query: str,
    title_only: bool = False,
    url_only: bool = False,
    limit: Optional[int] = None,
) -> List[Bookmark]:
    needle = (query or "").lower()
    matches: List[Bookmark] = []
    for bookmark in bookmarks:
        if not bookmark.url:
            continue
        title_match = needle in (bookmark.title or "").lower()
        url_match = needle in bookmark.url.lower()
        if title_only:
            hit = title_match
        elif url_only:
            hit = url_match
        else:
            hit = title_match or url_match
        if hit:
            matches.append(bookmark)
            if limit is not None and len(matches) >= limit:
                break
    return matches

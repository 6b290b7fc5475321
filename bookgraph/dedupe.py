# -*- coding: utf-8 -*-
"""Collapse bookmarks that share a canonical URL, and score near-duplicates.

Exact duplicates are found by grouping on :func:`bookgraph.urls.canonicalize`
and every group is merged into a single bookmark with one of the
:class:`MergeStrategy` rules. :func:`find_potential_duplicates` is a separate
pairwise pass over the raw URLs that reports pairs which look alike without
sharing a canonical form.
"""
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Hashable, List, NamedTuple, Optional, Set, Tuple
from urllib.parse import urlsplit

from .models import Bookmark, as_utc
from .urls import NormalizationPolicy, UrlError, canonicalize

POTENTIAL_DUPLICATE_THRESHOLD = 0.8
HOST_WEIGHT = 0.5
PATH_WEIGHT = 0.3
QUERY_WEIGHT = 0.2


class MergeStrategy(Enum):
    KEEP_FIRST = "keep_first"
    KEEP_LAST = "keep_last"
    KEEP_MOST_RECENT = "keep_most_recent"
    KEEP_MOST_FREQUENT = "keep_most_frequent"
    MERGE_METADATA = "merge_metadata"


@dataclass
class DeduplicationConfig:
    normalize_urls: bool = True
    ignore_query_params: bool = True
    ignore_fragment: bool = True
    ignore_www: bool = True
    ignore_protocol: bool = True
    case_sensitive: bool = False
    merge_strategy: MergeStrategy = MergeStrategy.MERGE_METADATA

    def policy(self) -> NormalizationPolicy:
        return NormalizationPolicy(
            ignore_protocol=self.ignore_protocol,
            ignore_www=self.ignore_www,
            normalize_path=self.normalize_urls,
            ignore_query_params=self.ignore_query_params,
            ignore_fragment=self.ignore_fragment,
            case_sensitive=self.case_sensitive,
        )


@dataclass
class DeduplicationResult:
    unique_bookmarks: List[Bookmark] = field(default_factory=list)
    duplicates_removed: int = 0
    duplicates_found: int = 0
    merge_summary: Dict[str, int] = field(default_factory=dict)


class PotentialDuplicate(NamedTuple):
    first: Bookmark
    second: Bookmark
    score: float


def deduplicate(bookmarks: List[Bookmark], config: Optional[DeduplicationConfig] = None) -> DeduplicationResult:
    if config is None:
        config = DeduplicationConfig()
    policy = config.policy()

    # Unparseable URLs get a key of their own so they pass through unmerged.
    groups: Dict[Hashable, List[Bookmark]] = {}
    for idx, bookmark in enumerate(bookmarks):
        if not bookmark.url:
            continue
        try:
            key: Hashable = canonicalize(bookmark.url, policy)
        except UrlError:
            key = ("unparsed", idx)
        groups.setdefault(key, []).append(bookmark)

    result = DeduplicationResult()
    for key, group in groups.items():
        if len(group) == 1:
            result.unique_bookmarks.append(group[0])
            continue
        result.duplicates_found += len(group) - 1
        result.unique_bookmarks.append(merge_bookmarks(group, config.merge_strategy))
        result.duplicates_removed += len(group) - 1
        result.merge_summary[key] = len(group)
    return result


def _recency_key(now: datetime):
    # Undated bookmarks count as "now", so they are never older than a dated one.
    def key(item: Tuple[int, Bookmark]):
        idx, bookmark = item
        return (as_utc(bookmark.date_added) or now, idx)

    return key


def merge_bookmarks(group: List[Bookmark], strategy: MergeStrategy) -> Bookmark:
    if strategy is MergeStrategy.KEEP_FIRST:
        return group[0]
    if strategy is MergeStrategy.KEEP_LAST:
        return group[-1]
    if strategy is MergeStrategy.KEEP_MOST_RECENT:
        now = datetime.now(timezone.utc)
        return max(enumerate(group), key=_recency_key(now))[1]
    if strategy is MergeStrategy.KEEP_MOST_FREQUENT:
        counts = Counter(b.title for b in group)
        title, _ = max(counts.items(), key=lambda kv: kv[1])
        return next(b for b in group if b.title == title)
    if strategy is MergeStrategy.MERGE_METADATA:
        return _merge_metadata(group)
    raise ValueError(f"unknown merge strategy: {strategy!r}")


def _merge_metadata(group: List[Bookmark]) -> Bookmark:
    first = group[0]
    now = datetime.now(timezone.utc)

    titled = [(idx, b) for idx, b in enumerate(group) if b.title]
    title = max(titled, key=_recency_key(now))[1].title if titled else first.title

    dates = [as_utc(b.date_added) for b in group if b.date_added is not None]
    date_added = max(dates) if dates else None

    folders: List[str] = []
    for bookmark in group:
        if bookmark.folder is not None and bookmark.folder not in folders:
            folders.append(bookmark.folder)
    if not folders:
        folder = None
    elif len(folders) == 1:
        folder = folders[0]
    else:
        folder = "Merged: " + ", ".join(folders)

    return Bookmark(
        id=first.id,
        title=title,
        url=first.url,
        folder=folder,
        date_added=date_added,
        children=None,
    )


def jaccard(a: Set[str], b: Set[str]) -> float:
    """Jaccard index where two empty sets count as identical."""
    if not a and not b:
        return 1.0
    return len(a & b) / len(a | b)


def _normalize_path(path: str) -> str:
    return path.rstrip("/").lower()


def url_similarity(url_a: str, url_b: str) -> float:
    """Weighted host/path/query likeness of two URLs in [0, 1].

    Raises :class:`UrlError` when either URL cannot be parsed.
    """
    try:
        parsed_a = urlsplit(url_a)
        parsed_b = urlsplit(url_b)
        host_a = parsed_a.hostname
        host_b = parsed_b.hostname
    except ValueError as exc:
        raise UrlError(str(exc)) from exc
    if not parsed_a.scheme or not parsed_b.scheme:
        raise UrlError(f"not an absolute URL: {url_a!r} / {url_b!r}")

    score = 0.0
    if host_a == host_b:
        score += HOST_WEIGHT

    path_a = _normalize_path(parsed_a.path)
    path_b = _normalize_path(parsed_b.path)
    if path_a == path_b:
        score += PATH_WEIGHT
    else:
        score += jaccard(set(path_a.split("/")), set(path_b.split("/"))) * PATH_WEIGHT

    query_a = parsed_a.query
    query_b = parsed_b.query
    if query_a and query_b:
        score += jaccard(set(query_a.split("&")), set(query_b.split("&"))) * QUERY_WEIGHT
    elif not query_a and not query_b:
        score += QUERY_WEIGHT
    return score


def find_potential_duplicates(
    bookmarks: List[Bookmark],
    threshold: float = POTENTIAL_DUPLICATE_THRESHOLD,
) -> List[PotentialDuplicate]:
    candidates = [b for b in bookmarks if b.url]
    duplicates: List[PotentialDuplicate] = []
    for i in range(len(candidates)):
        for j in range(i + 1, len(candidates)):
            try:
                score = url_similarity(candidates[i].url, candidates[j].url)
            except UrlError:
                continue
            if score > threshold:
                duplicates.append(PotentialDuplicate(candidates[i], candidates[j], score))
    return duplicates

# -*- coding: utf-8 -*-
"""Assign bookmarks to folders by regex rules, domain, content or date.

Rules are tried first, highest priority first, and the first whose pattern
matches anywhere in the URL decides the folder. Without a matching rule the
enabled fallbacks are tried in order: domain, content keywords, date added.
"""
import re
import time
from collections import Counter
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Dict, List, Optional, Tuple
from urllib.parse import urlsplit

from .dedupe import DeduplicationConfig, DeduplicationResult, deduplicate
from .models import Bookmark

UNCATEGORIZED = "Uncategorized"
GENERAL = "General"
AUTO_RULE_MIN_COUNT = 5
AUTO_RULE_PRIORITY = 3
SECOND_LEVEL_LABELS = {"co", "com", "org"}

# Fallback keyword groups, checked in order against "url title".
CONTENT_RULES: List[Tuple[str, List[str]]] = [
    ("Development", ["github", "gitlab", "stackoverflow", "developer", "api", "documentation", "docs"]),
    ("Social", ["facebook", "twitter", "instagram", "linkedin", "social"]),
    ("Shopping", ["amazon", "ebay", "shop", "store", "buy", "price"]),
    ("News & Reference", ["news", "article", "blog", "post", "wikipedia"]),
    ("Entertainment", ["video", "movie", "music", "game", "stream"]),
    ("Work", ["work", "office", "productivity", "tool", "service"]),
]


class RuleError(ValueError):
    """Raised for a rule with an empty folder or pattern, or a bad regex."""


@dataclass
class OrganizationRule:
    name: str
    pattern: str
    folder: str
    priority: int = 0

    def compile(self) -> re.Pattern:
        if not self.folder:
            raise RuleError(f"rule {self.name!r} has an empty folder")
        if not self.pattern:
            raise RuleError(f"rule {self.name!r} has an empty pattern")
        try:
            return re.compile(self.pattern)
        except re.error as exc:
            raise RuleError(f"invalid regex in rule {self.name!r}: {exc}") from exc


def default_rules() -> List[OrganizationRule]:
    return [
        OrganizationRule(
            "Social Media",
            r"(facebook|twitter|x|instagram|linkedin|reddit|youtube|tiktok|snapchat)\.com",
            "Social",
            10,
        ),
        OrganizationRule("Development", r"(github|gitlab|bitbucket|stackoverflow|dev\.to|medium\.com)", "Development", 9),
        OrganizationRule("Shopping", r"(amazon|ebay|etsy|shopify|aliexpress|walmart|target)", "Shopping", 8),
        OrganizationRule(
            "News",
            r"(cnn|bbc|reuters|wikipedia|nytimes|washingtonpost|news\.|\.co\.|\.org\.|\.edu\.)",
            "News & Reference",
            7,
        ),
        OrganizationRule("Entertainment", r"(netflix|hulu|disney\+|spotify|apple\.music|twitch)", "Entertainment", 6),
        OrganizationRule(
            "Work",
            r"(office\.com|google\.com/docs|slack|teams|zoom|notion|trello|asana)",
            "Work",
            5,
        ),
    ]


@dataclass
class OrganizationConfig:
    organize_by_domain: bool = True
    organize_by_category: bool = True
    organize_by_date: bool = False
    custom_rules: List[OrganizationRule] = field(default_factory=default_rules)
    folder_separator: str = "/"
    preserve_existing: bool = True


STRATEGIES = ("domain", "category", "date", "custom")


def config_for_strategy(strategy: str, base: Optional[OrganizationConfig] = None) -> OrganizationConfig:
    """Switch the fallbacks for a named strategy; ``custom`` uses domain then content."""
    if strategy not in STRATEGIES:
        raise ValueError(f"unknown organization strategy {strategy!r} (expected one of {', '.join(STRATEGIES)})")
    base = base or OrganizationConfig()
    return replace(
        base,
        organize_by_domain=strategy in ("domain", "custom"),
        organize_by_category=strategy in ("category", "custom"),
        organize_by_date=strategy == "date",
    )


def domain_folder(host: str) -> str:
    parts = host.split(".")
    if parts[0] == "www":
        parts = parts[1:]
    if len(parts) >= 3 and parts[1] in SECOND_LEVEL_LABELS:
        return f"Domains/{parts[0]}"
    if len(parts) >= 2:
        return f"Domains/{parts[-2]}"
    return f"Domains/{host}"


def content_folder(url: str, title: str) -> str:
    content = f"{url} {title}".lower()
    for folder, keywords in CONTENT_RULES:
        if any(k in content for k in keywords):
            return folder
    return GENERAL


def date_folder(date_added: Optional[datetime]) -> str:
    if date_added is None:
        return "By Date/Unknown"
    return f"By Date/{date_added.strftime('%Y')} {date_added.strftime('%B')}"


def _host(url: str) -> Optional[str]:
    try:
        parsed = urlsplit(url)
        host = parsed.hostname
    except ValueError:
        return None
    return host if parsed.scheme and host else None


class BookmarkOrganizer:
    def __init__(self, config: Optional[OrganizationConfig] = None) -> None:
        self.config = config or OrganizationConfig()
        # sorted() is stable: equal priorities keep their configured order.
        rules = sorted(self.config.custom_rules, key=lambda r: r.priority, reverse=True)
        self.rules: List[Tuple[OrganizationRule, re.Pattern]] = [(r, r.compile()) for r in rules]

    def determine_folder(self, bookmark: Bookmark) -> str:
        url = bookmark.url
        if not url:
            return UNCATEGORIZED
        for rule, pattern in self.rules:
            if pattern.search(url):
                return rule.folder
        if self.config.organize_by_domain:
            host = _host(url)
            if host:
                return domain_folder(host)
        if self.config.organize_by_category:
            return content_folder(url, bookmark.title)
        if self.config.organize_by_date:
            return date_folder(bookmark.date_added)
        return UNCATEGORIZED

    def organize(self, bookmarks: List[Bookmark]) -> List[Bookmark]:
        organized: List[Bookmark] = []
        sep = self.config.folder_separator
        for bookmark in bookmarks:
            folder = self.determine_folder(bookmark)
            if self.config.preserve_existing and bookmark.folder is not None:
                folder = f"{folder}{sep}{bookmark.folder}"
            organized.append(replace(bookmark, folder=folder))
        return organized

    @staticmethod
    def folder_structure(bookmarks: List[Bookmark]) -> Dict[str, List[Bookmark]]:
        folders: Dict[str, List[Bookmark]] = {}
        for bookmark in bookmarks:
            folders.setdefault(bookmark.folder or UNCATEGORIZED, []).append(bookmark)
        return folders

    def folder_summary(self, bookmarks: List[Bookmark]) -> str:
        """Markdown listing of every folder and its bookmarks, folders sorted by name."""
        folders = self.folder_structure(bookmarks)
        lines = ["# Bookmark Organization Summary", ""]
        for folder in sorted(folders):
            members = folders[folder]
            lines.append(f"## {folder} ({len(members)} bookmarks)")
            lines.append("")
            for bookmark in members:
                lines.append(f"- [{bookmark.title}]({bookmark.url})" if bookmark.url else f"- {bookmark.title}")
            lines.append("")
        return "\n".join(lines)


def create_automated_rules(bookmarks: List[Bookmark], min_count: int = AUTO_RULE_MIN_COUNT) -> List[OrganizationRule]:
    """One rule per host that appears at least ``min_count`` times, in first-seen order."""
    counts: Counter = Counter()
    for bookmark in bookmarks:
        host = _host(bookmark.url) if bookmark.url else None
        if host:
            counts[host] += 1
    return [
        OrganizationRule(
            name=f"Auto: {host}",
            pattern=re.escape(host),
            folder=f"Frequent/{host.split('.')[0]}",
            priority=AUTO_RULE_PRIORITY,
        )
        for host, count in counts.items()
        if count >= min_count
    ]


@dataclass
class ProcessingSummary:
    original_count: int
    final_count: int
    duplicates_removed: int
    folders_created: int
    processing_time: float
    folder_distribution: Dict[str, int]


@dataclass
class ProcessingResult:
    processed_bookmarks: List[Bookmark]
    deduplication_result: Optional[DeduplicationResult]
    summary: ProcessingSummary


def process_bookmarks(
    bookmarks: List[Bookmark],
    dedup_config: Optional[DeduplicationConfig] = None,
    organization_config: Optional[OrganizationConfig] = None,
    dedupe: bool = True,
) -> ProcessingResult:
    """Deduplicate (optionally), then organize, and summarize the folder layout."""
    start = time.perf_counter()
    dedup_result = None
    unique = list(bookmarks)
    if dedupe:
        dedup_result = deduplicate(bookmarks, dedup_config)
        unique = dedup_result.unique_bookmarks

    organizer = BookmarkOrganizer(organization_config)
    organized = organizer.organize(unique)
    distribution = {folder: len(members) for folder, members in organizer.folder_structure(organized).items()}

    summary = ProcessingSummary(
        original_count=len(bookmarks),
        final_count=len(organized),
        duplicates_removed=dedup_result.duplicates_removed if dedup_result else 0,
        folders_created=len(distribution),
        processing_time=time.perf_counter() - start,
        folder_distribution=distribution,
    )
    return ProcessingResult(processed_bookmarks=organized, deduplication_result=dedup_result, summary=summary)


def generate_report(result: ProcessingResult, samples: int = 3) -> str:
    summary = result.summary
    lines = [
        "# Bookmark Processing Report",
        "",
        "## Summary",
        "",
        f"- Original bookmarks: {summary.original_count}",
        f"- Final bookmarks: {summary.final_count}",
        f"- Duplicates removed: {summary.duplicates_removed}",
        f"- Folders created: {summary.folders_created}",
        f"- Processing time: {summary.processing_time:.3f}s",
        "",
    ]

    dedup = result.deduplication_result
    if dedup is not None:
        lines += [
            "## Deduplication Details",
            "",
            f"- Duplicates found: {dedup.duplicates_found}",
            f"- Duplicates removed: {dedup.duplicates_removed}",
        ]
        if dedup.merge_summary:
            lines += ["", "### Merge Summary", ""]
            lines += [f"- {url}: {count} merged into 1" for url, count in dedup.merge_summary.items()]
        lines.append("")

    lines += ["## Folder Distribution", ""]
    for folder, count in sorted(summary.folder_distribution.items(), key=lambda kv: (-kv[1], kv[0])):
        lines.append(f"- {folder}: {count} bookmarks")
    lines += ["", "## Sample Bookmarks by Folder", ""]

    folders = BookmarkOrganizer.folder_structure(result.processed_bookmarks)
    for folder in sorted(folders):
        members = folders[folder]
        lines.append(f"### {folder} ({len(members)})")
        lines.append("")
        for i, bookmark in enumerate(members[:samples], 1):
            lines.append(f"{i}. [{bookmark.title}]({bookmark.url})" if bookmark.url else f"{i}. {bookmark.title}")
        if len(members) > samples:
            lines.append(f"... and {len(members) - samples} more")
        lines.append("")
    return "\n".join(lines)

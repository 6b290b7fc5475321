# -*- coding: utf-8 -*-
"""Command-line entry point.

Usage:
  bookgraph dedupe bookmarks.yaml --out bookmarks_clean.yaml
  bookgraph organize bookmarks.yaml --strategy domain --dry-run
  bookgraph process bookmarks.yaml --report report.md
  bookgraph rules --add Docs readthedocs Reference --priority 4
  bookgraph duplicates bookmarks.yaml
  bookgraph graph bookmarks.yaml --format html --out graph.html --tags --similar
  bookgraph search bookmarks.yaml rust --limit 20
  bookgraph init-config ~/.config/bookgraph/config.yaml
"""
import argparse
import dataclasses
import os
import sys
from pathlib import Path
from typing import List, Optional

from .config import (
    AppConfig,
    ConfigError,
    add_rule,
    default_config_path,
    list_rules,
    load_config,
    parse_enum,
    remove_rule,
    save_config,
    write_sample_config,
)
from .dedupe import MergeStrategy, deduplicate, find_potential_duplicates
from .formats import FORMATS, render
from .graph import DetailLevel, GraphBuilder, GraphConfig
from .loaders import LoaderError, load_export, parse_datetime, save_export
from .models import Bookmark
from .organize import (
    STRATEGIES,
    BookmarkOrganizer,
    OrganizationConfig,
    OrganizationRule,
    RuleError,
    config_for_strategy,
    create_automated_rules,
    generate_report,
    process_bookmarks,
)
from .search import search_bookmarks


def info(args: argparse.Namespace, message: str) -> None:
    if getattr(args, "verbose", False):
        print(f"[INFO] {message}")


def warn(message: str) -> None:
    print(f"[WARN] {message}", file=sys.stderr)


def resolve_config(args: argparse.Namespace) -> AppConfig:
    if args.config:
        return load_config(Path(args.config))
    path = default_config_path()
    if path.exists():
        return load_config(path)
    return AppConfig()


def write_output(text: str, out: Optional[str]) -> None:
    if not out:
        sys.stdout.write(text if text.endswith("\n") else text + "\n")
        return
    dir_name = os.path.dirname(out)
    if dir_name:
        os.makedirs(dir_name, exist_ok=True)
    with open(out, "w", encoding="utf-8") as f:
        f.write(text)


def derived_output(path: str, suffix: str) -> str:
    root, ext = os.path.splitext(path)
    return f"{root}.{suffix}{ext or '.yaml'}"


def backup_existing(args: argparse.Namespace, config: AppConfig, path: str) -> None:
    if not config.backup_enabled or not os.path.exists(path):
        return
    backup = f"{path}.bak"
    with open(path, "rb") as src, open(backup, "wb") as dst:
        dst.write(src.read())
    info(args, f"Backed up {path} to {backup}")


def print_preview(before: List[Bookmark], after: List[Bookmark], limit: int = 5) -> None:
    by_id = {b.id: b for b in after}
    for bookmark in before[:limit]:
        moved = by_id.get(bookmark.id)
        if moved is None:
            continue
        print(f"{bookmark.title or '(untitled)'}\n    {bookmark.folder or '-'}  ->  {moved.folder or '-'}")


def cmd_dedupe(args: argparse.Namespace, config: AppConfig) -> int:
    bookmarks, history = load_export(args.input)
    dedup = config.deduplication
    overrides = {}
    if args.strategy:
        overrides["merge_strategy"] = parse_enum(MergeStrategy, args.strategy)
    if args.keep_query:
        overrides["ignore_query_params"] = False
    if args.keep_fragment:
        overrides["ignore_fragment"] = False
    if args.keep_www:
        overrides["ignore_www"] = False
    if args.keep_protocol:
        overrides["ignore_protocol"] = False
    if args.case_sensitive:
        overrides["case_sensitive"] = True
    dedup = dataclasses.replace(dedup, **overrides)
    info(args, f"Loaded {len(bookmarks)} bookmarks from {args.input}")

    result = deduplicate(bookmarks, dedup)
    dropped = sum(1 for b in bookmarks if not b.url)
    if dropped:
        warn(f"{dropped} bookmarks without a URL were dropped")
    for url, size in result.merge_summary.items():
        info(args, f"merged {size} x {url}")

    dry_run = args.dry_run or config.dry_run_by_default
    if not dry_run:
        out = args.out or derived_output(args.input, "dedup")
        backup_existing(args, config, out)
        save_export(out, result.unique_bookmarks, history)
        print(f"[OK] Wrote {out} with {len(result.unique_bookmarks)} bookmarks.")
    print(
        f"[OK] {result.duplicates_found} duplicates found, {result.duplicates_removed} removed "
        f"across {len(result.merge_summary)} URLs{' (dry run)' if dry_run else ''}."
    )
    return 0


def cmd_duplicates(args: argparse.Namespace, config: AppConfig) -> int:
    bookmarks, _ = load_export(args.input)
    pairs = find_potential_duplicates(bookmarks)
    pairs.sort(key=lambda p: p.score, reverse=True)
    if args.limit:
        pairs = pairs[: args.limit]
    for pair in pairs:
        print(f"{pair.score:.2f}  {pair.first.url}  <->  {pair.second.url}")
    print(f"[OK] {len(pairs)} potential duplicate pairs.")
    return 0


def organization_config(args: argparse.Namespace, base: OrganizationConfig, bookmarks: List[Bookmark]) -> OrganizationConfig:
    org = config_for_strategy(args.organize, base) if args.organize else base
    overrides = {}
    if args.replace_existing:
        overrides["preserve_existing"] = False
    if args.auto_rules:
        overrides["custom_rules"] = list(org.custom_rules) + create_automated_rules(bookmarks)
    return dataclasses.replace(org, **overrides)


def cmd_organize(args: argparse.Namespace, config: AppConfig) -> int:
    bookmarks, history = load_export(args.input)
    info(args, f"Loaded {len(bookmarks)} bookmarks from {args.input}")
    organizer = BookmarkOrganizer(organization_config(args, config.organization, bookmarks))
    organized = organizer.organize(bookmarks)
    folders = organizer.folder_structure(organized)

    dry_run = args.dry_run or config.dry_run_by_default
    if dry_run:
        print_preview(bookmarks, organized)
    else:
        out = args.out or derived_output(args.input, "organized")
        backup_existing(args, config, out)
        save_export(out, organized, history)
        print(f"[OK] Wrote {out} with {len(organized)} bookmarks.")
    if args.summary:
        write_output(organizer.folder_summary(organized), args.summary)
        info(args, f"Wrote folder summary to {args.summary}")
    print(f"[OK] {len(organized)} bookmarks in {len(folders)} folders{' (dry run)' if dry_run else ''}.")
    return 0


def cmd_process(args: argparse.Namespace, config: AppConfig) -> int:
    bookmarks, history = load_export(args.input)
    dedup = config.deduplication
    if args.strategy:
        dedup = dataclasses.replace(dedup, merge_strategy=parse_enum(MergeStrategy, args.strategy))
    org = organization_config(args, config.organization, bookmarks)
    result = process_bookmarks(bookmarks, dedup, org, dedupe=not args.no_dedupe)

    dry_run = args.dry_run or config.dry_run_by_default
    if dry_run:
        print_preview(bookmarks, result.processed_bookmarks)
    else:
        out = args.out or derived_output(args.input, "processed")
        backup_existing(args, config, out)
        save_export(out, result.processed_bookmarks, history)
        print(f"[OK] Wrote {out} with {len(result.processed_bookmarks)} bookmarks.")
    if args.report:
        write_output(generate_report(result), args.report)
        print(f"[OK] Wrote report to {args.report}")
    summary = result.summary
    print(
        f"[OK] Original: {summary.original_count} | Final: {summary.final_count} | "
        f"Duplicates removed: {summary.duplicates_removed}{' (dry run)' if dry_run else ''}"
    )
    return 0


def cmd_rules(args: argparse.Namespace, config: AppConfig) -> int:
    path = Path(args.config) if args.config else default_config_path()
    config = load_config(path)
    if args.add:
        name, pattern, folder = args.add
        add_rule(config, OrganizationRule(name=name, pattern=pattern, folder=folder, priority=args.priority))
        save_config(config, path)
        print(f"[OK] Saved rule {name!r} to {path}")
    elif args.remove:
        remove_rule(config, args.remove)
        save_config(config, path)
        print(f"[OK] Removed rule {args.remove!r} from {path}")
    else:
        for rule in list_rules(config):
            print(f"{rule.priority:>4}  {rule.name}: {rule.pattern}  ->  {rule.folder}")
    return 0


def add_organization_arguments(p: argparse.ArgumentParser, flag: str) -> None:
    p.add_argument(flag, dest="organize", choices=list(STRATEGIES), help="Fallbacks after the rules (default: config)")
    p.add_argument("--replace-existing", action="store_true", help="Drop existing folders instead of nesting them")
    p.add_argument("--auto-rules", action="store_true", help="Add a rule for every frequent host")


def graph_config(args: argparse.Namespace, base: GraphConfig) -> GraphConfig:
    overrides = {}
    if args.detail:
        overrides["detail_level"] = parse_enum(DetailLevel, args.detail)
    if args.min_domain is not None:
        overrides["min_domain_threshold"] = args.min_domain
    if args.min_tag is not None:
        overrides["min_tag_threshold"] = args.min_tag
    if args.similarity is not None:
        if not 0.0 <= args.similarity <= 1.0:
            raise ConfigError(f"--similarity must be within [0, 1], got {args.similarity}")
        overrides["similarity_threshold"] = args.similarity
    if args.max_per_domain is not None:
        overrides["max_bookmarks_per_domain"] = args.max_per_domain or None
    if args.max_total is not None:
        overrides["max_total_bookmarks"] = args.max_total or None
    if args.since:
        since = parse_datetime(args.since)
        if since is None:
            raise ConfigError(f"--since is not a valid date: {args.since!r}")
        overrides["min_date"] = since
    if args.domain_only:
        overrides["domain_only"] = True
    if args.tags:
        overrides["include_tag_edges"] = True
    if args.same_domain:
        overrides["include_same_domain_edges"] = True
    if args.similar:
        overrides["include_similarity_edges"] = True
    if args.no_folders:
        overrides["include_folder_edges"] = False
    if args.no_categories:
        overrides["include_category_edges"] = False
    if args.no_domains:
        overrides["include_domain_edges"] = False
    return dataclasses.replace(base, **overrides)


def cmd_graph(args: argparse.Namespace, config: AppConfig) -> int:
    bookmarks, history = load_export(args.input)
    if args.history:
        _, extra = load_export(args.history)
        history = history + extra
    info(args, f"Loaded {len(bookmarks)} bookmarks and {len(history)} history entries")

    if args.dedupe:
        result = deduplicate(bookmarks, config.deduplication)
        info(args, f"Deduplicated: {result.duplicates_removed} removed")
        bookmarks = result.unique_bookmarks

    builder = GraphBuilder(graph_config(args, config.graph))
    if args.source == "history":
        graph = builder.from_history(history)
    elif args.source == "both":
        graph = builder.from_both(bookmarks, history)
    else:
        graph = builder.from_bookmarks(bookmarks)

    write_output(render(graph, args.format), args.out)
    meta = graph.metadata
    message = (
        f"[OK] Built graph with {meta.total_nodes} nodes, {meta.total_edges} edges, "
        f"{meta.bookmark_count} items, {meta.domain_count} domains, {meta.folder_count} folders."
    )
    print(message, file=sys.stdout if args.out else sys.stderr)
    return 0


def cmd_search(args: argparse.Namespace, config: AppConfig) -> int:
    bookmarks, _ = load_export(args.input)
    matches = search_bookmarks(
        bookmarks, args.query, title_only=args.title_only, url_only=args.url_only, limit=args.limit
    )
    for bookmark in matches:
        print(f"{bookmark.title or '(untitled)'}\n    {bookmark.url}")
    print(f"[OK] {len(matches)} matches for {args.query!r}.")
    return 0


def cmd_init_config(args: argparse.Namespace, config: AppConfig) -> int:
    path = Path(args.path) if args.path else default_config_path()
    write_sample_config(path)
    print(f"[OK] Wrote sample config to {path}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="bookgraph", description="Deduplicate bookmarks and build knowledge graphs.")
    ap.add_argument("--config", help="Config file path (YAML or JSON)")
    ap.add_argument("-v", "--verbose", action="store_true", help="Verbose logging")
    sub = ap.add_subparsers(dest="command", required=True)

    p = sub.add_parser("dedupe", help="Merge bookmarks that share a canonical URL")
    p.add_argument("input", help="Bookmark export (YAML or JSON)")
    p.add_argument("--out", help="Output path (default: <input>.dedup.<ext>)")
    p.add_argument("--strategy", choices=[m.value for m in MergeStrategy], help="Merge strategy")
    p.add_argument("--keep-query", action="store_true", help="Treat query strings as significant")
    p.add_argument("--keep-fragment", action="store_true", help="Treat fragments as significant")
    p.add_argument("--keep-www", action="store_true", help="Do not strip a leading www.")
    p.add_argument("--keep-protocol", action="store_true", help="Do not collapse http/https")
    p.add_argument("--case-sensitive", action="store_true", help="Do not lowercase canonical URLs")
    p.add_argument("--dry-run", action="store_true", help="Report without writing")
    p.set_defaults(func=cmd_dedupe)

    p = sub.add_parser("organize", help="Move bookmarks into folders by rules, domain, content or date")
    p.add_argument("input", help="Bookmark export (YAML or JSON)")
    p.add_argument("--out", help="Output path (default: <input>.organized.<ext>)")
    add_organization_arguments(p, "--strategy")
    p.add_argument("--summary", help="Write a Markdown folder summary here")
    p.add_argument("--dry-run", action="store_true", help="Preview folder moves without writing")
    p.set_defaults(func=cmd_organize)

    p = sub.add_parser("process", help="Deduplicate, then organize, with an optional report")
    p.add_argument("input", help="Bookmark export (YAML or JSON)")
    p.add_argument("--out", help="Output path (default: <input>.processed.<ext>)")
    p.add_argument("--strategy", choices=[m.value for m in MergeStrategy], help="Merge strategy")
    p.add_argument("--no-dedupe", action="store_true", help="Organize only")
    add_organization_arguments(p, "--organize")
    p.add_argument("--report", help="Write a Markdown processing report here")
    p.add_argument("--dry-run", action="store_true", help="Preview folder moves without writing")
    p.set_defaults(func=cmd_process)

    p = sub.add_parser("rules", help="List, add or remove organization rules in the config file")
    group = p.add_mutually_exclusive_group()
    group.add_argument("--add", nargs=3, metavar=("NAME", "PATTERN", "FOLDER"), help="Add or replace a rule")
    group.add_argument("--remove", metavar="NAME", help="Remove a rule by name")
    p.add_argument("--priority", type=int, default=0, help="Priority of an added rule (higher wins)")
    p.set_defaults(func=cmd_rules)

    p = sub.add_parser("duplicates", help="List pairs of URLs that look alike")
    p.add_argument("input", help="Bookmark export (YAML or JSON)")
    p.add_argument("--limit", type=int, default=0, help="Max pairs to print (0 = all)")
    p.set_defaults(func=cmd_duplicates)

    p = sub.add_parser("graph", help="Build a knowledge graph")
    p.add_argument("input", help="Bookmark/history export (YAML or JSON)")
    p.add_argument("--history", help="Additional history export")
    p.add_argument("--source", choices=["bookmarks", "history", "both"], default="bookmarks")
    p.add_argument("--format", choices=list(FORMATS), default="json", help="Output format")
    p.add_argument("--out", help="Output path (default: stdout)")
    p.add_argument("--detail", choices=[d.value for d in DetailLevel], help="Detail level")
    p.add_argument("--min-domain", type=int, help="Min items per Domain node")
    p.add_argument("--min-tag", type=int, help="Min items per Tag node")
    p.add_argument("--similarity", type=float, help="Tag similarity threshold for similar-content edges")
    p.add_argument("--max-per-domain", type=int, help="Max items per domain in standard mode (0 = no limit)")
    p.add_argument("--max-total", type=int, help="Max items overall (0 = no limit)")
    p.add_argument("--since", help="Only include items dated on/after this ISO date")
    p.add_argument("--domain-only", action="store_true", help="Collapse items into aggregates")
    p.add_argument("--tags", action="store_true", help="Add tag nodes' edges")
    p.add_argument("--same-domain", action="store_true", help="Link items sharing a domain")
    p.add_argument("--similar", action="store_true", help="Link items with similar tags")
    p.add_argument("--no-folders", action="store_true", help="Skip folder edges")
    p.add_argument("--no-categories", action="store_true", help="Skip category edges")
    p.add_argument("--no-domains", action="store_true", help="Skip domain edges")
    p.add_argument("--dedupe", action="store_true", help="Deduplicate bookmarks first")
    p.set_defaults(func=cmd_graph)

    p = sub.add_parser("search", help="Search bookmark titles and URLs")
    p.add_argument("input", help="Bookmark export (YAML or JSON)")
    p.add_argument("query", help="Case-insensitive substring")
    group = p.add_mutually_exclusive_group()
    group.add_argument("--title-only", action="store_true")
    group.add_argument("--url-only", action="store_true")
    p.add_argument("--limit", type=int, help="Max results")
    p.set_defaults(func=cmd_search)

    p = sub.add_parser("init-config", help="Write a sample config file")
    p.add_argument("path", nargs="?", help="Destination (default: user config path)")
    p.set_defaults(func=cmd_init_config)
    return ap


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        config = AppConfig() if args.command in ("init-config", "rules") else resolve_config(args)
        return args.func(args, config)
    except (ConfigError, LoaderError, RuleError, OSError) as exc:
        print(f"[ERROR] {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())

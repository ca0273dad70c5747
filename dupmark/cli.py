#!/usr/bin/env python3
"""
dupmark - find and merge duplicate bookmarks

Command-line front end for the duplicate engine: scan a bookmark store (or
a JSON snapshot file) for duplicate groups, warn when adding a bookmark that
already exists, and merge duplicates under a configurable policy.
"""
import sys
import argparse
import json
import logging
from pathlib import Path
from typing import List, Optional
from rich.console import Console
from rich.prompt import Prompt
from rich.table import Table

from dupmark.config import init_config, get_config
from dupmark.db import get_db
from dupmark.detector import DuplicateDetector
from dupmark.entities import (
    BookmarkSnapshot,
    DetectionOptions,
    DetectionResult,
    MergeOptions,
    MERGE_SELECTORS,
)
from dupmark.exceptions import IntegrationError
from dupmark.manager import DuplicateDecision, DuplicateManager
from dupmark.progress import spinner
from dupmark.utils import load_snapshots, save_snapshots, snapshots_to_json

logger = logging.getLogger(__name__)


console = Console()


def format_snapshot(bookmark: BookmarkSnapshot) -> str:
    """Plain-text rendering of one bookmark."""
    tags = " ".join(f"#{t}" for t in bookmark.tags)
    star = "★" if bookmark.is_favorite else ""
    return f"[{bookmark.id}] {star} {bookmark.title}\n    {bookmark.url}\n    {tags}"


def output_snapshots(bookmarks: List[BookmarkSnapshot], format: str = "table",
                     title: str = "Bookmarks"):
    """Output bookmarks in the specified format."""
    if format == "json":
        print(json.dumps(snapshots_to_json(bookmarks), indent=2))
    elif format == "table":
        table = Table(title=title)
        table.add_column("ID", style="cyan")
        table.add_column("Title", style="green")
        table.add_column("URL", style="blue")
        table.add_column("Category", style="yellow")
        table.add_column("★", style="red")
        table.add_column("Visits", style="magenta")
        table.add_column("Added", style="white")

        for b in bookmarks:
            table.add_row(
                b.id,
                b.title[:50],
                b.url[:60],
                b.category[:20],
                "★" if b.is_favorite else "",
                str(b.visits),
                b.date_added.strftime("%Y-%m-%d"),
            )
        console.print(table)
    else:  # plain
        for b in bookmarks:
            print(format_snapshot(b))
            print()


def output_detection_result(result: DetectionResult, format: str = "table"):
    """Output duplicate groups and scan counters."""
    if format == "json":
        print(json.dumps(result.to_dict(), indent=2))
        return

    stats = result.stats()
    if format == "plain":
        for group in result.groups:
            print(f"{group.duplicate_type.value}\t{group.similarity:.2f}\t{' '.join(group.ids)}")
        print(f"{stats['total_groups']} groups, {stats['total_duplicates']} bookmarks "
              f"({stats['percentage_duplicates']}% of {stats['scanned_count']})")
        return

    table = Table(title="Duplicate Groups")
    table.add_column("#", style="cyan")
    table.add_column("Type", style="yellow")
    table.add_column("Similarity", style="magenta")
    table.add_column("IDs", style="cyan")
    table.add_column("Normalized URL", style="blue")
    table.add_column("Titles", style="green")

    for index, group in enumerate(result.groups, start=1):
        titles = " | ".join(b.title[:30] for b in group.bookmarks)
        table.add_row(
            str(index),
            group.duplicate_type.value,
            f"{group.similarity:.2f}",
            ", ".join(group.ids),
            group.normalized_url[:60],
            titles[:80],
        )

    console.print(table)
    console.print(
        f"Scanned [bold]{stats['scanned_count']}[/bold] bookmarks in {stats['elapsed_ms']:.0f}ms: "
        f"[bold]{stats['total_groups']}[/bold] groups, {stats['total_duplicates']} bookmarks "
        f"({stats['percentage_duplicates']}%). "
        f"exact={stats['exact_matches']} normalized={stats['normalized_matches']} "
        f"title={stats['title_similar_matches']}"
    )


def build_detection_options(args) -> DetectionOptions:
    """Configured detection options with command-line overrides applied."""
    options = get_config().detection_options()
    changes = {}
    if getattr(args, "threshold", None) is not None:
        changes["title_similarity_threshold"] = args.threshold
    flag_map = {
        "no_exact": ("exact_url_matching", False),
        "no_normalized": ("normalized_url_matching", False),
        "no_title": ("title_similarity_matching", False),
        "keep_query": ("ignore_query_params", False),
        "keep_protocol": ("ignore_protocol", False),
        "keep_www": ("ignore_www", False),
        "keep_trailing_slash": ("ignore_trailing_slash", False),
        "case_sensitive": ("case_sensitive", True),
    }
    for flag, (option, value) in flag_map.items():
        if getattr(args, flag, False):
            changes[option] = value
    return options.replace(**changes) if changes else options


def build_merge_options(args) -> MergeOptions:
    """Configured merge policy with command-line overrides applied."""
    changes = {}
    for selector in MERGE_SELECTORS:
        value = getattr(args, selector, None)
        if value is not None:
            changes[selector] = value
    for custom in ("custom_title", "custom_description", "custom_category", "custom_favicon"):
        value = getattr(args, custom, None)
        if value is not None:
            changes[custom] = value
    if getattr(args, "no_combine_tags", False):
        changes["combine_tags"] = False
    return MergeOptions.from_dict(changes, base=get_config().merge_options())


def _make_manager(args, snapshots: Optional[List[BookmarkSnapshot]] = None) -> DuplicateManager:
    """Manager over the database, or over ``snapshots`` read-only."""
    db = None
    if snapshots is None:
        db = get_db(args.db)
        snapshots = db.snapshots()
    return DuplicateManager(
        snapshots,
        on_update_bookmark=db.update if db else None,
        on_delete_bookmark=db.delete if db else None,
        detector=DuplicateDetector(default_merge_options=get_config().merge_options()),
        options=build_detection_options(args),
    )


@spinner("Scanning for duplicates")
def _scan(manager: DuplicateManager) -> DetectionResult:
    return manager.detect_all_duplicates()


def cmd_scan(args):
    """Scan the collection for duplicate groups."""
    snapshots = load_snapshots(args.input) if args.input else None
    manager = _make_manager(args, snapshots)
    result = _scan(manager)

    if args.save:
        save_snapshots([b for g in result.groups for b in g.bookmarks], args.save)
        if not args.quiet:
            console.print(f"[green]Saved {result.total_duplicates} duplicate bookmarks to {args.save}[/green]")

    if args.quiet:
        print(len(result.groups))
    else:
        output_detection_result(result, args.output)


def cmd_check(args):
    """List existing bookmarks that a new URL/title would duplicate."""
    manager = _make_manager(args)
    candidate = {"url": args.url, "title": args.title or ""}
    if args.title:
        matches = manager.check_for_duplicates(candidate)
    else:
        matches = manager.check_url_in_real_time(args.url)

    if args.quiet:
        for b in matches:
            print(b.id)
    elif not matches:
        console.print("[green]No duplicates found[/green]")
    else:
        output_snapshots(matches, args.output, title="Possible duplicates")


def cmd_score(args):
    """Show the similarity components of two stored bookmarks."""
    manager = _make_manager(args)
    db = get_db()
    bookmarks = []
    for bookmark_id in (args.first, args.second):
        bookmark = db.get(bookmark_id)
        if bookmark is None:
            raise IntegrationError(f"Bookmark not found: {bookmark_id}")
        bookmarks.append(bookmark.to_snapshot())

    score = manager.get_similarity_score(*bookmarks)
    if args.output == "json":
        print(json.dumps(score.to_dict(), indent=2))
    else:
        for name, value in score.to_dict().items():
            print(f"{name}: {value:.3f}")


def cmd_normalize(args):
    """Show how a URL is normalized for comparison."""
    detector = DuplicateDetector()
    result = detector.normalize_url(args.url, build_detection_options(args))
    if args.output == "json":
        print(json.dumps({
            "original": result.original,
            "normalized": result.normalized,
            "domain": result.domain,
            "path": result.path,
            "query_params": result.query_params,
            "fragment": result.fragment,
        }, indent=2))
    else:
        print(result.normalized)


def cmd_add(args):
    """Add a bookmark, warning about duplicates first."""
    manager = _make_manager(args)
    db = get_db()

    candidate = {
        "url": args.url,
        "title": args.title or args.url,
        "description": args.description,
        "category": args.category or "",
        "tags": [t.strip() for t in args.tags.split(",") if t.strip()] if args.tags else [],
        "is_favorite": args.favorite,
    }

    def add_bookmark(fields):
        return db.add(**fields).id

    matches = manager.check_for_duplicates(candidate)
    if not matches:
        bookmark_id = add_bookmark(candidate)
        if args.quiet:
            print(bookmark_id)
        else:
            console.print(f"[green]Added bookmark {bookmark_id}[/green]")
        return

    decision = args.on_duplicate
    if not args.quiet:
        output_snapshots(matches, args.output if args.output != "json" else "table",
                         title="This bookmark may already exist")
    if decision == "ask":
        decision = Prompt.ask(
            "Add anyway, merge into the existing bookmark, or cancel?",
            choices=[d.value for d in DuplicateDecision],
            default=DuplicateDecision.CANCEL.value,
        )

    result = manager.resolve_candidate(
        candidate,
        decision,
        existing_id=matches[0].id,
        merge_options=build_merge_options(args),
        on_add_bookmark=add_bookmark,
    )

    if result is None:
        if not args.quiet:
            console.print("[yellow]Cancelled, nothing added[/yellow]")
        return
    if args.quiet:
        print(result)
    elif decision == DuplicateDecision.MERGE.value:
        console.print(f"[green]Merged into bookmark {result}[/green]")
    else:
        console.print(f"[green]Added bookmark {result}[/green]")


def cmd_merge(args):
    """Merge the given bookmarks into the first one."""
    manager = _make_manager(args)
    merge_options = build_merge_options(args)

    if args.dry_run:
        selected = manager.select_for_merge(args.ids)
        merged = manager.detector.merge_duplicates(selected, merge_options)
        output_snapshots([merged], args.output, title="Merge preview")
        return

    primary_id = manager.merge_duplicates(args.ids, merge_options)
    if args.quiet:
        print(primary_id)
    else:
        console.print(f"[green]Merged {len(args.ids)} bookmarks into {primary_id}[/green]")


def cmd_merge_all(args):
    """Scan, then merge every duplicate group into its first bookmark."""
    manager = _make_manager(args)
    merge_options = build_merge_options(args)
    result = _scan(manager)

    merged_ids = []
    for group in result.groups:
        if args.dry_run:
            merged = manager.detector.merge_duplicates(group.bookmarks, merge_options)
            merged_ids.append(merged.id)
            if not args.quiet:
                console.print(f"[cyan]Would merge {', '.join(group.ids)} "
                              f"({group.duplicate_type.value})[/cyan]")
        else:
            merged_ids.append(manager.merge_duplicates(group.ids, merge_options))

    if args.quiet:
        for bookmark_id in merged_ids:
            print(bookmark_id)
    elif args.dry_run:
        console.print(f"{len(result.groups)} groups would be merged")
    else:
        console.print(f"[green]Merged {len(result.groups)} groups "
                      f"({result.total_duplicates - len(result.groups)} bookmarks removed)[/green]")


def _add_detection_arguments(parser):
    group = parser.add_argument_group("detection")
    group.add_argument("--threshold", type=float, help="Title similarity threshold (0-1)")
    group.add_argument("--no-exact", action="store_true", help="Disable exact URL matching")
    group.add_argument("--no-normalized", action="store_true", help="Disable normalized URL matching")
    group.add_argument("--no-title", action="store_true", help="Disable title similarity matching")
    group.add_argument("--keep-query", action="store_true", help="Compare query strings")
    group.add_argument("--keep-protocol", action="store_true", help="Treat http and https as different")
    group.add_argument("--keep-www", action="store_true", help="Treat www. hosts as different")
    group.add_argument("--keep-trailing-slash", action="store_true", help="Compare trailing slashes")
    group.add_argument("--case-sensitive", action="store_true", help="Case-sensitive comparison")


def _add_merge_arguments(parser):
    group = parser.add_argument_group("merge policy")
    for selector, strategy_cls in MERGE_SELECTORS.items():
        flag = "--" + selector.replace("_", "-")
        group.add_argument(flag, dest=selector, choices=[s.value for s in strategy_cls],
                           help=f"Strategy for {selector[len('keep_'):].replace('_', ' ')}")
    group.add_argument("--custom-title", help="Title for --keep-title custom")
    group.add_argument("--custom-description", help="Description for --keep-description custom")
    group.add_argument("--custom-category", help="Category for --keep-category custom")
    group.add_argument("--custom-favicon", help="Favicon for --keep-favicon custom")
    group.add_argument("--no-combine-tags", action="store_true",
                       help="Keep the earliest bookmark's tags instead of the union")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dupmark",
        description="dupmark - find and merge duplicate bookmarks",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  dupmark scan
  dupmark scan --input bookmarks.json --threshold 0.9 -o json
  dupmark check https://example.com/page --title "Example"
  dupmark add https://example.com --title "Example" --on-duplicate merge
  dupmark merge 3 7 12 --keep-title longest
  dupmark merge-all --dry-run
  dupmark normalize "https://www.Example.com/a/?q=1#top"

Configuration:
  Default database: ./dupmark.db or from config
  Config file: ~/.config/dupmark/config.toml, ./dupmark.toml
  Environment: DUPMARK_DATABASE, DUPMARK_TITLE_SIMILARITY_THRESHOLD, ...
        """
    )

    parser.add_argument("--db", help="Database file (default: dupmark.db)")
    parser.add_argument("--config", help="Config file path")
    parser.add_argument("-q", "--quiet", action="store_true", help="Minimal output")
    parser.add_argument("-o", "--output", choices=["table", "json", "plain"],
                        help="Output format")

    subparsers = parser.add_subparsers(dest="command", required=True, help="Commands")

    scan_parser = subparsers.add_parser("scan", help="Find duplicate groups")
    scan_parser.add_argument("--input", help="Scan a JSON snapshot file instead of the database")
    scan_parser.add_argument("--save", metavar="FILE", help="Write the duplicate bookmarks to a JSON snapshot file")
    _add_detection_arguments(scan_parser)
    scan_parser.set_defaults(func=cmd_scan)

    check_parser = subparsers.add_parser("check", help="Check a URL against the collection")
    check_parser.add_argument("url", help="Candidate URL")
    check_parser.add_argument("--title", help="Candidate title (enables title matching)")
    _add_detection_arguments(check_parser)
    check_parser.set_defaults(func=cmd_check)

    score_parser = subparsers.add_parser("score", help="Similarity of two bookmarks")
    score_parser.add_argument("first", help="First bookmark ID")
    score_parser.add_argument("second", help="Second bookmark ID")
    _add_detection_arguments(score_parser)
    score_parser.set_defaults(func=cmd_score)

    normalize_parser = subparsers.add_parser("normalize", help="Show a URL's comparison form")
    normalize_parser.add_argument("url", help="URL to normalize")
    _add_detection_arguments(normalize_parser)
    normalize_parser.set_defaults(func=cmd_normalize)

    add_parser = subparsers.add_parser("add", help="Add a bookmark with a duplicate check")
    add_parser.add_argument("url", help="URL to bookmark")
    add_parser.add_argument("--title", help="Bookmark title")
    add_parser.add_argument("--description", help="Bookmark description")
    add_parser.add_argument("--category", help="Category name")
    add_parser.add_argument("--tags", help="Comma-separated tags")
    add_parser.add_argument("--favorite", action="store_true", help="Mark as favorite")
    add_parser.add_argument("--on-duplicate", default="ask",
                            choices=["ask"] + [d.value for d in DuplicateDecision],
                            help="What to do when duplicates exist (default: ask)")
    _add_detection_arguments(add_parser)
    _add_merge_arguments(add_parser)
    add_parser.set_defaults(func=cmd_add)

    merge_parser = subparsers.add_parser("merge", help="Merge bookmarks into the first one")
    merge_parser.add_argument("ids", nargs="+", help="Bookmark IDs (first is kept)")
    merge_parser.add_argument("--dry-run", action="store_true", help="Show the merged result only")
    _add_merge_arguments(merge_parser)
    merge_parser.set_defaults(func=cmd_merge)

    merge_all_parser = subparsers.add_parser("merge-all", help="Merge every duplicate group")
    merge_all_parser.add_argument("--dry-run", action="store_true", help="List merges only")
    _add_detection_arguments(merge_all_parser)
    _add_merge_arguments(merge_all_parser)
    merge_all_parser.set_defaults(func=cmd_merge_all)

    return parser


def main(argv: Optional[List[str]] = None):
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    config_args = {}
    if args.output:
        config_args["output_format"] = args.output
    if args.config:
        config_args["config_file"] = Path(args.config)

    config = init_config(database=args.db, **config_args)
    console.no_color = not config.color_output

    if not args.output:
        args.output = config.output_format

    logging.basicConfig(
        level=getattr(logging, str(config.log_level).upper(), logging.WARNING),
        format="%(levelname)s: %(message)s",
    )

    try:
        args.func(args)
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted[/yellow]")
        sys.exit(130)
    except Exception as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)


if __name__ == "__main__":
    main()

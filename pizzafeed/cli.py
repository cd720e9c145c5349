"""
run-import — one-shot import from a single platform, or from every active
import source in the store (--all).

Exit codes:
    0  every run completed (per-item errors do not count)
    1  configuration error (missing credential / store settings)
    2  invalid arguments
    3  at least one run failed at fetch level

Usage:
    run-import --source reddit --subreddits pizza,pizzacrimes --sort top --time week
    run-import --source pexels --videos --query "pizza dough" --dry-run
    run-import --all
"""
import argparse
import asyncio
import sys
from collections import Counter, defaultdict

from loguru import logger

from pizzafeed.collectors.base import BaseCollector, make_limiter
from pizzafeed.collectors.registry import make_collector
from pizzafeed.config import settings
from pizzafeed.config.defaults import (
    DEFAULT_SUBREDDITS,
    IMGUR_GALLERIES,
    IMGUR_SORTS,
    IMGUR_WINDOWS,
    NINEGAG_TYPES,
    PEXELS_ORIENTATIONS,
    PEXELS_SIZES,
    REDDIT_SORTS,
    REDDIT_TIMES,
    YOUTUBE_DURATIONS,
    YOUTUBE_ORDERS,
)
from pizzafeed.content.record import Platform
from pizzafeed.database.store import ContentStore, make_store
from pizzafeed.errors import ConfigError, StoreError
from pizzafeed.importer.rate_limiter import RateLimiter
from pizzafeed.importer.runner import RunStatus, RunSummary, run_collector
from pizzafeed.main import configure_logging, source_config

EXIT_OK           = 0
EXIT_CONFIG_ERROR = 1
EXIT_FETCH_FAILED = 3

_ALL_SOURCES = tuple(p.value for p in Platform)

# option dest → platforms that accept it
_OPTION_SOURCES: dict[str, set[str]] = {
    "subreddit":   {"reddit"},
    "subreddits":  {"reddit"},
    "time":        {"reddit"},
    "sort":        {"reddit", "imgur"},
    "query":       {"imgur", "pexels", "tiktok", "youtube", "imgflip"},
    "gallery":     {"imgur"},
    "window":      {"imgur"},
    "page":        {"imgur", "pexels"},
    "videos":      {"pexels"},
    "orientation": {"pexels"},
    "size":        {"pexels"},
    "hashtag":     {"tiktok"},
    "country":     {"tiktok"},
    "min_views":   {"tiktok"},
    "cursor":      {"tiktok"},
    "order":       {"youtube"},
    "duration":    {"youtube"},
    "after":       {"youtube"},
    "page_token":  {"youtube"},
    "tag":         {"9gag"},
    "type":        {"9gag"},
}

_SORT_CHOICES = {"reddit": REDDIT_SORTS, "imgur": IMGUR_SORTS}


# ── Parser ─────────────────────────────────────────────────────────────────────

def _positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"{value!r} is not an integer")
    if number < 1:
        raise argparse.ArgumentTypeError(f"{value!r} must be at least 1")
    return number


def _non_negative_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"{value!r} is not an integer")
    if number < 0:
        raise argparse.ArgumentTypeError(f"{value!r} must not be negative")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="run-import",
        description="Import pizza content from third-party platforms into the content store.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "environment:\n"
            "  STORE_BACKEND=supabase needs SUPABASE_URL + SUPABASE_SERVICE_KEY; "
            "STORE_BACKEND=sqlite uses DB_PATH\n"
            "  IMGUR_CLIENT_ID, PEXELS_API_KEY, RAPIDAPI_KEY (TikTok), YOUTUBE_API_KEY "
            "are required only for their source"
        ),
    )
    target = parser.add_mutually_exclusive_group(required=True)
    target.add_argument("--source", choices=_ALL_SOURCES, help="platform to import from")
    target.add_argument("--all", action="store_true", help="run every active import source in the store")

    common = parser.add_argument_group("common")
    common.add_argument("--limit", "-l", type=_positive_int, help="items to fetch per source")
    common.add_argument("--sort", help=f"reddit: {'|'.join(REDDIT_SORTS)}; imgur: {'|'.join(IMGUR_SORTS)}")
    common.add_argument("--query", "-q", help="search term (default: pizza)")
    common.add_argument("--page", type=_non_negative_int, help="result page (imgur 0-based, pexels 1-based)")
    common.add_argument("--no-validate", action="store_true", help="skip the media reachability check")
    common.add_argument("--dry-run", action="store_true", help="preview without writing to the store")
    common.add_argument("--verbose", "-v", action="store_true", help="debug logging")

    reddit = parser.add_argument_group("reddit")
    reddit.add_argument("--subreddit", "-s", help="single subreddit")
    reddit.add_argument("--subreddits", help="comma-separated subreddits")
    reddit.add_argument("--time", "-t", choices=REDDIT_TIMES, help="time window for top listings")

    imgur = parser.add_argument_group("imgur")
    imgur.add_argument("--gallery", "-g", choices=IMGUR_GALLERIES, help="browse a gallery section instead of searching")
    imgur.add_argument("--window", "-w", choices=IMGUR_WINDOWS)

    pexels = parser.add_argument_group("pexels")
    pexels.add_argument("--videos", action="store_true", default=None, help="search videos instead of photos")
    pexels.add_argument("--orientation", choices=PEXELS_ORIENTATIONS)
    pexels.add_argument("--size", choices=PEXELS_SIZES)

    tiktok = parser.add_argument_group("tiktok")
    tiktok.add_argument("--hashtag", help="search a hashtag instead of a keyword")
    tiktok.add_argument("--country", help="region code for keyword search (default: US)")
    tiktok.add_argument("--min-views", type=_non_negative_int, help="drop videos with fewer plays")
    tiktok.add_argument("--cursor", help="pagination cursor from a previous run")

    youtube = parser.add_argument_group("youtube")
    youtube.add_argument("--order", "-o", choices=YOUTUBE_ORDERS)
    youtube.add_argument("--duration", "-d", choices=YOUTUBE_DURATIONS)
    youtube.add_argument("--after", help="only videos published after this ISO 8601 time")
    youtube.add_argument("--page-token", help="continue from a previous result page")

    ninegag = parser.add_argument_group("9gag")
    ninegag.add_argument("--tag", help="tag to browse (default: pizza)")
    ninegag.add_argument("--type", choices=NINEGAG_TYPES)

    return parser


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = build_parser()
    args   = parser.parse_args(argv)

    if args.all:
        given = [dest for dest in _OPTION_SOURCES if getattr(args, dest) is not None]
        if given:
            parser.error(f"--all takes no source options (got --{given[0].replace('_', '-')})")
        return args

    for dest, platforms in _OPTION_SOURCES.items():
        if getattr(args, dest) is not None and args.source not in platforms:
            parser.error(f"--{dest.replace('_', '-')} is not supported for --source {args.source}")

    if args.sort is not None and args.sort not in _SORT_CHOICES[args.source]:
        parser.error(
            f"--sort for {args.source} must be one of: {', '.join(_SORT_CHOICES[args.source])}"
        )
    if args.subreddit and args.subreddits:
        parser.error("use either --subreddit or --subreddits, not both")
    return args


# ── Source configs ─────────────────────────────────────────────────────────────

def configs_from_args(args: argparse.Namespace) -> list[dict]:
    """One collector config per requested source (several for --subreddits)."""
    base = {
        dest: getattr(args, dest)
        for dest in (*_OPTION_SOURCES, "limit")
        if dest not in ("subreddit", "subreddits") and getattr(args, dest) is not None
    }
    base["validate"] = not args.no_validate

    if args.source != Platform.REDDIT.value:
        return [base]

    if args.subreddit:
        subreddits = [args.subreddit]
    elif args.subreddits:
        subreddits = [s.strip() for s in args.subreddits.split(",") if s.strip()]
    else:
        subreddits = list(DEFAULT_SUBREDDITS)
    return [{**base, "subreddit": sub} for sub in subreddits]


async def build_collectors(args: argparse.Namespace, store: ContentStore) -> list[BaseCollector]:
    """Raises ConfigError before any run starts if a credential is missing."""
    limiters: dict[str, RateLimiter] = {}

    def limiter_for(platform: str) -> RateLimiter:
        if platform not in limiters:
            limiters[platform] = make_limiter(platform)
        return limiters[platform]

    if args.all:
        overrides = {"validate": not args.no_validate}
        if args.limit is not None:
            overrides["limit"] = args.limit
        sources = await store.active_sources()
        return [
            make_collector(
                s.platform,
                {**source_config(s), **overrides},
                limiter=limiter_for(s.platform),
            )
            for s in sources
        ]

    return [
        make_collector(args.source, config, limiter=limiter_for(args.source))
        for config in configs_from_args(args)
    ]


# ── Summary ────────────────────────────────────────────────────────────────────

def format_summary(summaries: list[RunSummary], dry_run: bool) -> list[str]:
    """Final report lines: one row per run, then by-platform and by-type totals."""
    tag   = "[DRY RUN] " if dry_run else ""
    lines = [
        f"{tag}{'Source':<28} {'Status':<10} {'Found':>6} {'Imported':>9} "
        f"{'Filtered':>9} {'Duplicate':>10} {'Errors':>7}"
    ]
    by_platform: dict[str, Counter] = defaultdict(Counter)
    by_type: Counter = Counter()

    for s in summaries:
        lines.append(
            f"{tag}{s.display_name[:28]:<28} {s.status.value:<10} {s.found:>6} {s.imported:>9} "
            f"{s.skipped_filtered:>9} {s.skipped_duplicate:>10} {s.errored:>7}"
        )
        if s.error_message:
            lines.append(f"{tag}    error: {s.error_message}")
        totals = by_platform[s.platform]
        totals.update(
            found=s.found, imported=s.imported, filtered=s.skipped_filtered,
            duplicate=s.skipped_duplicate, errors=s.errored,
        )
        by_type.update(s.by_type)

    if by_platform:
        lines.append(f"{tag}By platform:")
        for platform, t in sorted(by_platform.items()):
            lines.append(
                f"{tag}  {platform:<10} found {t['found']}, imported {t['imported']}, "
                f"skipped {t['filtered']} filtered + {t['duplicate']} duplicate, errors {t['errors']}"
            )
    if by_type:
        verb = "would import" if dry_run else "imported"
        lines.append(f"{tag}By type ({verb}): " + ", ".join(f"{k} {v}" for k, v in sorted(by_type.items())))
    return lines


# ── Main ───────────────────────────────────────────────────────────────────────

async def run_imports(args: argparse.Namespace) -> int:
    dry_run = args.dry_run or settings.DRY_RUN
    tag     = "[DRY RUN] " if dry_run else ""

    try:
        store = make_store()
    except ConfigError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    summaries: list[RunSummary] = []
    try:
        try:
            collectors = await build_collectors(args, store)
        except (ConfigError, StoreError, ValueError) as exc:
            print(f"error: {exc}", file=sys.stderr)
            return EXIT_CONFIG_ERROR

        if not collectors:
            logger.warning(f"{tag}no import sources to run")

        for index, collector in enumerate(collectors):
            if index:
                await asyncio.sleep(settings.INTER_SOURCE_DELAY)
            try:
                summaries.append(
                    await run_collector(collector, store, dry_run=dry_run, validate=not args.no_validate)
                )
            except StoreError as exc:
                logger.error(f"{tag}[{collector.display_name}] store error: {exc}")
                summaries.append(RunSummary(
                    platform          = collector.platform.value,
                    source_identifier = collector.source_identifier,
                    display_name      = collector.display_name,
                    dry_run           = dry_run,
                    status            = RunStatus.FAILED,
                    error_message     = str(exc),
                ))
    finally:
        await store.close()

    for line in format_summary(summaries, dry_run):
        print(line)

    if any(s.status is RunStatus.FAILED for s in summaries):
        return EXIT_FETCH_FAILED
    return EXIT_OK


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    configure_logging("DEBUG" if args.verbose else None)
    return asyncio.run(run_imports(args))


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run()

"""
Worker entry point — initialises APScheduler and schedules one import job per
active import source in the content store.

Each source runs at its configured poll_interval (default from the platform's
SourceDefaults). Sources that share a platform share one RateLimiter.
Jobs never overlap (max_instances=1) and missed runs are coalesced.

Usage:
    pizzafeed-worker
    # seed sources first: python scripts/setup_db.py
"""
import asyncio
import signal
import sys
from datetime import datetime, timezone

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from loguru import logger

from pizzafeed.collectors.base import BaseCollector, make_limiter
from pizzafeed.collectors.registry import make_collector
from pizzafeed.config import settings
from pizzafeed.config.defaults import defaults_for
from pizzafeed.database.store import ContentStore, ImportSource, make_store
from pizzafeed.errors import ConfigError, StoreError
from pizzafeed.importer.rate_limiter import RateLimiter
from pizzafeed.importer.runner import run_collector
from pizzafeed.monitoring.alerts import alert_run_failed, alert_startup


# ── Logging ────────────────────────────────────────────────────────────────────

def configure_logging(level: str | None = None) -> None:
    """stderr sink plus a daily rotating file under LOGS_DIR."""
    level = level or settings.LOG_LEVEL
    settings.LOGS_DIR.mkdir(parents=True, exist_ok=True)
    logger.remove()
    logger.add(sys.stderr, level=level)
    logger.add(
        settings.LOGS_DIR / "pizzafeed_{time:YYYY-MM-DD}.log",
        rotation="00:00",
        retention="14 days",
        level=level,
        encoding="utf-8",
    )


# ── Job runner ─────────────────────────────────────────────────────────────────

async def _run_source(collector: BaseCollector, store: ContentStore, dry_run: bool) -> None:
    try:
        summary = await run_collector(collector, store, dry_run=dry_run)
        if summary.imported:
            logger.info(f"[Scheduler] {collector.display_name} → {summary.imported} new items")
    except Exception as exc:
        logger.error(f"[Scheduler] {collector.display_name} failed: {exc}")
        await alert_run_failed(collector.display_name, collector.platform.value, str(exc))


# ── Scheduler setup ────────────────────────────────────────────────────────────

def source_config(source: ImportSource) -> dict:
    return {
        **source.config,
        "identifier":   source.source_identifier,
        "display_name": source.display_name,
    }


def build_scheduler(
    sources: list[ImportSource],
    store: ContentStore,
    dry_run: bool = False,
) -> AsyncIOScheduler:
    scheduler = AsyncIOScheduler(timezone="UTC")
    limiters: dict[str, RateLimiter] = {}

    for source in sources:
        name = f"{source.platform}/{source.source_identifier}"
        try:
            limiter   = limiters.setdefault(source.platform, make_limiter(source.platform))
            collector = make_collector(source.platform, source_config(source), limiter=limiter)
        except (ConfigError, ValueError, KeyError) as exc:
            logger.warning(f"[Scheduler] {name} not scheduled: {exc}")
            continue

        poll_interval = int(
            source.config.get("poll_interval") or defaults_for(source.platform).poll_interval
        )
        scheduler.add_job(
            _run_source,
            "interval",
            seconds       = poll_interval,
            args          = [collector, store, dry_run],
            id            = f"import_{source.id}",
            name          = f"Import {collector.display_name}",
            max_instances = 1,
            coalesce      = True,
            next_run_time = datetime.now(timezone.utc),
        )
        logger.debug(f"[Scheduler] scheduled {name} every {poll_interval}s")

    logger.info(f"[Scheduler] {len(scheduler.get_jobs())}/{len(sources)} sources scheduled")
    return scheduler


# ── Main ───────────────────────────────────────────────────────────────────────

async def main() -> int:
    configure_logging()
    dry_run = settings.DRY_RUN
    logger.info("pizzafeed worker starting up" + (" [DRY RUN]" if dry_run else ""))

    try:
        store = make_store()
    except ConfigError as exc:
        logger.error(f"configuration error: {exc}")
        return 1

    try:
        sources = await store.active_sources()
    except StoreError as exc:
        logger.error(f"could not load import sources: {exc}")
        await store.close()
        return 1

    scheduler = build_scheduler(sources, store, dry_run)
    if not scheduler.get_jobs():
        logger.warning("no active import sources; seed them with scripts/setup_db.py")

    await alert_startup(dry_run, len(scheduler.get_jobs()))
    scheduler.start()
    logger.info(f"Scheduler running — {len(scheduler.get_jobs())} jobs active")

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop.set)

    await stop.wait()
    logger.info("Shutting down scheduler…")
    scheduler.shutdown(wait=False)
    await store.close()
    return 0


def run() -> None:
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    run()

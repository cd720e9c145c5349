"""
Import runner — drives one run for one import source:

  fetch → normalize → dedupe → (check) → persist → run log

  ContentImporter.run(fetch_fn, normalize_fn, check_fn=None)
      The orchestrator. Only fetch_fn may abort a run (status "failed");
      everything that goes wrong inside the item loop is caught, counted and
      logged, and the run still ends "completed".

  run_collector(collector, store, dry_run)
      Convenience wrapper used by the CLI and the scheduled worker. Fires a
      Discord alert when a live run fails.

Dry run: persistence becomes a no-op that still counts as imported, and every
store write (source bookkeeping, run log, content) is suppressed. The dedup
cache is still read so previews report real duplicate counts.
"""
import inspect
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Awaitable, Callable, Iterable

from loguru import logger

from pizzafeed.content.record import ContentRecord
from pizzafeed.database.store import ContentStore, InsertOutcome
from pizzafeed.errors import StoreError
from pizzafeed.importer.dedup import Deduplicator
from pizzafeed.monitoring.alerts import alert_run_failed

FetchFn     = Callable[[], Awaitable[Iterable[Any]]]
NormalizeFn = Callable[[Any], ContentRecord | None]
CheckFn     = Callable[[ContentRecord], Awaitable[bool]]


class RunStatus(str, Enum):
    RUNNING   = "running"
    COMPLETED = "completed"
    FAILED    = "failed"


@dataclass
class RunSummary:
    platform:          str
    source_identifier: str
    display_name:      str
    dry_run:           bool = False
    status:            RunStatus = RunStatus.RUNNING
    found:             int = 0
    imported:          int = 0
    skipped_filtered:  int = 0
    skipped_duplicate: int = 0
    errored:           int = 0
    errors:            list[tuple[str, str]] = field(default_factory=list)   # (item, message)
    by_type:           Counter = field(default_factory=Counter)              # imported per content type
    error_message:     str | None = None
    run_id:            int | str | None = None
    started_at:        datetime | None = None
    completed_at:      datetime | None = None

    @property
    def skipped(self) -> int:
        return self.skipped_filtered + self.skipped_duplicate

    @property
    def reconciles(self) -> bool:
        return self.found == self.imported + self.skipped + self.errored


class ContentImporter:
    def __init__(
        self,
        store: ContentStore,
        platform: str,
        source_identifier: str,
        display_name: str | None = None,
        dry_run: bool = False,
        config: dict | None = None,
    ):
        self.store             = store
        self.platform          = str(platform)
        self.source_identifier = source_identifier
        self.display_name      = display_name or f"{platform}/{source_identifier}"
        self.dry_run           = dry_run
        self.config            = config or {}
        self.dedup             = Deduplicator(store)
        self._tag              = "[DRY RUN] " if dry_run else ""

    async def run(
        self,
        fetch_fn: FetchFn,
        normalize_fn: NormalizeFn,
        check_fn: CheckFn | None = None,
    ) -> RunSummary:
        summary = RunSummary(
            platform          = self.platform,
            source_identifier = self.source_identifier,
            display_name      = self.display_name,
            dry_run           = self.dry_run,
            started_at        = _utcnow(),
        )

        source_id = None
        if not self.dry_run:
            source_id = await self.store.ensure_source(
                self.platform, self.source_identifier, self.display_name, self.config
            )
        await self.dedup.load_cache()
        if not self.dry_run:
            summary.run_id = await self.store.start_run(source_id)

        logger.info(f"{self._tag}[{self.display_name}] fetching…")
        try:
            items = list(await fetch_fn() or [])
        except Exception as exc:
            summary.error_message = str(exc) or type(exc).__name__
            logger.error(f"{self._tag}[{self.display_name}] fetch failed: {summary.error_message}")
            await self._finalize(summary, RunStatus.FAILED, source_id)
            return summary

        summary.found = len(items)
        logger.info(f"{self._tag}[{self.display_name}] {summary.found} items found")

        for index, raw in enumerate(items):
            try:
                await self._process(raw, normalize_fn, check_fn, summary)
            except Exception as exc:
                summary.errored += 1
                summary.errors.append((_describe(raw, index), str(exc)))
                logger.warning(
                    f"{self._tag}[{self.display_name}] item {_describe(raw, index)} errored: {exc}"
                )

        await self._finalize(summary, RunStatus.COMPLETED, source_id)
        return summary

    # ── Internal ──────────────────────────────────────────────────────────────

    async def _process(
        self,
        raw: Any,
        normalize_fn: NormalizeFn,
        check_fn: CheckFn | None,
        summary: RunSummary,
    ) -> None:
        record = normalize_fn(raw)
        if inspect.isawaitable(record):
            record = await record

        if record is None:
            summary.skipped_filtered += 1
            return

        if self.dedup.exists(record):
            summary.skipped_duplicate += 1
            logger.debug(f"{self._tag}[{self.display_name}] duplicate: {record.source_url}")
            return

        if check_fn is not None and not await check_fn(record):
            summary.skipped_filtered += 1
            logger.debug(f"{self._tag}[{self.display_name}] media check failed: {record.url[:80]}")
            return

        if self.dry_run:
            outcome = InsertOutcome.INSERTED
        else:
            outcome = await self.store.insert_content(record)

        if outcome is InsertOutcome.SKIPPED:
            summary.skipped_duplicate += 1
            self.dedup.add(record)
            logger.debug(f"{self._tag}[{self.display_name}] already stored: {record.url}")
            return

        self.dedup.add(record)
        summary.imported += 1
        summary.by_type[record.type.value] += 1
        verb = "would import" if self.dry_run else "imported"
        logger.info(f"{self._tag}[{self.display_name}] {verb} [{record.type.value}]: {record.title[:60]}")

    async def _finalize(self, summary: RunSummary, status: RunStatus, source_id) -> None:
        summary.status       = status
        summary.completed_at = _utcnow()

        if not self.dry_run:
            try:
                await self.store.finish_run(
                    summary.run_id,
                    status.value,
                    summary.found,
                    summary.imported,
                    summary.skipped,
                    summary.errored,
                    summary.error_message,
                )
                await self.store.touch_source(source_id)
            except StoreError as exc:
                # the log row stays "running"
                logger.error(f"[{self.display_name}] could not finalize run log {summary.run_id}: {exc}")

        logger.info(
            f"{self._tag}[{self.display_name}] {status.value}: "
            f"found {summary.found}, imported {summary.imported}, "
            f"skipped {summary.skipped_filtered} filtered + {summary.skipped_duplicate} duplicate, "
            f"errors {summary.errored}"
        )


# ── Collector wrapper ─────────────────────────────────────────────────────────

async def run_collector(collector, store: ContentStore, dry_run: bool = False, validate: bool = True) -> RunSummary:
    """Run one collector through a ContentImporter. Alerts on a failed live run."""
    importer = ContentImporter(
        store             = store,
        platform          = collector.platform.value,
        source_identifier = collector.source_identifier,
        display_name      = collector.display_name,
        dry_run           = dry_run,
        config            = collector.config,
    )
    check_fn = collector.check if validate and collector.validates_media else None
    summary  = await importer.run(collector.fetch, collector.normalize, check_fn)

    if summary.status is RunStatus.FAILED and not dry_run:
        await alert_run_failed(summary.display_name, summary.platform, summary.error_message or "")
    return summary


# ── Helpers ───────────────────────────────────────────────────────────────────

def _describe(raw: Any, index: int) -> str:
    if isinstance(raw, dict):
        for key in ("id", "permalink", "url", "title"):
            if raw.get(key):
                return str(raw[key])[:80]
    return f"#{index}"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)

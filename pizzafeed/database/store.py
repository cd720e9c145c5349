"""
Content store adapters — the only code that talks to the backing store.

ContentStore is the async interface the importer uses. Two implementations:
  SQLiteStore    local file via database/db.py, calls run in a worker thread
  SupabaseStore  hosted Postgres through its REST endpoint (database/supabase.py)

insert_content() classifies a unique-key clash as InsertOutcome.SKIPPED; any
other failure raises StoreError so the importer can count it and move on.
"""
import asyncio
import json
import sqlite3
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Protocol

from pizzafeed.config import settings
from pizzafeed.content.record import ContentRecord
from pizzafeed.database import db
from pizzafeed.errors import ConfigError, StoreError


class InsertOutcome(str, Enum):
    INSERTED = "inserted"
    SKIPPED  = "skipped"     # unique constraint hit, record already exists


@dataclass
class ImportSource:
    id:                int | str
    platform:          str
    source_identifier: str
    display_name:      str
    config:            dict[str, Any] = field(default_factory=dict)
    is_active:         bool = True
    last_fetched_at:   str | None = None


class ContentStore(Protocol):
    async def ensure_source(
        self, platform: str, identifier: str, display_name: str, config: dict | None = None
    ) -> int | str: ...

    async def start_run(self, source_id: int | str) -> int | str: ...

    async def finish_run(
        self,
        run_id: int | str,
        status: str,
        found: int,
        imported: int,
        skipped: int,
        errored: int,
        error_message: str | None = None,
    ) -> None: ...

    async def touch_source(self, source_id: int | str) -> None: ...

    async def known_urls(self) -> list[str]: ...

    async def insert_content(self, record: ContentRecord) -> InsertOutcome: ...

    async def active_sources(self) -> list[ImportSource]: ...

    async def set_source_active(self, platform: str, identifier: str, active: bool) -> bool: ...

    async def close(self) -> None: ...


# ── SQLite ─────────────────────────────────────────────────────────────────────

class SQLiteStore:
    """ContentStore over a local SQLite file. Each call opens its own connection."""

    def __init__(self, db_path: Path | str | None = None):
        self.db_path = Path(db_path or settings.DB_PATH)
        db.init_db(self.db_path)

    async def ensure_source(self, platform, identifier, display_name, config=None):
        return await self._run(db.upsert_source, platform, identifier, display_name, config)

    async def start_run(self, source_id):
        return await self._run(db.start_import_log, source_id)

    async def finish_run(self, run_id, status, found, imported, skipped, errored, error_message=None):
        await self._run(
            db.finish_import_log, run_id, status, found, imported, skipped, errored, error_message
        )

    async def touch_source(self, source_id):
        await self._run(db.touch_source, source_id)

    async def known_urls(self):
        return await self._run(db.known_content_urls)

    async def insert_content(self, record: ContentRecord) -> InsertOutcome:
        was_new = await self._run(db.insert_content, record.to_row())
        return InsertOutcome.INSERTED if was_new else InsertOutcome.SKIPPED

    async def active_sources(self):
        rows = await self._run(db.get_active_sources)
        return [_row_to_source(r) for r in rows]

    async def set_source_active(self, platform, identifier, active):
        return await self._run(db.set_source_active, platform, identifier, active)

    async def close(self) -> None:
        return None

    # ── Internal ──────────────────────────────────────────────────────────────

    async def _run(self, fn, *args):
        return await asyncio.to_thread(self._call, fn, *args)

    def _call(self, fn, *args):
        try:
            with db.get_db(self.db_path) as conn:
                return fn(conn, *args)
        except sqlite3.Error as exc:
            raise StoreError(f"sqlite: {exc}") from exc


def _row_to_source(row) -> ImportSource:
    return ImportSource(
        id                = row["id"],
        platform          = row["platform"],
        source_identifier = row["source_identifier"],
        display_name      = row["display_name"] or f"{row['platform']}/{row['source_identifier']}",
        config            = json.loads(row["config"] or "{}"),
        is_active         = bool(row["is_active"]),
        last_fetched_at   = row["last_fetched_at"],
    )


# ── Factory ────────────────────────────────────────────────────────────────────

def make_store() -> ContentStore:
    """
    Build the store selected by STORE_BACKEND.
    Raises ConfigError when the persistence credential is missing.
    """
    backend = settings.STORE_BACKEND
    if backend == "sqlite":
        return SQLiteStore(settings.DB_PATH)
    if backend == "supabase":
        from pizzafeed.database.supabase import SupabaseStore

        if not settings.SUPABASE_URL or not settings.SUPABASE_SERVICE_KEY:
            raise ConfigError(
                "SUPABASE_URL and SUPABASE_SERVICE_KEY are required "
                "(service role key: Supabase dashboard → Project Settings → API), "
                "or set STORE_BACKEND=sqlite for a local database"
            )
        return SupabaseStore(settings.SUPABASE_URL, settings.SUPABASE_SERVICE_KEY)
    raise ConfigError(f"unknown STORE_BACKEND {backend!r} (expected 'supabase' or 'sqlite')")

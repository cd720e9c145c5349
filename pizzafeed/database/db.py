"""
SQLite helpers — connection, init, content inserts, import source and run-log
bookkeeping. All public functions accept an open sqlite3.Connection so callers
control the transaction boundary via the get_db() context manager.
"""
import json
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Generator

from pizzafeed.config import settings


# ── Connection ─────────────────────────────────────────────────────────────────

@contextmanager
def get_db(db_path: Path | str | None = None) -> Generator[sqlite3.Connection, None, None]:
    """Yield an open connection; commit on clean exit, rollback on exception."""
    path = Path(db_path or settings.DB_PATH)
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(path)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    conn.execute("PRAGMA journal_mode = WAL")
    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


# ── Schema init ────────────────────────────────────────────────────────────────

def init_db(db_path: Path | str | None = None) -> None:
    """Create tables and indexes from schema.sql. Safe to call repeatedly."""
    schema_path = Path(__file__).parent / "schema.sql"
    sql = schema_path.read_text(encoding="utf-8")
    with get_db(db_path) as conn:
        conn.executescript(sql)


# ── Import sources ─────────────────────────────────────────────────────────────

def upsert_source(
    conn: sqlite3.Connection,
    platform: str,
    identifier: str,
    display_name: str | None = None,
    config: dict | None = None,
) -> int:
    """Insert source if it doesn't exist; return its id either way."""
    conn.execute(
        """INSERT OR IGNORE INTO import_sources
               (platform, source_identifier, display_name, config)
           VALUES (?, ?, ?, ?)""",
        (platform, identifier, display_name or f"{platform}/{identifier}", json.dumps(config or {})),
    )
    row = conn.execute(
        "SELECT id FROM import_sources WHERE platform = ? AND source_identifier = ?",
        (platform, identifier),
    ).fetchone()
    return row["id"]


def get_active_sources(conn: sqlite3.Connection) -> list[sqlite3.Row]:
    """Return all active import sources, oldest-fetched first."""
    return conn.execute(
        """SELECT * FROM import_sources WHERE is_active = 1
           ORDER BY last_fetched_at IS NOT NULL, last_fetched_at, id"""
    ).fetchall()


def set_source_active(conn: sqlite3.Connection, platform: str, identifier: str, active: bool) -> bool:
    """Operator toggle. Returns False if no such source exists."""
    cur = conn.execute(
        "UPDATE import_sources SET is_active = ? WHERE platform = ? AND source_identifier = ?",
        (1 if active else 0, platform, identifier),
    )
    return cur.rowcount == 1


def touch_source(conn: sqlite3.Connection, source_id: int) -> None:
    conn.execute(
        "UPDATE import_sources SET last_fetched_at = ? WHERE id = ?",
        (_utcnow(), source_id),
    )


# ── Import logs ────────────────────────────────────────────────────────────────

def start_import_log(conn: sqlite3.Connection, source_id: int) -> int:
    cur = conn.execute(
        "INSERT INTO import_logs (source_id, status, started_at) VALUES (?, 'running', ?)",
        (source_id, _utcnow()),
    )
    return cur.lastrowid


def finish_import_log(
    conn: sqlite3.Connection,
    log_id: int,
    status: str,
    found: int,
    imported: int,
    skipped: int,
    errored: int,
    error_message: str | None = None,
) -> None:
    """Finalize a running log. A log that is already terminal is left untouched."""
    conn.execute(
        """UPDATE import_logs
              SET status = ?, items_found = ?, items_imported = ?, items_skipped = ?,
                  items_errored = ?, error_message = ?, completed_at = ?
            WHERE id = ? AND status = 'running'""",
        (status, found, imported, skipped, errored, error_message, _utcnow(), log_id),
    )


# ── Content ────────────────────────────────────────────────────────────────────

def insert_content(conn: sqlite3.Connection, row: dict[str, Any]) -> bool:
    """
    INSERT one content row.
    Returns True if inserted, False if the url / source_url already exists.
    Any other constraint failure propagates as sqlite3.IntegrityError.
    """
    try:
        conn.execute(
            """INSERT INTO content
                   (type, title, url, thumbnail_url, source_url, source_platform,
                    description, tags, is_viral, status, creator)
               VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                row["type"],
                row["title"],
                row["url"],
                row.get("thumbnail_url"),
                row.get("source_url"),
                row["source_platform"],
                row.get("description"),
                json.dumps(row.get("tags") or []),
                1 if row.get("is_viral") else 0,
                row.get("status", "approved"),
                row.get("creator"),
            ),
        )
    except sqlite3.IntegrityError as exc:
        if "UNIQUE constraint failed" in str(exc):
            return False
        raise
    return True


def known_content_urls(conn: sqlite3.Connection) -> list[str]:
    """Every url and source_url currently in the content table."""
    urls: list[str] = []
    for row in conn.execute("SELECT url, source_url FROM content"):
        urls.append(row["url"])
        if row["source_url"]:
            urls.append(row["source_url"])
    return urls


# ── Helpers ────────────────────────────────────────────────────────────────────

def _utcnow() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")

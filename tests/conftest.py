"""Shared fixtures: an in-memory content store, a temp SQLite store, and HTTP mocking helpers."""

import json
import sys
from pathlib import Path
from typing import Any, Callable

import httpx
import pytest
from loguru import logger

from pizzafeed.config import settings
from pizzafeed.content.record import ContentRecord
from pizzafeed.database.store import ImportSource, InsertOutcome, SQLiteStore
from pizzafeed.errors import StoreError
from pizzafeed.importer.rate_limiter import RateLimiter


class FakeStore:
    """ContentStore kept in dicts; unique on url and source_url like the real tables."""

    def __init__(self) -> None:
        self.sources: dict[tuple[str, str], ImportSource] = {}
        self.runs: dict[int, dict[str, Any]] = {}
        self.content: list[ContentRecord] = []
        self.touched: list[Any] = []
        self.fail_urls: set[str] = set()
        self.closed = False

    async def ensure_source(self, platform, identifier, display_name, config=None):
        key = (platform, identifier)
        if key not in self.sources:
            self.sources[key] = ImportSource(
                id=len(self.sources) + 1,
                platform=platform,
                source_identifier=identifier,
                display_name=display_name,
                config=dict(config or {}),
            )
        return self.sources[key].id

    async def start_run(self, source_id):
        run_id = len(self.runs) + 1
        self.runs[run_id] = {"source_id": source_id, "status": "running"}
        return run_id

    async def finish_run(self, run_id, status, found, imported, skipped, errored, error_message=None):
        run = self.runs[run_id]
        if run["status"] != "running":
            return
        run.update(
            status=status,
            items_found=found,
            items_imported=imported,
            items_skipped=skipped,
            items_errored=errored,
            error_message=error_message,
        )

    async def touch_source(self, source_id):
        self.touched.append(source_id)

    async def known_urls(self):
        return [u for r in self.content for u in (r.url, r.source_url) if u]

    async def insert_content(self, record):
        if record.url in self.fail_urls:
            raise StoreError(f"simulated failure for {record.url}")
        for existing in self.content:
            if existing.url == record.url or existing.source_url == record.source_url:
                return InsertOutcome.SKIPPED
        self.content.append(record)
        return InsertOutcome.INSERTED

    async def active_sources(self):
        return [s for s in self.sources.values() if s.is_active]

    async def set_source_active(self, platform, identifier, active):
        source = self.sources.get((platform, identifier))
        if source is None:
            return False
        source.is_active = active
        return True

    async def close(self):
        self.closed = True

    @property
    def last_run(self) -> dict[str, Any]:
        return self.runs[max(self.runs)]


@pytest.fixture
def fake_store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def sqlite_store(tmp_path: Path) -> SQLiteStore:
    return SQLiteStore(tmp_path / "test.db")


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    """Keep logs, the sqlite file and alerts away from the real environment."""
    monkeypatch.setattr(settings, "LOGS_DIR", tmp_path / "logs")
    monkeypatch.setattr(settings, "DB_PATH", tmp_path / "pizzafeed.db")
    monkeypatch.setattr(settings, "DISCORD_WEBHOOK_URL", None)
    monkeypatch.setattr(settings, "DRY_RUN", False)
    monkeypatch.setattr(settings, "INTER_SOURCE_DELAY", 0)
    yield
    # main.configure_logging may have pointed loguru at a captured stream
    logger.remove()
    logger.add(sys.stderr)


@pytest.fixture
def sleeps() -> list[float]:
    return []


@pytest.fixture
def limiter(sleeps: list[float]) -> RateLimiter:
    """Fast limiter that records delays instead of sleeping."""

    async def fake_sleep(seconds: float) -> None:
        sleeps.append(seconds)

    return RateLimiter(requests_per_minute=60_000, max_retries=3, base_delay=0.5, sleep=fake_sleep)


def json_response(payload: Any, status: int = 200, **headers: str) -> httpx.Response:
    return httpx.Response(status, content=json.dumps(payload).encode(), headers={"content-type": "application/json", **headers})


def route_transport(routes: dict[str, Callable[[httpx.Request], httpx.Response] | httpx.Response]) -> httpx.MockTransport:
    """MockTransport dispatching on URL path; unknown paths answer 404. Static responses are copied per request."""

    def handler(request: httpx.Request) -> httpx.Response:
        target = routes.get(request.url.path)
        if target is None:
            return httpx.Response(404, text="not found")
        if callable(target):
            return target(request)
        return httpx.Response(target.status_code, headers=target.headers, content=target.content)

    return httpx.MockTransport(handler)


def reddit_child(**data: Any) -> dict[str, Any]:
    post = {
        "id": "abc123",
        "title": "Best Pizza Ever!!",
        "url": "https://i.redd.it/p.jpg",
        "permalink": "/r/pizza/comments/abc123/best_pizza_ever/",
        "thumbnail": "https://b.thumbs.redditmedia.com/p.jpg",
        "is_self": False,
        "over_18": False,
        "score": 42,
        "author": "crust_lover",
    }
    post.update(data)
    return {"kind": "t3", "data": post}

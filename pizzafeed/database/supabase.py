"""
SupabaseStore — ContentStore over the hosted database's REST endpoint
(PostgREST at {SUPABASE_URL}/rest/v1), authenticated with the service role key.

Unique-key clashes come back as HTTP 409 / Postgres code 23505 and are
reported as InsertOutcome.SKIPPED.
"""
from datetime import datetime, timezone

import httpx
from loguru import logger

from pizzafeed.config import settings
from pizzafeed.content.record import ContentRecord
from pizzafeed.database.store import ImportSource, InsertOutcome
from pizzafeed.errors import StoreError

_PAGE_SIZE       = 1000
_UNIQUE_VIOLATION = "23505"


class SupabaseStore:
    def __init__(self, url: str, service_key: str, transport: httpx.AsyncBaseTransport | None = None):
        self._client = httpx.AsyncClient(
            base_url  = f"{url.rstrip('/')}/rest/v1",
            timeout   = settings.HTTP_TIMEOUT,
            transport = transport,
            headers   = {
                "apikey":        service_key,
                "Authorization": f"Bearer {service_key}",
                "Content-Type":  "application/json",
            },
        )

    # ── Sources ───────────────────────────────────────────────────────────────

    async def ensure_source(self, platform, identifier, display_name, config=None):
        rows = await self._request(
            "GET", "/import_sources",
            params={
                "platform":          f"eq.{platform}",
                "source_identifier": f"eq.{identifier}",
                "select":            "id",
            },
        )
        if rows:
            return rows[0]["id"]

        created = await self._request(
            "POST", "/import_sources",
            json={
                "platform":          platform,
                "source_identifier": identifier,
                "display_name":      display_name,
                "config":            config or {},
                "is_active":         True,
            },
            headers={"Prefer": "return=representation"},
        )
        logger.debug(f"[Supabase] created import source {platform}/{identifier}")
        return created[0]["id"]

    async def touch_source(self, source_id):
        await self._request(
            "PATCH", "/import_sources",
            params={"id": f"eq.{source_id}"},
            json={"last_fetched_at": _utcnow()},
        )

    async def active_sources(self):
        rows = await self._request(
            "GET", "/import_sources",
            params={"is_active": "eq.true", "select": "*", "order": "id"},
        )
        return [
            ImportSource(
                id                = r["id"],
                platform          = r["platform"],
                source_identifier = r["source_identifier"],
                display_name      = r.get("display_name") or f"{r['platform']}/{r['source_identifier']}",
                config            = r.get("config") or {},
                is_active         = bool(r.get("is_active", True)),
                last_fetched_at   = r.get("last_fetched_at"),
            )
            for r in rows
        ]

    async def set_source_active(self, platform, identifier, active):
        rows = await self._request(
            "PATCH", "/import_sources",
            params={"platform": f"eq.{platform}", "source_identifier": f"eq.{identifier}"},
            json={"is_active": active},
            headers={"Prefer": "return=representation"},
        )
        return bool(rows)

    # ── Run logs ──────────────────────────────────────────────────────────────

    async def start_run(self, source_id):
        rows = await self._request(
            "POST", "/import_logs",
            json={"source_id": source_id, "status": "running", "started_at": _utcnow()},
            headers={"Prefer": "return=representation"},
        )
        return rows[0]["id"]

    async def finish_run(self, run_id, status, found, imported, skipped, errored, error_message=None):
        await self._request(
            "PATCH", "/import_logs",
            params={"id": f"eq.{run_id}", "status": "eq.running"},
            json={
                "status":         status,
                "items_found":    found,
                "items_imported": imported,
                "items_skipped":  skipped,
                "items_errored":  errored,
                "error_message":  error_message,
                "completed_at":   _utcnow(),
            },
        )

    # ── Content ───────────────────────────────────────────────────────────────

    async def known_urls(self):
        urls: list[str] = []
        offset = 0
        while True:
            rows = await self._request(
                "GET", "/content",
                params={"select": "url,source_url", "limit": _PAGE_SIZE, "offset": offset},
            )
            for row in rows:
                if row.get("url"):
                    urls.append(row["url"])
                if row.get("source_url"):
                    urls.append(row["source_url"])
            if len(rows) < _PAGE_SIZE:
                return urls
            offset += _PAGE_SIZE

    async def insert_content(self, record: ContentRecord) -> InsertOutcome:
        try:
            resp = await self._client.post("/content", json=record.to_row())
        except httpx.HTTPError as exc:
            raise StoreError(f"supabase: insert failed: {exc}") from exc

        if resp.is_success:
            return InsertOutcome.INSERTED
        if resp.status_code == 409 or _error_code(resp) == _UNIQUE_VIOLATION:
            return InsertOutcome.SKIPPED
        raise StoreError(f"supabase: insert returned {resp.status_code}: {resp.text[:300]}")

    async def close(self) -> None:
        await self._client.aclose()

    # ── Internal ──────────────────────────────────────────────────────────────

    async def _request(self, method: str, path: str, **kwargs):
        try:
            resp = await self._client.request(method, path, **kwargs)
            resp.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise StoreError(
                f"supabase: {method} {path} returned {exc.response.status_code}: "
                f"{exc.response.text[:300]}"
            ) from exc
        except httpx.HTTPError as exc:
            raise StoreError(f"supabase: {method} {path} failed: {exc}") from exc
        if not resp.content:
            return []
        return resp.json()


def _error_code(resp: httpx.Response) -> str | None:
    try:
        return str(resp.json().get("code"))
    except (ValueError, AttributeError):
        return None


def _utcnow() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")

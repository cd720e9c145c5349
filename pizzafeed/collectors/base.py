"""
BaseCollector ABC — one subclass per platform.

A collector owns the two source-specific halves of an import run:

  fetch()         async, returns the platform's raw items (list of dicts)
  normalize(raw)  pure, raw item → ContentRecord | None

The orchestrator (importer/runner.py) supplies everything in between. Every
HTTP call goes through _get_json / _get_text, which run inside the platform's
RateLimiter and translate httpx failures into the pizzafeed error taxonomy:

  timeout / connection error / 5xx  → TransientFetchError (retried)
  429                               → RateLimitedError     (retried)
  any other non-2xx, bad JSON       → FetchError           (aborts the run)
"""
from abc import ABC, abstractmethod
from typing import Any

import httpx
from loguru import logger

from pizzafeed.config import settings
from pizzafeed.config.defaults import SourceDefaults, defaults_for
from pizzafeed.content.record import ContentRecord, Platform
from pizzafeed.errors import ConfigError, FetchError, RateLimitedError, TransientFetchError
from pizzafeed.importer.rate_limiter import RateLimiter
from pizzafeed.importer.validate import check_media_url


def make_limiter(platform: Platform | str) -> RateLimiter:
    """RateLimiter configured from the platform's named defaults."""
    defaults = defaults_for(platform)
    return RateLimiter(
        requests_per_minute = defaults.requests_per_minute,
        max_retries         = defaults.max_retries,
        base_delay          = defaults.base_delay,
    )


class BaseCollector(ABC):
    platform: Platform
    label:    str = ""             # log prefix, e.g. "Reddit"
    validates_media: bool = False  # run a HEAD check on each new record before persisting

    def __init__(
        self,
        config: dict,
        limiter: RateLimiter | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.config     = dict(config)
        self.defaults: SourceDefaults = defaults_for(self.platform)
        self.limit      = int(self.config.get("limit") or self.defaults.limit)
        self.limiter    = limiter or make_limiter(self.platform)
        self._transport = transport
        self.source_identifier = str(self.config.get("identifier") or self.default_identifier())
        self.display_name      = str(self.config.get("display_name") or self.default_display_name())

    # ── Subclass API ──────────────────────────────────────────────────────────

    @abstractmethod
    async def fetch(self) -> list[dict[str, Any]]:
        """Fetch raw items from the platform. Raises FetchError on failure."""
        ...

    @abstractmethod
    def normalize(self, raw: dict[str, Any]) -> ContentRecord | None:
        """Map one raw item to a ContentRecord, or None to skip it."""
        ...

    def default_identifier(self) -> str:
        return str(self.config.get("query") or "default").strip().replace(" ", "-").lower()

    def default_display_name(self) -> str:
        return f"{self.label or self.platform.value}: {self.source_identifier}"

    async def check(self, record: ContentRecord) -> bool:
        async with self._client() as client:
            return await check_media_url(record.url, client)

    # ── Credentials ───────────────────────────────────────────────────────────

    def require_credential(self) -> str:
        """Return the platform API key, or raise ConfigError naming where to get one."""
        name = self.defaults.credential
        if not name:
            return ""
        value = getattr(settings, name, None)
        if not value:
            raise ConfigError(
                f"{name} is not set; {self.label or self.platform.value} imports need it. "
                f"Get one at {self.defaults.register_url}"
            )
        return value

    # ── HTTP ──────────────────────────────────────────────────────────────────

    async def _get_json(
        self,
        url: str,
        params: dict | None = None,
        headers: dict | None = None,
        context: str | None = None,
    ) -> Any:
        resp = await self._get(url, params, headers, context)
        try:
            return resp.json()
        except ValueError as exc:
            raise FetchError(self.platform.value, f"malformed JSON from {url}") from exc

    async def _get_text(
        self,
        url: str,
        params: dict | None = None,
        headers: dict | None = None,
        context: str | None = None,
    ) -> str:
        resp = await self._get(url, params, headers, context)
        return resp.text

    async def _get(self, url, params, headers, context) -> httpx.Response:
        async def attempt() -> httpx.Response:
            return await self._request(url, params, headers)

        return await self.limiter.execute(attempt, context or f"{self.label} GET {url[:60]}")

    async def _request(self, url: str, params: dict | None, headers: dict | None) -> httpx.Response:
        platform = self.platform.value
        try:
            async with self._client() as client:
                resp = await client.get(url, params=params, headers=headers)
        except httpx.TimeoutException as exc:
            raise TransientFetchError(platform, f"timed out after {settings.HTTP_TIMEOUT}s: {url}") from exc
        except httpx.TransportError as exc:
            raise TransientFetchError(platform, f"connection error: {exc}") from exc
        except httpx.HTTPError as exc:
            raise FetchError(platform, f"request failed: {exc}") from exc

        if resp.status_code == 429:
            raise RateLimitedError(platform, "429 Too Many Requests", status=429)
        if resp.status_code >= 500:
            raise TransientFetchError(
                platform, f"{resp.status_code} from {url}", status=resp.status_code
            )
        if not resp.is_success:
            logger.debug(f"[{self.label}] {resp.status_code} body: {resp.text[:200]}")
            raise FetchError(
                platform, f"{resp.status_code} from {url}", status=resp.status_code
            )
        return resp

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout          = settings.HTTP_TIMEOUT,
            follow_redirects = True,
            transport        = self._transport,
            headers          = {"User-Agent": settings.HTTP_USER_AGENT},
        )

"""
Media reachability check — one HEAD request against a record's media URL.

A URL passes when it answers 2xx with an image/* or video/* content type.
Hosts that replace removed media with a tiny placeholder are caught by the
size floor: a declared Content-Length under MIN_MEDIA_BYTES fails. Servers
that reject HEAD (405/501) get a single GET instead.
"""
import httpx
from loguru import logger

from pizzafeed.config import settings

MIN_MEDIA_BYTES = 1000
_MEDIA_PREFIXES = ("image/", "video/")


async def check_media_url(url: str, client: httpx.AsyncClient | None = None) -> bool:
    """Return True if `url` serves real media. Never raises."""
    if client is None:
        async with _client() as owned:
            return await _check(url, owned)
    return await _check(url, client)


def _client() -> httpx.AsyncClient:
    return httpx.AsyncClient(
        timeout          = settings.HTTP_TIMEOUT,
        follow_redirects = True,
        headers          = {"User-Agent": settings.HTTP_USER_AGENT, "Accept": "*/*"},
    )


async def _check(url: str, client: httpx.AsyncClient) -> bool:
    try:
        resp = await client.head(url)
        if resp.status_code in (405, 501):
            resp = await client.get(url)
    except httpx.HTTPError as exc:
        logger.debug(f"[Validate] {url[:80]} unreachable: {exc}")
        return False

    if not resp.is_success:
        logger.debug(f"[Validate] {url[:80]} returned {resp.status_code}")
        return False

    content_type = resp.headers.get("content-type", "").lower()
    if not content_type.startswith(_MEDIA_PREFIXES):
        logger.debug(f"[Validate] {url[:80]} has content-type {content_type!r}")
        return False

    try:
        length = int(resp.headers.get("content-length", "0"))
    except ValueError:
        length = 0
    if 0 < length < MIN_MEDIA_BYTES:
        logger.debug(f"[Validate] {url[:80]} is only {length} bytes (removed-media placeholder)")
        return False

    return True

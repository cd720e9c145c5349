"""
Deduplicator — exact-match existence check against already-persisted content.

The cache is loaded once per run from every stored url and source_url, then
extended in memory as records are imported, so repeats inside one batch are
caught too. Matching is exact after canonicalization; there is no fuzzy or
perceptual matching, and the same image from two platforms counts as two
records.
"""
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from loguru import logger

from pizzafeed.content.record import ContentRecord


def normalize_url(url: str | None) -> str | None:
    """
    Canonical form used for comparison: lower-case scheme and host, trailing
    slash stripped from the path, query parameters sorted, fragment dropped.
    """
    if not url:
        return None
    url = url.strip()
    try:
        parts = urlsplit(url)
    except ValueError:
        return url.lower()
    if not parts.scheme or not parts.netloc:
        return url.lower()

    path = parts.path
    if path.endswith("/") and path != "/":
        path = path.rstrip("/") or "/"
    query = urlencode(sorted(parse_qsl(parts.query, keep_blank_values=True)))
    return urlunsplit((parts.scheme.lower(), parts.netloc.lower(), path, query, ""))


class Deduplicator:
    def __init__(self, store):
        self.store   = store
        self._cache: set[str] = set()
        self._loaded = False

    async def load_cache(self) -> None:
        if self._loaded:
            return
        for url in await self.store.known_urls():
            key = normalize_url(url)
            if key:
                self._cache.add(key)
        self._loaded = True
        logger.debug(f"[Dedup] loaded {len(self._cache)} known URLs")

    def exists(self, record: ContentRecord) -> bool:
        """True if the record's url or source_url is already known."""
        return any(
            key in self._cache
            for key in (normalize_url(record.url), normalize_url(record.source_url))
            if key
        )

    def add(self, record: ContentRecord) -> None:
        for url in (record.url, record.source_url):
            key = normalize_url(url)
            if key:
                self._cache.add(key)

    def __len__(self) -> int:
        return len(self._cache)

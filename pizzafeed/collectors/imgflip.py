"""
Imgflip collector — no search API exists, so two sources are combined:

  1. the public search results pages (imgflip.com/search?q=…), scraped with
     BeautifulSoup for the rendered meme images
  2. the get_memes template list (api.imgflip.com/get_memes), filtered to
     templates whose name mentions a query word, used to top up the batch

Scraped memes and templates are both topic-scoped by the query.
"""
from typing import Any
from urllib.parse import urljoin

from bs4 import BeautifulSoup
from loguru import logger

from pizzafeed.collectors.base import BaseCollector
from pizzafeed.config.defaults import DEFAULT_QUERY
from pizzafeed.content.record import ContentRecord, ContentType, Platform, build_record
from pizzafeed.content.type_rules import infer_type
from pizzafeed.errors import FetchError

_SITE_URL      = "https://imgflip.com"
_TEMPLATES_URL = "https://api.imgflip.com/get_memes"
_IMAGE_HOST    = "i.imgflip.com"
_DEFAULT_PAGES = 3


class ImgflipCollector(BaseCollector):
    """
    config keys:
        query  (str)  search term (default "pizza")
        pages  (int)  search result pages to scrape (default 3)
        limit  (int)  max memes per run
    """
    platform = Platform.IMGFLIP
    label    = "Imgflip"

    def __init__(self, config: dict, limiter=None, transport=None):
        super().__init__(config, limiter, transport)
        self.query = self.config.get("query") or DEFAULT_QUERY
        self.pages = int(self.config.get("pages", _DEFAULT_PAGES))

    async def fetch(self) -> list[dict[str, Any]]:
        memes: list[dict[str, Any]] = []
        seen:  set[str] = set()

        for page in range(1, self.pages + 1):
            try:
                html = await self._get_text(
                    f"{_SITE_URL}/search",
                    params  = {"q": self.query, "page": page},
                    context = f"Imgflip search p{page}",
                )
            except FetchError:
                if page == 1:
                    raise
                logger.warning(f"[Imgflip] search page {page} failed, keeping {len(memes)} memes")
                break

            found = parse_search_page(html)
            fresh = [m for m in found if m["url"] not in seen]
            for meme in fresh:
                seen.add(meme["url"])
            memes.extend(fresh)
            if not fresh or len(memes) >= self.limit:
                break

        if len(memes) < self.limit:
            templates = await self._fetch_templates()
            memes.extend(t for t in templates if t["url"] not in seen)

        memes = memes[: self.limit]
        logger.info(f"[Imgflip] {self.query!r} → {len(memes)} memes")
        return memes

    async def _fetch_templates(self) -> list[dict[str, Any]]:
        data = await self._get_json(_TEMPLATES_URL, context="Imgflip get_memes")
        if not isinstance(data, dict) or not data.get("success"):
            raise FetchError(self.platform.value, "get_memes did not report success")
        words = [w for w in self.query.lower().split() if w]
        return [
            {
                "id":        str(t.get("id")),
                "url":       t.get("url"),
                "name":      t.get("name"),
                "box_count": t.get("box_count"),
                "kind":      "template",
            }
            for t in (data.get("data") or {}).get("memes") or []
            if isinstance(t, dict) and t.get("url")
            and any(w in (t.get("name") or "").lower() for w in words)
        ]

    def normalize(self, raw: dict[str, Any]) -> ContentRecord | None:
        return normalize_imgflip(raw, auto_approve=self.defaults.auto_approve)


def parse_search_page(html: str) -> list[dict[str, Any]]:
    """Meme images (id, url, name) rendered on one search results page."""
    soup  = BeautifulSoup(html or "", "html.parser")
    memes: list[dict[str, Any]] = []
    for img in soup.find_all("img", src=True):
        src = urljoin(f"{_SITE_URL}/", img["src"])
        if _IMAGE_HOST not in src:
            continue
        classes = img.get("class") or []
        if "shadow" not in classes and not img.find_parent("a", href=True):
            continue
        meme_id = src.rsplit("/", 1)[-1].split(".", 1)[0]
        memes.append({
            "id":   meme_id,
            "url":  src,
            "name": (img.get("alt") or "").split(" | ", 1)[0],
            "kind": "meme",
        })
    return memes


# ── Normalizer ────────────────────────────────────────────────────────────────

def normalize_imgflip(raw: dict[str, Any], auto_approve: bool = True) -> ContentRecord | None:
    if not isinstance(raw, dict) or not raw.get("url") or not raw.get("id"):
        return None
    is_template = raw.get("kind") == "template"
    source_url  = (
        f"{_SITE_URL}/meme/{raw['id']}" if is_template else f"{_SITE_URL}/i/{raw['id']}"
    )
    return build_record(
        platform       = Platform.IMGFLIP,
        type_          = infer_type(url=raw["url"], default=ContentType.MEME),
        title          = raw.get("name"),
        url            = raw["url"],
        source_url     = source_url,
        source_tags    = ("meme-template",) if is_template else (),
        auto_approve   = auto_approve,
        fallback_title = "Imgflip Pizza Meme",
    )

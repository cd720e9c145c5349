"""
9GAG collector — posts for one tag.

Primary source is the JSON tag-posts endpoint. 9GAG frequently answers it
with 403 for non-browser clients; in that case the collector falls back to
the public tag page and pulls the post list out of the `window._config`
JSON blob embedded in its HTML (regex extraction, no DOM parsing needed).
Results are topic-scoped by the tag.
"""
import json
import re
from typing import Any

from loguru import logger

from pizzafeed.collectors.base import BaseCollector
from pizzafeed.config.defaults import defaults_for
from pizzafeed.content.record import (
    ContentRecord,
    ContentType,
    Platform,
    build_record,
    exceeds_threshold,
)
from pizzafeed.content.type_rules import infer_type
from pizzafeed.errors import FetchError

_BASE_URL  = "https://9gag.com"
_CONFIG_RE = re.compile(r'window\._config\s*=\s*JSON\.parse\("((?:[^"\\]|\\.)*)"\)')
_BROWSER_HEADERS = {
    "User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36",
    "Accept":     "application/json",
}


class NineGagCollector(BaseCollector):
    """
    config keys:
        tag    (str)  tag to browse (default "pizza")
        type   (str)  hot | trending | fresh
        limit  (int)  max posts per run
    """
    platform = Platform.NINEGAG
    label    = "9GAG"

    def __init__(self, config: dict, limiter=None, transport=None):
        super().__init__(config, limiter, transport)
        self.tag  = self.config.get("tag") or self.config.get("identifier") or "pizza"
        self.type = self.config.get("type", "hot")

    def default_identifier(self) -> str:
        return str(self.config.get("tag") or "pizza")

    async def fetch(self) -> list[dict[str, Any]]:
        try:
            data = await self._get_json(
                f"{_BASE_URL}/v1/tag-posts/tag/{self.tag}/type/{self.type}",
                headers = _BROWSER_HEADERS,
                context = f"9GAG {self.tag}",
            )
            posts = (data.get("data") or {}).get("posts") if isinstance(data, dict) else None
            if not isinstance(posts, list):
                raise FetchError(self.platform.value, "tag-posts response has no posts list")
        except FetchError as exc:
            logger.warning(f"[9GAG] JSON endpoint failed ({exc}), falling back to the tag page")
            posts = await self._fetch_from_html()

        posts = [p for p in posts if isinstance(p, dict)][: self.limit]
        logger.info(f"[9GAG] {self.tag} ({self.type}) → {len(posts)} posts")
        return posts

    async def _fetch_from_html(self) -> list[dict[str, Any]]:
        page = await self._get_text(
            f"{_BASE_URL}/tag/{self.tag}",
            headers = {"User-Agent": _BROWSER_HEADERS["User-Agent"]},
            context = f"9GAG {self.tag} page",
        )
        posts = extract_config_posts(page)
        if posts is None:
            raise FetchError(self.platform.value, f"tag page for {self.tag!r} has no embedded post data")
        return posts

    def normalize(self, raw: dict[str, Any]) -> ContentRecord | None:
        return normalize_ninegag(
            raw,
            thresholds   = self.defaults.viral_thresholds,
            auto_approve = self.defaults.auto_approve,
        )


def extract_config_posts(page: str) -> list[dict[str, Any]] | None:
    """Post list from the page's `window._config = JSON.parse("...")` blob, or None."""
    match = _CONFIG_RE.search(page or "")
    if not match:
        return None
    try:
        # the argument is a JS string literal: decode it first, then parse the JSON inside
        config = json.loads(json.loads(f'"{match.group(1)}"'))
    except ValueError:
        logger.debug("[9GAG] embedded config is not valid JSON")
        return None
    posts = (config.get("data") or {}).get("posts") if isinstance(config, dict) else None
    return posts if isinstance(posts, list) else None


# ── Normalizer ────────────────────────────────────────────────────────────────

def normalize_ninegag(
    raw: dict[str, Any],
    thresholds: dict[str, int] | None = None,
    auto_approve: bool = True,
) -> ContentRecord | None:
    if not isinstance(raw, dict) or raw.get("nsfw") in (1, True, "1"):
        return None
    images = raw.get("images") if isinstance(raw.get("images"), dict) else {}

    def image_url(key: str) -> str | None:
        entry = images.get(key)
        return entry.get("url") if isinstance(entry, dict) else None

    url  = image_url("image700") or image_url("image460")
    hint = None
    post_type = raw.get("type")
    if post_type in ("Animated", "Video") and image_url("image460sv"):
        url  = image_url("image460sv")
        hint = ContentType.GIF if post_type == "Animated" else ContentType.VIDEO
    if not url:
        return None

    if thresholds is None:
        thresholds = defaults_for(Platform.NINEGAG).viral_thresholds

    post_id = raw.get("id")
    tags    = [t["key"] for t in raw.get("tags") or [] if isinstance(t, dict) and t.get("key")]

    return build_record(
        platform       = Platform.NINEGAG,
        type_          = infer_type(hint=hint, url=url, default=ContentType.MEME),
        title          = raw.get("title"),
        url            = url,
        source_url     = raw.get("url") or (f"{_BASE_URL}/gag/{post_id}" if post_id else None),
        thumbnail_url  = image_url("imageFbThumbnail"),
        description    = raw.get("description"),
        source_tags    = tags,
        is_viral       = exceeds_threshold({"upvotes": raw.get("upVoteCount")}, thresholds),
        auto_approve   = auto_approve,
        fallback_title = "Pizza Post",
    )

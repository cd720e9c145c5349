"""
TikTok collector — keyword or hashtag search through the RapidAPI
"tiktok-all-in-one" proxy. Requires RAPIDAPI_KEY.

The proxy returns several envelope shapes depending on endpoint and plan, so
fetch() probes them in order. Videos under min_views plays are dropped before
normalization. The stored url is TikTok's embed player, the source_url the
canonical @user/video/{id} page. TikTok records land as "pending" for review.
"""
import re
from typing import Any

from loguru import logger

from pizzafeed.collectors.base import BaseCollector
from pizzafeed.config.defaults import DEFAULT_QUERY, TIKTOK_MIN_VIEWS, defaults_for
from pizzafeed.content.record import (
    ContentRecord,
    ContentType,
    Platform,
    build_record,
    exceeds_threshold,
)
from pizzafeed.errors import FetchError

_HOST     = "tiktok-all-in-one.p.rapidapi.com"
_BASE_URL = f"https://{_HOST}"

_HASHTAG_RE = re.compile(r"#(\w+)")

# (outer key, inner key) pairs probed in order; inner None = the outer value is the list
_ENVELOPES: tuple[tuple[str, str | None], ...] = (
    ("data",     "videos"),
    ("data",     "posts"),
    ("videos",   None),
    ("posts",    None),
    ("itemList", None),
    ("data",     None),
)


class TikTokCollector(BaseCollector):
    """
    config keys:
        query      (str)  keyword search (default "pizza")
        hashtag    (str)  challenge/hashtag search instead of keyword
        country    (str)  region code for keyword search (default "US")
        min_views  (int)  drop videos with fewer plays (default 10,000)
        cursor     (str)  pagination cursor from a previous run
        limit      (int)  videos per request
    """
    platform = Platform.TIKTOK
    label    = "TikTok"

    def __init__(self, config: dict, limiter=None, transport=None):
        super().__init__(config, limiter, transport)
        self.api_key   = self.require_credential()
        self.query     = self.config.get("query") or DEFAULT_QUERY
        self.hashtag   = (self.config.get("hashtag") or "").lstrip("#") or None
        self.country   = self.config.get("country", "US")
        self.min_views = int(self.config.get("min_views", TIKTOK_MIN_VIEWS))
        self.cursor    = self.config.get("cursor")

    def default_identifier(self) -> str:
        hashtag = (self.config.get("hashtag") or "").lstrip("#")
        return f"hashtag-{hashtag.lower()}" if hashtag else super().default_identifier()

    def default_display_name(self) -> str:
        hashtag = (self.config.get("hashtag") or "").lstrip("#")
        return f"TikTok: #{hashtag}" if hashtag else f"TikTok: {self.config.get('query') or DEFAULT_QUERY}"

    async def fetch(self) -> list[dict[str, Any]]:
        if self.hashtag:
            path   = "/challenge/posts"
            params = {"challenge_name": self.hashtag, "count": self.limit}
        else:
            path   = "/search/video"
            params = {"keyword": self.query, "count": self.limit, "region": self.country}
        if self.cursor:
            params["cursor"] = self.cursor

        data = await self._get_json(
            f"{_BASE_URL}{path}",
            params  = params,
            headers = {"X-RapidAPI-Key": self.api_key, "X-RapidAPI-Host": _HOST},
            context = f"TikTok {self.display_name}",
        )
        videos = extract_videos(data)
        if videos is None:
            raise FetchError(self.platform.value, "unrecognised search response shape")

        if isinstance(data, dict) and (data.get("cursor") or data.get("hasMore")):
            logger.info(f"[TikTok] next cursor: {data.get('cursor')} (has more: {data.get('hasMore')})")

        if self.min_views > 0:
            before = len(videos)
            videos = [v for v in videos if play_count(v) >= self.min_views]
            logger.debug(f"[TikTok] min_views {self.min_views}: {before} → {len(videos)} videos")

        logger.info(f"[TikTok] {self.display_name} → {len(videos)} videos")
        return videos

    def normalize(self, raw: dict[str, Any]) -> ContentRecord | None:
        return normalize_tiktok(
            raw,
            thresholds   = self.defaults.viral_thresholds,
            auto_approve = self.defaults.auto_approve,
        )


def extract_videos(data: Any) -> list[dict[str, Any]] | None:
    """Find the video list inside whichever envelope the proxy used, or None."""
    if isinstance(data, list):
        return [v for v in data if isinstance(v, dict)]
    if not isinstance(data, dict):
        return None
    for outer, inner in _ENVELOPES:
        value = data.get(outer)
        if inner is not None:
            value = value.get(inner) if isinstance(value, dict) else None
        if isinstance(value, list):
            return [v for v in value if isinstance(v, dict)]
    return None


def play_count(video: dict[str, Any]) -> int:
    stats = video.get("stats") or video.get("statistics") or {}
    for value in (
        video.get("playCount"),
        video.get("play_count"),
        stats.get("playCount") if isinstance(stats, dict) else None,
        stats.get("play_count") if isinstance(stats, dict) else None,
    ):
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return int(value)
    return 0


# ── Normalizer ────────────────────────────────────────────────────────────────

def normalize_tiktok(
    raw: dict[str, Any],
    thresholds: dict[str, int] | None = None,
    auto_approve: bool | None = None,
) -> ContentRecord | None:
    if not isinstance(raw, dict):
        return None
    video_id = raw.get("id") or raw.get("video_id") or raw.get("aweme_id")
    if not video_id:
        return None

    author   = raw.get("author") or raw.get("authorMeta") or {}
    if not isinstance(author, dict):
        author = {"uniqueId": str(author)}
    username = author.get("uniqueId") or author.get("unique_id") or ""
    nickname = author.get("nickname") or username or None

    caption  = raw.get("desc") or raw.get("description") or raw.get("title") or ""
    hashtags = _HASHTAG_RE.findall(caption)

    defaults = defaults_for(Platform.TIKTOK)
    if thresholds is None:
        thresholds = defaults.viral_thresholds
    if auto_approve is None:
        auto_approve = defaults.auto_approve

    source_url = (
        f"https://www.tiktok.com/@{username}/video/{video_id}"
        if username else f"https://www.tiktok.com/video/{video_id}"
    )

    return build_record(
        platform       = Platform.TIKTOK,
        type_          = ContentType.VIDEO,
        title          = caption,
        url            = f"https://www.tiktok.com/embed/v2/{video_id}",
        source_url     = source_url,
        thumbnail_url  = _cover(raw),
        description    = raw.get("desc") or None,
        source_tags    = hashtags,
        is_viral       = exceeds_threshold({"plays": play_count(raw)}, thresholds, defaults.viral_inclusive),
        auto_approve   = auto_approve,
        creator        = nickname,
        fallback_title = f"Pizza video by @{username}" if username else "Pizza video",
    )


def _cover(raw: dict[str, Any]) -> str | None:
    video = raw.get("video") if isinstance(raw.get("video"), dict) else {}
    cover = raw.get("cover") or video.get("cover") or video.get("originCover")
    if isinstance(cover, str):
        return cover
    if isinstance(cover, dict) and cover.get("url_list"):
        return cover["url_list"][0]
    return video.get("dynamicCover") or raw.get("thumbnail_url")

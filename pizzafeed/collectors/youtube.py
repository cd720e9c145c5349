"""
YouTube Data API v3 collector — keyword search for embeddable videos.
Requires YOUTUBE_API_KEY in .env (search costs 100 quota units per call).

Search results carry no view counts, so YouTube records are never viral.
The next page token is logged so an operator can continue with --page-token.
"""
from typing import Any

from loguru import logger

from pizzafeed.collectors.base import BaseCollector
from pizzafeed.config.defaults import DEFAULT_QUERY, YOUTUBE_MAX_RESULTS
from pizzafeed.content.record import ContentRecord, ContentType, Platform, build_record
from pizzafeed.errors import FetchError

_BASE_URL = "https://www.googleapis.com/youtube/v3"


class YouTubeCollector(BaseCollector):
    """
    config keys:
        query       (str)  search term
        order       (str)  date | rating | relevance | title | viewCount
        duration    (str)  any | short | medium | long
        after       (str)  ISO 8601 publishedAfter
        page_token  (str)  continue from a previous result page
        limit       (int)  maxResults, capped at 50
    """
    platform = Platform.YOUTUBE
    label    = "YouTube"

    def __init__(self, config: dict, limiter=None, transport=None):
        super().__init__(config, limiter, transport)
        self.api_key    = self.require_credential()
        self.query      = self.config.get("query") or DEFAULT_QUERY
        self.order      = self.config.get("order", "relevance")
        self.duration   = self.config.get("duration", "short")
        self.after      = self.config.get("after")
        self.page_token = self.config.get("page_token")

    async def fetch(self) -> list[dict[str, Any]]:
        params = {
            "key":             self.api_key,
            "part":            "snippet",
            "type":            "video",
            "q":               self.query,
            "maxResults":      min(self.limit, YOUTUBE_MAX_RESULTS),
            "order":           self.order,
            "videoDuration":   self.duration,
            "videoEmbeddable": "true",
            "safeSearch":      "moderate",
        }
        if self.after:
            params["publishedAfter"] = self.after
        if self.page_token:
            params["pageToken"] = self.page_token

        data  = await self._get_json(f"{_BASE_URL}/search", params=params, context=f"YouTube {self.display_name}")
        items = data.get("items") if isinstance(data, dict) else None
        if not isinstance(items, list):
            raise FetchError(self.platform.value, "search response has no items list")

        if data.get("nextPageToken"):
            logger.info(f"[YouTube] next page token: {data['nextPageToken']}")
        logger.info(f"[YouTube] {self.display_name} → {len(items)} videos")
        return items

    def normalize(self, raw: dict[str, Any]) -> ContentRecord | None:
        return normalize_youtube(raw, auto_approve=self.defaults.auto_approve)


# ── Normalizer ────────────────────────────────────────────────────────────────

def normalize_youtube(raw: dict[str, Any], auto_approve: bool = True) -> ContentRecord | None:
    if not isinstance(raw, dict):
        return None
    snippet  = raw.get("snippet")
    video_id = raw.get("id", {}).get("videoId") if isinstance(raw.get("id"), dict) else None
    if not video_id or not isinstance(snippet, dict):
        return None
    if snippet.get("liveBroadcastContent") == "upcoming":
        return None

    thumbs    = snippet.get("thumbnails") or {}
    thumbnail = next(
        (thumbs[k]["url"] for k in ("high", "medium", "default") if isinstance(thumbs.get(k), dict) and thumbs[k].get("url")),
        f"https://img.youtube.com/vi/{video_id}/hqdefault.jpg",
    )
    watch_url = f"https://www.youtube.com/watch?v={video_id}"

    return build_record(
        platform       = Platform.YOUTUBE,
        type_          = ContentType.VIDEO,
        title          = snippet.get("title"),
        url            = watch_url,
        source_url     = watch_url,
        thumbnail_url  = thumbnail,
        description    = snippet.get("description"),
        source_tags    = snippet.get("tags") or (),
        auto_approve   = auto_approve,
        creator        = snippet.get("channelTitle"),
        fallback_title = "Pizza Video",
    )

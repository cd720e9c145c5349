"""
Pexels collector — photo search or video search. Requires PEXELS_API_KEY.
Stock media from a search query is topic-scoped; photos are stored as
"photo", videos as "video", with photographer attribution in the description.
"""
from typing import Any

from loguru import logger

from pizzafeed.collectors.base import BaseCollector
from pizzafeed.config.defaults import DEFAULT_QUERY, PEXELS_MAX_PER_PAGE
from pizzafeed.content.record import ContentRecord, ContentType, Platform, build_record
from pizzafeed.content.type_rules import infer_type
from pizzafeed.errors import FetchError

_BASE_URL = "https://api.pexels.com"


class PexelsCollector(BaseCollector):
    """
    config keys:
        query        (str)   search term
        videos       (bool)  search videos instead of photos
        orientation  (str)   landscape | portrait | square
        size         (str)   large | medium | small
        page         (int)   1-based result page
        limit        (int)   per_page, capped at 80
    """
    platform = Platform.PEXELS
    label    = "Pexels"

    def __init__(self, config: dict, limiter=None, transport=None):
        super().__init__(config, limiter, transport)
        self.api_key     = self.require_credential()
        self.query       = self.config.get("query") or DEFAULT_QUERY
        self.videos      = bool(self.config.get("videos", False))
        self.orientation = self.config.get("orientation")
        self.size        = self.config.get("size")
        self.page        = int(self.config.get("page", 1))

    def default_identifier(self) -> str:
        kind = "videos" if self.config.get("videos") else "photos"
        return f"{kind}-{super().default_identifier()}"

    def default_display_name(self) -> str:
        kind = "Videos" if self.config.get("videos") else "Photos"
        return f"Pexels {kind}: {self.config.get('query') or DEFAULT_QUERY}"

    async def fetch(self) -> list[dict[str, Any]]:
        path   = "/videos/search" if self.videos else "/v1/search"
        params = {
            "query":    self.query,
            "per_page": min(self.limit, PEXELS_MAX_PER_PAGE),
            "page":     self.page,
        }
        if self.orientation:
            params["orientation"] = self.orientation
        if self.size:
            params["size"] = self.size

        data = await self._get_json(
            f"{_BASE_URL}{path}",
            params  = params,
            headers = {"Authorization": self.api_key},
            context = f"Pexels {self.display_name}",
        )
        key   = "videos" if self.videos else "photos"
        items = data.get(key) if isinstance(data, dict) else None
        if not isinstance(items, list):
            raise FetchError(self.platform.value, f"search response has no {key} list")

        logger.info(
            f"[Pexels] {self.display_name} → {len(items)} {key} "
            f"({data.get('total_results', '?')} total)"
        )
        return items

    def normalize(self, raw: dict[str, Any]) -> ContentRecord | None:
        if self.videos:
            return normalize_pexels_video(raw, auto_approve=self.defaults.auto_approve)
        return normalize_pexels_photo(raw, auto_approve=self.defaults.auto_approve)


# ── Normalizers ───────────────────────────────────────────────────────────────

def normalize_pexels_photo(raw: dict[str, Any], auto_approve: bool = True) -> ContentRecord | None:
    if not isinstance(raw, dict):
        return None
    src = raw.get("src")
    if not isinstance(src, dict):
        return None
    url = src.get("large") or src.get("original")
    if not url:
        return None

    title        = (raw.get("alt") or "").strip()
    photographer = raw.get("photographer") or "Unknown"

    return build_record(
        platform       = Platform.PEXELS,
        type_          = infer_type(url=url, default=ContentType.PHOTO),
        title          = title[:1].upper() + title[1:],
        url            = url,
        source_url     = raw.get("url"),
        thumbnail_url  = src.get("medium"),
        description    = f"Photo by {photographer} on Pexels",
        source_tags    = ("photo",),
        auto_approve   = auto_approve,
        creator        = raw.get("photographer"),
        fallback_title = "Pizza Photo",
    )


def normalize_pexels_video(raw: dict[str, Any], auto_approve: bool = True) -> ContentRecord | None:
    if not isinstance(raw, dict):
        return None
    files = [f for f in raw.get("video_files") or [] if isinstance(f, dict) and f.get("link")]
    if not files:
        return None

    # smallest rendition that is at least 720p tall, else the largest available
    files = sorted(files, key=lambda f: f.get("height") or 0, reverse=True)
    hd    = next((f for f in reversed(files) if (f.get("height") or 0) >= 720), files[0])

    pictures  = raw.get("video_pictures") or []
    thumbnail = raw.get("image") or (pictures[0].get("picture") if pictures and isinstance(pictures[0], dict) else None)
    user      = (raw.get("user") or {}).get("name") if isinstance(raw.get("user"), dict) else None

    return build_record(
        platform       = Platform.PEXELS,
        type_          = infer_type(hint=ContentType.VIDEO, url=hd["link"], mime=hd.get("file_type")),
        title          = f"Pizza by {user}" if user else "",
        url            = hd["link"],
        source_url     = raw.get("url"),
        thumbnail_url  = thumbnail,
        description    = f"Video by {user} on Pexels" if user else "Video from Pexels",
        source_tags    = ("video",),
        auto_approve   = auto_approve,
        creator        = user,
        fallback_title = "Pizza Video",
    )

"""
Imgur collector — API v3 gallery search, or one gallery section (hot/top/user).
Requires IMGUR_CLIENT_ID in .env.

Albums are flattened into their images during fetch, each image carrying its
album's title and link. Search results are topic-scoped by the query; gallery
sections are not, so the normalizer applies the pizza keyword filter there.
"""
from typing import Any

from loguru import logger

from pizzafeed.collectors.base import BaseCollector
from pizzafeed.config.defaults import DEFAULT_QUERY, defaults_for
from pizzafeed.content.record import (
    ContentRecord,
    ContentType,
    Platform,
    build_record,
    exceeds_threshold,
)
from pizzafeed.content.tagger import is_pizza_related
from pizzafeed.content.type_rules import infer_type
from pizzafeed.errors import FetchError

_BASE_URL = "https://api.imgur.com/3"


class ImgurCollector(BaseCollector):
    """
    config keys:
        query    (str)  search term (default "pizza"), ignored when gallery is set
        gallery  (str)  hot | top | user — browse a gallery section instead of searching
        sort     (str)  viral | top | time | rising
        window   (str)  day | week | month | year | all
        page     (int)  result page, 0-based
        limit    (int)  max images per run
    """
    platform = Platform.IMGUR
    label    = "Imgur"

    def __init__(self, config: dict, limiter=None, transport=None):
        super().__init__(config, limiter, transport)
        self.client_id = self.require_credential()
        self.query     = self.config.get("query") or DEFAULT_QUERY
        self.gallery   = self.config.get("gallery")
        self.sort      = self.config.get("sort", "viral")
        self.window    = self.config.get("window", "week")
        self.page      = int(self.config.get("page", 0))

    def default_identifier(self) -> str:
        if self.config.get("gallery"):
            return str(self.config["gallery"])
        return super().default_identifier()

    def default_display_name(self) -> str:
        if self.config.get("gallery"):
            return f"Imgur {self.config['gallery']}"
        return f"Imgur: {self.config.get('query') or DEFAULT_QUERY}"

    async def fetch(self) -> list[dict[str, Any]]:
        headers = {"Authorization": f"Client-ID {self.client_id}"}
        if self.gallery:
            url    = f"{_BASE_URL}/gallery/{self.gallery}/{self.sort}/{self.window}/{self.page}"
            params = None
        else:
            url    = f"{_BASE_URL}/gallery/search/{self.sort}/{self.window}/{self.page}"
            params = {"q": self.query, "q_type": "jpg,png,gif,anigif"}

        data  = await self._get_json(url, params=params, headers=headers, context=f"Imgur {self.display_name}")
        items = data.get("data") if isinstance(data, dict) else None
        if not isinstance(items, list):
            raise FetchError(self.platform.value, "gallery response has no data list")

        images = flatten_gallery(items)[: self.limit]
        logger.info(f"[Imgur] {self.display_name} → {len(images)} images from {len(items)} gallery items")
        return images

    def normalize(self, raw: dict[str, Any]) -> ContentRecord | None:
        return normalize_imgur(
            raw,
            topic_scoped = not self.gallery,
            thresholds   = self.defaults.viral_thresholds,
            auto_approve = self.defaults.auto_approve,
        )


def flatten_gallery(items: list[Any]) -> list[dict[str, Any]]:
    """Expand albums into their images; keep single images as they are."""
    images: list[dict[str, Any]] = []
    for item in items:
        if not isinstance(item, dict):
            continue
        if item.get("is_album"):
            for image in item.get("images") or []:
                if isinstance(image, dict):
                    images.append({
                        **image,
                        "album_title": item.get("title"),
                        "album_link":  item.get("link"),
                        "album_tags":  [t["name"] for t in item.get("tags") or [] if isinstance(t, dict) and t.get("name")],
                    })
        elif item.get("link"):
            images.append(item)
    return images


# ── Normalizer ────────────────────────────────────────────────────────────────

def normalize_imgur(
    raw: dict[str, Any],
    topic_scoped: bool = True,
    thresholds: dict[str, int] | None = None,
    auto_approve: bool = True,
) -> ContentRecord | None:
    if not isinstance(raw, dict):
        return None
    link = raw.get("link")
    mime = raw.get("type") or ""
    if not link or raw.get("nsfw"):
        return None
    # mp4 renditions of animated images are served under the same id; keep the image
    if mime.startswith("video/") and not raw.get("animated"):
        return None

    title       = raw.get("title") or raw.get("album_title") or ""
    description = raw.get("description") or ""
    if not topic_scoped and not is_pizza_related(title, description, raw.get("album_title")):
        return None

    hint = ContentType.GIF if raw.get("animated") else None
    kind = infer_type(hint=hint, url=link, mime=mime, default=ContentType.MEME)

    if thresholds is None:
        thresholds = defaults_for(Platform.IMGUR).viral_thresholds

    tags = [t["name"] for t in raw.get("tags") or [] if isinstance(t, dict) and t.get("name")]
    tags += raw.get("album_tags") or []

    return build_record(
        platform       = Platform.IMGUR,
        type_          = kind,
        title          = title,
        url            = link,
        source_url     = f"https://imgur.com/{raw['id']}" if raw.get("id") else None,
        thumbnail_url  = _thumbnail(link),
        description    = description,
        source_tags    = tags,
        is_viral       = exceeds_threshold(
            {"views": raw.get("views"), "points": raw.get("points")}, thresholds
        ),
        auto_approve   = auto_approve,
        creator        = raw.get("account_url"),
        fallback_title = "Pizza GIF" if kind is ContentType.GIF else "Pizza Image",
    )


def _thumbnail(link: str) -> str:
    """Imgur's small-thumbnail variant: abc.jpg → abct.jpg."""
    stem, dot, ext = link.rpartition(".")
    if dot and ext.lower() in ("gif", "png", "jpg", "jpeg"):
        return f"{stem}t.{ext}"
    return link

"""
Reddit collector — one subreddit listing via the public JSON endpoint
(https://www.reddit.com/r/{subreddit}/{sort}.json), no OAuth needed for reads.

Only posts that link straight to an image or GIF survive normalization.
Self posts, galleries, crossposts, Reddit-hosted video, NSFW and removed
posts are dropped. Reddit keeps serving dead i.redd.it URLs after an image
is deleted, so every new record gets a HEAD check before it is stored
(validates_media).
"""
import html
import re
from typing import Any

from loguru import logger

from pizzafeed.collectors.base import BaseCollector
from pizzafeed.config.defaults import DEFAULT_SUBREDDITS, defaults_for
from pizzafeed.content.record import (
    ContentRecord,
    ContentType,
    Platform,
    build_record,
    exceeds_threshold,
    is_valid_url,
)
from pizzafeed.content.tagger import is_pizza_related
from pizzafeed.content.type_rules import infer_type
from pizzafeed.errors import FetchError

_BASE_URL = "https://www.reddit.com"

_DIRECT_IMAGE_RE = re.compile(r"\.(jpg|jpeg|png|gif|gifv|webp)(\?.*)?$", re.I)
_IMAGE_HOSTS     = ("i.redd.it", "i.imgur.com", "media.giphy.com")
_GIPHY_PAGE_RE   = re.compile(r"giphy\.com/gifs/(?:[^/?#]*-)?([a-zA-Z0-9]+)(?:[/?#]|$)")
_NO_THUMBNAIL    = {"", "self", "default", "nsfw", "spoiler", "image"}


class RedditCollector(BaseCollector):
    """
    config keys:
        subreddit  (str)  e.g. "pizza" (falls back to identifier)
        sort       (str)  hot | new | top | rising
        time       (str)  hour | day | week | month | year | all
        limit      (int)  posts per listing (default 25)
        validate   (bool) HEAD-check media before storing (default true)
    """
    platform        = Platform.REDDIT
    label           = "Reddit"
    validates_media = True

    def __init__(self, config: dict, limiter=None, transport=None):
        super().__init__(config, limiter, transport)
        self.subreddit = str(
            self.config.get("subreddit") or self.config.get("identifier") or DEFAULT_SUBREDDITS[0]
        ).removeprefix("r/")
        self.sort      = self.config.get("sort", "hot")
        self.time      = self.config.get("time", "week")
        self.validates_media = bool(self.config.get("validate", True))

    def default_identifier(self) -> str:
        return str(self.config.get("subreddit") or DEFAULT_SUBREDDITS[0]).removeprefix("r/")

    def default_display_name(self) -> str:
        return f"r/{self.source_identifier}"

    async def fetch(self) -> list[dict[str, Any]]:
        logger.debug(f"[Reddit] r/{self.subreddit}: fetching {self.limit} {self.sort} posts ({self.time})")
        data = await self._get_json(
            f"{_BASE_URL}/r/{self.subreddit}/{self.sort}.json",
            params={"limit": self.limit, "t": self.time, "raw_json": 1},
            context=f"Reddit r/{self.subreddit}",
        )
        listing = data.get("data") if isinstance(data, dict) else None
        if not isinstance(listing, dict) or not isinstance(listing.get("children"), list):
            raise FetchError(self.platform.value, f"r/{self.subreddit}: unexpected listing shape")
        children = listing["children"]
        logger.info(f"[Reddit] r/{self.subreddit} → {len(children)} posts")
        return children

    def normalize(self, raw: dict[str, Any]) -> ContentRecord | None:
        return normalize_reddit(
            raw,
            subreddit    = self.subreddit,
            thresholds   = self.defaults.viral_thresholds,
            auto_approve = self.defaults.auto_approve,
        )


# ── Normalizer ────────────────────────────────────────────────────────────────

def normalize_reddit(
    raw: dict[str, Any],
    subreddit: str = "",
    thresholds: dict[str, int] | None = None,
    auto_approve: bool = True,
) -> ContentRecord | None:
    """
    Listing child ({"kind": "t3", "data": {...}}) or a bare post dict → record.
    The subreddit counts as topical context: anything from a pizza subreddit passes.
    """
    if not isinstance(raw, dict):
        return None
    post = raw.get("data") if isinstance(raw.get("data"), dict) else raw

    if post.get("over_18") or post.get("is_self"):
        return None
    if post.get("removed") or post.get("removed_by_category"):
        return None
    if post.get("is_gallery") or post.get("crosspost_parent_list"):
        return None

    media_url = _media_url(post)
    if not media_url:
        return None

    title = post.get("title") or ""
    if not is_pizza_related(title, subreddit):
        return None

    if thresholds is None:
        thresholds = defaults_for(Platform.REDDIT).viral_thresholds

    permalink = post.get("permalink")
    flair     = post.get("link_flair_text")
    author    = post.get("author")

    return build_record(
        platform       = Platform.REDDIT,
        type_          = infer_type(url=media_url, default=ContentType.MEME),
        title          = title,
        url            = media_url,
        source_url     = f"https://reddit.com{permalink}" if permalink else None,
        thumbnail_url  = _thumbnail(post),
        description    = post.get("selftext") or None,
        source_tags    = (flair,) if flair else (),
        is_viral       = exceeds_threshold({"score": post.get("score")}, thresholds),
        auto_approve   = auto_approve,
        creator        = author if author and author != "[deleted]" else None,
        fallback_title = "Pizza from Reddit",
    )


# ── Helpers ───────────────────────────────────────────────────────────────────

def _media_url(post: dict[str, Any]) -> str | None:
    """Direct image/GIF URL for the post, or None if it only links to a page or video."""
    url = html.unescape(post.get("url_overridden_by_dest") or post.get("url") or "").strip()
    if not is_valid_url(url):
        return None
    lower = url.lower()

    if post.get("is_video") or "v.redd.it" in lower or "/gallery/" in lower:
        return None

    if _DIRECT_IMAGE_RE.search(lower):
        return url
    if any(host in lower for host in _IMAGE_HOSTS):
        return url

    # imgur page for a single image → its direct file
    if "imgur.com/" in lower and "/a/" not in lower and "/gallery/" not in lower:
        image_id = url.rstrip("/").rsplit("/", 1)[-1]
        if image_id:
            return f"https://i.imgur.com/{image_id}.jpg"

    match = _GIPHY_PAGE_RE.search(url)
    if match:
        return f"https://media.giphy.com/media/{match.group(1)}/giphy.gif"

    return None


def _thumbnail(post: dict[str, Any]) -> str | None:
    thumb = html.unescape(post.get("thumbnail") or "")
    if thumb in _NO_THUMBNAIL or not is_valid_url(thumb):
        return None
    return thumb

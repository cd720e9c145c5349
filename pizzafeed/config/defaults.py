"""
Named per-source defaults — one place for the limits, rate windows and
thresholds that each import source needs.

Collectors and the CLI read from SOURCE_DEFAULTS instead of hard-coding
their own numbers; CLI flags and per-source YAML config override them.
"""
from dataclasses import dataclass, field

from pizzafeed.content.record import ContentType, Platform


@dataclass(frozen=True)
class SourceDefaults:
    requests_per_minute: float
    limit:               int
    default_type:        ContentType
    max_retries:         int   = 5
    base_delay:          float = 1.0          # seconds, doubled per retry
    auto_approve:        bool  = True         # False → records land as "pending"
    poll_interval:       int   = 6 * 3600     # worker schedule, seconds
    # metric name → cutoff an item must pass to be viral (any metric is enough)
    viral_thresholds:    dict[str, int] = field(default_factory=dict)
    viral_inclusive:     bool  = False        # True → reaching the cutoff is enough
    credential:          str | None = None    # settings attribute holding the API key
    register_url:        str | None = None    # where an operator obtains that key


SOURCE_DEFAULTS: dict[Platform, SourceDefaults] = {
    Platform.REDDIT: SourceDefaults(
        requests_per_minute = 10,
        limit               = 25,
        default_type        = ContentType.MEME,
        viral_thresholds    = {"score": 1_000},
    ),
    Platform.IMGUR: SourceDefaults(
        requests_per_minute = 60,
        limit               = 50,
        default_type        = ContentType.MEME,
        viral_thresholds    = {"views": 100_000, "points": 1_000},
        credential          = "IMGUR_CLIENT_ID",
        register_url        = "https://api.imgur.com/oauth2/addclient",
    ),
    Platform.PEXELS: SourceDefaults(
        requests_per_minute = 3,              # 200 requests/hour on the free plan
        limit               = 30,
        default_type        = ContentType.PHOTO,
        credential          = "PEXELS_API_KEY",
        register_url        = "https://www.pexels.com/api/",
    ),
    Platform.TIKTOK: SourceDefaults(
        requests_per_minute = 10,
        limit               = 20,
        default_type        = ContentType.VIDEO,
        max_retries         = 3,
        base_delay          = 2.0,
        auto_approve        = False,
        viral_thresholds    = {"plays": 100_000},
        viral_inclusive     = True,
        credential          = "RAPIDAPI_KEY",
        register_url        = "https://rapidapi.com/h0p3rwe/api/tiktok-all-in-one",
    ),
    Platform.YOUTUBE: SourceDefaults(
        requests_per_minute = 60,
        limit               = 25,
        default_type        = ContentType.VIDEO,
        credential          = "YOUTUBE_API_KEY",
        register_url        = "https://console.cloud.google.com/ (enable YouTube Data API v3)",
    ),
    Platform.NINEGAG: SourceDefaults(
        requests_per_minute = 10,
        limit               = 50,
        default_type        = ContentType.MEME,
        viral_thresholds    = {"upvotes": 10_000},
    ),
    Platform.IMGFLIP: SourceDefaults(
        requests_per_minute = 30,
        limit               = 50,
        default_type        = ContentType.MEME,
    ),
}

# Reddit listing defaults
DEFAULT_SUBREDDITS = ("pizza", "pizzacrimes", "FoodPorn", "CasualUK")
REDDIT_SORTS       = ("hot", "new", "top", "rising")
REDDIT_TIMES       = ("hour", "day", "week", "month", "year", "all")

# Search-style sources
DEFAULT_QUERY = "pizza"
IMGUR_SORTS   = ("viral", "top", "time", "rising")
IMGUR_WINDOWS = ("day", "week", "month", "year", "all")
IMGUR_GALLERIES = ("hot", "top", "user")

PEXELS_ORIENTATIONS = ("landscape", "portrait", "square")
PEXELS_SIZES        = ("large", "medium", "small")
PEXELS_MAX_PER_PAGE = 80

TIKTOK_MIN_VIEWS = 10_000

YOUTUBE_ORDERS    = ("date", "rating", "relevance", "title", "viewCount")
YOUTUBE_DURATIONS = ("any", "short", "medium", "long")
YOUTUBE_MAX_RESULTS = 50

NINEGAG_TYPES = ("hot", "trending", "fresh")


def defaults_for(platform: Platform | str) -> SourceDefaults:
    return SOURCE_DEFAULTS[Platform(platform)]

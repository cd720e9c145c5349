"""
Collector factory — maps a platform name to its BaseCollector subclass.
Used by the CLI (one collector per requested source) and by the worker
(one collector per active import source row).
"""
from pizzafeed.collectors.base import BaseCollector
from pizzafeed.collectors.imgflip import ImgflipCollector
from pizzafeed.collectors.imgur import ImgurCollector
from pizzafeed.collectors.ninegag import NineGagCollector
from pizzafeed.collectors.pexels import PexelsCollector
from pizzafeed.collectors.reddit import RedditCollector
from pizzafeed.collectors.tiktok import TikTokCollector
from pizzafeed.collectors.youtube import YouTubeCollector
from pizzafeed.content.record import Platform
from pizzafeed.importer.rate_limiter import RateLimiter

COLLECTORS: dict[Platform, type[BaseCollector]] = {
    Platform.REDDIT:  RedditCollector,
    Platform.IMGUR:   ImgurCollector,
    Platform.PEXELS:  PexelsCollector,
    Platform.TIKTOK:  TikTokCollector,
    Platform.YOUTUBE: YouTubeCollector,
    Platform.NINEGAG: NineGagCollector,
    Platform.IMGFLIP: ImgflipCollector,
}


def make_collector(
    platform: Platform | str,
    config: dict,
    limiter: RateLimiter | None = None,
    transport=None,
) -> BaseCollector:
    """
    Build the collector for `platform`.
    Raises ValueError for an unknown platform and ConfigError when the
    platform's API key is missing.
    """
    cls = COLLECTORS[Platform(platform)]
    return cls(config, limiter=limiter, transport=transport)

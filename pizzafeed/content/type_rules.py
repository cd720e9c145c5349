"""
Content-type inference as an ordered rule list.

    1. explicit hint from the source API (e.g. 9GAG "Animated", Imgur animated=true)
    2. the URL — file extension first, then well-known media hosts
    3. the MIME type reported by the source
    4. the source's default type

The first rule that returns a type wins. Still-image signals resolve to the
source's own image kind: a photo library stays "photo", everything else is "meme".
"""
from typing import Callable
from urllib.parse import urlparse

from pizzafeed.content.record import ContentType

_IMAGE_KINDS = {ContentType.MEME, ContentType.PHOTO, ContentType.ART}

_EXTENSIONS: dict[str, ContentType | None] = {
    # None = still image, resolved against the source default
    ".gif":  ContentType.GIF,
    ".gifv": ContentType.GIF,
    ".mp4":  ContentType.VIDEO,
    ".webm": ContentType.VIDEO,
    ".mov":  ContentType.VIDEO,
    ".m4v":  ContentType.VIDEO,
    ".mp3":  ContentType.MUSIC,
    ".ogg":  ContentType.MUSIC,
    ".wav":  ContentType.MUSIC,
    ".m4a":  ContentType.MUSIC,
    ".flac": ContentType.MUSIC,
    ".jpg":  None,
    ".jpeg": None,
    ".png":  None,
    ".webp": None,
}

_HOSTS: tuple[tuple[tuple[str, ...], ContentType], ...] = (
    (("giphy.com", "tenor.com"),                                          ContentType.GIF),
    (("youtube.com", "youtu.be", "tiktok.com", "vimeo.com", "v.redd.it"), ContentType.VIDEO),
    (("soundcloud.com", "bandcamp.com"),                                  ContentType.MUSIC),
)


def infer_type(
    *,
    hint: ContentType | None = None,
    url:  str | None = None,
    mime: str | None = None,
    default: ContentType = ContentType.MEME,
) -> ContentType:
    """Run RULES in order and return the first conclusive type, else `default`."""
    for rule in RULES:
        found = rule(hint, url, mime, default)
        if found is not None:
            return found
    return default


# ── Rules ──────────────────────────────────────────────────────────────────────

def _from_hint(hint, url, mime, default) -> ContentType | None:
    return hint


def _from_extension(hint, url, mime, default) -> ContentType | None:
    if not url:
        return None
    path = urlparse(url).path.lower()
    for ext, kind in _EXTENSIONS.items():
        if path.endswith(ext):
            return kind if kind is not None else _still(default)
    return None


def _from_host(hint, url, mime, default) -> ContentType | None:
    if not url:
        return None
    host = urlparse(url).netloc.lower()
    for domains, kind in _HOSTS:
        if any(host == d or host.endswith("." + d) for d in domains):
            return kind
    return None


def _from_mime(hint, url, mime, default) -> ContentType | None:
    if not mime:
        return None
    mime = mime.lower()
    if mime == "image/gif":
        return ContentType.GIF
    if mime.startswith("video/"):
        return ContentType.VIDEO
    if mime.startswith("audio/"):
        return ContentType.MUSIC
    if mime.startswith("image/"):
        return _still(default)
    return None


def _still(default: ContentType) -> ContentType:
    return default if default in _IMAGE_KINDS else ContentType.MEME


RULES: tuple[Callable[..., ContentType | None], ...] = (
    _from_hint,
    _from_extension,
    _from_host,
    _from_mime,
)

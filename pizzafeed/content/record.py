"""
ContentRecord — the canonical, normalized unit every source adapter produces,
plus the text/URL/tag helpers the per-source normalizers share.

Everything here is pure: no I/O, no clock, no randomness. Calling a
normalizer twice with the same raw item yields an identical record.
"""
import html
import re
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Iterable
from urllib.parse import urlparse

from pizzafeed.content.tagger import detect_tags

# ── Limits ─────────────────────────────────────────────────────────────────────
MAX_TITLE       = 200
MAX_DESCRIPTION = 500
MAX_TAGS        = 10
MAX_TAG_LENGTH  = 40

_WHITESPACE_RE = re.compile(r"\s+")
_TAG_STRIP_RE  = re.compile(r"[^a-z0-9\-]")


class ContentType(str, Enum):
    GIF   = "gif"
    MEME  = "meme"
    VIDEO = "video"
    MUSIC = "music"
    PHOTO = "photo"
    ART   = "art"
    GAME  = "game"


class ContentStatus(str, Enum):
    PENDING           = "pending"
    APPROVED          = "approved"
    # set by moderation outside this pipeline
    FEATURED          = "featured"
    FLAGGED_BROKEN    = "flagged_broken"
    FLAGGED_NOT_PIZZA = "flagged_not_pizza"


class Platform(str, Enum):
    REDDIT  = "reddit"
    IMGUR   = "imgur"
    PEXELS  = "pexels"
    TIKTOK  = "tiktok"
    YOUTUBE = "youtube"
    NINEGAG = "9gag"
    IMGFLIP = "imgflip"


@dataclass(frozen=True)
class ContentRecord:
    type:            ContentType
    title:           str
    url:             str
    thumbnail_url:   str
    source_url:      str
    source_platform: Platform
    description:     str | None      = None
    tags:            tuple[str, ...] = ()
    is_viral:        bool            = False
    status:          ContentStatus   = ContentStatus.APPROVED
    creator:         str | None      = None

    def to_row(self) -> dict[str, Any]:
        """Plain dict in the content-table column layout (enums as strings, tags as list)."""
        row = asdict(self)
        row["type"]            = self.type.value
        row["source_platform"] = self.source_platform.value
        row["status"]          = self.status.value
        row["tags"]            = list(self.tags)
        return row


# ── Builder ────────────────────────────────────────────────────────────────────

def build_record(
    *,
    platform:       Platform,
    type_:          ContentType,
    title:          str | None,
    url:            str | None,
    source_url:     str | None,
    thumbnail_url:  str | None = None,
    description:    str | None = None,
    source_tags:    Iterable[str] = (),
    is_viral:       bool = False,
    auto_approve:   bool = True,
    creator:        str | None = None,
    fallback_title: str = "Pizza Post",
) -> ContentRecord | None:
    """
    Assemble a ContentRecord, enforcing every record invariant.
    Returns None when `url` is not a usable http(s) URL.

    Tags = base tags (pizza, platform) + source tags + tags detected from
    the title/description, de-duplicated and capped at MAX_TAGS.
    """
    if not is_valid_url(url):
        return None

    clean_title = truncate(clean_text(title), MAX_TITLE) or fallback_title
    clean_desc  = truncate(clean_text(description), MAX_DESCRIPTION) or None

    tags = merge_tags(
        ("pizza", platform.value),
        source_tags,
        detect_tags(f"{clean_title} {clean_desc or ''}"),
    )

    return ContentRecord(
        type            = type_,
        title           = clean_title,
        url             = url,
        thumbnail_url   = thumbnail_url if is_valid_url(thumbnail_url) else url,
        source_url      = source_url if is_valid_url(source_url) else url,
        source_platform = platform,
        description     = clean_desc,
        tags            = tags,
        is_viral        = is_viral,
        status          = ContentStatus.APPROVED if auto_approve else ContentStatus.PENDING,
        creator         = clean_text(creator) or None,
    )


# ── Helpers ────────────────────────────────────────────────────────────────────

def clean_text(text: str | None) -> str:
    """Decode HTML entities (&amp; → &, &#39; → ') and collapse whitespace."""
    if not text:
        return ""
    return _WHITESPACE_RE.sub(" ", html.unescape(str(text))).strip()


def truncate(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    return text[:limit].rstrip()


def is_valid_url(url: str | None) -> bool:
    if not url or not isinstance(url, str):
        return False
    parsed = urlparse(url.strip())
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def normalize_tag(tag: str) -> str:
    tag = str(tag).strip().lstrip("#").lower()
    tag = _WHITESPACE_RE.sub("-", tag)
    return _TAG_STRIP_RE.sub("", tag)[:MAX_TAG_LENGTH].strip("-")


def merge_tags(*groups: Iterable[str], cap: int = MAX_TAGS) -> tuple[str, ...]:
    """Flatten tag groups in order, normalizing and dropping repeats; at most `cap` tags."""
    seen: list[str] = []
    for group in groups:
        for raw in group or ():
            if not isinstance(raw, str) or not raw:
                continue
            tag = normalize_tag(raw)
            if tag and tag not in seen:
                seen.append(tag)
                if len(seen) >= cap:
                    return tuple(seen)
    return tuple(seen)


def exceeds_threshold(
    metrics: dict[str, Any],
    thresholds: dict[str, int],
    inclusive: bool = False,
) -> bool:
    """
    True if any metric present in `metrics` passes its viral threshold.
    The cutoff itself only counts when `inclusive` is set.
    """
    for name, cutoff in thresholds.items():
        value = metrics.get(name)
        if not isinstance(value, (int, float)) or isinstance(value, bool):
            continue
        if value > cutoff or (inclusive and value == cutoff):
            return True
    return False

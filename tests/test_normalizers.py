"""Per-platform normalizers: raw payload item → ContentRecord | None."""

import pytest

from pizzafeed.collectors.imgflip import normalize_imgflip
from pizzafeed.collectors.imgur import flatten_gallery, normalize_imgur
from pizzafeed.collectors.ninegag import normalize_ninegag
from pizzafeed.collectors.pexels import normalize_pexels_photo, normalize_pexels_video
from pizzafeed.collectors.reddit import normalize_reddit
from pizzafeed.collectors.tiktok import normalize_tiktok
from pizzafeed.collectors.youtube import normalize_youtube
from pizzafeed.content.record import ContentStatus, ContentType, Platform

from conftest import reddit_child


# ── Reddit ─────────────────────────────────────────────────────────────────────

def test_reddit_image_post():
    record = normalize_reddit(reddit_child(link_flair_text="Homemade"), subreddit="pizza")
    assert record.type is ContentType.MEME
    assert record.url == "https://i.redd.it/p.jpg"
    assert record.source_url == "https://reddit.com/r/pizza/comments/abc123/best_pizza_ever/"
    assert record.thumbnail_url == "https://b.thumbs.redditmedia.com/p.jpg"
    assert record.creator == "crust_lover"
    assert record.source_platform is Platform.REDDIT
    assert "homemade" in record.tags
    assert not record.is_viral


def test_reddit_bare_post_dict():
    raw    = {"url": "https://x/p.jpg", "title": "Best Pizza Ever!!", "is_self": False, "over_18": False}
    record = normalize_reddit(raw, subreddit="pizza")
    assert record.type is ContentType.MEME
    assert record.source_url == "https://x/p.jpg"


@pytest.mark.parametrize(
    "overrides",
    [
        {"is_self": True},
        {"over_18": True},
        {"removed_by_category": "moderator"},
        {"is_gallery": True},
        {"crosspost_parent_list": [{"id": "x"}]},
        {"is_video": True, "url": "https://v.redd.it/abc"},
        {"url": "https://www.reddit.com/gallery/abc"},
        {"url": "https://example.com/article"},
    ],
)
def test_reddit_drops_non_media_posts(overrides):
    assert normalize_reddit(reddit_child(**overrides), subreddit="pizza") is None


def test_reddit_topic_filter_uses_title_or_subreddit():
    off_topic = reddit_child(title="My rye loaf")
    assert normalize_reddit(off_topic, subreddit="Breadit") is None
    assert normalize_reddit(off_topic, subreddit="pizza") is not None


def test_reddit_gif_and_viral():
    record = normalize_reddit(reddit_child(url="https://i.imgur.com/dance.gif", score=1001), subreddit="pizza")
    assert record.type is ContentType.GIF
    assert record.is_viral


def test_reddit_score_at_threshold_is_not_viral():
    assert not normalize_reddit(reddit_child(score=1000), subreddit="pizza").is_viral


def test_reddit_rewrites_imgur_and_giphy_pages():
    imgur = normalize_reddit(reddit_child(url="https://imgur.com/AbC123"), subreddit="pizza")
    assert imgur.url == "https://i.imgur.com/AbC123.jpg"

    giphy = normalize_reddit(reddit_child(url="https://giphy.com/gifs/pizza-party-xYz987"), subreddit="pizza")
    assert giphy.url == "https://media.giphy.com/media/xYz987/giphy.gif"
    assert giphy.type is ContentType.GIF


def test_reddit_placeholder_thumbnail_falls_back_to_media():
    record = normalize_reddit(reddit_child(thumbnail="default"), subreddit="pizza")
    assert record.thumbnail_url == record.url


def test_reddit_deleted_author_has_no_creator():
    assert normalize_reddit(reddit_child(author="[deleted]"), subreddit="pizza").creator is None


# ── Imgur ──────────────────────────────────────────────────────────────────────

def _imgur_image(**overrides):
    image = {
        "id":       "aB3dE",
        "title":    "Cheesy slice",
        "link":     "https://i.imgur.com/aB3dE.jpg",
        "type":     "image/jpeg",
        "animated": False,
        "views":    12,
        "points":   3,
        "nsfw":     False,
        "tags":     [{"name": "food"}],
    }
    image.update(overrides)
    return image


def test_imgur_image():
    record = normalize_imgur(_imgur_image())
    assert record.type is ContentType.MEME
    assert record.source_url == "https://imgur.com/aB3dE"
    assert record.thumbnail_url == "https://i.imgur.com/aB3dEt.jpg"
    assert "food" in record.tags


def test_imgur_animated_is_gif():
    record = normalize_imgur(_imgur_image(animated=True, type="image/gif", link="https://i.imgur.com/x.gif"))
    assert record.type is ContentType.GIF


def test_imgur_drops_nsfw_and_plain_video():
    assert normalize_imgur(_imgur_image(nsfw=True)) is None
    assert normalize_imgur(_imgur_image(type="video/mp4", link="https://i.imgur.com/x.mp4")) is None


def test_imgur_viral_on_views_or_points():
    assert normalize_imgur(_imgur_image(views=100_001)).is_viral
    assert normalize_imgur(_imgur_image(points=1_001)).is_viral
    assert not normalize_imgur(_imgur_image(views=100_000, points=1_000)).is_viral


def test_imgur_tags_without_names_are_ignored():
    record = normalize_imgur(_imgur_image(tags=[{"name": "food"}, {"display_name": "Pizza"}]))
    assert "food" in record.tags
    assert "none" not in record.tags

    album = _imgur_image(album_tags=[None, "", "cheese"])
    assert "none" not in normalize_imgur(album).tags


def test_imgur_gallery_mode_applies_topic_filter():
    off_topic = _imgur_image(title="Cute puppy")
    assert normalize_imgur(off_topic, topic_scoped=True) is not None
    assert normalize_imgur(off_topic, topic_scoped=False) is None


def test_flatten_gallery_expands_albums():
    album = {
        "is_album": True,
        "title":    "Pizza week",
        "link":     "https://imgur.com/a/xyz",
        "tags":     [{"name": "pizza"}, {"followers": 12}],
        "images":   [_imgur_image(id="one", title=None), _imgur_image(id="two")],
    }
    images = flatten_gallery([album, _imgur_image(id="three"), "junk"])
    assert [i["id"] for i in images] == ["one", "two", "three"]
    assert images[0]["album_tags"] == ["pizza"]
    assert images[0]["album_title"] == "Pizza week"
    assert normalize_imgur(images[0]).title == "Pizza week"


# ── Pexels ─────────────────────────────────────────────────────────────────────

def test_pexels_photo():
    raw = {
        "id":           1,
        "url":          "https://www.pexels.com/photo/pizza-1/",
        "alt":          "margherita on a wooden board",
        "photographer": "Ana",
        "src":          {"large": "https://images.pexels.com/1/large.jpeg", "medium": "https://images.pexels.com/1/medium.jpeg"},
    }
    record = normalize_pexels_photo(raw)
    assert record.type is ContentType.PHOTO
    assert record.title == "Margherita on a wooden board"
    assert record.thumbnail_url == "https://images.pexels.com/1/medium.jpeg"
    assert record.description == "Photo by Ana on Pexels"
    assert record.creator == "Ana"
    assert {"photo", "margherita"} <= set(record.tags)


def test_pexels_photo_without_src_is_dropped():
    assert normalize_pexels_photo({"id": 1}) is None


def test_pexels_video_picks_smallest_hd_rendition():
    raw = {
        "id":   2,
        "url":  "https://www.pexels.com/video/pizza-2/",
        "image": "https://images.pexels.com/videos/2/thumb.jpg",
        "user": {"name": "Luca"},
        "video_files": [
            {"link": "https://player.vimeo.com/sd.mp4", "height": 540, "file_type": "video/mp4"},
            {"link": "https://player.vimeo.com/uhd.mp4", "height": 2160, "file_type": "video/mp4"},
            {"link": "https://player.vimeo.com/hd.mp4", "height": 720, "file_type": "video/mp4"},
        ],
    }
    record = normalize_pexels_video(raw)
    assert record.type is ContentType.VIDEO
    assert record.url == "https://player.vimeo.com/hd.mp4"
    assert record.creator == "Luca"


def test_pexels_video_without_hd_uses_largest():
    raw = {"url": "https://www.pexels.com/video/3/", "video_files": [
        {"link": "https://player.vimeo.com/a.mp4", "height": 360},
        {"link": "https://player.vimeo.com/b.mp4", "height": 540},
    ]}
    assert normalize_pexels_video(raw).url == "https://player.vimeo.com/b.mp4"


# ── TikTok ─────────────────────────────────────────────────────────────────────

def test_tiktok_video_is_pending_embed():
    raw = {
        "id":     "7300000000000000001",
        "desc":   "Perfect pizza flip #pizza #PizzaTok",
        "author": {"uniqueId": "chefmario", "nickname": "Chef Mario"},
        "stats":  {"playCount": 250_000},
        "video":  {"cover": "https://p16.tiktokcdn.com/cover.jpg"},
    }
    record = normalize_tiktok(raw)
    assert record.type is ContentType.VIDEO
    assert record.status is ContentStatus.PENDING
    assert record.url == "https://www.tiktok.com/embed/v2/7300000000000000001"
    assert record.source_url == "https://www.tiktok.com/@chefmario/video/7300000000000000001"
    assert record.thumbnail_url == "https://p16.tiktokcdn.com/cover.jpg"
    assert record.creator == "Chef Mario"
    assert record.is_viral
    assert "pizzatok" in record.tags


def test_tiktok_without_id_is_dropped():
    assert normalize_tiktok({"desc": "pizza"}) is None


def test_tiktok_plays_at_threshold_are_viral():
    raw = {"id": "73", "desc": "pizza toss #pizza", "author": {"uniqueId": "chefmario"}}
    assert normalize_tiktok({**raw, "stats": {"playCount": 100_000}}).is_viral
    assert not normalize_tiktok({**raw, "stats": {"playCount": 99_999}}).is_viral


# ── YouTube ────────────────────────────────────────────────────────────────────

def _youtube_item(**snippet):
    base = {
        "title":        "Neapolitan pizza in 60 seconds",
        "description":  "Quick recipe",
        "channelTitle": "Pizza Lab",
        "thumbnails":   {"high": {"url": "https://i.ytimg.com/vi/vid1/hq.jpg"}},
    }
    base.update(snippet)
    return {"id": {"kind": "youtube#video", "videoId": "vid1"}, "snippet": base}


def test_youtube_video():
    record = normalize_youtube(_youtube_item())
    assert record.type is ContentType.VIDEO
    assert record.url == record.source_url == "https://www.youtube.com/watch?v=vid1"
    assert record.thumbnail_url == "https://i.ytimg.com/vi/vid1/hq.jpg"
    assert record.creator == "Pizza Lab"
    assert not record.is_viral


def test_youtube_drops_upcoming_and_missing_id():
    assert normalize_youtube(_youtube_item(liveBroadcastContent="upcoming")) is None
    assert normalize_youtube({"id": {"kind": "youtube#channel"}, "snippet": {}}) is None


# ── 9GAG ───────────────────────────────────────────────────────────────────────

def _gag(**overrides):
    post = {
        "id":          "aXyZ1",
        "url":         "https://9gag.com/gag/aXyZ1",
        "title":       "When the pizza arrives",
        "type":        "Photo",
        "nsfw":        0,
        "upVoteCount": 50,
        "images": {
            "image700":   {"url": "https://img-9gag-fun.9cache.com/photo/aXyZ1_700b.jpg"},
            "image460sv": {"url": "https://img-9gag-fun.9cache.com/photo/aXyZ1_460sv.mp4"},
        },
        "tags": [{"key": "pizza"}, {"key": "food"}],
    }
    post.update(overrides)
    return post


def test_ninegag_photo():
    record = normalize_ninegag(_gag())
    assert record.type is ContentType.MEME
    assert record.url.endswith("_700b.jpg")
    assert record.source_url == "https://9gag.com/gag/aXyZ1"
    assert "food" in record.tags


def test_ninegag_animated_and_video():
    assert normalize_ninegag(_gag(type="Animated")).type is ContentType.GIF
    video = normalize_ninegag(_gag(type="Video"))
    assert video.type is ContentType.VIDEO
    assert video.url.endswith("_460sv.mp4")


def test_ninegag_nsfw_dropped_and_viral():
    assert normalize_ninegag(_gag(nsfw=1)) is None
    assert normalize_ninegag(_gag(upVoteCount=10_001)).is_viral
    assert not normalize_ninegag(_gag(upVoteCount=10_000)).is_viral


def test_ninegag_tags_without_key_are_ignored():
    record = normalize_ninegag(_gag(tags=[{"url": "/tag/pizza"}, {"key": "food"}]))
    assert "food" in record.tags
    assert "none" not in record.tags


# ── Imgflip ────────────────────────────────────────────────────────────────────

def test_imgflip_meme_and_template():
    meme = normalize_imgflip({"id": "8abc", "url": "https://i.imgflip.com/8abc.jpg", "name": "Pizza time", "kind": "meme"})
    assert meme.type is ContentType.MEME
    assert meme.source_url == "https://imgflip.com/i/8abc"

    template = normalize_imgflip({"id": "181913649", "url": "https://i.imgflip.com/30b1gx.jpg", "name": "Pizza Drake", "kind": "template"})
    assert template.source_url == "https://imgflip.com/meme/181913649"
    assert "meme-template" in template.tags


def test_imgflip_requires_url_and_id():
    assert normalize_imgflip({"id": "x"}) is None
    assert normalize_imgflip({"url": "https://i.imgflip.com/x.jpg"}) is None


# ── Shared properties ──────────────────────────────────────────────────────────

@pytest.mark.parametrize(
    "normalize",
    [
        normalize_reddit, normalize_imgur, normalize_pexels_photo, normalize_pexels_video,
        normalize_tiktok, normalize_youtube, normalize_ninegag, normalize_imgflip,
    ],
)
@pytest.mark.parametrize("raw", [None, "text", 42, {}])
def test_malformed_input_is_dropped_not_raised(normalize, raw):
    assert normalize(raw) is None


def test_normalizers_are_pure():
    raw = reddit_child()
    assert normalize_reddit(raw, subreddit="pizza") == normalize_reddit(raw, subreddit="pizza")
    assert raw == reddit_child()

import importlib.util
from pathlib import Path

import pytest

from pizzafeed.config import settings
from pizzafeed.database.store import SQLiteStore

_SCRIPT = Path(__file__).resolve().parent.parent / "scripts" / "setup_db.py"


@pytest.fixture
def setup_db():
    spec   = importlib.util.spec_from_file_location("setup_db", _SCRIPT)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def test_bundled_sources_file_is_valid(setup_db):
    sources = setup_db.load_sources(settings.SOURCES_FILE)
    assert sources
    assert {s["platform"] for s in sources} <= {"reddit", "imgur", "pexels", "tiktok", "youtube", "9gag", "imgflip"}


def test_load_sources_rejects_unknown_platform(setup_db, tmp_path):
    path = tmp_path / "sources.yaml"
    path.write_text("sources:\n  - platform: myspace\n    identifier: x\n", encoding="utf-8")
    with pytest.raises(ValueError):
        setup_db.load_sources(path)


def test_load_sources_requires_identifier(setup_db, tmp_path):
    path = tmp_path / "sources.yaml"
    path.write_text("sources:\n  - platform: reddit\n", encoding="utf-8")
    with pytest.raises(ValueError, match="identifier"):
        setup_db.load_sources(path)


async def test_seed_sources_is_idempotent(setup_db, tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "STORE_BACKEND", "sqlite")
    path = tmp_path / "sources.yaml"
    path.write_text(
        "sources:\n"
        "  - platform: reddit\n"
        "    identifier: pizza\n"
        "    subreddit: pizza\n"
        "    sort: top\n"
        "  - platform: 9gag\n"
        "    identifier: pizza\n",
        encoding="utf-8",
    )

    assert await setup_db.seed_sources(path) == 2
    assert await setup_db.seed_sources(path) == 2

    sources = await SQLiteStore(settings.DB_PATH).active_sources()
    assert [(s.platform, s.source_identifier) for s in sources] == [("reddit", "pizza"), ("9gag", "pizza")]
    assert sources[0].config == {"subreddit": "pizza", "sort": "top"}
    assert sources[1].display_name == "9gag/pizza"

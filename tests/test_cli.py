import pytest

from pizzafeed import cli
from pizzafeed.collectors.registry import make_collector
from pizzafeed.config import settings
from pizzafeed.errors import StoreError
from pizzafeed.importer.runner import RunStatus, RunSummary

from conftest import json_response, reddit_child, route_transport


# ── Argument parsing ───────────────────────────────────────────────────────────

@pytest.mark.parametrize(
    "argv",
    [
        [],
        ["--source", "myspace"],
        ["--source", "reddit", "--all"],
        ["--source", "reddit", "--gallery", "hot"],
        ["--source", "imgur", "--subreddit", "pizza"],
        ["--source", "reddit", "--sort", "viral"],
        ["--source", "imgur", "--sort", "rising", "--time", "week"],
        ["--source", "reddit", "--subreddit", "a", "--subreddits", "b,c"],
        ["--source", "reddit", "--limit", "0"],
        ["--source", "tiktok", "--min-views", "lots"],
        ["--all", "--query", "pizza"],
    ],
)
def test_invalid_arguments_exit_2(argv):
    with pytest.raises(SystemExit) as excinfo:
        cli.parse_args(argv)
    assert excinfo.value.code == 2


def test_valid_arguments():
    args = cli.parse_args(["--source", "imgur", "--sort", "rising", "--window", "day", "-q", "calzone"])
    assert (args.source, args.sort, args.window, args.query) == ("imgur", "rising", "day", "calzone")
    assert cli.parse_args(["--all", "--dry-run"]).all


def test_reddit_configs_one_per_subreddit():
    args    = cli.parse_args(["--source", "reddit", "--subreddits", "pizza, pizzacrimes,", "--sort", "top", "--no-validate"])
    configs = cli.configs_from_args(args)
    assert [c["subreddit"] for c in configs] == ["pizza", "pizzacrimes"]
    assert all(c["sort"] == "top" and c["validate"] is False for c in configs)


def test_reddit_default_subreddits():
    configs = cli.configs_from_args(cli.parse_args(["--source", "reddit"]))
    assert [c["subreddit"] for c in configs] == ["pizza", "pizzacrimes", "FoodPorn", "CasualUK"]


def test_other_source_config_keeps_only_given_options():
    args = cli.parse_args(["--source", "pexels", "--videos", "--limit", "10"])
    assert cli.configs_from_args(args) == [{"videos": True, "limit": 10, "validate": True}]


# ── Runs ───────────────────────────────────────────────────────────────────────

@pytest.fixture
def wired(monkeypatch, fake_store, limiter):
    """Point the CLI at the fake store and at a mock HTTP transport."""
    routes = {}

    def collector_factory(platform, config, **_):
        return make_collector(platform, config, limiter=limiter, transport=route_transport(routes))

    monkeypatch.setattr(cli, "make_store", lambda: fake_store)
    monkeypatch.setattr(cli, "make_collector", collector_factory)
    return routes


def _listing(*children):
    return json_response({"data": {"children": list(children)}})


def test_reddit_run_imports_and_prints_summary(wired, fake_store, capsys):
    wired["/r/pizza/hot.json"] = _listing(reddit_child())

    assert cli.main(["--source", "reddit", "--subreddit", "pizza", "--no-validate"]) == cli.EXIT_OK

    out = capsys.readouterr().out
    assert "r/pizza" in out
    assert "By type (imported): meme 1" in out
    assert len(fake_store.content) == 1
    assert fake_store.closed


def test_dry_run_labels_output_and_writes_nothing(wired, fake_store, capsys):
    wired["/r/pizza/hot.json"] = _listing(reddit_child())

    assert cli.main(["--source", "reddit", "--subreddit", "pizza", "--no-validate", "--dry-run"]) == cli.EXIT_OK

    lines = [line for line in capsys.readouterr().out.splitlines() if line]
    assert lines and all(line.startswith("[DRY RUN] ") for line in lines)
    assert any("By type (would import): meme 1" in line for line in lines)
    assert fake_store.content == []
    assert fake_store.runs == {}


def test_failed_fetch_exits_3(wired, fake_store, capsys):
    # no route → 404 from reddit
    assert cli.main(["--source", "reddit", "--subreddit", "pizza"]) == cli.EXIT_FETCH_FAILED
    assert "failed" in capsys.readouterr().out
    assert fake_store.last_run["status"] == "failed"


def test_missing_credential_exits_1(wired, monkeypatch, capsys):
    monkeypatch.setattr(settings, "YOUTUBE_API_KEY", None)
    assert cli.main(["--source", "youtube"]) == cli.EXIT_CONFIG_ERROR
    assert "YOUTUBE_API_KEY" in capsys.readouterr().err


def test_store_config_error_exits_1(monkeypatch, capsys):
    monkeypatch.setattr(settings, "STORE_BACKEND", "supabase")
    monkeypatch.setattr(settings, "SUPABASE_URL", None)
    monkeypatch.setattr(settings, "SUPABASE_SERVICE_KEY", None)
    assert cli.main(["--source", "9gag"]) == cli.EXIT_CONFIG_ERROR
    assert "SUPABASE" in capsys.readouterr().err


async def test_all_runs_every_active_source(wired, fake_store):
    await fake_store.ensure_source("reddit", "pizza", "r/pizza", {"subreddit": "pizza"})
    await fake_store.ensure_source("9gag", "pizza", "9GAG: pizza", {"tag": "pizza"})
    await fake_store.set_source_active("9gag", "pizza", False)
    wired["/r/pizza/hot.json"] = _listing(reddit_child())

    args = cli.parse_args(["--all", "--no-validate"])
    assert await cli.run_imports(args) == cli.EXIT_OK
    assert [r.source_platform.value for r in fake_store.content] == ["reddit"]


async def test_store_error_during_run_is_a_failed_summary(wired, fake_store, monkeypatch, capsys):
    async def broken_start(source_id):
        raise StoreError("supabase: POST /import_logs returned 503")

    monkeypatch.setattr(fake_store, "start_run", broken_start)
    wired["/r/pizza/hot.json"] = _listing(reddit_child())

    args = cli.parse_args(["--source", "reddit", "--subreddit", "pizza", "--no-validate"])
    assert await cli.run_imports(args) == cli.EXIT_FETCH_FAILED
    assert "import_logs returned 503" in capsys.readouterr().out


# ── Summary formatting ─────────────────────────────────────────────────────────

def test_format_summary_totals():
    first = RunSummary("reddit", "pizza", "r/pizza", status=RunStatus.COMPLETED, found=5, imported=2,
                       skipped_filtered=1, skipped_duplicate=1, errored=1)
    first.by_type.update({"meme": 1, "gif": 1})
    second = RunSummary("reddit", "pizzacrimes", "r/pizzacrimes", status=RunStatus.FAILED,
                        error_message="reddit: 403 from https://www.reddit.com")

    lines = cli.format_summary([first, second], dry_run=False)

    assert any("error: reddit: 403" in line for line in lines)
    assert "  reddit     found 5, imported 2, skipped 1 filtered + 1 duplicate, errors 1" in lines
    assert lines[-1] == "By type (imported): gif 1, meme 1"
    assert not any(line.startswith("[DRY RUN]") for line in lines)


async def test_all_applies_limit_to_every_source(fake_store):
    await fake_store.ensure_source("reddit", "pizza", "r/pizza", {"subreddit": "pizza", "limit": 40})
    await fake_store.ensure_source("9gag", "pizza", "9GAG: pizza", {"tag": "pizza"})

    collectors = await cli.build_collectors(cli.parse_args(["--all", "--limit", "5"]), fake_store)
    assert [c.limit for c in collectors] == [5, 5]

    collectors = await cli.build_collectors(cli.parse_args(["--all"]), fake_store)
    assert collectors[0].limit == 40


async def test_run_log_store_error_still_exits_ok(wired, fake_store, monkeypatch, capsys):
    async def broken_finish(*args, **kwargs):
        raise StoreError("supabase: PATCH /import_logs failed: timeout")

    monkeypatch.setattr(fake_store, "finish_run", broken_finish)
    wired["/r/pizza/hot.json"] = _listing(reddit_child())

    args = cli.parse_args(["--source", "reddit", "--subreddit", "pizza", "--no-validate"])
    assert await cli.run_imports(args) == cli.EXIT_OK
    assert len(fake_store.content) == 1
    assert "completed" in capsys.readouterr().out

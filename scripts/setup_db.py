"""
Initialise the content store and seed import_sources from sources.yaml.
Safe to run multiple times — existing (platform, identifier) pairs are left as they are.

Usage:
    STORE_BACKEND=sqlite python scripts/setup_db.py
    python scripts/setup_db.py path/to/other_sources.yaml
"""
import asyncio
import sys
from pathlib import Path

import yaml

from pizzafeed.config import settings
from pizzafeed.content.record import Platform
from pizzafeed.database.store import make_store
from pizzafeed.errors import ConfigError

# Keys stored in their own columns; everything else goes into the config JSON blob.
_TOP_LEVEL = {"platform", "identifier", "display_name"}


def load_sources(yaml_path: Path) -> list[dict]:
    data = yaml.safe_load(yaml_path.read_text(encoding="utf-8")) or {}
    sources = data.get("sources", [])
    for src in sources:
        Platform(src["platform"])   # fail on a typo before touching the store
        if not src.get("identifier"):
            raise ValueError(f"source without identifier: {src}")
    return sources


async def seed_sources(yaml_path: Path) -> int:
    """Parse the YAML file and ensure every source exists. Returns the count processed."""
    store = make_store()
    try:
        sources = load_sources(yaml_path)
        for src in sources:
            config = {k: v for k, v in src.items() if k not in _TOP_LEVEL}
            await store.ensure_source(
                src["platform"],
                str(src["identifier"]),
                src.get("display_name") or f"{src['platform']}/{src['identifier']}",
                config,
            )
            print(f"  {src['platform']:<8} {src['identifier']}")
    finally:
        await store.close()
    return len(sources)


def main() -> None:
    yaml_path = Path(sys.argv[1]) if len(sys.argv) > 1 else settings.SOURCES_FILE

    print(f"Store backend: {settings.STORE_BACKEND}")
    if settings.STORE_BACKEND == "sqlite":
        print(f"Database path: {settings.DB_PATH}")

    if not yaml_path.exists():
        print(f"  [WARN] {yaml_path} not found — nothing to seed")
        return

    try:
        n = asyncio.run(seed_sources(yaml_path))
    except ConfigError as exc:
        print(f"error: {exc}", file=sys.stderr)
        sys.exit(1)
    print(f"Done. {n} sources seeded from {yaml_path.name}.")


if __name__ == "__main__":
    main()

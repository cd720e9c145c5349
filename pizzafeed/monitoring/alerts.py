"""
Discord webhook alerts — fires when an import run fails at fetch level and
when the scheduled worker starts.

Set DISCORD_WEBHOOK_URL in .env to enable. If unset, all calls are no-ops.
Alert delivery problems are logged, never raised.
"""
from datetime import datetime, timezone

import httpx
from loguru import logger

from pizzafeed.config import settings

# Colour codes for Discord embeds
_COLOUR = {
    "error":   0xE74C3C,
    "warning": 0xF39C12,
    "success": 0x2ECC71,
    "info":    0x3498DB,
}


async def send_alert(message: str, level: str = "error") -> None:
    """
    Post one embed to the configured webhook.
    level: "error" | "warning" | "info" | "success"
    """
    if not settings.DISCORD_WEBHOOK_URL:
        return

    payload = {
        "embeds": [{
            "description": message,
            "color":       _COLOUR.get(level, _COLOUR["error"]),
            "footer":      {"text": f"pizzafeed importer • {_utcnow()}"},
        }]
    }
    await _post(settings.DISCORD_WEBHOOK_URL, payload)


async def alert_run_failed(display_name: str, platform: str, error: str) -> None:
    await send_alert(
        f"**Import failed** `{display_name}` [{platform}]\n```{error[:500]}```",
        level="error",
    )


async def alert_startup(dry_run: bool, source_count: int) -> None:
    mode = "DRY RUN" if dry_run else "LIVE"
    await send_alert(f"pizzafeed worker started [{mode}], {source_count} sources scheduled", level="success")


# ── Internal ──────────────────────────────────────────────────────────────────

async def _post(webhook_url: str, payload: dict) -> None:
    try:
        async with httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT) as client:
            resp = await client.post(webhook_url, json=payload)
            resp.raise_for_status()
    except httpx.HTTPError as exc:
        logger.warning(f"[Alerts] Discord webhook failed: {exc}")


def _utcnow() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M UTC")

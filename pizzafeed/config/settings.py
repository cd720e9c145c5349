"""
Global settings — loads from .env and exposes typed config values to the rest of the app.
"""
import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

# ── Paths ──────────────────────────────────────────────────────────────────────
PACKAGE_DIR  = Path(__file__).resolve().parent.parent
ROOT_DIR     = Path(os.getenv("PIZZAFEED_HOME", str(Path.cwd())))
DATA_DIR     = ROOT_DIR / "data"
LOGS_DIR     = ROOT_DIR / "logs"
SOURCES_FILE = Path(os.getenv("SOURCES_FILE", str(PACKAGE_DIR / "config" / "sources.yaml")))

# ── General ────────────────────────────────────────────────────────────────────
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
DRY_RUN   = os.getenv("DRY_RUN", "false").lower() == "true"

# ── HTTP ───────────────────────────────────────────────────────────────────────
HTTP_TIMEOUT       = float(os.getenv("HTTP_TIMEOUT", "10"))
HTTP_USER_AGENT    = os.getenv("HTTP_USER_AGENT", "PizzaContentBot/1.0 (pizza content importer)")
INTER_SOURCE_DELAY = float(os.getenv("INTER_SOURCE_DELAY", "1"))

# ── Content store ──────────────────────────────────────────────────────────────
# "supabase" (production) or "sqlite" (local / development)
STORE_BACKEND        = os.getenv("STORE_BACKEND", "supabase").lower()
SUPABASE_URL         = os.getenv("SUPABASE_URL")
SUPABASE_SERVICE_KEY = os.getenv("SUPABASE_SERVICE_KEY")
DB_PATH              = Path(os.getenv("DB_PATH", str(DATA_DIR / "pizzafeed.db")))

# ── Platform credentials ───────────────────────────────────────────────────────
IMGUR_CLIENT_ID = os.getenv("IMGUR_CLIENT_ID")
PEXELS_API_KEY  = os.getenv("PEXELS_API_KEY")
RAPIDAPI_KEY    = os.getenv("RAPIDAPI_KEY")
YOUTUBE_API_KEY = os.getenv("YOUTUBE_API_KEY")

# ── Discord alerts ─────────────────────────────────────────────────────────────
DISCORD_WEBHOOK_URL = os.getenv("DISCORD_WEBHOOK_URL")

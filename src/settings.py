"""Static configuration for magicbot.

Process settings (bot name, storage backend, gateway timeout, logging) live
in an optional config.json; paths and account overrides come from the
environment so service units can set them without touching the file.
Per-group moderation policy is not configured here: it lives in the state
store and is edited through the CLI.
"""

import json
import os

from dotenv import load_dotenv

load_dotenv()

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))

CONFIG_PATH = os.getenv("MAGICBOT_CONFIG", os.path.join(PROJECT_ROOT, "config.json"))


def _load_json_config() -> dict:
    """Load config.json if present; every key has a default."""

    if not os.path.exists(CONFIG_PATH):
        return {}

    with open(CONFIG_PATH, "r", encoding="utf-8") as handle:
        return json.load(handle)


_CONFIG = _load_json_config()

# Expose the raw config for modules that need structured access.
CONFIG = _CONFIG

# Durable state (global.json, groups/, marks/ or magicbot.db).
STATE_DIR = os.getenv("MAGICBOT_STATE_DIR", "/var/lib/magicbot")

# Name used in `/ban@<name>` commands.
BOT_NAME = str(_CONFIG.get("bot_name", "magicbot"))

# Storage backend: "files" (one JSON record per file) or "sqlite".
_storage = _CONFIG.get("storage", {})
STORAGE_BACKEND = _storage.get("backend", "files")
DB_PATH = os.path.join(STATE_DIR, _storage.get("db_name", "magicbot.db"))

# Gateway invocation settings. Each one-shot call is bounded by the timeout;
# the receive stream is not.
_gateway = _CONFIG.get("gateway", {})
SIGNAL_CLI_PATH = os.getenv("SIGNAL_CLI_PATH", _gateway.get("binary", "signal-cli"))
GATEWAY_TIMEOUT_SECONDS = float(_gateway.get("timeout_seconds", 60))

# Optional overrides for values normally stored in global.json.
ACCOUNT_OVERRIDE = os.getenv("MAGICBOT_ACCOUNT")
SIGNAL_CLI_CONFIG_DIR = os.getenv("SIGNAL_CLI_CONFIG_DIR")

# Logging configuration (optional).
LOGGING = _CONFIG.get("logging", {})

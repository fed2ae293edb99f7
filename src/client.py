"""Gateway and store factories for magicbot.

We build the signal-cli gateway and the state store in one place so the
CLI commands share the same wiring and fail the same way on bad setup.
"""

from __future__ import annotations

import logging
import shutil
from typing import Optional

import settings
from adapters.json_state_store import JsonStateStore
from adapters.signal_cli import SignalCliGateway
from adapters.sqlite_storage import SQLiteStorage
from core.config import GlobalConfig
from core.errors import StartupError
from core.ports import StatePort


def build_store() -> StatePort:
    """Create the configured state store and its on-disk layout."""

    if settings.STORAGE_BACKEND == "sqlite":
        sqlite_store = SQLiteStorage(settings.DB_PATH)
        sqlite_store.init()
        return sqlite_store
    if settings.STORAGE_BACKEND == "files":
        file_store = JsonStateStore(settings.STATE_DIR)
        file_store.init()
        return file_store
    raise StartupError("storage.backend must be 'files' or 'sqlite'")


def resolve_account(global_config: GlobalConfig) -> str:
    account = settings.ACCOUNT_OVERRIDE or global_config.account
    # Fail fast on a missing account to avoid an ambiguous gateway error.
    if not account:
        raise StartupError("No account set. Run `magicbot account <number>` or link a device first.")
    return account


def build_gateway(global_config: GlobalConfig, account: Optional[str] = None) -> SignalCliGateway:
    """Create a signal-cli gateway for the active account."""

    if shutil.which(settings.SIGNAL_CLI_PATH) is None:
        raise StartupError(f"Missing command: {settings.SIGNAL_CLI_PATH}")

    logging.getLogger(__name__).info("Initializing signal-cli gateway")

    return SignalCliGateway(
        account=account or resolve_account(global_config),
        binary=settings.SIGNAL_CLI_PATH,
        config_dir=settings.SIGNAL_CLI_CONFIG_DIR or global_config.signal_cli_config_dir,
        timeout=settings.GATEWAY_TIMEOUT_SECONDS,
    )

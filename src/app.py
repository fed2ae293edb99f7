"""Application entry point for the magicbot moderator."""

from __future__ import annotations

import argparse
import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from typing import Optional

from art import tprint

import settings
from client import build_gateway, build_store, resolve_account
from core.errors import GatewayError, StartupError
from core.processor import EventDispatcher
from core.registry import GroupRegistry
from core.warn_tracker import WarnTracker
from link_device import link

NAME = "MAGICBOT"
FONT = "tarty-1"


def _print_banner() -> None:
    tprint(NAME, FONT, space=1)


class _RedactingFormatter(logging.Formatter):
    def __init__(self, secrets: list[str], fmt: str, datefmt: Optional[str] = None) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)
        self._secrets = [secret for secret in secrets if secret]

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        for secret in self._secrets:
            message = message.replace(secret, "***")
        return message


def _collect_redaction_values(config: dict) -> list[str]:
    redact_cfg = config.get("redact", {}) if config else {}
    if not redact_cfg.get("enabled", False):
        return []
    values = []
    for name in redact_cfg.get("patterns", ["MAGICBOT_ACCOUNT"]):
        value = os.getenv(name)
        if value:
            values.append(value)
    return sorted(set(values), key=len, reverse=True)


def _configure_logging() -> None:
    config = settings.LOGGING or {}
    if not config.get("enabled", True):
        return

    level_name = str(config.get("level", "INFO")).upper()
    level = getattr(logging, level_name, logging.INFO)

    fmt = "%(asctime)s %(levelname)s %(name)s: %(message)s"
    datefmt = "%Y-%m-%d %H:%M:%S"
    secrets = _collect_redaction_values(config)
    formatter = _RedactingFormatter(secrets, fmt=fmt, datefmt=datefmt)

    handlers: list[logging.Handler] = []

    if config.get("console", True):
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        handlers.append(console_handler)

    file_cfg = config.get("file", {})
    if file_cfg.get("enabled", False):
        path = file_cfg.get("path", "/var/log/magicbot/magicbot.log")
        if not os.path.isabs(path):
            path = os.path.join(settings.PROJECT_ROOT, path)
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        max_bytes = int(file_cfg.get("max_bytes", 5 * 1024 * 1024))
        backup_count = int(file_cfg.get("backup_count", 5))
        file_handler = RotatingFileHandler(
            path,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    if not handlers:
        return

    logging.basicConfig(level=level, handlers=handlers)


def _run() -> None:
    _print_banner()
    _configure_logging()
    logger = logging.getLogger(__name__)

    logger.info("Starting magicbot")

    store = build_store()
    global_config = store.load_global()
    account = resolve_account(global_config)
    gateway = build_gateway(global_config, account)

    registry = GroupRegistry(gateway, store, account)
    try:
        watched = registry.load()
    except GatewayError as exc:
        raise StartupError(f"Could not load groups from signal-cli: {exc}") from exc
    if not watched:
        raise StartupError("No group configs found. Run `magicbot watch <group id>` first.")
    logger.info("Watching %s group(s)", watched)

    dispatcher = EventDispatcher(
        registry=registry,
        gateway=gateway,
        state=store,
        warn_tracker=WarnTracker(store),
        bot_name=settings.BOT_NAME,
    )

    # Explicit lifecycle management makes start/shutdown behavior obvious:
    # the receive subprocess lives exactly as long as the dispatch loop.
    with gateway.receive() as stream:
        logger.info("Listening for incoming events...")
        dispatcher.run(stream)


def _groups() -> None:
    store = build_store()
    global_config = store.load_global()
    gateway = build_gateway(global_config)
    watched = set(store.list_group_ids())

    listings = gateway.list_groups()
    if not listings:
        print("No groups found. Make sure the account has joined a group.")
        return

    for index, listing in enumerate(listings, start=1):
        marker = "*" if listing.id in watched else " "
        print(f"{index}. [{marker}] {listing.name or '(unnamed)'} | {listing.id}")


def _watch(group_id: str, enable: bool) -> None:
    store = build_store()
    global_config = store.load_global()
    gateway = build_gateway(global_config)

    listing = next((item for item in gateway.list_groups() if item.id == group_id), None)
    if listing is None:
        raise StartupError(f"Group not found: {group_id}")

    def _apply(config) -> None:
        config.group_name = listing.name
        if enable:
            config.enabled = True

    config = store.update_group(group_id, _apply)
    global_config.selected_group = group_id
    store.save_global(global_config)
    state = "enabled" if config.enabled else "disabled"
    print(f"Watching {config.group_name or '(unnamed)'} ({group_id}), moderation {state}.")


def _account(number: str) -> None:
    store = build_store()
    global_config = store.load_global()
    global_config.account = number.strip()
    store.save_global(global_config)
    print(f"Active account set to {global_config.account}.")


def _link(device_name: str) -> None:
    _print_banner()
    store = build_store()
    global_config = store.load_global()
    number = link(
        settings.SIGNAL_CLI_PATH,
        device_name,
        settings.SIGNAL_CLI_CONFIG_DIR or global_config.signal_cli_config_dir,
    )
    if number:
        global_config.account = number
        store.save_global(global_config)
        print(f"Linked. Active account set to {number}.")


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(prog="magicbot")
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("run", help="Start the moderation engine")
    subparsers.add_parser("groups", help="List the account's groups; watched ones are marked with *")
    watch_parser = subparsers.add_parser("watch", help="Store a moderation config for a group")
    watch_parser.add_argument("group_id")
    watch_parser.add_argument("--enable", action="store_true", help="Turn moderation on for the group")
    account_parser = subparsers.add_parser("account", help="Set the active account number")
    account_parser.add_argument("number")
    link_parser = subparsers.add_parser("link", help="Link this host as a secondary device (QR code)")
    link_parser.add_argument("--name", default=settings.BOT_NAME)

    args = parser.parse_args(argv)
    try:
        if args.command == "groups":
            _groups()
        elif args.command == "watch":
            _watch(args.group_id, args.enable)
        elif args.command == "account":
            _account(args.number)
        elif args.command == "link":
            _link(args.name)
        else:
            _run()
    except (StartupError, GatewayError) as exc:
        logging.getLogger(__name__).error("%s", exc)
        print(f"[ERR] {exc}", file=sys.stderr)
        raise SystemExit(1)
    except KeyboardInterrupt:
        logging.getLogger(__name__).info("Interrupted; shutting down")


if __name__ == "__main__":
    main()

"""Core event dispatch loop.

This module is integration-agnostic. It consumes parsed receive events and
only relies on ports for gateway actions and state, so a recorded fixture
sequence can drive it exactly like a live stream.

Each event follows a strict order:
1) Skip events without a data message or for unwatched groups
2) Group UPDATE: refresh runtime, takeover, diff members, welcome
3) Message: ban command, then (if enabled) ban, warn, auto-reply rules
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Optional

from core.errors import GatewayError
from core.membership import added_members, render_welcome
from core.models import DataMessage, GroupRuntime, ReceiveEvent
from core.ports import GatewayPort, StatePort
from core.registry import GroupRegistry
from core.rules_engine import (
    DEFAULT_BOT_NAME,
    RuleKind,
    build_rules,
    extract_target_from_text,
    first_match,
    is_ban_command,
)
from core.takeover import apply_takeover
from core.warn_tracker import WarnTracker

LOGGER = logging.getLogger(__name__)

REPLY_NO_PERMISSION = "No permission: only group admins can use /ban."
REPLY_BOT_NOT_ADMIN = "The bot is not a group admin; removals and warnings are paused."
REPLY_BAN_REMOVED = "Removed from the group."
REPLY_BAN_FAILED = "Removal failed: {error}"
REPLY_KICKED_FOR_WARNINGS = "Removed from the group for repeated warnings."


def ban_usage(bot_name: str) -> str:
    return f"Usage: reply to the target message with /ban@{bot_name}, or send /ban@{bot_name} <uuid/number>."


@dataclass
class DispatchStats:
    """Counters logged when the receive loop ends."""

    events: int = 0
    ignored: int = 0
    handled: int = 0
    failed: int = 0


class EventDispatcher:
    """Routes receive events to the membership or message path."""

    def __init__(
        self,
        registry: GroupRegistry,
        gateway: GatewayPort,
        state: StatePort,
        warn_tracker: Optional[WarnTracker] = None,
        bot_name: str = DEFAULT_BOT_NAME,
    ) -> None:
        self._registry = registry
        self._gateway = gateway
        self._state = state
        self._warn_tracker = warn_tracker or WarnTracker(state)
        self._bot_name = bot_name
        self.stats = DispatchStats()

    def run(self, events: Iterable[ReceiveEvent]) -> DispatchStats:
        """Consume events in delivery order until the sequence ends."""

        for event in events:
            self.stats.events += 1
            try:
                if self.handle(event):
                    self.stats.handled += 1
                else:
                    self.stats.ignored += 1
            except Exception:
                # One bad event must never block the ones after it.
                self.stats.failed += 1
                LOGGER.exception("Error while processing event")

        LOGGER.info(
            "Receive loop finished: events=%s, handled=%s, ignored=%s, failed=%s",
            self.stats.events,
            self.stats.handled,
            self.stats.ignored,
            self.stats.failed,
        )
        return self.stats

    def handle(self, event: ReceiveEvent) -> bool:
        """Process one event; returns False when it was ignored."""

        data = event.envelope.data_message
        if data is None or data.group_info is None:
            return False

        runtime = self._registry.get(data.group_info.group_id)
        if runtime is None:
            return False

        if event.is_group_update:
            self._handle_update(runtime)
            return True
        return self._handle_message(runtime, event, data)

    # Membership-update path

    def _handle_update(self, runtime: GroupRuntime) -> None:
        group_id = runtime.group_id

        try:
            runtime = self._registry.refresh(group_id)
        except GatewayError as exc:
            LOGGER.warning("Refresh failed for %s: %s", group_id, exc)
            return

        config = runtime.config
        if config.enabled and config.bot_has_admin and config.require_bot_admin_to_enforce:
            try:
                apply_takeover(self._gateway, runtime)
            except GatewayError as exc:
                LOGGER.warning("Takeover failed for %s: %s", group_id, exc)

        added = added_members(config.last_members_snapshot, runtime.members)

        # Persist the new roster before any welcome goes out so a replayed
        # update cannot welcome the same member twice.
        config.last_members_snapshot = set(runtime.members)
        self._state.save_group(config)

        if not added:
            return
        LOGGER.info("Members joined %s: %s", group_id, ", ".join(added))
        if not config.welcome_template:
            return
        for member_id in added:
            self._send(group_id, render_welcome(config.welcome_template, member_id, runtime.member_names))

    # Message path

    def _handle_message(self, runtime: GroupRuntime, event: ReceiveEvent, data: DataMessage) -> bool:
        text = (data.message or "").strip()
        if not text:
            return False

        sender_id = event.sender_id
        config = runtime.config

        # Commands work regardless of the group's enable switch.
        if is_ban_command(text, self._bot_name):
            self._handle_ban_command(runtime, sender_id, text, data)
            return True

        if not config.enabled:
            return True

        match = first_match(text, build_rules(config))
        if match is None:
            return True

        if match.kind in (RuleKind.BAN, RuleKind.WARN) and not config.can_enforce():
            self._send(runtime.group_id, REPLY_BOT_NOT_ADMIN)
            return True

        if match.kind is RuleKind.BAN:
            LOGGER.info("Ban rule hit in %s by %s (%s)", runtime.group_id, sender_id, match.keyword)
            if self._remove(runtime.group_id, sender_id):
                self._warn_tracker.clear(runtime.group_id, sender_id)
        elif match.kind is RuleKind.WARN:
            LOGGER.info("Warn rule hit in %s by %s (%s)", runtime.group_id, sender_id, match.keyword)
            self._handle_warning(runtime, sender_id)
        else:
            self._send(runtime.group_id, match.rule.reply or "")
        return True

    def _handle_warning(self, runtime: GroupRuntime, sender_id: str) -> None:
        config = runtime.config
        outcome = self._warn_tracker.register(
            runtime.group_id,
            sender_id,
            window_seconds=config.warn_window_seconds,
            max_count=config.warn_max_count,
        )
        if outcome.escalate:
            if self._remove(runtime.group_id, sender_id):
                self._send(runtime.group_id, REPLY_KICKED_FOR_WARNINGS)
        else:
            self._send(runtime.group_id, config.warn_message)

    def _handle_ban_command(self, runtime: GroupRuntime, sender_id: str, text: str, data: DataMessage) -> None:
        config = runtime.config
        group_id = runtime.group_id

        if config.only_admin_can_ban and not runtime.is_admin(sender_id):
            LOGGER.info("Rejected /ban from non-admin %s in %s", sender_id, group_id)
            self._send(group_id, REPLY_NO_PERMISSION)
            return
        if not config.can_enforce():
            self._send(group_id, REPLY_BOT_NOT_ADMIN)
            return

        target = resolve_ban_target(text, data)
        if target is None:
            self._send(group_id, ban_usage(self._bot_name))
            return

        if not self._remove(group_id, target):
            return

        LOGGER.info("/ban of %s in %s issued by %s", target, group_id, sender_id)
        self._warn_tracker.clear(group_id, target)
        self._send(group_id, REPLY_BAN_REMOVED)

    # Outbound actions: failures are logged and never escape the loop.
    # A failed removal is also reported back into the group.

    def _send(self, group_id: str, text: str) -> bool:
        if not text:
            return False
        try:
            self._gateway.send_group_message(group_id, text)
        except GatewayError as exc:
            LOGGER.warning("Send to %s failed: %s", group_id, exc)
            return False
        return True

    def _remove(self, group_id: str, member_id: str) -> bool:
        try:
            self._gateway.remove_member(group_id, member_id)
        except GatewayError as exc:
            LOGGER.warning("Removing %s from %s failed: %s", member_id, group_id, exc)
            self._send(group_id, REPLY_BAN_FAILED.format(error=exc))
            return False
        LOGGER.info("Removed %s from %s", member_id, group_id)
        return True


def resolve_ban_target(text: str, data: DataMessage) -> Optional[str]:
    """Quoted author first, then an id embedded in the command text."""

    quote = data.quote
    if quote is not None and quote.author and quote.author.strip():
        return quote.author.strip()
    return extract_target_from_text(text)

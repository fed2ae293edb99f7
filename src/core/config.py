"""Core configuration dataclasses.

We keep persistence outside the core, but these dataclasses define the
shape the core expects so stores and the CLI can build records safely.
Every record round-trips through plain dicts so any store can keep it.
"""

from __future__ import annotations

import time
from dataclasses import asdict, dataclass, field
from typing import Any, List, Optional, Set

EVERY_MEMBER = "EVERY_MEMBER"
ONLY_ADMINS = "ONLY_ADMINS"

DEFAULT_WARN_WINDOW_MINUTES = 10
DEFAULT_WARN_MAX_COUNT = 3
DEFAULT_WARN_MESSAGE = "Warning: please stop posting prohibited content or you will be removed from the group."


def normalize_permission(value: Optional[str]) -> str:
    """Return one of the two permission levels the gateway accepts."""

    normalized = (value or "").strip().upper().replace("-", "_")
    if normalized in {EVERY_MEMBER, ONLY_ADMINS}:
        return normalized
    return EVERY_MEMBER


@dataclass
class GlobalConfig:
    """Process-wide settings."""

    installed_at: int = field(default_factory=lambda: int(time.time()))
    account: Optional[str] = None
    signal_cli_config_dir: Optional[str] = None
    selected_group: Optional[str] = None
    daemon_enabled: bool = False

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "GlobalConfig":
        return cls(
            installed_at=int(data.get("installed_at") or time.time()),
            account=data.get("account") or None,
            signal_cli_config_dir=data.get("signal_cli_config_dir") or None,
            selected_group=data.get("selected_group") or None,
            daemon_enabled=bool(data.get("daemon_enabled", False)),
        )


@dataclass
class KeywordRule:
    """A stored keyword rule; `reply` is only used by auto-reply rules."""

    keywords: List[str]
    reply: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"keywords": list(self.keywords)}
        if self.reply is not None:
            data["reply"] = self.reply
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "KeywordRule":
        keywords = [str(k) for k in data.get("keywords", []) or []]
        reply = data.get("reply")
        return cls(keywords=keywords, reply=str(reply) if reply is not None else None)


@dataclass
class GroupConfig:
    """Per-group moderation policy, persisted as one record per group id."""

    group_id: str
    group_name: str = ""
    enabled: bool = False
    only_admin_can_ban: bool = True
    require_bot_admin_to_enforce: bool = True
    welcome_template: Optional[str] = None
    auto_replies: List[KeywordRule] = field(default_factory=list)
    warn_rules: List[KeywordRule] = field(default_factory=list)
    ban_rules: List[KeywordRule] = field(default_factory=list)
    warn_window_minutes: int = DEFAULT_WARN_WINDOW_MINUTES
    warn_max_count: int = DEFAULT_WARN_MAX_COUNT
    warn_message: str = DEFAULT_WARN_MESSAGE
    desired_permission_add_member: str = EVERY_MEMBER
    desired_permission_send_message: str = EVERY_MEMBER
    desired_permission_edit_details: str = ONLY_ADMINS
    last_members_snapshot: Set[str] = field(default_factory=set)
    bot_has_admin: bool = False

    def __post_init__(self) -> None:
        self.desired_permission_add_member = normalize_permission(self.desired_permission_add_member)
        self.desired_permission_send_message = normalize_permission(self.desired_permission_send_message)
        self.desired_permission_edit_details = normalize_permission(self.desired_permission_edit_details)

    @property
    def warn_window_seconds(self) -> int:
        return int(self.warn_window_minutes) * 60

    def can_enforce(self) -> bool:
        """Whether removals and warnings may be issued right now."""

        if self.require_bot_admin_to_enforce:
            return self.bot_has_admin
        return True

    def to_dict(self) -> dict[str, Any]:
        return {
            "group_id": self.group_id,
            "group_name": self.group_name,
            "enabled": self.enabled,
            "only_admin_can_ban": self.only_admin_can_ban,
            "require_bot_admin_to_enforce": self.require_bot_admin_to_enforce,
            "welcome_template": self.welcome_template,
            "auto_replies": [rule.to_dict() for rule in self.auto_replies],
            "warn_rules": [rule.to_dict() for rule in self.warn_rules],
            "ban_rules": [rule.to_dict() for rule in self.ban_rules],
            "warn_window_minutes": self.warn_window_minutes,
            "warn_max_count": self.warn_max_count,
            "warn_message": self.warn_message,
            "desired_permission_add_member": self.desired_permission_add_member,
            "desired_permission_send_message": self.desired_permission_send_message,
            "desired_permission_edit_details": self.desired_permission_edit_details,
            # Sorted so the stored record is stable across writes.
            "last_members_snapshot": sorted(self.last_members_snapshot),
            "bot_has_admin": self.bot_has_admin,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "GroupConfig":
        defaults = cls(group_id=str(data.get("group_id", "")))
        welcome = data.get("welcome_template")
        return cls(
            group_id=defaults.group_id,
            group_name=str(data.get("group_name") or ""),
            enabled=bool(data.get("enabled", defaults.enabled)),
            only_admin_can_ban=bool(data.get("only_admin_can_ban", defaults.only_admin_can_ban)),
            require_bot_admin_to_enforce=bool(
                data.get("require_bot_admin_to_enforce", defaults.require_bot_admin_to_enforce)
            ),
            welcome_template=welcome if welcome and str(welcome).strip() else None,
            auto_replies=[KeywordRule.from_dict(r) for r in data.get("auto_replies", []) or []],
            warn_rules=[KeywordRule.from_dict(r) for r in data.get("warn_rules", []) or []],
            ban_rules=[KeywordRule.from_dict(r) for r in data.get("ban_rules", []) or []],
            warn_window_minutes=int(data.get("warn_window_minutes", defaults.warn_window_minutes)),
            warn_max_count=int(data.get("warn_max_count", defaults.warn_max_count)),
            warn_message=str(data.get("warn_message") or defaults.warn_message),
            desired_permission_add_member=data.get(
                "desired_permission_add_member", defaults.desired_permission_add_member
            ),
            desired_permission_send_message=data.get(
                "desired_permission_send_message", defaults.desired_permission_send_message
            ),
            desired_permission_edit_details=data.get(
                "desired_permission_edit_details", defaults.desired_permission_edit_details
            ),
            last_members_snapshot=set(data.get("last_members_snapshot", []) or []),
            bot_has_admin=bool(data.get("bot_has_admin", False)),
        )


@dataclass
class WarnMark:
    """Sliding-window warning counter for one (group, user) pair."""

    first_ts: int
    count: int

    def to_dict(self) -> dict[str, Any]:
        return {"first_ts": self.first_ts, "count": self.count}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "WarnMark":
        return cls(first_ts=int(data["first_ts"]), count=int(data["count"]))

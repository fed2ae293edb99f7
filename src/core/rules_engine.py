"""Rule compilation and matching logic (core domain)."""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

from core.config import GroupConfig

DEFAULT_BOT_NAME = "magicbot"

_UUID_RE = re.compile(r"([0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12})", re.IGNORECASE)
_PHONE_RE = re.compile(r"(\+\d{6,20})")


class RuleKind(enum.Enum):
    BAN = "ban"
    WARN = "warn"
    REPLY = "reply"


@dataclass(frozen=True)
class Rule:
    """Compiled keyword rule tagged with the action it triggers."""

    kind: RuleKind
    keywords: Tuple[str, ...]
    reply: Optional[str] = None


@dataclass(frozen=True)
class RuleMatch:
    """The single rule that fired for a message."""

    kind: RuleKind
    rule: Rule
    keyword: str


def _normalize_keywords(keywords: Iterable[str]) -> Tuple[str, ...]:
    normalized = (k.strip().lower() for k in keywords)
    return tuple(k for k in normalized if k)


def build_rules(config: GroupConfig) -> List[Rule]:
    """Flatten a group's stored rules into precedence order.

    Ban rules come first, then warn rules, then auto-replies in their stored
    order. Empty keywords are dropped here so matching never sees them.
    """

    compiled: List[Rule] = []
    for stored in config.ban_rules:
        compiled.append(Rule(kind=RuleKind.BAN, keywords=_normalize_keywords(stored.keywords)))
    for stored in config.warn_rules:
        compiled.append(Rule(kind=RuleKind.WARN, keywords=_normalize_keywords(stored.keywords)))
    for stored in config.auto_replies:
        compiled.append(
            Rule(
                kind=RuleKind.REPLY,
                keywords=_normalize_keywords(stored.keywords),
                reply=stored.reply or "",
            )
        )
    return compiled


def matching_keyword(keywords: Iterable[str], text: str) -> Optional[str]:
    """Return the first keyword found in text (case-insensitive), if any."""

    lowered = text.lower()
    for keyword in keywords:
        candidate = keyword.strip().lower()
        if candidate and candidate in lowered:
            return candidate
    return None


def keywords_match(keywords: Iterable[str], text: str) -> bool:
    """True when any trimmed, non-empty keyword is a substring of text."""

    return matching_keyword(keywords, text) is not None


def first_match(text: str, rules: Iterable[Rule]) -> Optional[RuleMatch]:
    """Return the first rule that matches; later rules are not evaluated."""

    for rule in rules:
        keyword = matching_keyword(rule.keywords, text)
        if keyword is not None:
            return RuleMatch(kind=rule.kind, rule=rule, keyword=keyword)
    return None


def is_ban_command(text: str, bot_name: str = DEFAULT_BOT_NAME) -> bool:
    """Detect `/ban`, `/ban@<anything>` or an embedded `/ban@<bot_name>`."""

    stripped = text.strip()
    return stripped.startswith("/ban") or f"/ban@{bot_name}" in stripped


def extract_target_from_text(text: str) -> Optional[str]:
    """Pull a UUID, or failing that a phone number, out of a command."""

    found = _UUID_RE.search(text)
    if found:
        return found.group(1)
    found = _PHONE_RE.search(text)
    if found:
        return found.group(1)
    return None

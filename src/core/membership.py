"""Membership diffing and welcome rendering helpers."""

from __future__ import annotations

from typing import Dict, Iterable, List

WELCOME_PLACEHOLDER = "##{@user}##"


def added_members(previous: Iterable[str], current: Iterable[str]) -> List[str]:
    """Return ids present now but absent from the previous snapshot, sorted."""

    return sorted(set(current) - set(previous))


def short_id(member_id: str) -> str:
    """Shorten long identifiers to `first6…last4` for display."""

    if len(member_id) <= 12:
        return member_id
    return f"{member_id[:6]}…{member_id[-4:]}"


def display_name(member_id: str, names: Dict[str, str]) -> str:
    name = names.get(member_id)
    if name:
        return name
    return short_id(member_id)


def render_welcome(template: str, member_id: str, names: Dict[str, str]) -> str:
    return template.replace(WELCOME_PLACEHOLDER, display_name(member_id, names))

from __future__ import annotations

from core.membership import added_members, render_welcome, short_id


def test_added_members_ignores_removals() -> None:
    assert added_members({"a", "b"}, {"b", "c", "d"}) == ["c", "d"]
    assert added_members({"a", "b"}, {"a"}) == []


def test_short_id() -> None:
    assert short_id("+4915112345") == "+4915112345"
    assert short_id("abcdef-1234-5678-wxyz") == "abcdef…wxyz"


def test_render_welcome_prefers_display_name() -> None:
    template = "Hello ##{@user}##, welcome to the club"
    names = {"u-1": "Alice"}

    assert render_welcome(template, "u-1", names) == "Hello Alice, welcome to the club"
    assert (
        render_welcome(template, "0a1b2c3d-4e5f-4a6b-8c7d-9e0f1a2b3c4d", names)
        == "Hello 0a1b2c…3c4d, welcome to the club"
    )

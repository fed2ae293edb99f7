from __future__ import annotations

from core.config import GroupConfig, KeywordRule
from core.rules_engine import (
    RuleKind,
    build_rules,
    extract_target_from_text,
    first_match,
    is_ban_command,
    keywords_match,
)


def test_keywords_match_is_case_insensitive_substring() -> None:
    assert keywords_match(["  Casino "], "visit the CASINO tonight")
    assert keywords_match(["foo", "bar"], "xxbarxx")
    assert not keywords_match(["foo"], "fo o")


def test_empty_keywords_never_match() -> None:
    assert not keywords_match([], "anything")
    assert not keywords_match(["", "   "], "anything")


def test_build_rules_orders_ban_warn_reply() -> None:
    config = GroupConfig(
        group_id="g",
        auto_replies=[KeywordRule(keywords=["hello"], reply="hi")],
        warn_rules=[KeywordRule(keywords=["spam"])],
        ban_rules=[KeywordRule(keywords=["scam", " "])],
    )
    rules = build_rules(config)

    assert [rule.kind for rule in rules] == [RuleKind.BAN, RuleKind.WARN, RuleKind.REPLY]
    assert rules[0].keywords == ("scam",)
    assert rules[2].reply == "hi"


def test_first_match_short_circuits_in_precedence_order() -> None:
    config = GroupConfig(
        group_id="g",
        auto_replies=[KeywordRule(keywords=["spam"], reply="hi")],
        warn_rules=[KeywordRule(keywords=["spam"])],
    )
    match = first_match("SPAM everywhere", build_rules(config))

    assert match is not None
    assert match.kind is RuleKind.WARN
    assert match.keyword == "spam"


def test_first_match_none_when_nothing_hits() -> None:
    config = GroupConfig(group_id="g", auto_replies=[KeywordRule(keywords=["hello"], reply="hi")])
    assert first_match("good morning", build_rules(config)) is None


def test_is_ban_command_variants() -> None:
    assert is_ban_command("/ban")
    assert is_ban_command("  /ban@otherbot +123456789")
    assert is_ban_command("please /ban@magicbot now")
    assert not is_ban_command("please /ban@otherbot now")
    assert not is_ban_command("ban him")
    assert is_ban_command("hey /ban@warden", bot_name="warden")


def test_extract_target_prefers_uuid_over_phone() -> None:
    uuid = "0a1b2c3d-4e5f-4a6b-8c7d-9e0f1a2b3c4d"
    assert extract_target_from_text(f"/ban +4915112345678 {uuid}") == uuid
    assert extract_target_from_text("/ban@magicbot +4915112345678") == "+4915112345678"
    assert extract_target_from_text("/ban +12345") is None
    assert extract_target_from_text("/ban@magicbot") is None

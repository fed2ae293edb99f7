from __future__ import annotations

import pytest

from core.config import GroupConfig
from core.errors import GatewayError
from core.models import GroupListing, Identity
from core.registry import GroupRegistry, build_runtime, resolve_self_id
from core.takeover import apply_takeover

from fakes import BOT_ID, BOT_NUMBER, GROUP_ID, FakeGateway, MemoryStore, make_listing


def test_resolve_self_id_prefers_member_uuid() -> None:
    listings = [make_listing(["u-1"])]
    assert resolve_self_id(listings, BOT_NUMBER) == BOT_ID
    assert resolve_self_id([], BOT_NUMBER) == BOT_NUMBER


def test_build_runtime_seeds_snapshot_and_names() -> None:
    listing = GroupListing(
        id=GROUP_ID,
        name="Club",
        admins=[Identity(id=BOT_ID)],
        members=[Identity(id=BOT_ID), Identity(id="u-1", name="Member One"), Identity(id="u-2")],
    )
    config = GroupConfig(group_id=GROUP_ID)

    runtime = build_runtime(config, listing, {"u-2": "Contact Two", "u-1": "Old"}, BOT_ID)

    assert config.group_name == "Club"
    assert config.bot_has_admin is True
    assert config.last_members_snapshot == {BOT_ID, "u-1", "u-2"}
    assert runtime.member_names["u-1"] == "Member One"
    assert runtime.member_names["u-2"] == "Contact Two"


def test_build_runtime_keeps_existing_snapshot_and_name() -> None:
    config = GroupConfig(group_id=GROUP_ID, group_name="Custom", last_members_snapshot={"u-1"})
    runtime = build_runtime(config, make_listing(["u-1", "u-2"], bot_is_admin=False), {}, BOT_ID)

    assert config.group_name == "Custom"
    assert config.last_members_snapshot == {"u-1"}
    assert config.bot_has_admin is False
    assert runtime.members == {BOT_ID, "u-1", "u-2"}


def test_load_only_tracks_stored_groups() -> None:
    store = MemoryStore()
    store.save_group(GroupConfig(group_id=GROUP_ID))
    gateway = FakeGateway(listings=[make_listing(["u-1"]), make_listing(["u-2"], group_id="other")])
    registry = GroupRegistry(gateway, store, BOT_NUMBER)

    assert registry.load() == 1
    assert GROUP_ID in registry
    assert "other" not in registry
    assert registry.self_id == BOT_ID
    assert store.load_group(GROUP_ID).bot_has_admin is True


def test_refresh_raises_when_group_disappears() -> None:
    store = MemoryStore()
    store.save_group(GroupConfig(group_id=GROUP_ID))
    gateway = FakeGateway(listings=[make_listing(["u-1"])])
    registry = GroupRegistry(gateway, store, BOT_NUMBER)
    registry.load()

    gateway.listings = []
    with pytest.raises(GatewayError):
        registry.refresh(GROUP_ID)


def test_refresh_reloads_stored_policy() -> None:
    store = MemoryStore()
    store.save_group(GroupConfig(group_id=GROUP_ID))
    gateway = FakeGateway(listings=[make_listing(["u-1"])])
    registry = GroupRegistry(gateway, store, BOT_NUMBER)
    registry.load()

    store.update_group(GROUP_ID, lambda config: setattr(config, "enabled", True))
    runtime = registry.refresh(GROUP_ID)

    assert runtime.config.enabled is True
    assert registry.get(GROUP_ID) is runtime


def test_takeover_is_noop_without_admin() -> None:
    gateway = FakeGateway()
    config = GroupConfig(group_id=GROUP_ID)
    runtime = build_runtime(config, make_listing(["u-1"], bot_is_admin=False), {}, BOT_ID)

    assert apply_takeover(gateway, runtime) is False
    assert gateway.permission_updates == []


def test_takeover_sets_all_three_permissions_and_repeats_safely() -> None:
    gateway = FakeGateway()
    config = GroupConfig(
        group_id=GROUP_ID,
        desired_permission_add_member="only_admins",
        desired_permission_send_message="whatever",
        desired_permission_edit_details="ONLY-ADMINS",
    )
    runtime = build_runtime(config, make_listing(["u-1"]), {}, BOT_ID)

    assert apply_takeover(gateway, runtime) is True
    assert apply_takeover(gateway, runtime) is True
    expected = (GROUP_ID, "ONLY_ADMINS", "EVERY_MEMBER", "ONLY_ADMINS")
    assert gateway.permission_updates == [expected, expected]

from __future__ import annotations

from typing import Callable, Dict, List, Optional

from core.config import GlobalConfig, GroupConfig, WarnMark
from core.errors import GatewayError
from core.models import (
    DataMessage,
    Envelope,
    GroupInfo,
    GroupListing,
    Identity,
    Quote,
    ReceiveEvent,
)

BOT_NUMBER = "+15550000000"
BOT_ID = "b0000000-0000-4000-8000-000000000000"
GROUP_ID = "Z3JvdXAtb25l/+abc="


class MemoryStore:
    """In-memory StatePort that copies records like a real store would."""

    def __init__(self) -> None:
        self.global_data: Optional[dict] = None
        self.groups: Dict[str, dict] = {}
        self.marks: Dict[tuple[str, str], WarnMark] = {}

    def load_global(self) -> GlobalConfig:
        if self.global_data is None:
            self.global_data = GlobalConfig().to_dict()
        return GlobalConfig.from_dict(self.global_data)

    def save_global(self, config: GlobalConfig) -> None:
        self.global_data = config.to_dict()

    def has_group(self, group_id: str) -> bool:
        return group_id in self.groups

    def load_group(self, group_id: str) -> GroupConfig:
        data = self.groups.get(group_id)
        if data is None:
            return GroupConfig(group_id=group_id)
        return GroupConfig.from_dict(data)

    def save_group(self, config: GroupConfig) -> None:
        self.groups[config.group_id] = config.to_dict()

    def update_group(self, group_id: str, mutate: Callable[[GroupConfig], None]) -> GroupConfig:
        config = self.load_group(group_id)
        mutate(config)
        self.save_group(config)
        return config

    def list_group_ids(self) -> List[str]:
        return sorted(self.groups)

    def get_warn_mark(self, group_id: str, user_id: str) -> Optional[WarnMark]:
        mark = self.marks.get((group_id, user_id))
        if mark is None:
            return None
        return WarnMark(first_ts=mark.first_ts, count=mark.count)

    def put_warn_mark(self, group_id: str, user_id: str, mark: WarnMark) -> None:
        self.marks[(group_id, user_id)] = WarnMark(first_ts=mark.first_ts, count=mark.count)

    def delete_warn_mark(self, group_id: str, user_id: str) -> None:
        self.marks.pop((group_id, user_id), None)


class FakeGateway:
    """Records every outbound action; can be told to fail specific ones."""

    def __init__(
        self,
        listings: Optional[List[GroupListing]] = None,
        contacts: Optional[Dict[str, str]] = None,
    ) -> None:
        self.listings = listings or []
        self.contacts = contacts or {}
        self.sent: List[tuple[str, str]] = []
        self.removed: List[tuple[str, str]] = []
        self.permission_updates: List[tuple[str, str, str, str]] = []
        self.fail_remove = False
        self.fail_send = False
        self.fail_listing = False

    def send_group_message(self, group_id: str, text: str) -> None:
        if self.fail_send:
            raise GatewayError("send failed")
        self.sent.append((group_id, text))

    def remove_member(self, group_id: str, member_id: str) -> None:
        if self.fail_remove:
            raise GatewayError("not allowed")
        self.removed.append((group_id, member_id))

    def update_group_permissions(
        self,
        group_id: str,
        add_member: str,
        send_messages: str,
        edit_details: str,
    ) -> None:
        self.permission_updates.append((group_id, add_member, send_messages, edit_details))

    def list_groups(self) -> List[GroupListing]:
        if self.fail_listing:
            raise GatewayError("listGroups failed")
        return list(self.listings)

    def list_contacts(self) -> Dict[str, str]:
        return dict(self.contacts)


def make_listing(
    members: List[str],
    admins: Optional[List[str]] = None,
    *,
    group_id: str = GROUP_ID,
    bot_is_admin: bool = True,
    name: str = "Club",
) -> GroupListing:
    member_entries = [Identity(id=BOT_ID, number=BOT_NUMBER)]
    member_entries.extend(Identity(id=member) for member in members)
    admin_ids = list(admins or [])
    if bot_is_admin:
        admin_ids.append(BOT_ID)
    return GroupListing(
        id=group_id,
        name=name,
        admins=[Identity(id=admin) for admin in admin_ids],
        members=member_entries,
    )


def make_event(
    text: Optional[str] = None,
    *,
    sender: str = "u-sender",
    group_id: str = GROUP_ID,
    kind: str = "DELIVER",
    quote_author: Optional[str] = None,
    with_group: bool = True,
) -> ReceiveEvent:
    quote = Quote(author=quote_author, id=1, text="quoted") if quote_author is not None else None
    group_info = GroupInfo(group_id=group_id, group_name="Club", revision=3, kind=kind) if with_group else None
    data = DataMessage(message=text, group_info=group_info, quote=quote, expires_in_seconds=0)
    envelope = Envelope(
        source=sender,
        source_number=None,
        source_uuid=sender,
        source_name="Sender",
        timestamp=1700000000000,
        data_message=data,
    )
    return ReceiveEvent(envelope=envelope, account=BOT_NUMBER)

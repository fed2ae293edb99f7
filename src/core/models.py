"""Core domain models.

These dataclasses are shared across the core and adapters to avoid tight
coupling to the gateway's JSON shapes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set

from core.config import GroupConfig

GROUP_UPDATE = "UPDATE"


@dataclass(frozen=True)
class Quote:
    """The message a data message replies to."""

    author: Optional[str]
    id: Optional[int]
    text: Optional[str]


@dataclass(frozen=True)
class GroupInfo:
    group_id: str
    group_name: Optional[str]
    revision: Optional[int]
    kind: str


@dataclass(frozen=True)
class DataMessage:
    message: Optional[str]
    group_info: Optional[GroupInfo]
    quote: Optional[Quote]
    expires_in_seconds: Optional[int]


@dataclass(frozen=True)
class Envelope:
    source: Optional[str]
    source_number: Optional[str]
    source_uuid: Optional[str]
    source_name: Optional[str]
    timestamp: Optional[int]
    data_message: Optional[DataMessage]


@dataclass(frozen=True)
class ReceiveEvent:
    """One parsed line of the gateway's receive stream."""

    envelope: Envelope
    account: Optional[str] = None

    @property
    def sender_id(self) -> str:
        env = self.envelope
        return env.source_uuid or env.source_number or env.source or "unknown"

    @property
    def group_info(self) -> Optional[GroupInfo]:
        data = self.envelope.data_message
        return data.group_info if data else None

    @property
    def is_group_update(self) -> bool:
        info = self.group_info
        return info is not None and info.kind == GROUP_UPDATE


@dataclass(frozen=True)
class Identity:
    """A member or admin entry; `id` is the uuid when known, else the number."""

    id: str
    number: Optional[str] = None
    name: Optional[str] = None


@dataclass(frozen=True)
class GroupListing:
    id: str
    name: str
    admins: List[Identity]
    members: List[Identity]


@dataclass
class GroupRuntime:
    """In-memory view of one watched group, rebuilt on every refresh."""

    config: GroupConfig
    admins: Set[str] = field(default_factory=set)
    members: Set[str] = field(default_factory=set)
    member_names: Dict[str, str] = field(default_factory=dict)
    self_id: str = ""

    @property
    def group_id(self) -> str:
        return self.config.group_id

    def is_admin(self, member_id: str) -> bool:
        return member_id in self.admins

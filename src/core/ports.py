"""Ports (interfaces) used by the moderation engine.

Ports define the minimal contracts for state and gateway adapters so that
the core can be reused with different backends and driven by fakes in tests.
"""

from __future__ import annotations

from typing import Callable, Dict, List, Optional, Protocol

from core.config import GlobalConfig, GroupConfig, WarnMark
from core.models import GroupListing


class StatePort(Protocol):
    """Durable state operations required by the engine."""

    def load_global(self) -> GlobalConfig:
        ...

    def save_global(self, config: GlobalConfig) -> None:
        ...

    def has_group(self, group_id: str) -> bool:
        ...

    def load_group(self, group_id: str) -> GroupConfig:
        ...

    def save_group(self, config: GroupConfig) -> None:
        ...

    def update_group(self, group_id: str, mutate: Callable[[GroupConfig], None]) -> GroupConfig:
        ...

    def list_group_ids(self) -> List[str]:
        ...

    def get_warn_mark(self, group_id: str, user_id: str) -> Optional[WarnMark]:
        ...

    def put_warn_mark(self, group_id: str, user_id: str, mark: WarnMark) -> None:
        ...

    def delete_warn_mark(self, group_id: str, user_id: str) -> None:
        ...


class GatewayPort(Protocol):
    """Discrete gateway actions; each call may raise GatewayError."""

    def send_group_message(self, group_id: str, text: str) -> None:
        ...

    def remove_member(self, group_id: str, member_id: str) -> None:
        ...

    def update_group_permissions(
        self,
        group_id: str,
        add_member: str,
        send_messages: str,
        edit_details: str,
    ) -> None:
        ...

    def list_groups(self) -> List[GroupListing]:
        ...

    def list_contacts(self) -> Dict[str, str]:
        ...

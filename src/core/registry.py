"""Group runtime registry.

Holds one GroupRuntime per watched group. Runtimes are rebuilt from the
gateway's listings and the stored config, never patched in place, so a
refresh always reflects exactly what the gateway reports.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional

from core.config import GroupConfig
from core.errors import GatewayError
from core.models import GroupListing, GroupRuntime
from core.ports import GatewayPort, StatePort

LOGGER = logging.getLogger(__name__)


def resolve_self_id(listings: Iterable[GroupListing], account: str) -> str:
    """Return the moderator's member id, falling back to the account itself."""

    for listing in listings:
        for member in listing.members:
            if member.number and member.number == account:
                return member.id
    return account


def merge_member_names(contacts: Dict[str, str], listing: GroupListing) -> Dict[str, str]:
    """Contacts first, then names carried on the member entries."""

    names = dict(contacts)
    for member in listing.members:
        if member.name:
            names[member.id] = member.name
    return names


def build_runtime(
    config: GroupConfig,
    listing: GroupListing,
    contacts: Dict[str, str],
    self_id: str,
) -> GroupRuntime:
    """Derive a fresh runtime and copy derived fields back into config."""

    admins = {admin.id for admin in listing.admins}
    members = {member.id for member in listing.members}

    if not config.group_name:
        config.group_name = listing.name
    config.bot_has_admin = self_id in admins
    # An empty snapshot is seeded with the current roster so the first
    # observation of a group never produces welcome messages.
    if not config.last_members_snapshot:
        config.last_members_snapshot = set(members)

    return GroupRuntime(
        config=config,
        admins=admins,
        members=members,
        member_names=merge_member_names(contacts, listing),
        self_id=self_id,
    )


class GroupRegistry:
    """In-memory map of watched group id to runtime state."""

    def __init__(self, gateway: GatewayPort, state: StatePort, account: str) -> None:
        self._gateway = gateway
        self._state = state
        self._account = account
        self._groups: Dict[str, GroupRuntime] = {}
        self.self_id = account

    def __contains__(self, group_id: object) -> bool:
        return group_id in self._groups

    def __len__(self) -> int:
        return len(self._groups)

    def get(self, group_id: str) -> Optional[GroupRuntime]:
        return self._groups.get(group_id)

    def group_ids(self) -> List[str]:
        return sorted(self._groups)

    def load(self) -> int:
        """Build runtimes for every stored group the gateway still lists."""

        listings = self._gateway.list_groups()
        self.self_id = resolve_self_id(listings, self._account)
        contacts = self._gateway.list_contacts()

        self._groups = {}
        for listing in listings:
            if not self._state.has_group(listing.id):
                continue
            config = self._state.load_group(listing.id)
            runtime = build_runtime(config, listing, contacts, self.self_id)
            self._state.save_group(runtime.config)
            self._groups[listing.id] = runtime

        LOGGER.info("Loaded %s watched group(s); self id = %s", len(self._groups), self.self_id)
        return len(self._groups)

    def refresh(self, group_id: str) -> GroupRuntime:
        """Rebuild one group's runtime from the gateway and the store."""

        listings = self._gateway.list_groups()
        listing = next((item for item in listings if item.id == group_id), None)
        if listing is None:
            raise GatewayError(f"Group not found in gateway listing: {group_id}")
        contacts = self._gateway.list_contacts()

        # Reload from the store so edits made while the engine runs are honored.
        config = self._state.load_group(group_id)
        runtime = build_runtime(config, listing, contacts, self.self_id)
        self._state.save_group(runtime.config)
        self._groups[group_id] = runtime
        return runtime

"""signal-cli JSON-to-core mapping adapter.

This keeps the gateway's JSON shapes out of the core. Each function maps one
payload kind into core types with explicit defaulting rules.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional

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

LOGGER = logging.getLogger(__name__)


def _str_or_none(value: Any) -> Optional[str]:
    if isinstance(value, str) and value:
        return value
    return None


def _int_or_none(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    return None


def resolve_identity_id(entry: Dict[str, Any]) -> Optional[str]:
    """Identifier for a member/admin/contact entry: uuid, else number."""

    return _str_or_none(entry.get("uuid")) or _str_or_none(entry.get("number"))


def parse_identities(raw: Any) -> List[Identity]:
    if not isinstance(raw, list):
        return []
    identities: List[Identity] = []
    for entry in raw:
        if not isinstance(entry, dict):
            continue
        identity_id = resolve_identity_id(entry)
        if not identity_id:
            continue
        identities.append(
            Identity(
                id=identity_id,
                number=_str_or_none(entry.get("number")),
                name=_str_or_none(entry.get("name")),
            )
        )
    return identities


def parse_group_listing(payload: Any) -> List[GroupListing]:
    """Map `listGroups` output; entries without an id are dropped."""

    if not isinstance(payload, list):
        raise GatewayError("listGroups output is not an array")

    groups: List[GroupListing] = []
    for entry in payload:
        if not isinstance(entry, dict):
            continue
        group_id = _str_or_none(entry.get("id"))
        if not group_id:
            continue
        groups.append(
            GroupListing(
                id=group_id,
                name=_str_or_none(entry.get("name")) or "",
                admins=parse_identities(entry.get("admins")),
                members=parse_identities(entry.get("members")),
            )
        )
    return groups


def parse_contacts(payload: Any) -> Dict[str, str]:
    """Fold `listContacts` output into an id -> display name map.

    Both the uuid and the number of a named contact map to the same name.
    """

    names: Dict[str, str] = {}
    if not isinstance(payload, list):
        return names
    for entry in payload:
        if not isinstance(entry, dict):
            continue
        name = _str_or_none(entry.get("name"))
        if not name:
            continue
        for key in ("uuid", "number"):
            value = _str_or_none(entry.get(key))
            if value:
                names[value] = name
    return names


def _parse_group_info(raw: Any) -> Optional[GroupInfo]:
    if not isinstance(raw, dict):
        return None
    group_id = _str_or_none(raw.get("groupId"))
    if not group_id:
        return None
    return GroupInfo(
        group_id=group_id,
        group_name=_str_or_none(raw.get("groupName")),
        revision=_int_or_none(raw.get("revision")),
        kind=_str_or_none(raw.get("type")) or "",
    )


def _parse_quote(raw: Any) -> Optional[Quote]:
    if not isinstance(raw, dict):
        return None
    return Quote(
        author=_str_or_none(raw.get("author")),
        id=_int_or_none(raw.get("id")),
        text=_str_or_none(raw.get("text")),
    )


def _parse_data_message(raw: Any) -> Optional[DataMessage]:
    if not isinstance(raw, dict):
        return None
    message = raw.get("message")
    return DataMessage(
        message=message if isinstance(message, str) else None,
        group_info=_parse_group_info(raw.get("groupInfo")),
        quote=_parse_quote(raw.get("quote")),
        expires_in_seconds=_int_or_none(raw.get("expiresInSeconds")),
    )


def build_event(payload: Any) -> Optional[ReceiveEvent]:
    """Map one decoded receive payload; None when it has no envelope."""

    if not isinstance(payload, dict):
        return None
    raw_envelope = payload.get("envelope")
    if not isinstance(raw_envelope, dict):
        return None
    envelope = Envelope(
        source=_str_or_none(raw_envelope.get("source")),
        source_number=_str_or_none(raw_envelope.get("sourceNumber")),
        source_uuid=_str_or_none(raw_envelope.get("sourceUuid")),
        source_name=_str_or_none(raw_envelope.get("sourceName")),
        timestamp=_int_or_none(raw_envelope.get("timestamp")),
        data_message=_parse_data_message(raw_envelope.get("dataMessage")),
    )
    return ReceiveEvent(envelope=envelope, account=_str_or_none(payload.get("account")))


def parse_receive_line(line: str) -> Optional[ReceiveEvent]:
    """Parse one stream line; malformed lines yield None instead of raising."""

    stripped = line.strip()
    if not stripped:
        return None
    try:
        payload = json.loads(stripped)
    except json.JSONDecodeError:
        LOGGER.debug("Skipping malformed receive line: %.80s", stripped)
        return None
    return build_event(payload)

"""Group permission takeover once the moderator holds admin rights."""

from __future__ import annotations

import logging

from core.models import GroupRuntime
from core.ports import GatewayPort

LOGGER = logging.getLogger(__name__)


def apply_takeover(gateway: GatewayPort, runtime: GroupRuntime) -> bool:
    """Push the desired permission settings; returns False when skipped.

    Safe to repeat: the gateway treats identical settings as a no-op update.
    """

    config = runtime.config
    if not config.bot_has_admin:
        LOGGER.info("Takeover skipped for %s: moderator is not an admin", config.group_id)
        return False

    gateway.update_group_permissions(
        config.group_id,
        add_member=config.desired_permission_add_member,
        send_messages=config.desired_permission_send_message,
        edit_details=config.desired_permission_edit_details,
    )
    LOGGER.info(
        "Takeover applied for %s (add=%s, send=%s, edit=%s)",
        config.group_id,
        config.desired_permission_add_member,
        config.desired_permission_send_message,
        config.desired_permission_edit_details,
    )
    return True

"""
Kitchen channel control protocol.

Client -> server:
    {"type": "join:restaurant", "restaurantId": "...", "token": "..."}
    {"type": "leave:restaurant", "restaurantId": "..."}
    {"type": "ping"}

Server -> client:
    {"type": "joined" | "left", "restaurantId": "..."}
    {"type": "pong"}
    {"type": "error", "error": "...", "code": "..."}
    order envelopes: {"event": "order:new" | "order:updated" | "order:deleted", ...}
"""

import json
import logging
from typing import Any, Optional

from menucraft.core.config import Settings
from menucraft.core.exceptions import AuthorizationError
from menucraft.core.security import authorize_channel_join
from menucraft.services.realtime.channels import ChannelRegistry, KitchenSession

logger = logging.getLogger(__name__)

JOIN = "join:restaurant"
LEAVE = "leave:restaurant"
PING = "ping"


def error_message(error: str, code: str = "bad_request") -> dict[str, Any]:
    return {"type": "error", "error": error, "code": code}


async def handle_control_message(
    raw: str,
    session: KitchenSession,
    registry: ChannelRegistry,
    settings: Settings,
) -> Optional[dict[str, Any]]:
    """Apply one client message and return the reply to send back."""
    try:
        message = json.loads(raw)
    except ValueError:
        return error_message("Invalid JSON format")

    if not isinstance(message, dict):
        return error_message("Messages must be JSON objects")

    kind = message.get("type")

    if kind == PING:
        return {"type": "pong"}

    if kind not in (JOIN, LEAVE):
        return error_message(f"Unknown message type: {kind}")

    restaurant_id = message.get("restaurantId")
    if not isinstance(restaurant_id, str) or not restaurant_id:
        return error_message("restaurantId is required")

    if kind == LEAVE:
        await registry.leave(restaurant_id, session)
        return {"type": "left", "restaurantId": restaurant_id}

    try:
        authorize_channel_join(restaurant_id, message.get("token"), settings)
    except AuthorizationError as e:
        logger.warning(f"Session {session.session_id} refused on restaurant-{restaurant_id}: {e.message}")
        return error_message(e.message, e.code)

    await registry.join(restaurant_id, session)
    return {"type": "joined", "restaurantId": restaurant_id}

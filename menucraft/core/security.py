"""
Kitchen Channel Tokens

Signed HS256 tokens that bind a kitchen session to exactly one restaurant.
A session may only join the realtime channel of the restaurant named in its
token.
"""

import logging
from datetime import timedelta
from typing import Any, Optional

import jwt

from menucraft.core.config import Settings, get_settings
from menucraft.core.exceptions import AuthorizationError
from menucraft.core.timeutils import utcnow

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
KITCHEN_SCOPE = "kitchen"


def issue_kitchen_token(
    restaurant_id: str,
    settings: Optional[Settings] = None,
    ttl_minutes: Optional[int] = None,
) -> str:
    """Issue a kitchen token for one restaurant."""
    settings = settings or get_settings()
    now = utcnow()
    ttl = ttl_minutes if ttl_minutes is not None else settings.kitchen_token_ttl_minutes
    payload = {
        "restaurant_id": restaurant_id,
        "scope": KITCHEN_SCOPE,
        "iat": now,
        "exp": now + timedelta(minutes=ttl),
    }
    return jwt.encode(payload, settings.token_secret, algorithm=ALGORITHM)


def verify_kitchen_token(
    token: Optional[str],
    restaurant_id: str,
    settings: Optional[Settings] = None,
) -> dict[str, Any]:
    """
    Decode a kitchen token and check it grants access to ``restaurant_id``.

    Raises:
        AuthorizationError: missing, expired, malformed or foreign token
    """
    settings = settings or get_settings()

    if not token:
        raise AuthorizationError("Kitchen token required to join this channel")

    try:
        payload = jwt.decode(
            token,
            settings.token_secret,
            algorithms=[ALGORITHM],
            options={"verify_signature": True, "verify_exp": True},
        )
    except jwt.ExpiredSignatureError:
        raise AuthorizationError("Kitchen token expired")
    except jwt.InvalidTokenError as e:
        logger.warning(f"Rejected kitchen token: {e}")
        raise AuthorizationError("Invalid kitchen token")

    if payload.get("scope") != KITCHEN_SCOPE:
        raise AuthorizationError("Token is not a kitchen token")

    if payload.get("restaurant_id") != restaurant_id:
        raise AuthorizationError("Token does not grant access to this restaurant")

    return payload


def authorize_channel_join(
    restaurant_id: str,
    token: Optional[str],
    settings: Optional[Settings] = None,
) -> None:
    """Gate a channel join according to the configured policy."""
    settings = settings or get_settings()
    if not settings.requires_channel_auth:
        return
    verify_kitchen_token(token, restaurant_id, settings)

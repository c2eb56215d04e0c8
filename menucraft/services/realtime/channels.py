"""
Channel Registry

Maps restaurant id -> set of joined kitchen sessions for this process.

Join and leave take a lock; fan-out works on a snapshot of the members taken
at emission time, so sessions coming and going never block or disturb an
emission already under way. A session whose send fails is dropped from every
channel; the failure never reaches the publisher.
"""

import asyncio
import logging
from typing import Any, Protocol
from uuid import uuid4

from fastapi import WebSocket

logger = logging.getLogger(__name__)


class KitchenSession(Protocol):
    """Anything the registry can push a JSON message to."""

    session_id: str

    async def send_json(self, message: dict[str, Any]) -> None:
        ...


class WebSocketSession:
    """Adapter from a FastAPI WebSocket to a registry session."""

    def __init__(self, websocket: WebSocket):
        self.websocket = websocket
        self.session_id = f"ws-{uuid4().hex}"
        # Replies and fan-out may write concurrently
        self._send_lock = asyncio.Lock()

    async def send_json(self, message: dict[str, Any]) -> None:
        async with self._send_lock:
            await self.websocket.send_json(message)

    def __repr__(self):
        return f"<WebSocketSession {self.session_id}>"


class ChannelRegistry:
    """Restaurant-scoped membership of kitchen sessions."""

    def __init__(self):
        self._channels: dict[str, set[KitchenSession]] = {}
        self._lock = asyncio.Lock()

    async def join(self, restaurant_id: str, session: KitchenSession) -> None:
        async with self._lock:
            self._channels.setdefault(restaurant_id, set()).add(session)
        logger.info(f"Session {session.session_id} joined restaurant-{restaurant_id}")

    async def leave(self, restaurant_id: str, session: KitchenSession) -> None:
        async with self._lock:
            members = self._channels.get(restaurant_id)
            if members is None:
                return
            members.discard(session)
            if not members:
                del self._channels[restaurant_id]
        logger.info(f"Session {session.session_id} left restaurant-{restaurant_id}")

    async def leave_all(self, session: KitchenSession) -> list[str]:
        """Remove a session from every channel (disconnect)."""
        left = []
        async with self._lock:
            for restaurant_id in list(self._channels):
                members = self._channels[restaurant_id]
                if session in members:
                    members.discard(session)
                    left.append(restaurant_id)
                    if not members:
                        del self._channels[restaurant_id]
        return left

    def members(self, restaurant_id: str) -> list[KitchenSession]:
        """Snapshot of the sessions currently joined to a channel."""
        return list(self._channels.get(restaurant_id, ()))

    def channels_for(self, session: KitchenSession) -> list[str]:
        return [rid for rid, members in list(self._channels.items()) if session in members]

    async def broadcast(self, restaurant_id: str, message: dict[str, Any]) -> int:
        """
        Push ``message`` to every session joined to ``restaurant_id``.

        Returns:
            Number of sessions the message was delivered to
        """
        members = self.members(restaurant_id)
        if not members:
            return 0

        results = await asyncio.gather(
            *(session.send_json(message) for session in members),
            return_exceptions=True,
        )

        delivered = 0
        for session, result in zip(members, results):
            if isinstance(result, Exception):
                logger.warning(f"Dropping session {session.session_id}: send failed ({result!r})")
                await self.leave_all(session)
            else:
                delivered += 1

        logger.debug(f"Fan-out to restaurant-{restaurant_id}: {delivered}/{len(members)} sessions")
        return delivered

"""
Kitchen Event Listener

Joins the restaurant's realtime channel and feeds every order envelope into
a KitchenSyncClient. Push delivery is best effort: on any disconnect the
listener reconnects with a capped backoff and asks the sync client for an
immediate re-fetch after each (re)join, since events emitted while it was
away are gone for good.
"""

import asyncio
import json
import logging
from typing import Any, Callable, Optional

import websockets

from menucraft.core.exceptions import AuthorizationError, TransportError
from menucraft.kitchen.sync import KitchenSyncClient

logger = logging.getLogger(__name__)

INITIAL_BACKOFF = 1.0
MAX_BACKOFF = 30.0


def channel_url(api_base_url: str) -> str:
    """``http://host:port`` -> ``ws://host:port/ws/kitchen``."""
    base = api_base_url.rstrip("/")
    if base.startswith("https://"):
        base = "wss://" + base[len("https://"):]
    elif base.startswith("http://"):
        base = "ws://" + base[len("http://"):]
    return f"{base}/ws/kitchen"


class KitchenEventListener:
    """Realtime channel consumer for one restaurant."""

    def __init__(
        self,
        sync: KitchenSyncClient,
        url: str,
        token: Optional[str] = None,
        max_backoff: float = MAX_BACKOFF,
        connect: Callable[..., Any] = websockets.connect,
    ):
        self.sync = sync
        self.url = url
        self.token = token
        self.max_backoff = max_backoff
        self._connect = connect
        self._running = False
        self._websocket = None

    @property
    def restaurant_id(self) -> str:
        return self.sync.restaurant_id

    async def run(self) -> None:
        """
        Listen until ``stop()``.

        Raises:
            AuthorizationError: the server refused the join; retrying with the
                same token cannot succeed
        """
        self._running = True
        backoff = INITIAL_BACKOFF

        while self._running:
            try:
                async with self._connect(self.url) as websocket:
                    self._websocket = websocket
                    await self._join(websocket)
                    backoff = INITIAL_BACKOFF
                    self.sync.request_refresh()
                    await self._consume(websocket)
            except AuthorizationError:
                self._running = False
                raise
            except (OSError, asyncio.TimeoutError, TransportError, websockets.WebSocketException) as e:
                if not self._running:
                    break
                logger.warning(f"Kitchen channel lost ({e!r}); reconnecting in {backoff:.0f}s")
                await asyncio.sleep(backoff)
                backoff = min(backoff * 2, self.max_backoff)
            finally:
                self._websocket = None

    async def stop(self) -> None:
        self._running = False
        if self._websocket is not None:
            await self._websocket.close()

    async def _join(self, websocket) -> None:
        await websocket.send(json.dumps({
            "type": "join:restaurant",
            "restaurantId": self.restaurant_id,
            "token": self.token,
        }))

        while True:
            reply = self._decode(await websocket.recv())
            if reply is None:
                continue
            kind = reply.get("type")
            if kind == "joined":
                logger.info(f"Joined kitchen channel for restaurant {self.restaurant_id}")
                return
            if kind == "error":
                if reply.get("code") == AuthorizationError.code:
                    raise AuthorizationError(reply.get("error", "Channel join refused"))
                raise TransportError(reply.get("error", "Channel join failed"))

    async def _consume(self, websocket) -> None:
        async for raw in websocket:
            message = self._decode(raw)
            if message is None:
                continue
            if "event" in message:
                self.sync.apply_event(message)
            elif message.get("type") == "error":
                logger.warning(f"Kitchen channel error: {message.get('error')}")
        # Server closed the socket cleanly; treat like any other drop
        if self._running:
            raise TransportError("Kitchen channel closed by server")

    @staticmethod
    def _decode(raw: Any) -> Optional[dict[str, Any]]:
        try:
            message = json.loads(raw)
        except ValueError:
            logger.debug(f"Ignoring non-JSON frame: {raw!r}")
            return None
        return message if isinstance(message, dict) else None

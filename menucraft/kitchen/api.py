"""
Order API Client

Async HTTP access to the order endpoints for kitchen stations and scripts.
Failures come back as the same domain errors the server raises, so callers
handle a rejected transition the same way whether it was decided locally or
remotely.
"""

import logging
from typing import Any, Optional

import httpx

from menucraft.core.exceptions import (
    AuthorizationError,
    InvalidTransitionError,
    NotFoundError,
    OrderingError,
    TransportError,
    ValidationError,
)
from menucraft.models import OrderStatus
from menucraft.schemas import OrderCreate, OrderSnapshot, RestaurantSummary

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0


class OrdersApiClient:
    """Thin async client for ``/api/orders`` and ``/api/restaurants``."""

    def __init__(
        self,
        base_url: str,
        timeout: float = DEFAULT_TIMEOUT,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._client = client or httpx.AsyncClient(base_url=self.base_url, timeout=timeout)

    async def __aenter__(self) -> "OrdersApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    # =========================================================================
    # ENDPOINTS
    # =========================================================================

    async def get_restaurant(self, slug: str) -> RestaurantSummary:
        data = await self._request("GET", f"/api/restaurants/{slug}")
        return RestaurantSummary.model_validate(data)

    async def place_order(self, slug: str, order: OrderCreate) -> OrderSnapshot:
        body = order.model_dump(mode="json", by_alias=True, exclude_none=True)
        data = await self._request("POST", f"/api/orders/restaurant/{slug}", json=body)
        return OrderSnapshot.model_validate(data)

    async def list_orders(
        self,
        slug: str,
        status: Optional[OrderStatus] = None,
        limit: Optional[int] = None,
    ) -> list[OrderSnapshot]:
        params: dict[str, Any] = {}
        if status is not None:
            params["status"] = OrderStatus(status).value
        if limit is not None:
            params["limit"] = limit
        data = await self._request("GET", f"/api/orders/slug/{slug}", params=params)
        return [OrderSnapshot.model_validate(item) for item in data]

    async def get_order(self, order_id: str) -> OrderSnapshot:
        data = await self._request("GET", f"/api/orders/{order_id}")
        return OrderSnapshot.model_validate(data)

    async def update_status(self, order_id: str, status: OrderStatus) -> OrderSnapshot:
        data = await self._request(
            "PUT",
            f"/api/orders/{order_id}/status",
            json={"status": OrderStatus(status).value},
        )
        return OrderSnapshot.model_validate(data)

    async def delete_order(self, order_id: str) -> None:
        try:
            await self._request("DELETE", f"/api/orders/{order_id}")
        except NotFoundError:
            # Already gone
            pass

    # =========================================================================
    # TRANSPORT
    # =========================================================================

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.TimeoutException as e:
            raise TransportError(f"{method} {path} timed out") from e
        except httpx.HTTPError as e:
            raise TransportError(f"{method} {path} failed: {e}") from e

        if response.is_success:
            if response.status_code == 204 or not response.content:
                return None
            return response.json()

        raise self._error_from_response(method, path, response)

    @staticmethod
    def _error_from_response(method: str, path: str, response: httpx.Response) -> OrderingError:
        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}

        message = body.get("error") or f"{method} {path} returned {response.status_code}"
        detail = body.get("detail")
        status = response.status_code

        if status >= 500:
            return TransportError(message, detail)
        if status == 404:
            return NotFoundError(message, detail)
        if status in (401, 403):
            return AuthorizationError(message, detail)
        if body.get("code") == InvalidTransitionError.code:
            detail = detail if isinstance(detail, dict) else {}
            return InvalidTransitionError(detail.get("current"), detail.get("requested"), message=message)
        return ValidationError(message, detail)

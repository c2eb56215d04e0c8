"""
KitchenSyncClient: snapshot replacement, reconciliation polling and
optimistic kitchen actions.
"""

import asyncio
from datetime import timedelta
from typing import Optional

import pytest

from menucraft.core.exceptions import InvalidTransitionError, TransportError
from menucraft.core.timeutils import utcnow
from menucraft.kitchen.sync import KitchenSyncClient
from menucraft.models import OrderStatus
from menucraft.schemas import OrderSnapshot, RestaurantSummary
from tests.helpers import snapshot


class FakeOrdersApi:
    """Server-side truth held in memory."""

    def __init__(self):
        self.orders: dict[str, OrderSnapshot] = {}
        self.fail_with: Optional[Exception] = None
        self.list_calls = 0
        self.during_call = None

    def put(self, order: OrderSnapshot) -> None:
        self.orders[order.id] = order

    async def get_restaurant(self, slug):
        return RestaurantSummary(id="r-1", slug=slug, name="Pizza Palace", tax_rate="0.08", currency="USD")

    async def list_orders(self, slug, status=None, limit=None):
        self.list_calls += 1
        if self.fail_with:
            raise self.fail_with
        return list(self.orders.values())

    async def update_status(self, order_id, status):
        if self.during_call:
            self.during_call()
        if self.fail_with:
            raise self.fail_with
        updated = self.orders[order_id].model_copy(update={"status": status, "started_at": utcnow()})
        self.orders[order_id] = updated
        return updated

    async def delete_order(self, order_id):
        if self.fail_with:
            raise self.fail_with
        self.orders.pop(order_id, None)


@pytest.fixture
def api():
    return FakeOrdersApi()


@pytest.fixture
def sync(api):
    return KitchenSyncClient(api, "pizza-palace", "r-1", poll_interval=60)


def envelope(event, order):
    payload = order.model_dump(mode="json", by_alias=True) if isinstance(order, OrderSnapshot) else order
    return {"event": event, "restaurantId": "r-1", "order": payload}


# ============================================================================
# RECONCILIATION
# ============================================================================

class TestRefresh:
    async def test_fetch_replaces_local_state(self, api, sync):
        sync.apply_snapshot(snapshot("stale"))
        api.put(snapshot("o-1"))

        assert await sync.refresh()

        assert [o.id for o in sync.orders()] == ["o-1"]
        assert sync.last_refresh_at is not None

    async def test_failed_fetch_keeps_last_known_state(self, api, sync):
        api.put(snapshot("o-1"))
        await sync.refresh()
        api.fail_with = TransportError("network down")

        assert not await sync.refresh()

        assert [o.id for o in sync.orders()] == ["o-1"]

    async def test_missed_event_is_corrected_by_poll(self, api, sync):
        """The order:updated push never arrived; the next poll fixes the view."""
        api.put(snapshot("o-1"))
        await sync.refresh()
        api.put(snapshot("o-1", status=OrderStatus.IN_PROGRESS, started_at=utcnow()))

        assert sync.get("o-1").status == OrderStatus.PENDING
        await sync.refresh()

        assert sync.get("o-1").status == OrderStatus.IN_PROGRESS
        assert sync.pending() == []
        assert [o.id for o in sync.in_progress()] == ["o-1"]

    async def test_for_restaurant_resolves_slug(self, api):
        sync = await KitchenSyncClient.for_restaurant(api, "pizza-palace", poll_interval=5)

        assert sync.restaurant_id == "r-1"
        assert sync.poll_interval == 5


class TestRunLoop:
    async def test_polls_on_interval(self, api):
        sync = KitchenSyncClient(api, "pizza-palace", "r-1", poll_interval=0.01)
        task = asyncio.create_task(sync.run())

        await asyncio.sleep(0.1)
        sync.stop()
        await asyncio.wait_for(task, timeout=1)

        assert api.list_calls >= 3

    async def test_requested_refresh_runs_early(self, api, sync):
        task = asyncio.create_task(sync.run())
        await asyncio.sleep(0.01)
        assert api.list_calls == 1

        sync.request_refresh()
        await asyncio.sleep(0.01)

        assert api.list_calls == 2
        sync.stop()
        await asyncio.wait_for(task, timeout=1)


# ============================================================================
# REALTIME EVENTS
# ============================================================================

class TestApplyEvent:
    def test_new_and_updated_replace_wholesale(self, sync):
        assert sync.apply_event(envelope("order:new", snapshot("o-1")))
        updated = snapshot("o-1", status=OrderStatus.IN_PROGRESS, started_at=utcnow())

        assert sync.apply_event(envelope("order:updated", updated))

        assert sync.get("o-1").status == OrderStatus.IN_PROGRESS
        assert sync.get("o-1").started_at is not None

    def test_deleted(self, sync):
        sync.apply_snapshot(snapshot("o-1"))

        assert sync.apply_event(envelope("order:deleted", {"id": "o-1", "restaurantId": "r-1"}))

        assert sync.get("o-1") is None

    def test_other_restaurant_ignored(self, sync):
        foreign = envelope("order:new", snapshot("o-9", restaurant_id="r-2"))
        foreign["restaurantId"] = "r-2"

        assert not sync.apply_event(foreign)
        assert sync.orders() == []

    def test_unknown_event_ignored(self, sync):
        assert not sync.apply_event(envelope("order:eaten", snapshot("o-1")))

    def test_malformed_snapshot_dropped_and_refetched(self, sync):
        sync.apply_snapshot(snapshot("o-1"))

        assert not sync.apply_event(envelope("order:updated", {"id": "o-1"}))

        assert sync.get("o-1").status == OrderStatus.PENDING
        assert sync._refresh_requested.is_set()

    @pytest.mark.parametrize("event", ["order:deleted", "order:new"])
    def test_non_object_payload_dropped_and_refetched(self, sync, event):
        sync.apply_snapshot(snapshot("o-1"))

        assert not sync.apply_event({"event": event, "restaurantId": "r-1", "order": "o-1"})

        assert sync.get("o-1") is not None
        assert sync._refresh_requested.is_set()


# ============================================================================
# KITCHEN ACTIONS
# ============================================================================

class TestOptimisticActions:
    async def test_update_is_visible_before_server_answers(self, api, sync):
        order = snapshot("o-1")
        api.put(order)
        sync.apply_snapshot(order)
        seen = {}
        api.during_call = lambda: seen.setdefault("status", sync.get("o-1").status)

        result = await sync.update_status("o-1", OrderStatus.IN_PROGRESS)

        assert seen["status"] == OrderStatus.IN_PROGRESS
        assert result.status == OrderStatus.IN_PROGRESS
        assert sync.get("o-1") == result

    async def test_failure_reverts_and_requests_refresh(self, api, sync):
        order = snapshot("o-1")
        api.put(order)
        sync.apply_snapshot(order)
        api.fail_with = TransportError("network down")

        with pytest.raises(TransportError):
            await sync.update_status("o-1", OrderStatus.IN_PROGRESS)

        assert sync.get("o-1") == order
        assert sync._refresh_requested.is_set()

    async def test_failure_does_not_clobber_newer_event(self, api, sync):
        order = snapshot("o-1")
        api.put(order)
        sync.apply_snapshot(order)
        cancelled = snapshot("o-1", status=OrderStatus.CANCELLED, cancelled_at=utcnow())
        api.during_call = lambda: sync.apply_snapshot(cancelled)
        api.fail_with = InvalidTransitionError("CANCELLED", "IN_PROGRESS")

        with pytest.raises(InvalidTransitionError):
            await sync.update_status("o-1", OrderStatus.IN_PROGRESS)

        assert sync.get("o-1").status == OrderStatus.CANCELLED

    async def test_stale_local_view_still_asks_server(self, api, sync):
        """Local copy missed the start; the server accepts the completion."""
        sync.apply_snapshot(snapshot("o-1"))
        api.put(snapshot("o-1", status=OrderStatus.IN_PROGRESS, started_at=utcnow()))

        result = await sync.update_status("o-1", OrderStatus.COMPLETED)

        assert result.status == OrderStatus.COMPLETED
        assert sync.get("o-1").status == OrderStatus.COMPLETED

    async def test_stale_local_view_rejected_by_server_requests_refresh(self, api, sync):
        sync.apply_snapshot(snapshot("o-1"))
        api.fail_with = InvalidTransitionError("PENDING", "COMPLETED")

        with pytest.raises(InvalidTransitionError):
            await sync.update_status("o-1", OrderStatus.COMPLETED)

        assert sync.get("o-1").status == OrderStatus.PENDING
        assert sync._refresh_requested.is_set()

    async def test_delete_restores_on_failure(self, api, sync):
        order = snapshot("o-1")
        sync.apply_snapshot(order)
        api.fail_with = TransportError("network down")

        with pytest.raises(TransportError):
            await sync.delete_order("o-1")

        assert sync.get("o-1") == order

    async def test_delete(self, api, sync):
        api.put(snapshot("o-1"))
        sync.apply_snapshot(snapshot("o-1"))

        await sync.delete_order("o-1")

        assert sync.get("o-1") is None
        assert "o-1" not in api.orders


# ============================================================================
# QUEUES & STATS
# ============================================================================

class TestQueues:
    def test_partitioned_newest_first(self, sync):
        sync.apply_snapshot(snapshot("old", minutes_ago=20, order_number=1))
        sync.apply_snapshot(snapshot("new", minutes_ago=1, order_number=2))
        sync.apply_snapshot(snapshot("cooking", status=OrderStatus.IN_PROGRESS, order_number=3))
        sync.apply_snapshot(snapshot("done", status=OrderStatus.COMPLETED, order_number=4))
        sync.apply_snapshot(snapshot("gone", status=OrderStatus.CANCELLED, order_number=5))

        assert [o.id for o in sync.pending()] == ["new", "old"]
        assert [o.id for o in sync.in_progress()] == ["cooking"]
        assert [o.id for o in sync.completed()] == ["done"]

    def test_stats(self, sync):
        now = utcnow().replace(hour=18, minute=0, second=0, microsecond=0)
        placed = now - timedelta(hours=2)
        sync.apply_snapshot(snapshot("a", placed_at=placed))
        sync.apply_snapshot(snapshot(
            "b", status=OrderStatus.COMPLETED, placed_at=placed,
            started_at=placed, completed_at=placed + timedelta(minutes=20),
        ))
        sync.apply_snapshot(snapshot(
            "c", status=OrderStatus.COMPLETED, placed_at=placed,
            started_at=placed, completed_at=placed + timedelta(minutes=30),
        ))
        sync.apply_snapshot(snapshot("yesterday", placed_at=now - timedelta(days=1)))

        stats = sync.stats(now)

        assert (stats.total, stats.pending, stats.in_progress, stats.completed) == (3, 1, 0, 2)
        assert stats.avg_prep_minutes == 25.0

    def test_stats_without_completed_orders(self, sync):
        sync.apply_snapshot(snapshot("a"))

        assert sync.stats().avg_prep_minutes is None

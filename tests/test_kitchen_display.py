"""
Derived order-card fields: elapsed time, urgency and workflow buttons.
"""

from datetime import timedelta

import pytest

from menucraft.core.config import Settings
from menucraft.core.timeutils import utcnow
from menucraft.kitchen import display
from menucraft.kitchen.display import (
    OrderView,
    elapsed_since,
    format_elapsed,
    is_urgent,
    workflow_step,
)
from menucraft.models import OrderStatus
from tests.helpers import snapshot


class TestFormatElapsed:
    @pytest.mark.parametrize(
        "elapsed,text",
        [
            (timedelta(seconds=0), "Just now"),
            (timedelta(seconds=59), "Just now"),
            (timedelta(minutes=1), "1m ago"),
            (timedelta(minutes=59, seconds=59), "59m ago"),
            (timedelta(minutes=60), "1h 0m ago"),
            (timedelta(hours=2, minutes=5), "2h 5m ago"),
        ],
    )
    def test_format(self, elapsed, text):
        assert format_elapsed(elapsed) == text

    def test_future_timestamps_clamp_to_zero(self):
        now = utcnow()

        assert elapsed_since(now + timedelta(minutes=3), now) == timedelta(0)


class TestUrgency:
    """Pending > 10 minutes, in progress > 30 minutes; boundaries excluded."""

    def test_pending_boundary(self):
        now = utcnow()
        at_ten = snapshot(placed_at=now - timedelta(minutes=10))
        at_eleven = snapshot(placed_at=now - timedelta(minutes=11))

        assert not is_urgent(at_ten, now)
        assert is_urgent(at_eleven, now)

    def test_in_progress_boundary(self):
        now = utcnow()
        at_thirty = snapshot(status=OrderStatus.IN_PROGRESS, placed_at=now - timedelta(minutes=30))
        at_thirty_one = snapshot(status=OrderStatus.IN_PROGRESS, placed_at=now - timedelta(minutes=31))

        assert not is_urgent(at_thirty, now)
        assert is_urgent(at_thirty_one, now)

    @pytest.mark.parametrize("status", [OrderStatus.COMPLETED, OrderStatus.CANCELLED])
    def test_finished_orders_never_urgent(self, status):
        now = utcnow()

        assert not is_urgent(snapshot(status=status, placed_at=now - timedelta(hours=5)), now)

    def test_custom_thresholds(self):
        now = utcnow()
        order = snapshot(placed_at=now - timedelta(minutes=6))

        assert is_urgent(order, now, pending_minutes=5)

    def test_thresholds_default_to_settings(self, monkeypatch):
        monkeypatch.setattr(display, "get_settings", lambda: Settings(pending_urgent_minutes=3))
        now = utcnow()
        order = snapshot(placed_at=now - timedelta(minutes=4))

        assert is_urgent(order, now)
        assert OrderView.build(order, now).urgent


class TestWorkflow:
    def test_buttons(self):
        assert workflow_step(OrderStatus.PENDING) == (OrderStatus.IN_PROGRESS, "Start Preparing")
        assert workflow_step(OrderStatus.IN_PROGRESS) == (OrderStatus.COMPLETED, "Mark Complete")
        assert workflow_step(OrderStatus.COMPLETED) == (None, "Completed")

    def test_order_view(self):
        now = utcnow()
        view = OrderView.build(snapshot(placed_at=now - timedelta(minutes=12)), now)

        assert view.elapsed == "12m ago"
        assert view.urgent
        assert view.next_status == OrderStatus.IN_PROGRESS
        assert view.action_label == "Start Preparing"

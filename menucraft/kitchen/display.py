"""
Kitchen Display Helpers

Derived, never-stored fields shown on each order card: time since the order
was placed, the urgency flag, and the workflow button for its status.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from menucraft.core.config import get_settings
from menucraft.core.timeutils import as_utc, utcnow
from menucraft.models import OrderStatus
from menucraft.schemas import OrderSnapshot
from menucraft.services.orders.state_machine import next_action


def elapsed_since(timestamp: datetime, now: Optional[datetime] = None) -> timedelta:
    """Time since ``timestamp``; never negative (clock skew)."""
    now = as_utc(now or utcnow())
    return max(now - as_utc(timestamp), timedelta(0))


def whole_minutes(elapsed: timedelta) -> int:
    return int(elapsed.total_seconds() // 60)


def format_elapsed(elapsed: timedelta) -> str:
    """'Just now', '7m ago', '1h 5m ago'."""
    minutes = whole_minutes(elapsed)
    if minutes < 1:
        return "Just now"
    if minutes < 60:
        return f"{minutes}m ago"
    return f"{minutes // 60}h {minutes % 60}m ago"


def is_urgent(
    order: OrderSnapshot,
    now: Optional[datetime] = None,
    pending_minutes: Optional[int] = None,
    in_progress_minutes: Optional[int] = None,
) -> bool:
    """
    Visual escalation only; nothing transitions automatically.

    Elapsed time is counted in whole minutes since placement and the
    threshold itself is not urgent: a pending order turns urgent at 11
    minutes, not at 10. Thresholds default to ``pending_urgent_minutes`` and
    ``in_progress_urgent_minutes`` from the settings.
    """
    settings = get_settings()
    if pending_minutes is None:
        pending_minutes = settings.pending_urgent_minutes
    if in_progress_minutes is None:
        in_progress_minutes = settings.in_progress_urgent_minutes

    minutes = whole_minutes(elapsed_since(order.placed_at, now))
    if order.status == OrderStatus.PENDING:
        return minutes > pending_minutes
    if order.status == OrderStatus.IN_PROGRESS:
        return minutes > in_progress_minutes
    return False


def workflow_step(status: OrderStatus) -> tuple[Optional[OrderStatus], str]:
    """Next status and button label for a card; terminal statuses have no next step."""
    transition = next_action(OrderStatus(status))
    if transition is None:
        return None, OrderStatus(status).value.replace("_", " ").title()
    return transition.target, transition.label


@dataclass(frozen=True)
class OrderView:
    """One order card as the kitchen renders it."""
    order: OrderSnapshot
    elapsed: str
    urgent: bool
    next_status: Optional[OrderStatus]
    action_label: str

    @classmethod
    def build(
        cls,
        order: OrderSnapshot,
        now: Optional[datetime] = None,
        pending_minutes: Optional[int] = None,
        in_progress_minutes: Optional[int] = None,
    ) -> "OrderView":
        next_status, label = workflow_step(order.status)
        return cls(
            order=order,
            elapsed=format_elapsed(elapsed_since(order.placed_at, now)),
            urgent=is_urgent(order, now, pending_minutes, in_progress_minutes),
            next_status=next_status,
            action_label=label,
        )

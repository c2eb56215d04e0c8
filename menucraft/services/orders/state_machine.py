"""
Order State Machine

    PENDING ──Start Preparing──▶ IN_PROGRESS ──Mark Complete──▶ COMPLETED
       │                             │
       └──────────Cancel─────────────┴──────────▶ CANCELLED

The table is monotonic: no transition leads back to an earlier state, so a
late or duplicated request can never undo a newer one. Requesting the state
an order is already in is a successful no-op, which is what makes competing
kitchen stations and network retries safe without locks.
"""

from dataclasses import dataclass
from typing import Optional

from menucraft.core.exceptions import InvalidTransitionError
from menucraft.models import OrderStatus


@dataclass(frozen=True)
class Transition:
    """A legal status change and the timestamp column it stamps."""
    source: OrderStatus
    target: OrderStatus
    label: str
    timestamp_field: str


TRANSITIONS: tuple[Transition, ...] = (
    Transition(OrderStatus.PENDING, OrderStatus.IN_PROGRESS, "Start Preparing", "started_at"),
    Transition(OrderStatus.IN_PROGRESS, OrderStatus.COMPLETED, "Mark Complete", "completed_at"),
    Transition(OrderStatus.PENDING, OrderStatus.CANCELLED, "Cancel Order", "cancelled_at"),
    Transition(OrderStatus.IN_PROGRESS, OrderStatus.CANCELLED, "Cancel Order", "cancelled_at"),
)

_TABLE: dict[tuple[OrderStatus, OrderStatus], Transition] = {
    (t.source, t.target): t for t in TRANSITIONS
}

TERMINAL_STATUSES = frozenset({OrderStatus.COMPLETED, OrderStatus.CANCELLED})


def plan_transition(current: OrderStatus, requested: OrderStatus) -> Optional[Transition]:
    """
    Decide what applying ``requested`` to an order in ``current`` means.

    Returns:
        The transition to apply, or None when the order is already in the
        requested state (idempotent no-op).

    Raises:
        InvalidTransitionError: the change is not in the table
    """
    current = OrderStatus(current)
    requested = OrderStatus(requested)

    if current == requested:
        return None

    transition = _TABLE.get((current, requested))
    if transition is None:
        raise InvalidTransitionError(current, requested)
    return transition


def next_action(status: OrderStatus) -> Optional[Transition]:
    """The forward workflow step offered to the kitchen for ``status``."""
    for transition in TRANSITIONS:
        if transition.source == status and transition.target != OrderStatus.CANCELLED:
            return transition
    return None


def allowed_targets(status: OrderStatus) -> list[OrderStatus]:
    return [t.target for t in TRANSITIONS if t.source == status]


def is_terminal(status: OrderStatus) -> bool:
    return OrderStatus(status) in TERMINAL_STATUSES

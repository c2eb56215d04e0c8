"""
Order lifecycle services: state machine, store and customer submission.
"""

from menucraft.services.orders.state_machine import (
    TRANSITIONS,
    Transition,
    allowed_targets,
    is_terminal,
    next_action,
    plan_transition,
)
from menucraft.services.orders.store import OrderStore, TransitionResult
from menucraft.services.orders.submission import OrderSubmissionService

__all__ = [
    "TRANSITIONS",
    "Transition",
    "allowed_targets",
    "is_terminal",
    "next_action",
    "plan_transition",
    "OrderStore",
    "TransitionResult",
    "OrderSubmissionService",
]

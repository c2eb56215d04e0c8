"""
Kitchen Sync Client

Near-real-time local view of one restaurant's orders for a kitchen station:
HTTP access to the order API, a realtime channel listener, and the periodic
reconciliation poll that corrects for missed events.
"""

from menucraft.kitchen.api import OrdersApiClient
from menucraft.kitchen.display import (
    OrderView,
    elapsed_since,
    format_elapsed,
    is_urgent,
    workflow_step,
)
from menucraft.kitchen.realtime import KitchenEventListener
from menucraft.kitchen.sync import KitchenStats, KitchenSyncClient

__all__ = [
    "OrdersApiClient",
    "KitchenSyncClient",
    "KitchenStats",
    "KitchenEventListener",
    "OrderView",
    "elapsed_since",
    "format_elapsed",
    "is_urgent",
    "workflow_step",
]

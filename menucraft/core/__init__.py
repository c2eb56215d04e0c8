"""
Core module initialization.
Exports configuration, logging and error utilities.
"""

from menucraft.core.config import get_settings, Settings, EnvironmentMode
from menucraft.core.exceptions import (
    OrderingError,
    ValidationError,
    NotFoundError,
    InvalidTransitionError,
    AuthorizationError,
    TransportError,
)

__all__ = [
    "get_settings",
    "Settings",
    "EnvironmentMode",
    "OrderingError",
    "ValidationError",
    "NotFoundError",
    "InvalidTransitionError",
    "AuthorizationError",
    "TransportError",
]

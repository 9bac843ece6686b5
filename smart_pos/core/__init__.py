"""
Core module initialization.
Exports configuration, logging utilities and domain errors.
"""

from smart_pos.core.config import get_settings, Settings, EnvironmentMode
from smart_pos.core.exceptions import (
    PosError,
    InvalidRequestError,
    NotFoundError,
    ConflictError,
    InvalidTransitionError,
)

__all__ = [
    "get_settings",
    "Settings",
    "EnvironmentMode",
    "PosError",
    "InvalidRequestError",
    "NotFoundError",
    "ConflictError",
    "InvalidTransitionError",
]

from __future__ import annotations
"""
thawpool.pooltypes — plain data records shared across the engine and its
surfaces (notifications emitted by the engine).
"""

from .events import (Bought, Deposited, EmergencyDrain, EventType,
                     ParameterChanged, PoolEvent, Sold, ThawReleased,
                     YieldAccrued, YieldClaimed)

__all__ = [
    "EventType",
    "PoolEvent",
    "Bought",
    "Sold",
    "Deposited",
    "ThawReleased",
    "YieldAccrued",
    "YieldClaimed",
    "EmergencyDrain",
    "ParameterChanged",
]

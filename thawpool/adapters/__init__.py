from __future__ import annotations

"""
thawpool.adapters
=================

Collaborators the reserve engine consumes but does not own: the participation
token ledger, the owner gate, the pause switch, the reentrancy latch, native
value custody, and the block metadata source. Each is a small in-memory
implementation behind the interface the engine relies on, injected into
`thawpool.reserve.engine.ReserveEngine` by reference.
"""

from .access import OwnerGate, require_role
from .blocks import BlockSource, ManualBlockSource, WallClockBlockSource
from .native_bank import NativeBank
from .pause import PauseGate
from .reentrancy import ReentrancyLock
from .token_ledger import TokenLedger

__all__ = (
    "OwnerGate",
    "require_role",
    "BlockSource",
    "ManualBlockSource",
    "WallClockBlockSource",
    "NativeBank",
    "PauseGate",
    "ReentrancyLock",
    "TokenLedger",
)

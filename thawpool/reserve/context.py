from __future__ import annotations

"""
Shared per-engine context handed to the reserve components.

Bundles the engine's own address, its live configuration and reserve ledger,
and the collaborators every component may touch (token ledger, native bank,
block source, event sink). One context per engine; components hold it by
reference so an admin change to the config is seen immediately.
"""

import logging
from dataclasses import dataclass

from ..adapters.blocks import BlockSource
from ..adapters.native_bank import NativeBank
from ..adapters.token_ledger import TokenLedger
from ..config import PoolConfig
from ..errors import TransferError
from .event_sink import EventSink
from .ledger import ReserveLedger

log = logging.getLogger(__name__)


@dataclass
class PoolContext:
    address: str
    cfg: PoolConfig
    ledger: ReserveLedger
    token: TokenLedger
    bank: NativeBank
    blocks: BlockSource
    events: EventSink

    def collect(self, sender: str, amount: int) -> None:
        """Pull value attached to a call into custody."""
        self.bank.collect(sender, self.address, amount)

    def pay(self, to: str, amount: int) -> None:
        """Push value out of custody; a refused transfer fails the operation."""
        if amount == 0:
            return
        if not self.bank.send(self.address, to, amount):
            raise TransferError(to=to, amount=amount)


__all__ = ["PoolContext"]

from __future__ import annotations

"""
thawpool.reserve
================

The reserve state machine: counters, pricing, trading, thaw, yield accrual,
trade spacing, governance, and the `ReserveEngine` facade that runs them as
atomic units.

Typical use:

    from thawpool.reserve import ReserveEngine
    from thawpool.adapters import ManualBlockSource, NativeBank

    eng = ReserveEngine(blocks=ManualBlockSource(), bank=NativeBank({"alice": 10**18}),
                        total_reserve=10**19, active=5 * 10**18)
"""

from .accrual import AccountYieldState, YieldAccrual
from .antiflash import AntiFlashGuard, TradeThrottle
from .context import PoolContext
from .engine import ReserveEngine
from .event_sink import EventSink
from .governance import GovernanceAdmin
from .ledger import ReserveLedger, ReserveState
from .pricing import (Quote, dormant, effective_active, price_wad,
                      tokens_for_value, value_for_tokens)
from .thaw import ThawResult, ThawScheduler
from .trade import TradeProcessor

__all__ = [
    "ReserveEngine",
    "ReserveLedger",
    "ReserveState",
    "PoolContext",
    "EventSink",
    "TradeProcessor",
    "ThawScheduler",
    "ThawResult",
    "YieldAccrual",
    "AccountYieldState",
    "AntiFlashGuard",
    "TradeThrottle",
    "GovernanceAdmin",
    "Quote",
    "dormant",
    "effective_active",
    "price_wad",
    "tokens_for_value",
    "value_for_tokens",
]

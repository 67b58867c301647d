from __future__ import annotations

"""
Pricing: reserve snapshot -> price and value/token conversions.

Pure, side-effect free functions of a `ReserveState` snapshot and the
pricing floor `min_active`. Nothing here reads configuration or mutates the
ledger; callers pass the snapshot they want priced (the trade processor always
prices against the *pre-trade* snapshot).

Design notes
-----------
- Integer native unit everywhere; fixed-point price uses WAD (1e18).
- Every division floors, so rounding always favours the reserve over the
  trader.
- `effective_active = max(active, min_active)` keeps the price finite when
  active liquidity is thin.
- With no dormant reserve there is nothing backing redemptions: the price is
  the U256_MAX sentinel and `tokens_for_value` yields 0. The same sentinel is
  used when `min_active` is 0 and active has been drawn down to nothing.

Example
-------
>>> s = ReserveState(total_reserve=10, active=5)
>>> price_wad(s, min_active=1) == SCALE
True
>>> tokens_for_value(s, 3, min_active=1)
3
"""

from dataclasses import dataclass

from ..safe_uint import SCALE, U256_MAX, mul_div_down, u256_sub
from .ledger import Amount, ReserveState


def dormant(s: ReserveState) -> Amount:
    return u256_sub(s.total_reserve, s.active)


def effective_active(s: ReserveState, min_active: int) -> Amount:
    return max(s.active, min_active)


def price_wad(s: ReserveState, min_active: int) -> int:
    """dormant / effective_active in WAD; U256_MAX when either side is 0."""
    d = dormant(s)
    ea = effective_active(s, min_active)
    if d == 0 or ea == 0:
        return U256_MAX
    return mul_div_down(d, SCALE, ea)


def tokens_for_value(s: ReserveState, net_in: Amount, min_active: int) -> Amount:
    """Tokens minted for `net_in` of value: net_in * effective_active / dormant."""
    d = dormant(s)
    if d == 0:
        return 0
    return mul_div_down(net_in, effective_active(s, min_active), d)


def value_for_tokens(s: ReserveState, amount: Amount, min_active: int) -> Amount:
    """Gross value redeemed for `amount` tokens: amount * dormant / effective_active."""
    ea = effective_active(s, min_active)
    if ea == 0:
        return 0
    return mul_div_down(amount, dormant(s), ea)


@dataclass(frozen=True)
class Quote:
    """Read-only view of a snapshot, as shown by the CLI."""
    total_reserve: Amount
    active: Amount
    dormant: Amount
    effective_active: Amount
    price_wad: int

    @staticmethod
    def of(s: ReserveState, min_active: int) -> "Quote":
        return Quote(
            total_reserve=s.total_reserve,
            active=s.active,
            dormant=dormant(s),
            effective_active=effective_active(s, min_active),
            price_wad=price_wad(s, min_active),
        )


__all__ = [
    "dormant",
    "effective_active",
    "price_wad",
    "tokens_for_value",
    "value_for_tokens",
    "Quote",
]

from __future__ import annotations

"""
Reserve ledger — total / active / dormant
-----------------------------------------

Holds the two authoritative counters of the engine:

  • total_reserve — all native value in custody
  • active        — the part used as pricing backing and available for redemption

and derives the third, never stored:

  • dormant = total_reserve - active

Accounting identity (checked after every mutation):
  total_reserve == active + dormant, with dormant >= 0

Each mutator corresponds to one economic movement, so the effect of an
operation on dormant is visible from which mutator it calls:

  credit_both(v)          buy / deposit      dormant unchanged
  settle_redemption(...)  sell               dormant unchanged
  release_dormant(...)    thaw               dormant -= to_active + reward
  pay_from_dormant(x)     yield claim        dormant -= x
  drain(x)                emergency drain    active first, then dormant

All arithmetic is checked u256 (`thawpool.safe_uint`).
"""

from dataclasses import asdict, dataclass
from typing import Dict, Mapping

from ..errors import ArithmeticFault, InsufficientActiveReserve
from ..safe_uint import require_u256, u256_add, u256_sub

Amount = int


@dataclass
class ReserveState:
    total_reserve: Amount = 0
    active: Amount = 0

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)

    @staticmethod
    def from_dict(d: Mapping) -> "ReserveState":
        return ReserveState(total_reserve=int(d["total_reserve"]), active=int(d["active"]))


class ReserveLedger:
    """
    The engine's reserve counters. One instance per engine; no shared state.
    """

    __slots__ = ("_s",)

    def __init__(self, total_reserve: Amount = 0, active: Amount = 0) -> None:
        require_u256(total_reserve, active)
        if active > total_reserve:
            raise ArithmeticFault(
                "active reserve exceeds total reserve",
                details={"total_reserve": total_reserve, "active": active},
            )
        self._s = ReserveState(total_reserve=total_reserve, active=active)

    # --- reads ---

    @property
    def total_reserve(self) -> Amount:
        return self._s.total_reserve

    @property
    def active(self) -> Amount:
        return self._s.active

    def dormant(self) -> Amount:
        return u256_sub(self._s.total_reserve, self._s.active)

    def state(self) -> ReserveState:
        """Detached copy of the counters (a pricing snapshot)."""
        return ReserveState(self._s.total_reserve, self._s.active)

    def invariant_holds(self) -> bool:
        s = self._s
        if s.active > s.total_reserve:
            return False
        return s.total_reserve == s.active + (s.total_reserve - s.active)

    # --- mutations ---

    def credit_both(self, value: Amount) -> None:
        """Incoming value lands entirely in active (buy, deposit)."""
        total = u256_add(self._s.total_reserve, value)
        active = u256_add(self._s.active, value)
        self._commit(total, active)

    def settle_redemption(self, gross: Amount, fee: Amount, net: Amount) -> None:
        """
        Sell: `gross` leaves active, `fee` is recycled into active, `net`
        leaves custody. With net == gross - fee, dormant is unchanged.
        """
        if self._s.active < gross:
            raise InsufficientActiveReserve(required=gross, active=self._s.active)
        active = u256_add(u256_sub(self._s.active, gross), fee)
        total = u256_sub(self._s.total_reserve, net)
        self._commit(total, active)

    def release_dormant(self, to_active: Amount, reward: Amount) -> None:
        """Thaw: move `to_active` from dormant to active; `reward` leaves custody."""
        need = u256_add(to_active, reward)
        if need > self.dormant():
            raise ArithmeticFault("thaw release exceeds dormant", details={"release": need, "dormant": self.dormant()})
        active = u256_add(self._s.active, to_active)
        total = u256_sub(self._s.total_reserve, reward)
        self._commit(total, active)

    def pay_from_dormant(self, amount: Amount) -> None:
        """Yield claim: `amount` leaves custody out of dormant."""
        if amount > self.dormant():
            raise ArithmeticFault("payout exceeds dormant", details={"amount": amount, "dormant": self.dormant()})
        self._commit(u256_sub(self._s.total_reserve, amount), self._s.active)

    def drain(self, amount: Amount) -> None:
        """Emergency drain: draw active down first (clamped at zero), then dormant."""
        total = u256_sub(self._s.total_reserve, amount)
        active = self._s.active - min(amount, self._s.active)
        self._commit(total, active)

    def _commit(self, total: Amount, active: Amount) -> None:
        if active > total:
            raise ArithmeticFault(
                "accounting identity violated",
                details={"total_reserve": total, "active": active},
            )
        self._s.total_reserve = total
        self._s.active = active

    # --- rollback / persistence ---

    def snapshot(self) -> ReserveState:
        return self.state()

    def restore(self, snap: ReserveState) -> None:
        self._s = ReserveState(snap.total_reserve, snap.active)

    def to_dict(self) -> Dict[str, int]:
        d = self._s.to_dict()
        d["dormant"] = self.dormant()
        return d

    @classmethod
    def from_dict(cls, d: Mapping) -> "ReserveLedger":
        s = ReserveState.from_dict(d)
        return cls(s.total_reserve, s.active)


__all__ = ["Amount", "ReserveState", "ReserveLedger"]

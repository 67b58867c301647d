from __future__ import annotations

"""
Yield accrual — per-holder, height-weighted
-------------------------------------------

Each holder earns, per block held,

    balance * blocks * yield_numer / (yield_denom * 1e18)

credited to an `accrued` balance that only a claim reduces. Accrual is
settled ("synced") lazily:

  • explicitly (`sync_account`, sell, claim), and
  • as a token-ledger observer, before every mint/burn/transfer touching the
    holder, so the settled amount always reflects the balance *before* the
    change.

First touch only records a baseline height; nothing accrues for the blocks
before an account was first seen.

Claims are paid out of dormant reserve, never from active, and never below
the protected floor. The payable amount is min(accrued, dormant, total - floor);
whatever accrued above that is forfeited on claim, not carried forward.
"""

import copy
import logging
from dataclasses import asdict, dataclass
from typing import Dict, Mapping, Optional

from ..adapters.token_ledger import require_address
from ..errors import FloorBreach, NothingToClaim
from ..pooltypes.events import YieldAccrued, YieldClaimed
from ..safe_uint import SCALE, u256_add, u256_div, u256_mul, u256_sub
from .context import PoolContext

log = logging.getLogger(__name__)


@dataclass
class AccountYieldState:
    last_accum_height: int
    accrued: int = 0

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)

    @staticmethod
    def from_dict(d: Mapping) -> "AccountYieldState":
        return AccountYieldState(int(d["last_accum_height"]), int(d.get("accrued", 0)))


class YieldAccrual:
    __slots__ = ("ctx", "_accounts")

    def __init__(self, ctx: PoolContext, accounts: Optional[Dict[str, AccountYieldState]] = None) -> None:
        self.ctx = ctx
        self._accounts: Dict[str, AccountYieldState] = accounts or {}

    # --- views ---

    def accrued_for(self, who: str) -> int:
        st = self._accounts.get(who)
        return st.accrued if st else 0

    def checkpoint_of(self, who: str) -> Optional[int]:
        st = self._accounts.get(who)
        return st.last_accum_height if st else None

    # --- sync ---

    def sync_account(self, who: str) -> int:
        """Settle accrual for `who` up to the current height. Returns the amount added."""
        height = self.ctx.blocks.height()
        st = self._accounts.get(who)
        if st is None:
            self._accounts[who] = AccountYieldState(last_accum_height=height)
            return 0
        if height == st.last_accum_height:
            return 0

        bal = self.ctx.token.balance_of(who)
        if bal == 0:
            st.last_accum_height = height
            return 0

        rate = self.ctx.cfg.yield_rate
        blocks = u256_sub(height, st.last_accum_height)
        amount = u256_div(
            u256_mul(u256_mul(bal, blocks), rate.numer),
            u256_mul(rate.denom, SCALE),
        )
        if amount:
            st.accrued = u256_add(st.accrued, amount)
            self.ctx.events.emit(
                YieldAccrued(account=who, amount=amount, accrued=st.accrued, height=height)
            )
            log.debug("accrued %s to %s over %s blocks", amount, who, blocks)
        st.last_accum_height = height
        return amount

    def on_balance_change(self, frm: Optional[str], to: Optional[str], amount: int) -> None:
        """Token-ledger observer: settle both sides before their balances move."""
        if frm is not None:
            self.sync_account(frm)
        if to is not None and to != frm:
            self.sync_account(to)

    # --- claim ---

    def claim(self, caller: str) -> int:
        require_address(caller)
        self.sync_account(caller)
        st = self._accounts[caller]
        if st.accrued == 0:
            raise NothingToClaim(details={"account": caller})

        ledger = self.ctx.ledger
        floor = self.ctx.cfg.floors.protected_reserve_floor
        total = ledger.total_reserve
        if total <= floor:
            raise FloorBreach(total=total, floor=floor)

        excess = total - floor
        max_pay = min(ledger.dormant(), excess)
        owed = min(st.accrued, max_pay)
        if owed == 0:
            return 0

        forfeited = st.accrued - owed
        ledger.pay_from_dormant(owed)
        st.accrued = 0
        self.ctx.events.emit(
            YieldClaimed(
                account=caller,
                paid=owed,
                forfeited=forfeited,
                total_reserve=ledger.total_reserve,
                height=self.ctx.blocks.height(),
            )
        )
        if forfeited:
            log.info("yield claim by %s paid %s, forfeited %s above cap", caller, owed, forfeited)
        else:
            log.info("yield claim by %s paid %s", caller, owed)
        self.ctx.pay(caller, owed)
        return owed

    # --- rollback / persistence ---

    def snapshot(self) -> Dict[str, AccountYieldState]:
        return copy.deepcopy(self._accounts)

    def restore(self, snap: Dict[str, AccountYieldState]) -> None:
        self._accounts = copy.deepcopy(snap)

    def to_dict(self) -> Dict[str, Dict[str, int]]:
        return {k: v.to_dict() for k, v in sorted(self._accounts.items())}

    @staticmethod
    def accounts_from_dict(d: Mapping) -> Dict[str, AccountYieldState]:
        return {str(k): AccountYieldState.from_dict(v) for k, v in d.items()}


__all__ = ["AccountYieldState", "YieldAccrual"]

# -*- coding: utf-8 -*-
"""
Participation token ledger
==========================

Deterministic, float-free, in-memory fungible token used as the reserve
engine's participation token. The engine only *references* this ledger: it
mints on buy, burns on sell, and reads balances for yield accrual.

Highlights
----------
- Explicit `caller` parameters for mutating calls (no ambient sender).
- Supply control (`mint`, `burn`) is restricted to a single minter identity,
  normally the engine's own address.
- Balance-change observers: every registered callback is invoked as
  ``cb(frm, to, amount)`` *before* balances change, on mint (``frm is None``),
  burn (``to is None``) and transfer. The engine uses this to settle yield on
  the pre-change balance of both sides.
- U256-checked math via `thawpool.safe_uint` (no silent wrap).

Public interface
----------------
name / symbol / decimals / total_supply() / balance_of(addr)
transfer(caller, to, amount) -> bool
mint(caller, to, amount) -> bool          # minter only
burn(caller, frm, amount) -> bool         # minter only
add_observer(cb) / remove_observer(cb)
snapshot() / restore(snap)                # used for atomic rollback
dump() / load(data)
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, List, Mapping, Optional, Tuple

from ..errors import AuthorizationError, InsufficientTokenBalance, ValidationError
from ..safe_uint import require_u256, u256_add, u256_sub

log = logging.getLogger(__name__)

BalanceObserver = Callable[[Optional[str], Optional[str], int], None]

DEFAULT_DECIMALS = 18


def require_address(addr: object) -> str:
    if not isinstance(addr, str) or not addr.strip():
        raise ValidationError("invalid address", details={"address": repr(addr)})
    return addr


def require_amount(amount: object) -> int:
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise ValidationError("amount must be an integer", details={"amount": repr(amount)})
    require_u256(amount)
    return amount


class TokenLedger:
    """
    Balance storage for the participation token.

    The ledger keeps its own state only; it has no idea about reserve or
    pricing. Observers registered with `add_observer` are called synchronously
    and may raise, in which case the balance change does not happen.
    """

    def __init__(
        self,
        *,
        minter: str,
        name: str = "Thaw Participation",
        symbol: str = "THAW",
        decimals: int = DEFAULT_DECIMALS,
    ) -> None:
        self.minter = require_address(minter)
        self.name = name
        self.symbol = symbol.upper()
        self.decimals = int(decimals)
        self._balances: Dict[str, int] = {}
        self._total: int = 0
        self._observers: List[BalanceObserver] = []

    # --- observers ---

    def add_observer(self, cb: BalanceObserver) -> None:
        if cb not in self._observers:
            self._observers.append(cb)

    def remove_observer(self, cb: BalanceObserver) -> None:
        self._observers = [o for o in self._observers if o is not cb]

    def _notify(self, frm: Optional[str], to: Optional[str], amount: int) -> None:
        for cb in list(self._observers):
            cb(frm, to, amount)

    # --- views ---

    def total_supply(self) -> int:
        return self._total

    def balance_of(self, addr: str) -> int:
        return self._balances.get(require_address(addr), 0)

    def holders(self) -> Tuple[str, ...]:
        return tuple(sorted(a for a, b in self._balances.items() if b > 0))

    # --- mutations (explicit caller) ---

    def transfer(self, caller: str, to: str, amount: int) -> bool:
        require_address(caller)
        require_address(to)
        require_amount(amount)
        if amount == 0:
            return True

        from_bal = self.balance_of(caller)
        if from_bal < amount:
            raise InsufficientTokenBalance(account=caller, required=amount, balance=from_bal)

        self._notify(caller, to, amount)
        self._balances[caller] = u256_sub(self.balance_of(caller), amount)
        self._balances[to] = u256_add(self.balance_of(to), amount)
        return True

    def mint(self, caller: str, to: str, amount: int) -> bool:
        self._require_minter(caller)
        require_address(to)
        require_amount(amount)
        if amount == 0:
            return True

        new_total = u256_add(self._total, amount)
        self._notify(None, to, amount)
        self._balances[to] = u256_add(self.balance_of(to), amount)
        self._total = new_total
        log.debug("mint %s -> %s", amount, to)
        return True

    def burn(self, caller: str, frm: str, amount: int) -> bool:
        self._require_minter(caller)
        require_address(frm)
        require_amount(amount)
        if amount == 0:
            return True

        cur = self.balance_of(frm)
        if cur < amount:
            raise InsufficientTokenBalance(account=frm, required=amount, balance=cur)

        self._notify(frm, None, amount)
        self._balances[frm] = u256_sub(self.balance_of(frm), amount)
        self._total = u256_sub(self._total, amount)
        log.debug("burn %s <- %s", amount, frm)
        return True

    def _require_minter(self, caller: str) -> None:
        if caller != self.minter:
            raise AuthorizationError("only the minter may change supply", caller=str(caller), role="minter")

    # --- rollback / persistence ---

    def snapshot(self) -> Tuple[Dict[str, int], int]:
        return dict(self._balances), self._total

    def restore(self, snap: Tuple[Dict[str, int], int]) -> None:
        balances, total = snap
        self._balances = dict(balances)
        self._total = total

    def dump(self) -> Dict:
        return {
            "name": self.name,
            "symbol": self.symbol,
            "decimals": self.decimals,
            "minter": self.minter,
            "total_supply": self._total,
            "balances": {k: v for k, v in sorted(self._balances.items()) if v},
        }

    @classmethod
    def load(cls, data: Mapping) -> "TokenLedger":
        led = cls(
            minter=data["minter"],
            name=data.get("name", "Thaw Participation"),
            symbol=data.get("symbol", "THAW"),
            decimals=int(data.get("decimals", DEFAULT_DECIMALS)),
        )
        balances = {str(k): require_amount(int(v)) for k, v in (data.get("balances") or {}).items()}
        total = require_amount(int(data.get("total_supply", 0)))
        if sum(balances.values()) != total:
            raise ValidationError(
                "token ledger snapshot inconsistent",
                details={"total_supply": total, "sum_balances": sum(balances.values())},
            )
        led._balances = balances
        led._total = total
        return led


__all__ = ["TokenLedger", "BalanceObserver", "require_address", "require_amount", "DEFAULT_DECIMALS"]

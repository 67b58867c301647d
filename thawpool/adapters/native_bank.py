from __future__ import annotations

"""
Native-value custody — balances & transfers
-------------------------------------------

In-memory, deterministic ledger of native-value balances per address, plus
the two transfer primitives the reserve engine relies on:

  • `collect(sender, to, amount)` — pull incoming value into custody (the
    "value attached to a call"). Raises TransferError if the sender cannot pay.
  • `send(frm, to, amount) -> bool` — push value out of custody. The amount
    is credited first, then the recipient's hook (if any) runs. A hook that
    raises makes the transfer fail: balances are put back and `False` is
    returned. `send` never raises for recipient failures; turning `False`
    into an operation failure is the caller's job.

Recipient hooks model arbitrary receiver code and may call back into the
engine, which is why the engine finishes its own bookkeeping before it sends.

Amounts are integer base units (no floats).
"""

import logging
from typing import Callable, Dict, Mapping, Optional

from ..errors import TransferError
from ..safe_uint import u256_add, u256_sub
from .token_ledger import require_address, require_amount

log = logging.getLogger(__name__)

ReceiveHook = Callable[[str, int], None]


class NativeBank:
    """
    Native-value balances keyed by address string.
    """

    def __init__(self, balances: Optional[Mapping[str, int]] = None) -> None:
        self._balances: Dict[str, int] = {}
        self._hooks: Dict[str, ReceiveHook] = {}
        for addr, amt in (balances or {}).items():
            self.credit(addr, amt)

    # --- setup ---

    def credit(self, addr: str, amount: int) -> int:
        """Mint native value to `addr` (genesis funding / test faucets)."""
        require_address(addr)
        require_amount(amount)
        self._balances[addr] = u256_add(self._balances.get(addr, 0), amount)
        return self._balances[addr]

    def set_receive_hook(self, addr: str, hook: Optional[ReceiveHook]) -> None:
        require_address(addr)
        if hook is None:
            self._hooks.pop(addr, None)
        else:
            self._hooks[addr] = hook

    # --- views ---

    def balance_of(self, addr: str) -> int:
        return self._balances.get(addr, 0)

    # --- transfers ---

    def collect(self, sender: str, to: str, amount: int) -> None:
        require_address(sender)
        require_address(to)
        require_amount(amount)
        have = self.balance_of(sender)
        if have < amount:
            raise TransferError(
                "sender lacks native balance",
                to=to,
                amount=amount,
                details={"sender": sender, "balance": have},
            )
        self._move(sender, to, amount)

    def send(self, frm: str, to: str, amount: int) -> bool:
        require_address(frm)
        require_address(to)
        require_amount(amount)
        if self.balance_of(frm) < amount:
            log.warning("send %s -> %s: custody short (%s < %s)", frm, to, self.balance_of(frm), amount)
            return False

        self._move(frm, to, amount)
        hook = self._hooks.get(to)
        if hook is None:
            return True
        try:
            hook(frm, amount)
        except Exception as e:  # receiver code failed: the transfer did not happen
            self._move(to, frm, amount)
            log.warning("send %s -> %s of %s rejected by receiver: %s", frm, to, amount, e)
            return False
        return True

    def _move(self, frm: str, to: str, amount: int) -> None:
        self._balances[frm] = u256_sub(self.balance_of(frm), amount)
        self._balances[to] = u256_add(self.balance_of(to), amount)

    # --- rollback / persistence ---

    def snapshot(self) -> Dict[str, int]:
        return dict(self._balances)

    def restore(self, snap: Mapping[str, int]) -> None:
        self._balances = dict(snap)

    def dump(self) -> Dict[str, int]:
        return {k: v for k, v in sorted(self._balances.items()) if v}


__all__ = ["NativeBank", "ReceiveHook"]

from __future__ import annotations

"""
Governance — bounded admin setters and the emergency drain
----------------------------------------------------------

Owner-only setters change one configuration value each (a couple change a
related group) and are validated by the same rules as a loaded config:

  fee_bps <= 1000 (10%), caller_reward_bps <= 500 (5%),
  thaw lambda_den > 0, yield denom > 0, everything within u256.

A rejected value leaves the config as it was. Every change emits a
ParameterChanged event.

The emergency drain is reserved to the *timelock* identity (not the owner):
it may withdraw any amount that keeps total reserve at or above the
protected floor, taking active first and dormant after that.
"""

import logging
from typing import Any, List

from ..adapters.access import OwnerGate, require_role
from ..adapters.pause import PauseGate
from ..adapters.token_ledger import require_address, require_amount
from ..errors import FloorBreach, ValidationError
from ..pooltypes.events import EmergencyDrain, ParameterChanged
from .context import PoolContext

log = logging.getLogger(__name__)


class GovernanceAdmin:
    __slots__ = ("ctx", "owner_gate", "pause_gate")

    def __init__(self, ctx: PoolContext, owner_gate: OwnerGate, pause_gate: PauseGate) -> None:
        self.ctx = ctx
        self.owner_gate = owner_gate
        self.pause_gate = pause_gate

    # --- helpers ---

    def _update(self, caller: str, section: str, changes: List[tuple]) -> None:
        """Apply (field, value) changes to one config section atomically."""
        self.owner_gate.require_owner(caller)
        target = getattr(self.ctx.cfg, section)
        old = {name: getattr(target, name) for name, _ in changes}
        for name, value in changes:
            setattr(target, name, value)
        try:
            target.validate()
        except ValidationError:
            for name, value in old.items():
                setattr(target, name, value)
            raise
        for name, value in changes:
            self._announce(caller, f"{section}.{name}", old[name], value)

    def _announce(self, caller: str, parameter: str, old: Any, new: Any) -> None:
        if old == new:
            return
        self.ctx.events.emit(ParameterChanged(parameter=parameter, old=old, new=new, caller=caller))
        log.info("parameter %s: %s -> %s (by %s)", parameter, old, new, caller)

    # --- bounded setters ---

    def set_fee_bps(self, caller: str, fee_bps: int) -> None:
        self._update(caller, "fees", [("fee_bps", fee_bps)])

    def set_caller_reward_bps(self, caller: str, reward_bps: int) -> None:
        self._update(caller, "fees", [("caller_reward_bps", reward_bps)])

    def set_thaw_params(self, caller: str, interval_sec: int, lambda_num: int, lambda_den: int) -> None:
        self._update(
            caller,
            "thaw",
            [("interval_sec", interval_sec), ("lambda_num", lambda_num), ("lambda_den", lambda_den)],
        )

    def set_yield_rate(self, caller: str, numer: int, denom: int) -> None:
        self._update(caller, "yield_rate", [("numer", numer), ("denom", denom)])

    def set_max_mint_per_tx(self, caller: str, cap: int) -> None:
        self._update(caller, "limits", [("max_mint_per_tx", cap)])

    def set_min_active(self, caller: str, min_active: int) -> None:
        self._update(caller, "floors", [("min_active", min_active)])

    def set_halt_below(self, caller: str, halt_below: int) -> None:
        self._update(caller, "limits", [("halt_below", halt_below)])

    def set_min_blocks_between_trades(self, caller: str, blocks: int) -> None:
        self._update(caller, "limits", [("min_blocks_between_trades", blocks)])

    def set_protected_reserve_floor(self, caller: str, floor: int) -> None:
        self._update(caller, "floors", [("protected_reserve_floor", floor)])

    def set_timelock(self, caller: str, timelock: str) -> None:
        require_address(timelock)
        self._update(caller, "roles", [("timelock", timelock)])

    # --- owner / pause ---

    def transfer_ownership(self, caller: str, new_owner: str) -> None:
        require_address(new_owner)
        previous = self.owner_gate.transfer_ownership(caller, new_owner)
        self.ctx.cfg.roles.owner = new_owner
        self._announce(caller, "roles.owner", previous, new_owner)

    def pause(self, caller: str) -> bool:
        self.owner_gate.require_owner(caller)
        changed = self.pause_gate.pause()
        if changed:
            self._announce(caller, "paused", False, True)
        return changed

    def unpause(self, caller: str) -> bool:
        self.owner_gate.require_owner(caller)
        changed = self.pause_gate.unpause()
        if changed:
            self._announce(caller, "paused", True, False)
        return changed

    # --- emergency ---

    def emergency_drain(self, caller: str, to: str, amount: int) -> None:
        ctx = self.ctx
        require_role(caller, ctx.cfg.roles.timelock, "timelock")
        require_address(to)
        require_amount(amount)
        if amount == 0:
            raise ValidationError("drain amount must be > 0")

        ledger = ctx.ledger
        floor = ctx.cfg.floors.protected_reserve_floor
        total = ledger.total_reserve
        if total <= floor:
            raise FloorBreach(total=total, floor=floor, amount=amount)
        if amount > total - floor:
            raise FloorBreach(total=total, floor=floor, amount=amount, message="drain exceeds reserve above floor")

        ledger.drain(amount)
        ctx.events.emit(
            EmergencyDrain(
                caller=caller,
                to=to,
                amount=amount,
                total_reserve=ledger.total_reserve,
                active=ledger.active,
            )
        )
        log.warning("emergency drain of %s to %s by %s; total now %s", amount, to, caller, ledger.total_reserve)
        ctx.pay(to, amount)


__all__ = ["GovernanceAdmin"]

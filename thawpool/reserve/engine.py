from __future__ import annotations

"""
Reserve engine — the public facade
----------------------------------

`ReserveEngine` owns one pool's whole state (reserve counters, live config,
yield accounts, trade throttle, thaw checkpoint) and wires the components
together around injected collaborators (token ledger, native bank, block
source). There are no module globals; two engines never share state.

Every public mutating call is one atomic unit:

  1. pause gate (trading, thaw, claim, deposit, sync)
  2. reentrancy lock (buy, sell, thaw, claim, deposit, drain)
  3. checks, effects, then the outbound native transfer
  4. commit: pending events go to the log, metrics are published

If anything raises, every piece of engine state (and the token ledger and
native bank balances) is put back to the savepoint taken on entry, the
events emitted since are dropped, and the exception propagates. A call made
from a recipient hook during an outbound transfer (when the lock does not
reject it) runs as a nested unit: it has its own savepoint but only the
outermost call commits.

Example
-------
    bank = NativeBank({"alice": 100 * SCALE})
    eng = ReserveEngine(blocks=ManualBlockSource(), bank=bank,
                        total_reserve=10 * SCALE, active=5 * SCALE)
    out = eng.buy("alice", min_tokens_out=1, value=SCALE)
"""

import copy
import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterator, Mapping, Optional, Tuple, TypeVar

from .. import metrics
from ..adapters.access import OwnerGate
from ..adapters.blocks import BlockSource
from ..adapters.native_bank import NativeBank
from ..adapters.pause import PauseGate
from ..adapters.reentrancy import ReentrancyLock
from ..adapters.token_ledger import TokenLedger, require_address
from ..config import PoolConfig
from ..errors import ThawPoolError, ValidationError
from ..pooltypes.events import (Bought, Deposited, EmergencyDrain,
                                ParameterChanged, PoolEvent, Sold,
                                ThawReleased, YieldClaimed)
from .accrual import AccountYieldState, YieldAccrual
from .antiflash import AntiFlashGuard, TradeThrottle
from .context import PoolContext
from .event_sink import EventSink
from .governance import GovernanceAdmin
from .ledger import ReserveLedger, ReserveState
from .pricing import Quote, price_wad, tokens_for_value, value_for_tokens
from .thaw import ThawResult, ThawScheduler
from .trade import TradeProcessor

log = logging.getLogger(__name__)

T = TypeVar("T")

DUMP_VERSION = 1
DEFAULT_ADDRESS = "thawpool"


@dataclass
class _Savepoint:
    reserve: ReserveState
    cfg: PoolConfig
    accounts: Dict[str, AccountYieldState]
    throttle: TradeThrottle
    last_thaw_timestamp: int
    token: Tuple[Dict[str, int], int]
    bank: Dict[str, int]
    owner: str
    paused: bool
    events_mark: int


class ReserveEngine:
    """
    One reserve pool. Construct with the collaborators and the seed reserve;
    `total_reserve - active` of the seed is the initial dormant balance, the
    only way dormant reserve enters the pool.

    If the bank holds less than `total_reserve` for the engine address, the
    difference is credited to it (genesis funding), so custody always covers
    the seeded reserve.
    """

    def __init__(
        self,
        *,
        blocks: BlockSource,
        config: Optional[PoolConfig] = None,
        address: str = DEFAULT_ADDRESS,
        token: Optional[TokenLedger] = None,
        bank: Optional[NativeBank] = None,
        total_reserve: int = 0,
        active: int = 0,
        paused: bool = False,
    ) -> None:
        require_address(address)
        cfg = config if config is not None else PoolConfig()
        cfg.validate()

        token = token if token is not None else TokenLedger(minter=address)
        if token.minter != address:
            raise ValidationError(
                "token ledger must be mintable by the engine",
                details={"minter": token.minter, "engine": address},
            )
        bank = bank if bank is not None else NativeBank()

        ledger = ReserveLedger(total_reserve, active)
        custody = bank.balance_of(address)
        if custody < total_reserve:
            bank.credit(address, total_reserve - custody)

        self.address = address
        self.blocks = blocks
        self.events = EventSink()
        self.ctx = PoolContext(
            address=address,
            cfg=cfg,
            ledger=ledger,
            token=token,
            bank=bank,
            blocks=blocks,
            events=self.events,
        )
        self.owner_gate = OwnerGate(cfg.roles.owner)
        self.pause_gate = PauseGate(paused)
        self.lock = ReentrancyLock(scope=address)
        self.guard = AntiFlashGuard()
        self.accrual = YieldAccrual(self.ctx)
        self.trades = TradeProcessor(self.ctx, self.accrual, self.guard)
        self.thaw_scheduler = ThawScheduler(self.ctx, blocks.timestamp())
        self.governance = GovernanceAdmin(self.ctx, self.owner_gate, self.pause_gate)
        self._depth = 0

        token.add_observer(self._on_token_balance_change)
        log.info(
            "reserve engine %s up: total=%s active=%s dormant=%s",
            address, ledger.total_reserve, ledger.active, ledger.dormant(),
        )

    # ------------------------------------------------------------------ #
    # Collaborators / config
    # ------------------------------------------------------------------ #

    @property
    def config(self) -> PoolConfig:
        return self.ctx.cfg

    @property
    def token(self) -> TokenLedger:
        return self.ctx.token

    @property
    def bank(self) -> NativeBank:
        return self.ctx.bank

    @property
    def owner(self) -> str:
        return self.owner_gate.owner

    @property
    def paused(self) -> bool:
        return self.pause_gate.is_paused()

    # ------------------------------------------------------------------ #
    # Atomic units
    # ------------------------------------------------------------------ #

    def _savepoint(self) -> _Savepoint:
        ctx = self.ctx
        return _Savepoint(
            reserve=ctx.ledger.snapshot(),
            cfg=copy.deepcopy(ctx.cfg),
            accounts=self.accrual.snapshot(),
            throttle=copy.deepcopy(self.guard.throttle),
            last_thaw_timestamp=self.thaw_scheduler.last_thaw_timestamp,
            token=ctx.token.snapshot(),
            bank=ctx.bank.snapshot(),
            owner=self.owner_gate.snapshot(),
            paused=self.pause_gate.snapshot(),
            events_mark=self.events.mark(),
        )

    def _rollback(self, sp: _Savepoint) -> None:
        ctx = self.ctx
        ctx.ledger.restore(sp.reserve)
        ctx.cfg = sp.cfg
        self.accrual.restore(sp.accounts)
        self.guard.throttle = sp.throttle
        self.thaw_scheduler.last_thaw_timestamp = sp.last_thaw_timestamp
        ctx.token.restore(sp.token)
        ctx.bank.restore(sp.bank)
        self.owner_gate.restore(sp.owner)
        self.pause_gate.restore(sp.paused)
        self.events.discard(sp.events_mark)

    @contextmanager
    def _atomic(self, op: str) -> Iterator[None]:
        sp = self._savepoint()
        outermost = self._depth == 0
        self._depth += 1
        try:
            yield
        except Exception as e:
            self._rollback(sp)
            if outermost:
                log.warning("%s rolled back: %s", op, e)
            raise
        finally:
            self._depth -= 1
        if outermost:
            batch = self.events.commit()
            try:
                self._publish(batch)
            except Exception:
                # state and events are committed; metrics must not turn that into a failure
                log.exception("metrics publish failed after %s", op)

    def _on_token_balance_change(self, frm: Optional[str], to: Optional[str], amount: int) -> None:
        """
        Settle yield before a token balance moves. Inside an engine call the
        settlement joins that unit; a direct token transfer gets a unit of its
        own so its `YieldAccrued` notifications are committed right away.
        """
        if self._depth:
            self.accrual.on_balance_change(frm, to, amount)
            return
        with self._atomic("token_transfer"):
            self.accrual.on_balance_change(frm, to, amount)

    def _run(self, op: str, fn: Callable[[], T], *, lock: bool = False, pausable: bool = False) -> T:
        with metrics.time_operation(op):
            try:
                with self._atomic(op):
                    if pausable:
                        self.pause_gate.require_not_paused()
                    if lock:
                        self.lock.acquire(op)
                        try:
                            return fn()
                        finally:
                            self.lock.release()
                    return fn()
            except ThawPoolError as e:
                metrics.record_failure(self.address, op, e.code)
                raise

    def _publish(self, batch: Tuple[PoolEvent, ...]) -> None:
        pool = self.address
        for ev in batch:
            if isinstance(ev, Bought):
                metrics.record_buy(pool, ev.value_in, ev.fee)
            elif isinstance(ev, Sold):
                metrics.record_sell(pool, ev.value_out, ev.fee)
            elif isinstance(ev, Deposited):
                metrics.record_deposit(pool, ev.value)
            elif isinstance(ev, ThawReleased):
                metrics.record_thaw(pool, ev.released, ev.caller_reward)
            elif isinstance(ev, YieldClaimed):
                metrics.record_claim(pool, ev.paid, ev.forfeited)
            elif isinstance(ev, EmergencyDrain):
                metrics.record_drain(pool, ev.amount)
            elif isinstance(ev, ParameterChanged):
                metrics.record_parameter_change(pool, ev.parameter)
        ledger = self.ctx.ledger
        metrics.set_reserve(pool, ledger.total_reserve, ledger.active, ledger.dormant(), self.price_wad())

    # ------------------------------------------------------------------ #
    # Trading
    # ------------------------------------------------------------------ #

    def deposit(self, caller: str, value: int) -> None:
        self._run("deposit", lambda: self.trades.deposit(caller, value), lock=True, pausable=True)

    def buy(self, caller: str, min_tokens_out: int, value: int) -> int:
        return self._run("buy", lambda: self.trades.buy(caller, min_tokens_out, value), lock=True, pausable=True)

    def sell(self, caller: str, token_amount: int, min_value_out: int) -> int:
        return self._run(
            "sell", lambda: self.trades.sell(caller, token_amount, min_value_out), lock=True, pausable=True
        )

    # ------------------------------------------------------------------ #
    # Thaw / yield
    # ------------------------------------------------------------------ #

    def thaw(self, caller: str) -> ThawResult:
        return self._run("thaw", lambda: self.thaw_scheduler.thaw(caller), lock=True, pausable=True)

    def claim_yield(self, caller: str) -> int:
        return self._run("claim_yield", lambda: self.accrual.claim(caller), lock=True, pausable=True)

    def sync_my_yield(self, caller: str) -> int:
        """Settle the caller's accrual now. Returns the amount added."""
        def _sync() -> int:
            require_address(caller)
            return self.accrual.sync_account(caller)

        return self._run("sync_my_yield", _sync, pausable=True)

    # ------------------------------------------------------------------ #
    # Governance
    # ------------------------------------------------------------------ #

    def set_fee_bps(self, caller: str, fee_bps: int) -> None:
        self._run("set_fee_bps", lambda: self.governance.set_fee_bps(caller, fee_bps))

    def set_caller_reward_bps(self, caller: str, reward_bps: int) -> None:
        self._run("set_caller_reward_bps", lambda: self.governance.set_caller_reward_bps(caller, reward_bps))

    def set_thaw_params(self, caller: str, interval_sec: int, lambda_num: int, lambda_den: int) -> None:
        self._run(
            "set_thaw_params",
            lambda: self.governance.set_thaw_params(caller, interval_sec, lambda_num, lambda_den),
        )

    def set_yield_rate(self, caller: str, numer: int, denom: int) -> None:
        self._run("set_yield_rate", lambda: self.governance.set_yield_rate(caller, numer, denom))

    def set_max_mint_per_tx(self, caller: str, cap: int) -> None:
        self._run("set_max_mint_per_tx", lambda: self.governance.set_max_mint_per_tx(caller, cap))

    def set_min_active(self, caller: str, min_active: int) -> None:
        self._run("set_min_active", lambda: self.governance.set_min_active(caller, min_active))

    def set_halt_below(self, caller: str, halt_below: int) -> None:
        self._run("set_halt_below", lambda: self.governance.set_halt_below(caller, halt_below))

    def set_min_blocks_between_trades(self, caller: str, blocks: int) -> None:
        self._run(
            "set_min_blocks_between_trades",
            lambda: self.governance.set_min_blocks_between_trades(caller, blocks),
        )

    def set_protected_reserve_floor(self, caller: str, floor: int) -> None:
        self._run(
            "set_protected_reserve_floor",
            lambda: self.governance.set_protected_reserve_floor(caller, floor),
        )

    def set_timelock(self, caller: str, timelock: str) -> None:
        self._run("set_timelock", lambda: self.governance.set_timelock(caller, timelock))

    def transfer_ownership(self, caller: str, new_owner: str) -> None:
        self._run("transfer_ownership", lambda: self.governance.transfer_ownership(caller, new_owner))

    def pause(self, caller: str) -> bool:
        return self._run("pause", lambda: self.governance.pause(caller))

    def unpause(self, caller: str) -> bool:
        return self._run("unpause", lambda: self.governance.unpause(caller))

    def emergency_drain(self, caller: str, to: str, amount: int) -> None:
        self._run("emergency_drain", lambda: self.governance.emergency_drain(caller, to, amount), lock=True)

    # ------------------------------------------------------------------ #
    # Views
    # ------------------------------------------------------------------ #

    @property
    def total_reserve(self) -> int:
        return self.ctx.ledger.total_reserve

    @property
    def active(self) -> int:
        return self.ctx.ledger.active

    @property
    def last_thaw_timestamp(self) -> int:
        return self.thaw_scheduler.last_thaw_timestamp

    def dormant(self) -> int:
        return self.ctx.ledger.dormant()

    def state(self) -> ReserveState:
        return self.ctx.ledger.state()

    def price_wad(self) -> int:
        return price_wad(self.state(), self.config.floors.min_active)

    def tokens_for_value(self, net_in: int) -> int:
        return tokens_for_value(self.state(), net_in, self.config.floors.min_active)

    def value_for_tokens(self, amount: int) -> int:
        return value_for_tokens(self.state(), amount, self.config.floors.min_active)

    def quote(self) -> Quote:
        return Quote.of(self.state(), self.config.floors.min_active)

    def invariant_holds(self) -> bool:
        return self.ctx.ledger.invariant_holds()

    def accrued_for(self, who: str) -> int:
        return self.accrual.accrued_for(who)

    def last_trade_height(self, who: str) -> Optional[int]:
        return self.guard.last_trade_height(who)

    def next_thaw_timestamp(self) -> int:
        return self.thaw_scheduler.next_thaw_timestamp()

    # ------------------------------------------------------------------ #
    # Persistence
    # ------------------------------------------------------------------ #

    def dump(self) -> Dict[str, Any]:
        """JSON-friendly snapshot of the whole pool (committed state only)."""
        ctx = self.ctx
        return {
            "version": DUMP_VERSION,
            "address": self.address,
            "config": ctx.cfg.to_dict(),
            "reserve": ctx.ledger.to_dict(),
            "owner": self.owner,
            "paused": self.paused,
            "last_thaw_timestamp": self.last_thaw_timestamp,
            "yield_accounts": self.accrual.to_dict(),
            "last_trade_height": self.guard.throttle.to_dict(),
            "token": ctx.token.dump(),
            "bank": ctx.bank.dump(),
        }

    @classmethod
    def load(cls, data: Mapping[str, Any], *, blocks: BlockSource) -> "ReserveEngine":
        """
        Rebuild an engine from `dump()` output. The reserve section is checked
        against the accounting identity before anything else is restored.
        """
        version = int(data.get("version", DUMP_VERSION))
        if version != DUMP_VERSION:
            raise ValidationError("unsupported dump version", details={"version": version})

        reserve = data["reserve"]
        ledger = ReserveLedger.from_dict(reserve)
        if "dormant" in reserve and int(reserve["dormant"]) != ledger.dormant():
            raise ValidationError(
                "reserve snapshot violates total == active + dormant",
                details=dict(reserve),
            )

        cfg = PoolConfig.from_dict(data.get("config") or {})
        address = str(data.get("address", DEFAULT_ADDRESS))
        token = TokenLedger.load(data["token"])
        bank = NativeBank(data.get("bank") or {})

        eng = cls(
            blocks=blocks,
            config=cfg,
            address=address,
            token=token,
            bank=bank,
            total_reserve=ledger.total_reserve,
            active=ledger.active,
            paused=bool(data.get("paused", False)),
        )
        eng.owner_gate.restore(str(data.get("owner", cfg.roles.owner)))
        eng.accrual.restore(YieldAccrual.accounts_from_dict(data.get("yield_accounts") or {}))
        eng.guard.throttle = TradeThrottle.from_dict(data.get("last_trade_height") or {})
        eng.thaw_scheduler.last_thaw_timestamp = int(data.get("last_thaw_timestamp", blocks.timestamp()))
        return eng


__all__ = ["ReserveEngine", "DUMP_VERSION", "DEFAULT_ADDRESS"]

from __future__ import annotations

"""
Trade processor — buy, sell, deposit
------------------------------------

All three add the same delta to total and active reserve, so none of them
moves dormant:

  buy(v)      total += v, active += v          mint tokens_for_value(v - fee)
  sell(n)     total -= net, active -= gross - fee, burn n, pay net
  deposit(v)  total += v, active += v

Amounts are priced against the snapshot taken *before* the trade. Buy and
sell are gated by the circuit breaker (active >= halt_below) and by the
per-account trade spacing; every check runs before the first effect, and the
outbound payment on sell is the last step.
"""

import logging

from ..adapters.token_ledger import require_address, require_amount
from ..errors import (CapExceeded, CircuitBreakerTripped, InsufficientActiveReserve,
                      InsufficientTokenBalance, SlippageExceeded, ValidationError,
                      ZeroOutput)
from ..pooltypes.events import Bought, Deposited, Sold
from ..safe_uint import fee_split, u256_add
from .accrual import YieldAccrual
from .antiflash import AntiFlashGuard
from .context import PoolContext
from .pricing import tokens_for_value, value_for_tokens

log = logging.getLogger(__name__)


class TradeProcessor:
    __slots__ = ("ctx", "accrual", "guard")

    def __init__(self, ctx: PoolContext, accrual: YieldAccrual, guard: AntiFlashGuard) -> None:
        self.ctx = ctx
        self.accrual = accrual
        self.guard = guard

    # --- shared preconditions ---

    def _require_trading_open(self) -> None:
        active = self.ctx.ledger.active
        halt_below = self.ctx.cfg.limits.halt_below
        if active < halt_below:
            raise CircuitBreakerTripped(active=active, halt_below=halt_below)

    def _require_cooldown(self, caller: str, height: int) -> None:
        self.guard.check(caller, height, self.ctx.cfg.limits.min_blocks_between_trades)

    # --- operations ---

    def buy(self, caller: str, min_tokens_out: int, value: int) -> int:
        """Mint participation tokens for `value`. Returns the minted amount."""
        ctx, cfg = self.ctx, self.ctx.cfg
        require_address(caller)
        require_amount(min_tokens_out)
        require_amount(value)
        if value == 0:
            raise ValidationError("buy requires value > 0")
        ctx.collect(caller, value)

        self._require_trading_open()
        height = ctx.blocks.height()
        self._require_cooldown(caller, height)

        snap = ctx.ledger.state()
        fee, net = fee_split(value, cfg.fees.fee_bps)
        out = tokens_for_value(snap, net, cfg.floors.min_active)
        if out > cfg.limits.max_mint_per_tx:
            raise CapExceeded(amount=out, cap=cfg.limits.max_mint_per_tx)
        if out == 0:
            raise ZeroOutput(details={"value": value, "net": net})
        if out < min_tokens_out:
            raise SlippageExceeded(got=out, minimum=min_tokens_out)

        ctx.ledger.credit_both(u256_add(net, fee))
        ctx.token.mint(ctx.address, caller, out)
        self.guard.record(caller, height)
        ctx.events.emit(
            Bought(
                buyer=caller,
                value_in=value,
                fee=fee,
                tokens_out=out,
                total_reserve=ctx.ledger.total_reserve,
                active=ctx.ledger.active,
                height=height,
            )
        )
        log.debug("buy %s: value=%s fee=%s out=%s", caller, value, fee, out)
        return out

    def sell(self, caller: str, token_amount: int, min_value_out: int) -> int:
        """Burn `token_amount` and pay out the net redemption value."""
        ctx, cfg = self.ctx, self.ctx.cfg
        require_address(caller)
        require_amount(token_amount)
        require_amount(min_value_out)
        if token_amount == 0:
            raise ValidationError("sell requires token_amount > 0")
        bal = ctx.token.balance_of(caller)
        if bal < token_amount:
            raise InsufficientTokenBalance(account=caller, required=token_amount, balance=bal)

        self._require_trading_open()
        height = ctx.blocks.height()
        self._require_cooldown(caller, height)

        # settle yield on the pre-sale balance
        self.accrual.sync_account(caller)

        snap = ctx.ledger.state()
        gross = value_for_tokens(snap, token_amount, cfg.floors.min_active)
        if gross == 0:
            raise ZeroOutput(details={"token_amount": token_amount})
        if snap.active < gross:
            raise InsufficientActiveReserve(required=gross, active=snap.active)
        fee, net = fee_split(gross, cfg.fees.fee_bps)
        if net < min_value_out:
            raise SlippageExceeded(got=net, minimum=min_value_out)

        ctx.token.burn(ctx.address, caller, token_amount)
        ctx.ledger.settle_redemption(gross, fee, net)
        self.accrual.sync_account(caller)
        self.guard.record(caller, height)
        ctx.events.emit(
            Sold(
                seller=caller,
                tokens_in=token_amount,
                gross=gross,
                fee=fee,
                value_out=net,
                total_reserve=ctx.ledger.total_reserve,
                active=ctx.ledger.active,
                height=height,
            )
        )
        log.debug("sell %s: tokens=%s gross=%s fee=%s net=%s", caller, token_amount, gross, fee, net)
        ctx.pay(caller, net)
        return net

    def deposit(self, caller: str, value: int) -> None:
        """Add `value` to reserve without minting; lands in active."""
        ctx = self.ctx
        require_address(caller)
        require_amount(value)
        if value == 0:
            raise ValidationError("deposit requires value > 0")
        ctx.collect(caller, value)
        ctx.ledger.credit_both(value)
        ctx.events.emit(
            Deposited(
                sender=caller,
                value=value,
                total_reserve=ctx.ledger.total_reserve,
                active=ctx.ledger.active,
                height=ctx.blocks.height(),
            )
        )
        log.debug("deposit %s: value=%s", caller, value)


__all__ = ["TradeProcessor"]

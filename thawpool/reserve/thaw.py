from __future__ import annotations

"""
Thaw scheduler — gradual dormant -> active release
--------------------------------------------------

Anyone may call `thaw`, at most once per `thaw.interval_sec`. Calling sooner
is a hard failure (ThawTooSoon), not a silent no-op.

Let gap = max(dormant - active, 0). With elapsed seconds since the last
checkpoint:

    candidate = gap * (lambda_num * elapsed) // (lambda_den * interval_sec)
    candidate = min(candidate, gap // 10, gap)

The caller keeps `caller_reward_bps` of the candidate (paid out of custody);
the rest becomes active. Dormant therefore shrinks by exactly `candidate`,
never by more than a tenth of the gap per call. A zero gap or a zero
candidate only moves the checkpoint and returns a zero result.

Edge: gap // 10 is 0 whenever gap < 10 base units, so releases stall at that
scale regardless of elapsed time.
"""

import logging
from typing import NamedTuple

from ..adapters.token_ledger import require_address
from ..errors import ThawTooSoon
from ..pooltypes.events import ThawReleased
from ..safe_uint import apply_bps, u256_add, u256_div, u256_mul, u256_sub, u256_sub_floor
from .context import PoolContext

log = logging.getLogger(__name__)

MAX_RELEASE_DIVISOR = 10  # at most gap / 10 per call


class ThawResult(NamedTuple):
    released: int
    caller_reward: int
    active_after: int


class ThawScheduler:
    __slots__ = ("ctx", "last_thaw_timestamp")

    def __init__(self, ctx: PoolContext, last_thaw_timestamp: int) -> None:
        self.ctx = ctx
        self.last_thaw_timestamp = int(last_thaw_timestamp)

    def gap(self) -> int:
        ledger = self.ctx.ledger
        return u256_sub_floor(ledger.dormant(), ledger.active)

    def next_thaw_timestamp(self) -> int:
        return u256_add(self.last_thaw_timestamp, self.ctx.cfg.thaw.interval_sec)

    def candidate(self, gap: int, elapsed: int) -> int:
        """Release size for `gap` after `elapsed` seconds, before the reward split."""
        p = self.ctx.cfg.thaw
        denom = u256_mul(p.lambda_den, p.interval_sec) or 1
        raw = u256_div(u256_mul(gap, u256_mul(p.lambda_num, elapsed)), denom)
        return min(raw, gap // MAX_RELEASE_DIVISOR, gap)

    def thaw(self, caller: str) -> ThawResult:
        require_address(caller)
        ctx = self.ctx
        now = ctx.blocks.timestamp()
        next_ts = self.next_thaw_timestamp()
        if now < next_ts:
            raise ThawTooSoon(next_timestamp=next_ts, now=now)

        gap = self.gap()
        if gap == 0:
            self.last_thaw_timestamp = now
            return ThawResult(0, 0, ctx.ledger.active)

        elapsed = u256_sub(now, self.last_thaw_timestamp)
        candidate = self.candidate(gap, elapsed)
        if candidate == 0:
            self.last_thaw_timestamp = now
            return ThawResult(0, 0, ctx.ledger.active)

        reward = apply_bps(candidate, ctx.cfg.fees.caller_reward_bps)
        to_active = candidate - reward
        ctx.ledger.release_dormant(to_active, reward)
        self.last_thaw_timestamp = now
        ctx.events.emit(
            ThawReleased(
                caller=caller,
                released=candidate,
                caller_reward=reward,
                active=ctx.ledger.active,
                timestamp=now,
            )
        )
        log.info(
            "thaw by %s released %s (reward %s) of gap %s after %ss",
            caller, candidate, reward, gap, elapsed,
        )
        ctx.pay(caller, reward)
        return ThawResult(candidate, reward, ctx.ledger.active)


__all__ = ["ThawResult", "ThawScheduler", "MAX_RELEASE_DIVISOR"]

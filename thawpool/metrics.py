from __future__ import annotations

"""
Prometheus metrics for the thawpool reserve engine.

We expose counters, gauges and a histogram covering:
- trades: buys / sells by side, and the native value they moved
- thaw: releases and the caller rewards paid out of them
- yield: amounts claimed and forfeited
- governance: emergency drains, parameter changes
- failures: rejected operations by error code (all rolled back)
- reserve snapshot: total / active / dormant and the WAD price, per pool
- latency: wall time per engine operation

Every series carries a `pool` label (the engine's own address) so several
engines can share the registry. Recording happens only after an operation
commits; a rolled-back operation only touches the failure counter.
"""


import time
from contextlib import contextmanager
from typing import Iterator, Tuple

from prometheus_client import (CONTENT_TYPE_LATEST, CollectorRegistry, Counter,
                               Gauge, Histogram, generate_latest)

from .safe_uint import U256_MAX

# Use a dedicated registry so embedding apps can choose to merge or expose it directly.
REGISTRY = CollectorRegistry()

# ────────────────────────────────────────────────────────────────────────────────
# Label conventions
#   pool: engine address
#   side: "buy" | "sell"
#   op:   engine operation name ("buy", "thaw", "claim_yield", "set_fee_bps", ...)
#   code: ThawPoolError.code ("SLIPPAGE_EXCEEDED", "THAW_TOO_SOON", ...)
# ────────────────────────────────────────────────────────────────────────────────

# Counters
TRADES = Counter(
    "thawpool_trades_total",
    "Committed trades by side.",
    labelnames=("pool", "side"),
    registry=REGISTRY,
)

TRADE_VALUE = Counter(
    "thawpool_trade_value_total",
    "Native value moved by committed trades (value in on buy, net value out on sell).",
    labelnames=("pool", "side"),
    registry=REGISTRY,
)

TRADE_FEES = Counter(
    "thawpool_trade_fees_total",
    "Trading fees retained in active reserve.",
    labelnames=("pool",),
    registry=REGISTRY,
)

DEPOSITS = Counter(
    "thawpool_deposited_value_total",
    "Native value deposited without minting.",
    labelnames=("pool",),
    registry=REGISTRY,
)

THAW_RELEASES = Counter(
    "thawpool_thaw_releases_total",
    "Thaw calls that released a non-zero amount.",
    labelnames=("pool",),
    registry=REGISTRY,
)

THAW_RELEASED_VALUE = Counter(
    "thawpool_thaw_released_value_total",
    "Dormant reserve released by thaw (caller rewards included).",
    labelnames=("pool",),
    registry=REGISTRY,
)

THAW_REWARDS = Counter(
    "thawpool_thaw_rewards_total",
    "Native value paid to thaw callers.",
    labelnames=("pool",),
    registry=REGISTRY,
)

YIELD_CLAIMED = Counter(
    "thawpool_yield_claimed_total",
    "Yield paid out of dormant reserve.",
    labelnames=("pool",),
    registry=REGISTRY,
)

YIELD_FORFEITED = Counter(
    "thawpool_yield_forfeited_total",
    "Accrued yield dropped on claim because it exceeded the payable cap.",
    labelnames=("pool",),
    registry=REGISTRY,
)

DRAINS = Counter(
    "thawpool_emergency_drains_total",
    "Emergency drains executed by the timelock.",
    labelnames=("pool",),
    registry=REGISTRY,
)

DRAINED_VALUE = Counter(
    "thawpool_emergency_drained_value_total",
    "Native value withdrawn by emergency drains.",
    labelnames=("pool",),
    registry=REGISTRY,
)

PARAMETER_CHANGES = Counter(
    "thawpool_parameter_changes_total",
    "Admin parameter changes by parameter name.",
    labelnames=("pool", "parameter"),
    registry=REGISTRY,
)

FAILURES = Counter(
    "thawpool_failed_operations_total",
    "Operations rejected and rolled back, by operation and error code.",
    labelnames=("pool", "op", "code"),
    registry=REGISTRY,
)

# Gauges (reserve snapshot after the last committed operation)
TOTAL_RESERVE = Gauge(
    "thawpool_total_reserve",
    "Total native value in custody.",
    labelnames=("pool",),
    registry=REGISTRY,
)

ACTIVE_RESERVE = Gauge(
    "thawpool_active_reserve",
    "Active reserve (pricing backing).",
    labelnames=("pool",),
    registry=REGISTRY,
)

DORMANT_RESERVE = Gauge(
    "thawpool_dormant_reserve",
    "Dormant reserve (total - active).",
    labelnames=("pool",),
    registry=REGISTRY,
)

PRICE = Gauge(
    "thawpool_price",
    "Token price in native units (WAD price / 1e18); NaN when dormant is zero.",
    labelnames=("pool",),
    registry=REGISTRY,
)

# Histograms
OP_SECONDS = Histogram(
    "thawpool_operation_seconds",
    "Wall time spent in an engine operation (committed or not).",
    labelnames=("op",),
    buckets=(0.0001, 0.0005, 0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0),
    registry=REGISTRY,
)

# ────────────────────────────────────────────────────────────────────────────────
# Recording helpers
# ────────────────────────────────────────────────────────────────────────────────


def record_buy(pool: str, value_in: int, fee: int) -> None:
    TRADES.labels(pool=pool, side="buy").inc()
    TRADE_VALUE.labels(pool=pool, side="buy").inc(value_in)
    if fee:
        TRADE_FEES.labels(pool=pool).inc(fee)


def record_sell(pool: str, value_out: int, fee: int) -> None:
    TRADES.labels(pool=pool, side="sell").inc()
    TRADE_VALUE.labels(pool=pool, side="sell").inc(value_out)
    if fee:
        TRADE_FEES.labels(pool=pool).inc(fee)


def record_deposit(pool: str, value: int) -> None:
    DEPOSITS.labels(pool=pool).inc(value)


def record_thaw(pool: str, released: int, reward: int) -> None:
    """Only non-zero releases count as a release."""
    if released == 0:
        return
    THAW_RELEASES.labels(pool=pool).inc()
    THAW_RELEASED_VALUE.labels(pool=pool).inc(released)
    if reward:
        THAW_REWARDS.labels(pool=pool).inc(reward)


def record_claim(pool: str, paid: int, forfeited: int) -> None:
    YIELD_CLAIMED.labels(pool=pool).inc(paid)
    if forfeited:
        YIELD_FORFEITED.labels(pool=pool).inc(forfeited)


def record_drain(pool: str, amount: int) -> None:
    DRAINS.labels(pool=pool).inc()
    DRAINED_VALUE.labels(pool=pool).inc(amount)


def record_parameter_change(pool: str, parameter: str) -> None:
    PARAMETER_CHANGES.labels(pool=pool, parameter=parameter).inc()


def record_failure(pool: str, op: str, code: str) -> None:
    FAILURES.labels(pool=pool, op=op, code=code).inc()


def set_reserve(pool: str, total: int, active: int, dormant: int, price_wad: int) -> None:
    """Publish the post-commit reserve snapshot."""
    TOTAL_RESERVE.labels(pool=pool).set(total)
    ACTIVE_RESERVE.labels(pool=pool).set(active)
    DORMANT_RESERVE.labels(pool=pool).set(dormant)
    PRICE.labels(pool=pool).set(float("nan") if price_wad == U256_MAX else price_wad / 10**18)


@contextmanager
def time_operation(op: str) -> Iterator[None]:
    """Context manager to observe the wall time of one engine operation."""
    start = time.perf_counter()
    try:
        yield
    finally:
        OP_SECONDS.labels(op=op).observe(time.perf_counter() - start)


def render() -> Tuple[bytes, str]:
    """Exposition payload and its content type, for any HTTP layer to serve."""
    return generate_latest(REGISTRY), CONTENT_TYPE_LATEST


__all__ = [
    "REGISTRY",
    "TRADES",
    "TRADE_VALUE",
    "TRADE_FEES",
    "DEPOSITS",
    "THAW_RELEASES",
    "THAW_RELEASED_VALUE",
    "THAW_REWARDS",
    "YIELD_CLAIMED",
    "YIELD_FORFEITED",
    "DRAINS",
    "DRAINED_VALUE",
    "PARAMETER_CHANGES",
    "FAILURES",
    "TOTAL_RESERVE",
    "ACTIVE_RESERVE",
    "DORMANT_RESERVE",
    "PRICE",
    "OP_SECONDS",
    "record_buy",
    "record_sell",
    "record_deposit",
    "record_thaw",
    "record_claim",
    "record_drain",
    "record_parameter_change",
    "record_failure",
    "set_reserve",
    "time_operation",
    "render",
]

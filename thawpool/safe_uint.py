# -*- coding: utf-8 -*-
"""
thawpool.safe_uint
==================

Checked unsigned-integer helpers for the reserve engine.

Every amount the engine stores or computes lives in ``[0, U256_MAX]``. The
helpers below are integer-only and **fail fast**: any step that would leave
that domain (overflow, underflow, division by zero, negative input) raises
:class:`thawpool.errors.ArithmeticFault` instead of wrapping or clamping.

Products are checked *before* division, mirroring 256-bit machine semantics,
so ``mul_div_down(a, b, d)`` fails if ``a * b`` alone would overflow even when
the quotient would fit.
"""

from __future__ import annotations

from typing import Final, Tuple

from .errors import ArithmeticFault

U256_MAX: Final[int] = (1 << 256) - 1
BPS_DEN: Final[int] = 10_000
SCALE: Final[int] = 10**18  # WAD fixed-point

# Canonical error tags (short, stable)
ERR_OOB: Final[str] = "UINT:OOB"
ERR_OVER: Final[str] = "UINT:OVERFLOW"
ERR_UNDER: Final[str] = "UINT:UNDERFLOW"
ERR_DIV0: Final[str] = "UINT:DIV0"


def _fault(tag: str, **details: int) -> ArithmeticFault:
    return ArithmeticFault(tag, details=details)


# ---------------------------------------------------------------------------
# Guards
# ---------------------------------------------------------------------------

def is_u256(x: object) -> bool:
    return isinstance(x, int) and not isinstance(x, bool) and 0 <= x <= U256_MAX


def require_u256(*xs: int) -> None:
    """Raise unless every argument is an int in [0, U256_MAX]."""
    for x in xs:
        if not is_u256(x):
            raise ArithmeticFault(ERR_OOB, details={"value": repr(x)})


# ---------------------------------------------------------------------------
# Checked (fail-fast on errors)
# ---------------------------------------------------------------------------

def u256_add(x: int, y: int) -> int:
    """Checked add: raise on overflow."""
    require_u256(x, y)
    s = x + y
    if s > U256_MAX:
        raise _fault(ERR_OVER, x=x, y=y)
    return s


def u256_sub(x: int, y: int) -> int:
    """Checked sub: raise on underflow (y > x)."""
    require_u256(x, y)
    if y > x:
        raise _fault(ERR_UNDER, x=x, y=y)
    return x - y


def u256_mul(x: int, y: int) -> int:
    """Checked multiply: raise on overflow."""
    require_u256(x, y)
    p = x * y
    if p > U256_MAX:
        raise _fault(ERR_OVER, x=x, y=y)
    return p


def u256_div(x: int, y: int) -> int:
    """Checked divide (floor): raise on div-by-zero."""
    require_u256(x, y)
    if y == 0:
        raise _fault(ERR_DIV0, x=x)
    return x // y


def mul_div_down(x: int, y: int, d: int) -> int:
    """floor((x*y)/d) with the intermediate product checked."""
    return u256_div(u256_mul(x, y), d)


def u256_sub_floor(x: int, y: int) -> int:
    """Saturating subtract: 0 when y > x. Inputs are still domain-checked."""
    require_u256(x, y)
    return x - y if x >= y else 0


# ---------------------------------------------------------------------------
# Fee helpers
# ---------------------------------------------------------------------------

def check_bps(bps: int) -> None:
    if not is_u256(bps) or bps > BPS_DEN:
        raise ArithmeticFault("MATH:BPS_OOB", details={"bps": repr(bps)})


def apply_bps(amount: int, bps: int) -> int:
    """Return floor(amount * bps / 10_000)."""
    check_bps(bps)
    return mul_div_down(amount, bps, BPS_DEN)


def fee_split(amount: int, bps_fee: int) -> Tuple[int, int]:
    """
    Split amount into (fee, remainder) with floor rounding on the fee.
    Guaranteed: fee + remainder == amount.
    """
    fee = apply_bps(amount, bps_fee)
    return fee, u256_sub(amount, fee)


__all__ = [
    "U256_MAX", "BPS_DEN", "SCALE",
    "ERR_OOB", "ERR_OVER", "ERR_UNDER", "ERR_DIV0",
    "is_u256", "require_u256",
    "u256_add", "u256_sub", "u256_mul", "u256_div", "mul_div_down",
    "u256_sub_floor",
    "check_bps", "apply_bps", "fee_split",
]

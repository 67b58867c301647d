from __future__ import annotations
# thawpool/errors.py
"""
Error types for the thawpool reserve engine. Every failure an engine operation
can report is one of these; they are lightweight, serializable, and safe to
surface over logs or a CLI.

Taxonomy
--------
ThawPoolError (base)
 ├─ ValidationError          zero/invalid amount or address
 │   ├─ ArithmeticFault      u256 overflow / underflow / division by zero
 │   └─ ConfigError          invalid configuration value
 ├─ AuthorizationError       caller lacks the owner/timelock role
 ├─ StateError               engine state forbids the call
 │   ├─ Paused
 │   ├─ CircuitBreakerTripped
 │   ├─ CooldownActive
 │   ├─ ReentrantCall
 │   └─ ThawTooSoon
 ├─ EconomicError            amounts do not work out
 │   ├─ SlippageExceeded
 │   ├─ CapExceeded
 │   ├─ ZeroOutput
 │   ├─ InsufficientActiveReserve
 │   ├─ InsufficientTokenBalance
 │   ├─ FloorBreach
 │   └─ NothingToClaim
 └─ TransferError            outbound/incoming native-value transfer failed

A failed engine operation leaves no trace in engine state; callers resubmit.
"""


import json
from typing import Any, Dict, Mapping, Optional


class ThawPoolError(Exception):
    """Base class for thawpool domain errors."""

    code: str = "THAWPOOL_ERROR"

    def __init__(self, message: str = "", *, details: Optional[Mapping[str, Any]] = None) -> None:
        self.message = message or self.__class__.__name__
        self.details = dict(details or {})
        super().__init__(self.__str__())

    @property
    def category(self) -> str:
        """Name of the taxonomy branch (ValidationError, StateError, ...)."""
        for klass in type(self).__mro__:
            if klass in _CATEGORIES:
                return klass.__name__
        return ThawPoolError.__name__

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "category": self.category,
            "message": self.message,
            "details": self.details,
        }

    def __str__(self) -> str:  # pragma: no cover - trivial
        if self.details:
            packed = json.dumps(self.details, sort_keys=True, separators=(",", ":"), default=str)
            return f"{self.code}: {self.message} [{packed}]"
        return f"{self.code}: {self.message}"


# ─── taxonomy roots ──────────────────────────────────────────────────────────


class ValidationError(ThawPoolError):
    """Zero or malformed amount/address, or a value outside its domain."""
    code = "VALIDATION_ERROR"


class AuthorizationError(ThawPoolError):
    """Caller does not hold the role the operation requires."""
    code = "AUTHORIZATION_ERROR"

    def __init__(
        self,
        message: str = "caller not authorized",
        *,
        caller: Optional[str] = None,
        role: Optional[str] = None,
        details: Optional[Mapping[str, Any]] = None,
    ) -> None:
        d = dict(details or {})
        if caller is not None:
            d.setdefault("caller", caller)
        if role is not None:
            d.setdefault("role", role)
        super().__init__(message, details=d)


class StateError(ThawPoolError):
    """Engine state (pause, breaker, cooldown, lock, schedule) forbids the call."""
    code = "STATE_ERROR"


class EconomicError(ThawPoolError):
    """Computed amounts violate a slippage, cap, reserve, or floor bound."""
    code = "ECONOMIC_ERROR"


class TransferError(ThawPoolError):
    """A native-value transfer failed; the whole operation is aborted."""
    code = "TRANSFER_ERROR"

    def __init__(
        self,
        message: str = "native transfer failed",
        *,
        to: Optional[str] = None,
        amount: Optional[int] = None,
        details: Optional[Mapping[str, Any]] = None,
    ) -> None:
        d = dict(details or {})
        if to is not None:
            d.setdefault("to", to)
        if amount is not None:
            d.setdefault("amount", int(amount))
        super().__init__(message, details=d)


_CATEGORIES = (ValidationError, AuthorizationError, StateError, EconomicError, TransferError)


# ─── validation ──────────────────────────────────────────────────────────────


class ArithmeticFault(ValidationError):
    """Checked u256 arithmetic left its domain. Never wraps silently."""
    code = "ARITHMETIC_FAULT"


class ConfigError(ValidationError):
    code = "CONFIG_ERROR"


# ─── state ───────────────────────────────────────────────────────────────────


class Paused(StateError):
    code = "PAUSED"

    def __init__(self, message: str = "engine is paused", **kw: Any) -> None:
        super().__init__(message, **kw)


class CircuitBreakerTripped(StateError):
    """Active reserve fell below the configured halt threshold."""
    code = "CIRCUIT_BREAKER"

    def __init__(self, *, active: int, halt_below: int, message: str = "trading halted") -> None:
        super().__init__(message, details={"active": int(active), "halt_below": int(halt_below)})


class CooldownActive(StateError):
    code = "COOLDOWN_ACTIVE"

    def __init__(self, *, account: str, next_height: int, height: int, message: str = "trade cooldown not elapsed") -> None:
        super().__init__(
            message,
            details={"account": account, "next_height": int(next_height), "height": int(height)},
        )


class ReentrantCall(StateError):
    code = "REENTRANT_CALL"

    def __init__(self, message: str = "reentrant call rejected", **kw: Any) -> None:
        super().__init__(message, **kw)


class ThawTooSoon(StateError):
    code = "THAW_TOO_SOON"

    def __init__(self, *, next_timestamp: int, now: int, message: str = "thaw interval not elapsed") -> None:
        super().__init__(message, details={"next_timestamp": int(next_timestamp), "now": int(now)})


# ─── economic ────────────────────────────────────────────────────────────────


class SlippageExceeded(EconomicError):
    code = "SLIPPAGE_EXCEEDED"

    def __init__(self, *, got: int, minimum: int, message: str = "output below minimum") -> None:
        super().__init__(message, details={"got": int(got), "minimum": int(minimum)})


class CapExceeded(EconomicError):
    code = "CAP_EXCEEDED"

    def __init__(self, *, amount: int, cap: int, message: str = "per-transaction mint cap exceeded") -> None:
        super().__init__(message, details={"amount": int(amount), "cap": int(cap)})


class ZeroOutput(EconomicError):
    code = "ZERO_OUTPUT"

    def __init__(self, message: str = "operation would produce zero output", **kw: Any) -> None:
        super().__init__(message, **kw)


class InsufficientActiveReserve(EconomicError):
    code = "INSUFFICIENT_ACTIVE_RESERVE"

    def __init__(self, *, required: int, active: int, message: str = "active reserve too low") -> None:
        super().__init__(message, details={"required": int(required), "active": int(active)})


class InsufficientTokenBalance(EconomicError):
    code = "INSUFFICIENT_TOKEN_BALANCE"

    def __init__(self, *, account: str, required: int, balance: int, message: str = "token balance too low") -> None:
        super().__init__(
            message,
            details={"account": account, "required": int(required), "balance": int(balance)},
        )


class FloorBreach(EconomicError):
    """Operation would take total reserve to or below the protected floor."""
    code = "FLOOR_BREACH"

    def __init__(self, *, total: int, floor: int, amount: Optional[int] = None, message: str = "protected reserve floor") -> None:
        d: Dict[str, Any] = {"total": int(total), "floor": int(floor)}
        if amount is not None:
            d["amount"] = int(amount)
        super().__init__(message, details=d)


class NothingToClaim(EconomicError):
    code = "NOTHING_TO_CLAIM"

    def __init__(self, message: str = "no accrued yield", **kw: Any) -> None:
        super().__init__(message, **kw)


__all__ = [
    "ThawPoolError",
    "ValidationError",
    "AuthorizationError",
    "StateError",
    "EconomicError",
    "TransferError",
    "ArithmeticFault",
    "ConfigError",
    "Paused",
    "CircuitBreakerTripped",
    "CooldownActive",
    "ReentrantCall",
    "ThawTooSoon",
    "SlippageExceeded",
    "CapExceeded",
    "ZeroOutput",
    "InsufficientActiveReserve",
    "InsufficientTokenBalance",
    "FloorBreach",
    "NothingToClaim",
]

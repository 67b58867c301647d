from __future__ import annotations
"""
thawpool.config — configuration for the reserve engine

Covers:
- Trading fee and thaw caller reward (basis points, 10_000 = 100%)
- Thaw schedule (interval and release-rate fraction)
- Yield accrual rate (numerator / denominator, WAD-scaled)
- Per-transaction mint cap, circuit-breaker threshold, trade spacing
- Pricing floor for active reserve and the protected total-reserve floor
- Owner and timelock identities

Environment overrides (all optional; sensible defaults provided):

  THAWPOOL_FEE_BPS=30
  THAWPOOL_CALLER_REWARD_BPS=100
  THAWPOOL_THAW_INTERVAL_SEC=3600
  THAWPOOL_THAW_LAMBDA_NUM=1
  THAWPOOL_THAW_LAMBDA_DEN=100
  THAWPOOL_YIELD_NUMER=1000000000
  THAWPOOL_YIELD_DENOM=1
  THAWPOOL_MAX_MINT_PER_TX=1_000_000_000000000000000000
  THAWPOOL_MIN_BLOCKS_BETWEEN_TRADES=1
  THAWPOOL_HALT_BELOW=0
  THAWPOOL_MIN_ACTIVE=1000000000000000
  THAWPOOL_PROTECTED_RESERVE_FLOOR=0
  THAWPOOL_OWNER=0x...
  THAWPOOL_TIMELOCK=0x...

You can also load from a JSON or YAML file via
`THAWPOOL_CONFIG_FILE=/path/to/config.(json|yaml|yml)`.
File values override defaults; environment overrides the file.
"""


import json
import logging
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from .errors import ConfigError
from .safe_uint import BPS_DEN, SCALE, is_u256

log = logging.getLogger(__name__)

MAX_FEE_BPS = 1_000            # 10%
MAX_CALLER_REWARD_BPS = 500    # 5%


def _require_uint(name: str, v: Any) -> None:
    if not is_u256(v):
        raise ConfigError(f"{name} must be an unsigned 256-bit integer (got {v!r}).")


# -------------------------- Data classes --------------------------


@dataclass
class FeeParams:
    """Trading fee and thaw caller reward, in basis points."""
    fee_bps: int = 30                 # 0.3% on buy and sell
    caller_reward_bps: int = 100      # 1% of each thaw release

    def validate(self) -> None:
        _require_uint("fee_bps", self.fee_bps)
        _require_uint("caller_reward_bps", self.caller_reward_bps)
        if self.fee_bps > MAX_FEE_BPS:
            raise ConfigError(f"fee_bps must be <= {MAX_FEE_BPS} (got {self.fee_bps}).")
        if self.caller_reward_bps > MAX_CALLER_REWARD_BPS:
            raise ConfigError(
                f"caller_reward_bps must be <= {MAX_CALLER_REWARD_BPS} (got {self.caller_reward_bps})."
            )


@dataclass
class ThawParams:
    """
    Thaw schedule. A call after `interval_sec` may release up to
    gap * lambda_num * elapsed / (lambda_den * interval_sec), further capped at
    a tenth of the gap.
    """
    interval_sec: int = 3_600
    lambda_num: int = 1
    lambda_den: int = 100

    def validate(self) -> None:
        for name, v in (("thaw interval_sec", self.interval_sec),
                        ("thaw lambda_num", self.lambda_num),
                        ("thaw lambda_den", self.lambda_den)):
            _require_uint(name, v)
        if self.lambda_den == 0:
            raise ConfigError("thaw lambda_den must be > 0.")


@dataclass
class YieldParams:
    """Per-block accrual: balance * blocks * numer / (denom * 1e18)."""
    numer: int = 1_000_000_000
    denom: int = 1

    def validate(self) -> None:
        _require_uint("yield numer", self.numer)
        _require_uint("yield denom", self.denom)
        if self.denom == 0:
            raise ConfigError("yield denom must be > 0.")


@dataclass
class TradeLimits:
    max_mint_per_tx: int = 1_000_000 * SCALE
    min_blocks_between_trades: int = 1
    halt_below: int = 0               # circuit breaker on active reserve

    def validate(self) -> None:
        for name, v in (("max_mint_per_tx", self.max_mint_per_tx),
                        ("min_blocks_between_trades", self.min_blocks_between_trades),
                        ("halt_below", self.halt_below)):
            _require_uint(name, v)


@dataclass
class ReserveFloors:
    min_active: int = SCALE // 1_000          # pricing floor for active reserve
    protected_reserve_floor: int = 0          # claims/drains never go below this

    def validate(self) -> None:
        _require_uint("min_active", self.min_active)
        _require_uint("protected_reserve_floor", self.protected_reserve_floor)


@dataclass
class Roles:
    owner: str = "owner"
    timelock: str = "timelock"

    def validate(self) -> None:
        for name, v in (("owner", self.owner), ("timelock", self.timelock)):
            if not isinstance(v, str) or not v.strip():
                raise ConfigError(f"{name} identity must be a non-empty string.")


@dataclass
class PoolConfig:
    """Top-level configuration container."""
    fees: FeeParams = field(default_factory=FeeParams)
    thaw: ThawParams = field(default_factory=ThawParams)
    yield_rate: YieldParams = field(default_factory=YieldParams)
    limits: TradeLimits = field(default_factory=TradeLimits)
    floors: ReserveFloors = field(default_factory=ReserveFloors)
    roles: Roles = field(default_factory=Roles)

    def validate(self) -> None:
        self.fees.validate()
        self.thaw.validate()
        self.yield_rate.validate()
        self.limits.validate()
        self.floors.validate()
        self.roles.validate()

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "PoolConfig":
        def pick(section: str, klass: Any) -> Any:
            raw = data.get(section) or {}
            if not isinstance(raw, Mapping):
                raise ConfigError(f"config section {section!r} must be a mapping.")
            default = klass()
            kwargs = {}
            for k in asdict(default):
                kwargs[k] = raw.get(k, getattr(default, k))
            unknown = set(raw) - set(kwargs)
            if unknown:
                raise ConfigError(f"unknown keys in {section!r}: {sorted(unknown)}")
            return klass(**kwargs)

        cfg = cls(
            fees=pick("fees", FeeParams),
            thaw=pick("thaw", ThawParams),
            yield_rate=pick("yield_rate", YieldParams),
            limits=pick("limits", TradeLimits),
            floors=pick("floors", ReserveFloors),
            roles=pick("roles", Roles),
        )
        cfg.validate()
        return cfg


# -------------------------- Loaders --------------------------


def _getenv_int(name: str, default: int) -> int:
    v = os.getenv(name)
    if v is None or v == "":
        return default
    try:
        return int(str(v).replace("_", ""))
    except ValueError as e:
        raise ConfigError(f"Invalid int for {name}: {v!r}") from e


def _getenv_bps(name: str, default: int) -> int:
    bps = _getenv_int(name, default)
    if not (0 <= bps <= BPS_DEN):
        raise ConfigError(f"{name} must be between 0 and {BPS_DEN} bps (got {bps}).")
    return bps


def _getenv_str(name: str, default: str) -> str:
    v = os.getenv(name)
    return v.strip() if v else default


def from_env(base: Optional[PoolConfig] = None, prefix: str = "THAWPOOL_") -> PoolConfig:
    """
    Build a PoolConfig from environment variables, optionally layering on top of `base`.
    """
    cfg = base or PoolConfig()

    new_cfg = PoolConfig(
        fees=FeeParams(
            fee_bps=_getenv_bps(f"{prefix}FEE_BPS", cfg.fees.fee_bps),
            caller_reward_bps=_getenv_bps(f"{prefix}CALLER_REWARD_BPS", cfg.fees.caller_reward_bps),
        ),
        thaw=ThawParams(
            interval_sec=_getenv_int(f"{prefix}THAW_INTERVAL_SEC", cfg.thaw.interval_sec),
            lambda_num=_getenv_int(f"{prefix}THAW_LAMBDA_NUM", cfg.thaw.lambda_num),
            lambda_den=_getenv_int(f"{prefix}THAW_LAMBDA_DEN", cfg.thaw.lambda_den),
        ),
        yield_rate=YieldParams(
            numer=_getenv_int(f"{prefix}YIELD_NUMER", cfg.yield_rate.numer),
            denom=_getenv_int(f"{prefix}YIELD_DENOM", cfg.yield_rate.denom),
        ),
        limits=TradeLimits(
            max_mint_per_tx=_getenv_int(f"{prefix}MAX_MINT_PER_TX", cfg.limits.max_mint_per_tx),
            min_blocks_between_trades=_getenv_int(
                f"{prefix}MIN_BLOCKS_BETWEEN_TRADES", cfg.limits.min_blocks_between_trades
            ),
            halt_below=_getenv_int(f"{prefix}HALT_BELOW", cfg.limits.halt_below),
        ),
        floors=ReserveFloors(
            min_active=_getenv_int(f"{prefix}MIN_ACTIVE", cfg.floors.min_active),
            protected_reserve_floor=_getenv_int(
                f"{prefix}PROTECTED_RESERVE_FLOOR", cfg.floors.protected_reserve_floor
            ),
        ),
        roles=Roles(
            owner=_getenv_str(f"{prefix}OWNER", cfg.roles.owner),
            timelock=_getenv_str(f"{prefix}TIMELOCK", cfg.roles.timelock),
        ),
    )
    new_cfg.validate()
    return new_cfg


def read_structured_file(path: str | os.PathLike[str]) -> Dict[str, Any]:
    """Parse a JSON or YAML document into a dict (empty file -> {})."""
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(p)

    text = p.read_text(encoding="utf-8")
    if p.suffix.lower() in (".yaml", ".yml"):
        data = yaml.safe_load(text) or {}
    else:
        data = json.loads(text or "{}")
    if not isinstance(data, dict):
        raise ConfigError(f"{p} must contain a mapping at the top level.")
    return data


def from_file(path: str | os.PathLike[str]) -> PoolConfig:
    """
    Load configuration from a JSON or YAML file.
    """
    return PoolConfig.from_dict(read_structured_file(path))


def load_config(prefix: str = "THAWPOOL_") -> PoolConfig:
    """
    Resolve the effective configuration: defaults <- file (if
    `<prefix>CONFIG_FILE` is set) <- environment.
    """
    base: Optional[PoolConfig] = None
    path = os.getenv(f"{prefix}CONFIG_FILE")
    if path:
        log.debug("loading config file %s", path)
        base = from_file(path)
    return from_env(base, prefix=prefix)


__all__ = [
    "MAX_FEE_BPS",
    "MAX_CALLER_REWARD_BPS",
    "FeeParams",
    "ThawParams",
    "YieldParams",
    "TradeLimits",
    "ReserveFloors",
    "Roles",
    "PoolConfig",
    "from_env",
    "from_file",
    "read_structured_file",
    "load_config",
]

from __future__ import annotations
"""
thawpool - self-custodied reserve/pricing engine.

A reserve pool is split into an *active* balance and an implicit *dormant*
balance (dormant = total - active). A participation token is minted against
incoming value at a price derived from that split and burned on redemption.
Dormant reserve reaches the active pool only through a time-gated thaw, and
holders accrue a height-weighted yield paid out above a protected floor.

Public surface (lazily loaded):
- config, errors, metrics
- reserve (engine, ledger, pricing, trade, thaw, accrual, antiflash, governance)
- adapters (token ledger, access/pause gates, reentrancy lock, native bank, blocks)
- pooltypes (events, results), cli
"""


from typing import List

from .version import __version__

__all__: List[str] = [
    "__version__",
    # lazily importable subpackages/modules
    "config",
    "errors",
    "metrics",
    "safe_uint",
    "reserve",
    "adapters",
    "pooltypes",
    "cli",
]

# --- Lazy module loader (PEP 562) -------------------------------------------------
import importlib


_lazy_modules = set(__all__) - {"__version__"}


def __getattr__(name: str):
    if name in _lazy_modules:
        return importlib.import_module(f".{name}", __name__)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


def __dir__():
    return sorted(set(globals().keys()) | _lazy_modules)


def get_version() -> str:
    """Return the thawpool package version string."""
    return __version__

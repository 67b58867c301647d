from __future__ import annotations

from typing import Callable, Optional

import pytest

from thawpool.adapters import ManualBlockSource, NativeBank
from thawpool.config import PoolConfig
from thawpool.reserve import ReserveEngine
from thawpool.safe_uint import SCALE

OWNER = "owner"
TIMELOCK = "timelock"
ALICE = "alice"
BOB = "bob"
KEEPER = "keeper"

START_HEIGHT = 100
START_TS = 1_700_000_000

# Seed: 1000 total, 100 active -> 900 dormant, thaw gap 800.
SEED_TOTAL = 1_000 * SCALE
SEED_ACTIVE = 100 * SCALE
FUNDING = 1_000_000 * SCALE


def make_config(**sections) -> PoolConfig:
    """Test config: min_active 1 unit, defaults otherwise; override per section."""
    cfg = PoolConfig()
    cfg.floors.min_active = 1
    for section, values in sections.items():
        target = getattr(cfg, section)
        for k, v in values.items():
            setattr(target, k, v)
    cfg.validate()
    return cfg


@pytest.fixture
def blocks() -> ManualBlockSource:
    return ManualBlockSource(height=START_HEIGHT, timestamp=START_TS, block_time=12)


@pytest.fixture
def bank() -> NativeBank:
    return NativeBank({ALICE: FUNDING, BOB: FUNDING})


@pytest.fixture
def make_engine(blocks: ManualBlockSource, bank: NativeBank) -> Callable[..., ReserveEngine]:
    def _make(
        total_reserve: int = SEED_TOTAL,
        active: int = SEED_ACTIVE,
        config: Optional[PoolConfig] = None,
    ) -> ReserveEngine:
        return ReserveEngine(
            blocks=blocks,
            bank=bank,
            config=config if config is not None else make_config(),
            total_reserve=total_reserve,
            active=active,
        )

    return _make


@pytest.fixture
def engine(make_engine) -> ReserveEngine:
    return make_engine()

import json

import pytest

from thawpool.adapters import ManualBlockSource
from thawpool.errors import ArithmeticFault, CooldownActive, ValidationError
from thawpool.reserve import ReserveEngine
from thawpool.safe_uint import SCALE

from .conftest import ALICE, BOB, KEEPER, OWNER, make_config


@pytest.fixture
def busy(make_engine, blocks):
    eng = make_engine(config=make_config(yield_rate={"numer": SCALE // 100, "denom": 1}))
    eng.buy(ALICE, 0, 10 * SCALE)
    eng.buy(BOB, 0, 5 * SCALE)
    blocks.advance(300, 3_600)
    eng.thaw(KEEPER)
    eng.sync_my_yield(ALICE)
    eng.set_fee_bps(OWNER, 45)
    eng.pause(OWNER)
    return eng


def _reload(eng, blocks):
    data = json.loads(json.dumps(eng.dump()))
    clone_blocks = ManualBlockSource(height=blocks.height(), timestamp=blocks.timestamp())
    return ReserveEngine.load(data, blocks=clone_blocks), clone_blocks


def test_dump_load_roundtrip(busy, blocks):
    clone, _ = _reload(busy, blocks)
    assert clone.dump() == busy.dump()
    assert clone.total_reserve == busy.total_reserve
    assert clone.active == busy.active
    assert clone.accrued_for(ALICE) == busy.accrued_for(ALICE) > 0
    assert clone.last_thaw_timestamp == busy.last_thaw_timestamp
    assert clone.config.fees.fee_bps == 45
    assert clone.paused
    assert clone.invariant_holds()


def test_loaded_engine_keeps_enforcing_state(busy, blocks):
    clone, clone_blocks = _reload(busy, blocks)
    clone.set_min_blocks_between_trades(OWNER, 1_000)
    clone.unpause(OWNER)
    with pytest.raises(CooldownActive):
        clone.sell(ALICE, 1, 0)
    # yield keeps accruing from the restored checkpoint
    clone_blocks.advance(10)
    assert clone.sync_my_yield(ALICE) == clone.token.balance_of(ALICE) * 10 // 100


def test_load_rejects_broken_identity(busy, blocks):
    data = busy.dump()
    data["reserve"]["dormant"] += 1
    with pytest.raises(ValidationError):
        ReserveEngine.load(data, blocks=blocks)

    data = busy.dump()
    data["reserve"]["active"] = data["reserve"]["total_reserve"] + 1
    with pytest.raises(ArithmeticFault):
        ReserveEngine.load(data, blocks=blocks)


def test_load_rejects_unknown_version(busy, blocks):
    data = busy.dump()
    data["version"] = 99
    with pytest.raises(ValidationError):
        ReserveEngine.load(data, blocks=blocks)

import math

import pytest

from thawpool import metrics
from thawpool.errors import ZeroOutput
from thawpool.pooltypes import EmergencyDrain, Sold, YieldClaimed
from thawpool.safe_uint import SCALE, U256_MAX

from .conftest import ALICE, FUNDING, TIMELOCK, make_config

# min_active 0: nothing floors the price denominator once active is gone.
NO_FLOOR = {"floors": {"min_active": 0, "protected_reserve_floor": 1}}


@pytest.fixture
def bare(make_engine):
    return make_engine(total_reserve=10 * SCALE, active=5 * SCALE, config=make_config(**NO_FLOOR))


@pytest.fixture
def drained(make_engine, blocks):
    """Fee-free pool where alice holds tokens and a sell has emptied active."""
    eng = make_engine(
        total_reserve=10 * SCALE,
        active=5 * SCALE,
        config=make_config(fees={"fee_bps": 0}, **NO_FLOOR),
    )
    assert eng.buy(ALICE, 0, 5 * SCALE) == 5 * SCALE
    eng.emergency_drain(TIMELOCK, "vault", 15 * SCALE // 2)
    assert (eng.total_reserve, eng.active) == (15 * SCALE // 2, 5 * SCALE // 2)

    blocks.advance(1)
    assert eng.sell(ALICE, 5 * SCALE // 4, 0) == 5 * SCALE // 2
    return eng


def test_drain_of_all_active_commits(bare):
    bare.emergency_drain(TIMELOCK, "vault", 5 * SCALE)

    assert (bare.total_reserve, bare.active, bare.dormant()) == (5 * SCALE, 0, 5 * SCALE)
    assert bare.bank.balance_of("vault") == 5 * SCALE
    assert bare.bank.balance_of(bare.address) == 5 * SCALE
    assert bare.invariant_holds()
    assert bare.price_wad() == U256_MAX
    assert bare.events.last(EmergencyDrain).amount == 5 * SCALE
    assert bare.events.pending == ()
    assert math.isnan(metrics.REGISTRY.get_sample_value("thawpool_price", {"pool": bare.address}))
    assert metrics.REGISTRY.get_sample_value("thawpool_active_reserve", {"pool": bare.address}) == 0.0


def test_sell_of_all_active_commits(drained):
    assert (drained.total_reserve, drained.active) == (5 * SCALE, 0)
    assert drained.invariant_holds()
    assert drained.price_wad() == U256_MAX
    assert drained.token.balance_of(ALICE) == 15 * SCALE // 4
    assert drained.bank.balance_of(ALICE) == FUNDING - 5 * SCALE + 5 * SCALE // 2
    sold = drained.events.last(Sold)
    assert (sold.value_out, sold.active) == (5 * SCALE // 2, 0)


def test_claim_with_no_active_commits(drained, blocks):
    blocks.advance(10)
    before = drained.bank.balance_of(ALICE)

    # one block on 5 tokens at sell time, then ten blocks on 3.75 tokens
    paid = drained.claim_yield(ALICE)

    assert paid == 42_500_000_000
    assert drained.bank.balance_of(ALICE) == before + paid
    assert (drained.total_reserve, drained.active) == (5 * SCALE - paid, 0)
    assert drained.accrued_for(ALICE) == 0
    assert drained.invariant_holds()
    assert drained.events.last(YieldClaimed).paid == paid


def test_buy_into_unbacked_pool_is_refused(drained, blocks):
    blocks.advance(1)
    before = drained.state()
    funds = drained.bank.balance_of(ALICE)
    with pytest.raises(ZeroOutput):
        drained.buy(ALICE, 0, SCALE)
    assert drained.state() == before
    assert drained.bank.balance_of(ALICE) == funds
    assert drained.invariant_holds()

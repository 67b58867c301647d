from thawpool.reserve.ledger import ReserveState
from thawpool.reserve.pricing import (Quote, dormant, effective_active, price_wad,
                                      tokens_for_value, value_for_tokens)
from thawpool.safe_uint import SCALE, U256_MAX

from .conftest import ALICE, make_config


def test_price_of_ten_five_split_is_one():
    s = ReserveState(total_reserve=10, active=5)
    assert dormant(s) == 5
    assert price_wad(s, min_active=1) == SCALE
    assert tokens_for_value(s, 3, min_active=1) == 3
    assert value_for_tokens(s, 3, min_active=1) == 3


def test_min_active_floors_the_denominator():
    s = ReserveState(total_reserve=1_000, active=0)
    assert effective_active(s, 10) == 10
    assert price_wad(s, 10) == 100 * SCALE
    # thin active makes tokens expensive, not free
    assert tokens_for_value(s, 1_000, 10) == 10


def test_no_dormant_means_sentinel_price_and_no_mint():
    s = ReserveState(total_reserve=50, active=50)
    assert price_wad(s, 1) == U256_MAX
    assert tokens_for_value(s, 10, 1) == 0
    assert value_for_tokens(s, 10, 1) == 0


def test_no_active_backing_without_floor_is_sentinel_price():
    s = ReserveState(total_reserve=5 * SCALE, active=0)
    assert effective_active(s, 0) == 0
    assert price_wad(s, 0) == U256_MAX
    assert tokens_for_value(s, SCALE, 0) == 0
    assert value_for_tokens(s, SCALE, 0) == 0
    assert Quote.of(s, 0).price_wad == U256_MAX


def test_zero_effective_active_redeems_nothing():
    s = ReserveState(total_reserve=50, active=0)
    assert value_for_tokens(s, 10, 0) == 0


def test_rounding_favours_the_reserve():
    s = ReserveState(total_reserve=10, active=3)  # dormant 7
    assert tokens_for_value(s, 5, 1) == 2  # 15/7
    assert value_for_tokens(s, 5, 1) == 11  # 35/3


def test_quote_snapshot():
    q = Quote.of(ReserveState(total_reserve=10, active=5), 1)
    assert (q.dormant, q.effective_active, q.price_wad) == (5, 5, SCALE)


def test_round_trip_scenario(make_engine):
    # total 10, active 5, 0.3% fee: buying 1 unit mints and grows total to 11
    eng = make_engine(total_reserve=10, active=5, config=make_config(fees={"fee_bps": 30}))
    assert eng.price_wad() == SCALE
    out = eng.buy(ALICE, min_tokens_out=0, value=1)
    assert out > 0
    assert eng.total_reserve == 11
    assert eng.active == 6
    assert eng.dormant() == 5
    assert eng.invariant_holds()

import pytest

from thawpool import metrics
from thawpool.errors import SlippageExceeded
from thawpool.reserve import ReserveEngine
from thawpool.safe_uint import SCALE

from .conftest import ALICE, KEEPER, SEED_ACTIVE, SEED_TOTAL, make_config

POOL = "metrics-pool"


def _sample(name, **labels):
    return metrics.REGISTRY.get_sample_value(name, labels) or 0.0


@pytest.fixture
def mengine(blocks, bank):
    return ReserveEngine(
        blocks=blocks,
        bank=bank,
        address=POOL,
        config=make_config(),
        total_reserve=SEED_TOTAL,
        active=SEED_ACTIVE,
    )


def test_committed_operations_are_counted(mengine, blocks):
    buys = _sample("thawpool_trades_total", pool=POOL, side="buy")
    released = _sample("thawpool_thaw_released_value_total", pool=POOL)

    mengine.buy(ALICE, 0, SCALE)
    blocks.warp(3_600)
    res = mengine.thaw(KEEPER)

    assert _sample("thawpool_trades_total", pool=POOL, side="buy") == buys + 1
    assert _sample("thawpool_thaw_released_value_total", pool=POOL) == released + res.released
    assert _sample("thawpool_total_reserve", pool=POOL) == float(mengine.total_reserve)
    assert _sample("thawpool_dormant_reserve", pool=POOL) == float(mengine.dormant())


def test_rollback_counts_failure_only(mengine):
    buys = _sample("thawpool_trades_total", pool=POOL, side="buy")
    fails = _sample("thawpool_failed_operations_total", pool=POOL, op="buy", code="SLIPPAGE_EXCEEDED")
    with pytest.raises(SlippageExceeded):
        mengine.buy(ALICE, 10**40, SCALE)
    assert _sample("thawpool_trades_total", pool=POOL, side="buy") == buys
    assert _sample("thawpool_failed_operations_total", pool=POOL, op="buy", code="SLIPPAGE_EXCEEDED") == fails + 1


def test_render_exposition():
    body, content_type = metrics.render()
    assert b"thawpool_trades_total" in body
    assert content_type.startswith("text/plain")


def test_failing_metrics_do_not_fail_a_committed_operation(mengine, monkeypatch):
    def broken(*args, **kwargs):
        raise RuntimeError("registry unavailable")

    monkeypatch.setattr(metrics, "set_reserve", broken)
    total = mengine.total_reserve

    out = mengine.buy(ALICE, 0, SCALE)

    assert out > 0
    assert mengine.token.balance_of(ALICE) == out
    assert mengine.total_reserve == total + SCALE
    assert mengine.events.pending == ()

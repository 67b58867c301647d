import pytest

from thawpool.errors import AuthorizationError, ReentrantCall, TransferError
from thawpool.pooltypes import Bought, Sold
from thawpool.safe_uint import SCALE

from .conftest import BOB, FUNDING, OWNER

MALLORY = "mallory"


@pytest.fixture
def held(engine, bank, blocks):
    """Mallory holds a position and may sell one block later."""
    bank.credit(MALLORY, FUNDING)
    out = engine.buy(MALLORY, 0, 10 * SCALE)
    blocks.advance(1)
    return out


def _state(engine):
    return (
        engine.total_reserve,
        engine.active,
        engine.token.balance_of(MALLORY),
        engine.token.total_supply(),
        engine.bank.balance_of(MALLORY),
        engine.bank.balance_of(engine.address),
        engine.last_trade_height(MALLORY),
        len(engine.events),
    )


def test_reentrant_sell_from_receiver_rolls_everything_back(engine, held):
    seen = []

    def reenter(sender, amount):
        try:
            engine.sell(MALLORY, held // 2, 0)
        except ReentrantCall as e:
            seen.append(e)
            raise

    engine.bank.set_receive_hook(MALLORY, reenter)
    before = _state(engine)

    with pytest.raises(TransferError):
        engine.sell(MALLORY, held // 2, 0)

    assert len(seen) == 1
    assert seen[0].details["held_by"] == "sell"
    assert _state(engine) == before
    assert engine.events.last(Sold) is None
    assert engine.events.pending == ()
    assert not engine.lock.entered

    # lock released: an honest sell goes through
    engine.bank.set_receive_hook(MALLORY, None)
    assert engine.sell(MALLORY, held, 0) > 0


def test_receiver_swallowing_the_rejection_lets_outer_call_finish(engine, held):
    def reenter(sender, amount):
        with pytest.raises(ReentrantCall):
            engine.buy(MALLORY, 0, SCALE)

    engine.bank.set_receive_hook(MALLORY, reenter)
    net = engine.sell(MALLORY, held, 0)
    assert net > 0
    assert engine.token.balance_of(MALLORY) == 0
    assert len(engine.events.of_type(Sold)) == 1
    assert len(engine.events.of_type(Bought)) == 1  # the fixture's buy only
    assert engine.invariant_holds()


def test_nested_unlocked_call_joins_outer_unit(engine, held, blocks):
    calls = []

    def sync_back(sender, amount):
        calls.append(engine.sync_my_yield(BOB))

    engine.bank.set_receive_hook(MALLORY, sync_back)
    engine.sell(MALLORY, held, 0)
    assert calls == [0]
    assert engine.accrual.checkpoint_of(BOB) == blocks.height()


def test_nested_failure_is_contained_to_its_savepoint(engine, held):
    def meddle(sender, amount):
        with pytest.raises(AuthorizationError):
            engine.set_fee_bps(MALLORY, 0)

    engine.bank.set_receive_hook(MALLORY, meddle)
    engine.sell(MALLORY, held, 0)
    assert engine.config.fees.fee_bps == 30


def test_nested_call_rolled_back_with_failing_outer(engine, held, blocks):
    def sync_then_refuse(sender, amount):
        engine.sync_my_yield(BOB)
        raise RuntimeError("refuse payment")

    engine.bank.set_receive_hook(MALLORY, sync_then_refuse)
    with pytest.raises(TransferError):
        engine.sell(MALLORY, held, 0)
    assert engine.accrual.checkpoint_of(BOB) is None


def test_subscribers_only_see_committed_events(engine, held):
    def refuse(sender, amount):
        raise RuntimeError("no")

    got = []
    engine.events.subscribe(got.append)
    engine.bank.set_receive_hook(MALLORY, refuse)
    with pytest.raises(TransferError):
        engine.sell(MALLORY, held, 0)
    assert got == []

    engine.bank.set_receive_hook(MALLORY, None)
    engine.sell(MALLORY, held, 0)
    assert [e.name for e in got].count("Sold") == 1


def test_failed_owner_call_keeps_paused_flag(engine):
    engine.pause(OWNER)
    with pytest.raises(AuthorizationError):
        engine.unpause(BOB)
    assert engine.paused

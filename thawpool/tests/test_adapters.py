import pytest

from thawpool.adapters import (ManualBlockSource, NativeBank, OwnerGate, PauseGate,
                               ReentrancyLock, TokenLedger, WallClockBlockSource)
from thawpool.errors import (AuthorizationError, InsufficientTokenBalance, Paused,
                             ReentrantCall, TransferError, ValidationError)


def test_token_supply_is_minter_only_and_observed_before_change():
    led = TokenLedger(minter="pool")
    seen = []
    led.add_observer(lambda frm, to, amt: seen.append((frm, to, amt, led.balance_of(to or frm))))
    led.mint("pool", "a", 10)
    led.transfer("a", "b", 4)
    led.burn("pool", "b", 4)
    assert seen == [(None, "a", 10, 0), ("a", "b", 4, 0), ("b", None, 4, 4)]
    assert led.total_supply() == 6
    with pytest.raises(AuthorizationError):
        led.mint("a", "a", 1)
    with pytest.raises(InsufficientTokenBalance):
        led.transfer("a", "b", 7)


def test_raising_observer_blocks_the_change():
    led = TokenLedger(minter="pool")

    def veto(frm, to, amt):
        raise RuntimeError("veto")

    led.add_observer(veto)
    with pytest.raises(RuntimeError):
        led.mint("pool", "a", 1)
    assert led.balance_of("a") == 0


def test_token_load_checks_consistency():
    led = TokenLedger(minter="pool")
    led.mint("pool", "a", 3)
    data = led.dump()
    assert TokenLedger.load(data).balance_of("a") == 3
    data["total_supply"] = 4
    with pytest.raises(ValidationError):
        TokenLedger.load(data)


def test_bank_send_reverts_on_hook_failure():
    bank = NativeBank({"pool": 10})
    observed = []

    def hook(sender, amount):
        observed.append(bank.balance_of("r"))
        raise RuntimeError("nope")

    bank.set_receive_hook("r", hook)
    assert bank.send("pool", "r", 4) is False
    assert observed == [4]  # credited before the hook runs
    assert bank.balance_of("pool") == 10 and bank.balance_of("r") == 0
    bank.set_receive_hook("r", None)
    assert bank.send("pool", "r", 4) is True
    assert bank.send("pool", "r", 100) is False


def test_bank_collect_requires_funds():
    bank = NativeBank({"a": 1})
    with pytest.raises(TransferError):
        bank.collect("a", "pool", 2)
    bank.collect("a", "pool", 1)
    assert bank.dump() == {"pool": 1}


def test_gates_and_lock():
    gate = OwnerGate("o")
    with pytest.raises(AuthorizationError):
        gate.transfer_ownership("x", "y")
    assert gate.transfer_ownership("o", "y") == "o"

    pause = PauseGate()
    pause.require_not_paused()
    assert pause.pause() and not pause.pause()
    with pytest.raises(Paused):
        pause.require_not_paused()

    lock = ReentrancyLock("t")
    with lock:
        assert lock.entered
        with pytest.raises(ReentrantCall):
            lock.acquire("inner")
        assert lock.entered
    assert not lock.entered


def test_block_sources():
    b = ManualBlockSource(height=1, timestamp=100, block_time=12)
    b.advance(2)
    assert (b.height(), b.timestamp()) == (3, 124)
    b.warp(6)
    assert (b.height(), b.timestamp()) == (3, 130)
    with pytest.raises(ValidationError):
        b.set(height=2)

    clock = iter([1_000.0, 1_025.0, 1_025.0])
    w = WallClockBlockSource(block_time=12, clock=lambda: next(clock))
    assert w.genesis_timestamp == 1_000
    assert w.height() == 2
    assert w.timestamp() == 1_025

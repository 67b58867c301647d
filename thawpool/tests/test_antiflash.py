import pytest

from thawpool.errors import CooldownActive
from thawpool.reserve.antiflash import AntiFlashGuard, TradeThrottle


def test_never_traded_is_unrestricted():
    g = AntiFlashGuard()
    assert g.last_trade_height("a") is None
    assert g.next_allowed_height("a", 1_000) == 0
    g.check("a", 0, 1_000)


def test_check_reads_record_writes():
    g = AntiFlashGuard()
    g.record("a", 10)
    with pytest.raises(CooldownActive) as ei:
        g.check("a", 11, 2)
    assert ei.value.details == {"account": "a", "next_height": 12, "height": 11}
    g.check("a", 12, 2)
    assert g.last_trade_height("a") == 10


def test_zero_spacing_allows_same_block():
    g = AntiFlashGuard()
    g.record("a", 5)
    g.check("a", 5, 0)


def test_throttle_dict_roundtrip():
    t = TradeThrottle({"b": 2, "a": 1})
    assert list(t.to_dict()) == ["a", "b"]
    assert TradeThrottle.from_dict({"a": "7"}).last_trade_height == {"a": 7}

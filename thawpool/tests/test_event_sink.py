from thawpool.pooltypes import Deposited, ParameterChanged
from thawpool.reserve.event_sink import EventSink


def _dep(v):
    return Deposited(sender="a", value=v, total_reserve=v, active=v, height=1)


def test_pending_until_commit():
    sink = EventSink()
    got = []
    sink.subscribe(got.append)
    sink.emit(_dep(1))
    assert len(sink) == 0 and got == []
    batch = sink.commit()
    assert batch == (_dep(1),)
    assert got == [_dep(1)]
    assert sink.names() == ["Deposited"]


def test_discard_to_savepoint():
    sink = EventSink()
    sink.emit(_dep(1))
    mark = sink.mark()
    sink.emit(_dep(2))
    sink.emit(_dep(3))
    assert sink.discard(mark) == 2
    assert sink.pending == (_dep(1),)
    assert sink.discard() == 1
    assert sink.pending == ()


def test_broken_subscriber_does_not_uncommit():
    sink = EventSink()

    def boom(ev):
        raise RuntimeError("subscriber bug")

    sink.subscribe(boom)
    sink.emit(_dep(1))
    sink.commit()
    assert len(sink) == 1


def test_queries_and_digest():
    a, b = EventSink(), EventSink()
    for sink in (a, b):
        sink.emit(_dep(1))
        sink.emit(ParameterChanged(parameter="fees.fee_bps", old=30, new=40, caller="owner"))
        sink.commit()
    assert a.digest() == b.digest()
    assert a.of_type(ParameterChanged)[0].new == 40
    assert a.last(Deposited).value == 1
    assert a.events(since=1)[0].name == "ParameterChanged"
    assert a.last().to_dict()["event"] == "ParameterChanged"

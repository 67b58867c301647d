"""
thawpool.reserve.event_sink — buffered, commit-on-success notification log.

Engine operations emit events while they run. Emitted events are *pending*
until the operation commits:

- `emit(ev)`     append to the pending buffer
- `commit()`     move pending events to the append-only log, then notify
                 subscribers in emission order
- `discard()`    drop pending events (the operation rolled back)

Subscribers therefore never observe an event from an aborted operation.
`digest()` gives a deterministic SHA3-256 over the committed log, handy to
compare two replays of the same scenario.
"""

from __future__ import annotations

import hashlib
import json
import logging
from typing import Callable, List, Optional, Sequence, Tuple, Type, TypeVar

from ..pooltypes.events import PoolEvent

log = logging.getLogger(__name__)

Subscriber = Callable[[PoolEvent], None]
E = TypeVar("E", bound=PoolEvent)


def _hash_event(ev: PoolEvent) -> bytes:
    blob = json.dumps(ev.to_dict(), sort_keys=True, separators=(",", ":")).encode("utf-8")
    return hashlib.sha3_256(b"EV\0" + blob).digest()


class EventSink:
    def __init__(self) -> None:
        self._log: List[PoolEvent] = []
        self._pending: List[PoolEvent] = []
        self._subscribers: List[Subscriber] = []

    # --- subscription ---

    def subscribe(self, cb: Subscriber) -> None:
        self._subscribers.append(cb)

    def unsubscribe(self, cb: Subscriber) -> None:
        self._subscribers = [s for s in self._subscribers if s is not cb]

    # --- lifecycle ---

    def emit(self, ev: PoolEvent) -> None:
        log.debug("emit %s", ev.name)
        self._pending.append(ev)

    def commit(self) -> Tuple[PoolEvent, ...]:
        batch, self._pending = tuple(self._pending), []
        self._log.extend(batch)
        for ev in batch:
            for cb in list(self._subscribers):
                try:
                    cb(ev)
                except Exception:
                    # the operation already committed; a broken subscriber must not un-commit it
                    log.exception("event subscriber failed on %s", ev.name)
        return batch

    def mark(self) -> int:
        """Savepoint: number of pending events right now."""
        return len(self._pending)

    def discard(self, since: int = 0) -> int:
        """Drop pending events emitted after savepoint `since` (all by default)."""
        n = len(self._pending) - since
        del self._pending[since:]
        return n

    # --- reads ---

    @property
    def pending(self) -> Tuple[PoolEvent, ...]:
        return tuple(self._pending)

    def events(self, since: int = 0) -> Tuple[PoolEvent, ...]:
        return tuple(self._log[since:])

    def of_type(self, kind: Type[E], since: int = 0) -> List[E]:
        return [e for e in self._log[since:] if isinstance(e, kind)]

    def names(self, since: int = 0) -> List[str]:
        return [e.name for e in self._log[since:]]

    def last(self, kind: Optional[Type[E]] = None) -> Optional[PoolEvent]:
        for e in reversed(self._log):
            if kind is None or isinstance(e, kind):
                return e
        return None

    def __len__(self) -> int:
        return len(self._log)

    def digest(self, events: Optional[Sequence[PoolEvent]] = None) -> bytes:
        h = hashlib.sha3_256(b"EVLOG\0")
        for ev in self._log if events is None else events:
            h.update(_hash_event(ev))
        return h.digest()


__all__ = ["EventSink", "Subscriber"]

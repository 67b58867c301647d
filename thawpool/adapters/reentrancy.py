# -*- coding: utf-8 -*-
"""
thawpool.adapters.reentrancy
============================

Single-flight non-reentrancy latch. Typical pattern:

    with lock:
        ...  # checks, effects, then outbound transfer

Entering while already entered raises :class:`thawpool.errors.ReentrantCall`
and leaves the latch held by the outer call. Exit is idempotent.
"""
from __future__ import annotations

from typing import Optional

from ..errors import ReentrantCall

__all__ = ["ReentrancyLock"]


class ReentrancyLock:
    def __init__(self, scope: str = "default") -> None:
        self.scope = scope
        self._holder: Optional[str] = None

    @property
    def entered(self) -> bool:
        return self._holder is not None

    def acquire(self, op: str = "call") -> None:
        if self._holder is not None:
            raise ReentrantCall(details={"scope": self.scope, "held_by": self._holder, "attempted": op})
        self._holder = op

    def release(self) -> None:
        self._holder = None

    def __enter__(self) -> "ReentrancyLock":
        self.acquire()
        return self

    def __exit__(self, *exc: object) -> None:
        self.release()

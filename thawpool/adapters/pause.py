# -*- coding: utf-8 -*-
"""
thawpool.adapters.pause
=======================

Global pause switch.

- The paused flag is **global to the engine** (single boolean).
- `pause` / `unpause` are idempotent and report whether the flag changed;
  authorization is the caller's business (the engine checks the owner).
- `require_not_paused` raises :class:`thawpool.errors.Paused`.
"""
from __future__ import annotations

from ..errors import Paused, StateError

__all__ = ["PauseGate"]


class PauseGate:
    def __init__(self, paused: bool = False) -> None:
        self._paused = bool(paused)

    def is_paused(self) -> bool:
        return self._paused

    def require_not_paused(self) -> None:
        if self._paused:
            raise Paused()

    def require_paused(self) -> None:
        if not self._paused:
            raise StateError("engine is not paused")

    def pause(self) -> bool:
        if self._paused:
            return False
        self._paused = True
        return True

    def unpause(self) -> bool:
        if not self._paused:
            return False
        self._paused = False
        return True

    def snapshot(self) -> bool:
        return self._paused

    def restore(self, paused: bool) -> None:
        self._paused = bool(paused)

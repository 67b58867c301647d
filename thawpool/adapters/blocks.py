from __future__ import annotations

"""
Block metadata sources
----------------------

The engine never reads ambient time. It asks an injected `BlockSource` for the
current block height and timestamp:

  • ManualBlockSource     — deterministic; tests and simulations move it by hand.
  • WallClockBlockSource  — derives height from wall time and a fixed block time.
"""

import time
from typing import Callable, Optional, Protocol

from ..errors import ValidationError


class BlockSource(Protocol):
    def height(self) -> int: ...

    def timestamp(self) -> int: ...


class ManualBlockSource:
    """
    Height/timestamp pair advanced explicitly. Both are monotonic: moving
    either backwards raises ValidationError.
    """

    __slots__ = ("_height", "_timestamp", "block_time")

    def __init__(self, height: int = 1, timestamp: int = 1_700_000_000, *, block_time: int = 12) -> None:
        if height < 0 or timestamp < 0 or block_time < 0:
            raise ValidationError("block source values must be >= 0")
        self._height = int(height)
        self._timestamp = int(timestamp)
        self.block_time = int(block_time)

    def height(self) -> int:
        return self._height

    def timestamp(self) -> int:
        return self._timestamp

    def advance(self, blocks: int = 1, seconds: Optional[int] = None) -> None:
        """Mine `blocks` blocks; time moves `seconds` (default blocks * block_time)."""
        if blocks < 0 or (seconds is not None and seconds < 0):
            raise ValidationError("cannot move the chain backwards")
        self._height += blocks
        self._timestamp += blocks * self.block_time if seconds is None else seconds

    def warp(self, seconds: int) -> None:
        """Move time without producing blocks."""
        self.advance(0, seconds)

    def set(self, *, height: Optional[int] = None, timestamp: Optional[int] = None) -> None:
        if height is not None:
            if height < self._height:
                raise ValidationError("height must not decrease", details={"from": self._height, "to": height})
            self._height = int(height)
        if timestamp is not None:
            if timestamp < self._timestamp:
                raise ValidationError(
                    "timestamp must not decrease", details={"from": self._timestamp, "to": timestamp}
                )
            self._timestamp = int(timestamp)


class WallClockBlockSource:
    """height = (now - genesis) // block_time, timestamp = now (seconds)."""

    def __init__(
        self,
        genesis_timestamp: Optional[int] = None,
        *,
        block_time: int = 12,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if block_time <= 0:
            raise ValidationError("block_time must be > 0")
        self._clock = clock
        self.genesis_timestamp = int(clock()) if genesis_timestamp is None else int(genesis_timestamp)
        self.block_time = block_time

    def timestamp(self) -> int:
        return int(self._clock())

    def height(self) -> int:
        return max(0, (self.timestamp() - self.genesis_timestamp) // self.block_time)


__all__ = ["BlockSource", "ManualBlockSource", "WallClockBlockSource"]

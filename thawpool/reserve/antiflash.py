from __future__ import annotations

"""
Per-account trade spacing.

Every buy and sell must happen at least `min_blocks_between_trades` blocks
after the same account's previous trade; buys and sells share the counter.
Accounts that never traded are unrestricted.

`check` only reads; `record` writes the checkpoint. The trade processor calls
`check` with its other preconditions and `record` with its effects, so a
rejected trade leaves the throttle untouched.
"""

from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional

from ..errors import CooldownActive
from ..safe_uint import u256_add


@dataclass
class TradeThrottle:
    last_trade_height: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, int]:
        return dict(sorted(self.last_trade_height.items()))

    @staticmethod
    def from_dict(d: Mapping) -> "TradeThrottle":
        return TradeThrottle({str(k): int(v) for k, v in d.items()})


class AntiFlashGuard:
    __slots__ = ("throttle",)

    def __init__(self, throttle: Optional[TradeThrottle] = None) -> None:
        self.throttle = throttle or TradeThrottle()

    def last_trade_height(self, account: str) -> Optional[int]:
        return self.throttle.last_trade_height.get(account)

    def next_allowed_height(self, account: str, min_blocks: int) -> int:
        last = self.last_trade_height(account)
        if last is None:
            return 0
        return u256_add(last, min_blocks)

    def check(self, account: str, height: int, min_blocks: int) -> None:
        next_height = self.next_allowed_height(account, min_blocks)
        if height < next_height:
            raise CooldownActive(account=account, next_height=next_height, height=height)

    def record(self, account: str, height: int) -> None:
        self.throttle.last_trade_height[account] = height


__all__ = ["TradeThrottle", "AntiFlashGuard"]

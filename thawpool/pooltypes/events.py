from __future__ import annotations
"""
Reserve engine notifications.

Every committed engine operation emits one or more of these records. They are
frozen dataclasses carrying the amounts and the resulting reserve state an
off-engine indexer needs; `to_dict()` gives a JSON-friendly form with the
event name under "event".

Events:
  - Bought:           tokens minted against incoming value.
  - Sold:             tokens burned, net value paid out.
  - Deposited:        value added to reserve without minting.
  - ThawReleased:     dormant reserve moved to active, caller rewarded.
  - YieldAccrued:     a holder's accrued yield grew.
  - YieldClaimed:     accrued yield paid out (remainder forfeited).
  - EmergencyDrain:   timelock withdrew reserve above the floor.
  - ParameterChanged: an admin setter changed a config value.
"""


from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, ClassVar, Dict, Union


class EventType(str, Enum):
    BOUGHT = "Bought"
    SOLD = "Sold"
    DEPOSITED = "Deposited"
    THAW_RELEASED = "ThawReleased"
    YIELD_ACCRUED = "YieldAccrued"
    YIELD_CLAIMED = "YieldClaimed"
    EMERGENCY_DRAIN = "EmergencyDrain"
    PARAMETER_CHANGED = "ParameterChanged"


@dataclass(frozen=True)
class PoolEvent:
    etype: ClassVar[EventType]

    @property
    def name(self) -> str:
        return self.etype.value

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["event"] = self.etype.value
        return d


@dataclass(frozen=True)
class Bought(PoolEvent):
    etype: ClassVar[EventType] = EventType.BOUGHT
    buyer: str
    value_in: int
    fee: int
    tokens_out: int
    total_reserve: int
    active: int
    height: int


@dataclass(frozen=True)
class Sold(PoolEvent):
    etype: ClassVar[EventType] = EventType.SOLD
    seller: str
    tokens_in: int
    gross: int
    fee: int
    value_out: int
    total_reserve: int
    active: int
    height: int


@dataclass(frozen=True)
class Deposited(PoolEvent):
    etype: ClassVar[EventType] = EventType.DEPOSITED
    sender: str
    value: int
    total_reserve: int
    active: int
    height: int


@dataclass(frozen=True)
class ThawReleased(PoolEvent):
    etype: ClassVar[EventType] = EventType.THAW_RELEASED
    caller: str
    released: int
    caller_reward: int
    active: int
    timestamp: int


@dataclass(frozen=True)
class YieldAccrued(PoolEvent):
    etype: ClassVar[EventType] = EventType.YIELD_ACCRUED
    account: str
    amount: int
    accrued: int
    height: int


@dataclass(frozen=True)
class YieldClaimed(PoolEvent):
    etype: ClassVar[EventType] = EventType.YIELD_CLAIMED
    account: str
    paid: int
    forfeited: int
    total_reserve: int
    height: int


@dataclass(frozen=True)
class EmergencyDrain(PoolEvent):
    etype: ClassVar[EventType] = EventType.EMERGENCY_DRAIN
    caller: str
    to: str
    amount: int
    total_reserve: int
    active: int


@dataclass(frozen=True)
class ParameterChanged(PoolEvent):
    etype: ClassVar[EventType] = EventType.PARAMETER_CHANGED
    parameter: str
    old: Union[int, str, bool]
    new: Union[int, str, bool]
    caller: str


__all__ = [
    "EventType",
    "PoolEvent",
    "Bought",
    "Sold",
    "Deposited",
    "ThawReleased",
    "YieldAccrued",
    "YieldClaimed",
    "EmergencyDrain",
    "ParameterChanged",
]

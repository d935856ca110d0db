"""Time-stamped batch of market actions."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List

from ..common.currency import Asset
from .actions import PriceAction, PriceBar


@dataclass(frozen=True)
class Event:
    """All actions that happened at ``time``, in the order they were produced."""

    time: datetime
    actions: List[Any] = field(default_factory=list)

    @classmethod
    def empty(cls, time: datetime) -> "Event":
        return cls(time, [])

    @property
    def price_bars(self) -> List[PriceBar]:
        return [a for a in self.actions if isinstance(a, PriceBar)]

    def get_prices(self, price_type: str = "DEFAULT") -> Dict[Asset, float]:
        """Latest price per asset contained in this event."""
        prices: Dict[Asset, float] = {}
        for action in self.actions:
            if isinstance(action, PriceAction):
                prices[action.asset] = action.get_price(price_type)
        return prices

    def __len__(self) -> int:
        return len(self.actions)

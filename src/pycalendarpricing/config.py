"""Calendar settings passed explicitly to the engine."""

from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from .exceptions import ConfigError

DEFAULT_COST = 8000


@dataclass(frozen=True, slots=True)
class WeekendDiscount:
    enabled: bool = False
    percent: float = 0.0

    def __post_init__(self) -> None:
        if not isinstance(self.enabled, bool):
            raise ConfigError("Weekend discount enabled must be a boolean.")
        if isinstance(self.percent, bool) or not isinstance(self.percent, int | float):
            raise ConfigError("Weekend discount percent must be a number.")
        if not math.isfinite(self.percent):
            raise ConfigError("Weekend discount percent must be finite.")

    @property
    def active(self) -> bool:
        return self.enabled and self.percent > 0


@dataclass(slots=True)
class CalendarSettings:
    """Process-wide pricing settings.

    ``default_cost`` is ``None`` until a host or a remote load configures it;
    ``effective_default_cost`` then falls back to ``DEFAULT_COST``.
    """

    default_cost: int | None = None
    weekend: WeekendDiscount = field(default_factory=WeekendDiscount)

    def effective_default_cost(self) -> int:
        cost = self.default_cost
        if isinstance(cost, int) and not isinstance(cost, bool) and cost > 0:
            return cost
        return DEFAULT_COST

    def to_payload(self) -> dict[str, Any]:
        return {"defaultCost": self.effective_default_cost()}

    def apply_payload(self, data: Mapping[str, Any]) -> None:
        if not isinstance(data, Mapping):
            raise ConfigError("Global settings must be a mapping.")
        cost = data.get("defaultCost")
        if isinstance(cost, bool) or not isinstance(cost, int) or cost <= 0:
            raise ConfigError("Global settings defaultCost must be a positive integer.")
        self.default_cost = cost

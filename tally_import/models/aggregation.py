from __future__ import annotations

from dataclasses import dataclass, field

"""Accumulator models returned by the aggregation engine.

A bucket is created fresh for every aggregation call and never shared
between calls with different dimensions or filters.
"""

__all__ = [
    "AggregationBucket",
    "TargetBucket",
    "GroupBucket",
]


@dataclass
class AggregationBucket:
    """Running total of one measure for one group key."""
    dimension_values: dict[str, str]
    sum: float = 0.0
    count: int = 0

    def add(self, value: float) -> None:
        self.sum += value
        self.count += 1


@dataclass
class TargetBucket:
    """Target vs achievement accumulator (ASM target report)."""
    dimension_values: dict[str, str]
    target: float = 0.0
    achievement: float = 0.0
    monthly_sales: float = 0.0
    count: int = 0

    @property
    def achievement_percent(self) -> float | None:
        # target 未設定 (0) は None: 0% や巨大値にしない
        if not self.target:
            return None
        return self.achievement / self.target * 100


@dataclass
class GroupBucket:
    """Group total plus a nested dealer -> sum tally (party group report)."""
    dimension_values: dict[str, str]
    sum: float = 0.0
    count: int = 0
    dealer_totals: dict[str, float] = field(default_factory=dict)

    @property
    def top_dealer(self) -> str:
        """Highest summing dealer; ties go to the first one encountered."""
        if not self.dealer_totals:
            return "-"
        best_name, best_sum = None, 0.0
        for name, total in self.dealer_totals.items():
            if best_name is None or total > best_sum:
                best_name, best_sum = name, total
        return best_name  # type: ignore[return-value]

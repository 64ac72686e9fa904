from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import asdict, dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Mapping, Optional

from finance_tracker.utils.dates import DateRange, to_utc_date

logger = logging.getLogger(__name__)


@dataclass
class CategoryAmount:
    category: str
    amount: float


@dataclass
class TrendPoint:
    """Total spend for one calendar day, with its per-category breakdown."""

    date: str
    amount: float
    category_breakdown: List[CategoryAmount] = field(default_factory=list)


@dataclass
class DistributionSlice:
    name: str
    value: float


@dataclass
class StatisticsSummary:
    total: float
    count: int
    average: float
    average_transaction: float


@dataclass
class ExpenseStatistics:
    trend: List[TrendPoint]
    distribution: List[DistributionSlice]
    summary: StatisticsSummary

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class ExpenseAggregator:
    """
    Pure aggregation over one user's expense records. Records are mappings
    with ``amount``, ``category`` and ``date``; nothing here touches storage.

    Sums are kept as ``Decimal`` built from each amount's decimal text and
    converted to float only on output, so the trend, the distribution and
    the summary total are all derived from the same exact figures.
    """

    @staticmethod
    def _amount(expense: Mapping[str, Any]) -> Decimal:
        return Decimal(str(expense.get("amount", 0)))

    @staticmethod
    def _expense_day(expense: Mapping[str, Any]) -> Optional[date]:
        try:
            return to_utc_date(expense["date"])
        except (KeyError, TypeError, ValueError):
            logger.warning(
                f"Skipping expense {expense.get('expense_id')} with unreadable date: {expense.get('date')!r}"
            )
            return None

    def filter_expenses(
        self,
        expenses: Iterable[Mapping[str, Any]],
        date_range: Optional[DateRange] = None,
    ) -> List[Mapping[str, Any]]:
        """Drop records without a readable date, then apply a bounded range."""
        kept = []
        for exp in expenses:
            day = self._expense_day(exp)
            if day is None:
                continue
            if date_range is not None and date_range.is_bounded and not date_range.contains(day):
                continue
            kept.append(exp)
        return kept

    def trend(self, expenses: Iterable[Mapping[str, Any]]) -> List[TrendPoint]:
        per_day_category: Dict[str, Dict[str, Decimal]] = defaultdict(lambda: defaultdict(Decimal))
        for exp in expenses:
            day = self._expense_day(exp)
            if day is None:
                continue
            per_day_category[day.isoformat()][exp["category"]] += self._amount(exp)

        points = []
        for day in sorted(per_day_category):
            breakdown = [
                CategoryAmount(category=category, amount=float(amount))
                for category, amount in per_day_category[day].items()
            ]
            total = sum(per_day_category[day].values(), Decimal(0))
            points.append(TrendPoint(date=day, amount=float(total), category_breakdown=breakdown))
        return points

    def distribution(self, expenses: Iterable[Mapping[str, Any]]) -> List[DistributionSlice]:
        totals: Dict[str, Decimal] = defaultdict(Decimal)
        for exp in expenses:
            totals[exp["category"]] += self._amount(exp)
        return [DistributionSlice(name=cat, value=float(total)) for cat, total in totals.items()]

    def summary(
        self,
        expenses: List[Mapping[str, Any]],
        date_range: Optional[DateRange] = None,
    ) -> StatisticsSummary:
        total = sum((self._amount(exp) for exp in expenses), Decimal(0))
        count = len(expenses)
        days = date_range.days if date_range is not None else 1
        return StatisticsSummary(
            total=float(total),
            count=count,
            average=float(total / days),
            average_transaction=float(total / count) if count else 0.0,
        )

    def compute_statistics(
        self,
        expenses: Iterable[Mapping[str, Any]],
        date_range: Optional[DateRange] = None,
    ) -> ExpenseStatistics:
        filtered = self.filter_expenses(expenses, date_range)
        return ExpenseStatistics(
            trend=self.trend(filtered),
            distribution=self.distribution(filtered),
            summary=self.summary(filtered, date_range),
        )

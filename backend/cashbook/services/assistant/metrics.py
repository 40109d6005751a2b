"""
Aggregations over a cashbook's transactions.

Money is summed as Decimal and rounded to 2 places once, when the
snapshot is built; nothing downstream re-rounds.
"""

from collections import defaultdict
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Iterable, List, Optional

from ...schemas.assistant import (
    AllTimeBalance,
    BudgetForecast,
    CategoryTotal,
    DailyTotal,
    DateRange,
    ForecastStatus,
    MetricsSnapshot,
    RecentTransaction,
    Totals,
    TransactionRow,
    TransactionType,
)
from ..storage import CashbookStore
from .categories import category_bucket, decode_description
from .dates import days_in_month, inclusive_days

DEFAULT_RECENT_LIMIT = 5
MAX_RECENT_LIMIT = 20

_CENT = Decimal("0.01")


def _money(value) -> float:
    return float(Decimal(value).quantize(_CENT, rounding=ROUND_HALF_UP))


class _Flow:
    __slots__ = ("inflow", "outflow")

    def __init__(self):
        self.inflow = Decimal(0)
        self.outflow = Decimal(0)

    def add(self, txn_type: TransactionType, amount: Decimal) -> None:
        if txn_type == TransactionType.INFLOW:
            self.inflow += amount
        elif txn_type == TransactionType.OUTFLOW:
            self.outflow += amount


def aggregate(transactions: Iterable[TransactionRow], start_date: date, end_date: date) -> MetricsSnapshot:
    """Totals, per-category and per-day sums for the rows in a range."""
    totals = _Flow()
    by_category: Dict[str, _Flow] = defaultdict(_Flow)
    by_date: Dict[date, _Flow] = defaultdict(_Flow)

    for txn in transactions:
        amount = Decimal(str(txn.amount))
        totals.add(txn.type, amount)
        by_category[category_bucket(txn.description)].add(txn.type, amount)
        by_date[txn.date].add(txn.type, amount)

    categories = [
        CategoryTotal(name=name, inflow=_money(flow.inflow), outflow=_money(flow.outflow))
        for name, flow in by_category.items()
    ]
    categories.sort(key=lambda c: c.outflow, reverse=True)

    daily = [
        DailyTotal(date=day, inflow=_money(flow.inflow), outflow=_money(flow.outflow))
        for day, flow in sorted(by_date.items())
    ]

    return MetricsSnapshot(
        start_date=start_date,
        end_date=end_date,
        range_days=inclusive_days(start_date, end_date),
        totals=Totals(
            inflow=_money(totals.inflow),
            outflow=_money(totals.outflow),
            net=_money(totals.inflow - totals.outflow),
        ),
        categories=categories,
        daily=daily,
    )


def all_time_snapshot(balance: AllTimeBalance) -> MetricsSnapshot:
    """Totals-only snapshot built from the all-time balance query."""
    return MetricsSnapshot(
        range_days=0,
        totals=Totals(
            inflow=balance.total_inflow,
            outflow=balance.total_outflow,
            net=_money(Decimal(str(balance.total_inflow)) - Decimal(str(balance.total_outflow))),
        ),
    )


def budget_forecast(outflow: float, range_days: int, month_days: int, monthly_budget) -> BudgetForecast:
    """Project this month's spending from the average daily outflow."""
    avg_daily = outflow / range_days if range_days > 0 else 0.0
    projected = avg_daily * month_days
    try:
        budget = float(monthly_budget or 0)
    except (TypeError, ValueError):
        budget = 0.0

    if budget > 0:
        remaining = round(budget - projected, 2)
        status = ForecastStatus.ON_TRACK if projected <= budget else ForecastStatus.OVER_BUDGET
    else:
        remaining = None
        status = ForecastStatus.NO_BUDGET

    return BudgetForecast(
        monthly_budget=budget,
        avg_daily_outflow=round(avg_daily, 2),
        projected_month_outflow=round(projected, 2),
        remaining=remaining,
        status=status,
        month_days=month_days,
    )


def month_days_for(day: date) -> int:
    return days_in_month(day)


def to_recent(row: TransactionRow) -> RecentTransaction:
    category, description = decode_description(row.description)
    return RecentTransaction(
        id=row.id,
        date=row.date,
        type=row.type,
        amount=row.amount,
        category=category,
        description=description,
    )


class MetricsAggregator:
    """Aggregates bound to one user's view of storage.

    Balance and count have range-free paths that never scan transactions.
    """

    def __init__(self, store: CashbookStore, user_id: int):
        self.store = store
        self.user_id = user_id

    async def all_time_balance(self, cashbook_id: int) -> AllTimeBalance:
        return await self.store.get_all_time_balance(self.user_id, cashbook_id)

    async def transaction_count(self, cashbook_id: int, rng: Optional[DateRange] = None) -> int:
        if rng is None:
            return await self.store.get_transaction_count(self.user_id, cashbook_id)
        rows = await self.store.get_transactions_in_range(self.user_id, cashbook_id, rng.start_date, rng.end_date)
        return len(rows)

    async def recent(self, cashbook_id: int, limit: int = DEFAULT_RECENT_LIMIT) -> List[RecentTransaction]:
        lim = max(1, min(MAX_RECENT_LIMIT, int(limit or DEFAULT_RECENT_LIMIT)))
        rows = await self.store.get_recent_transactions(self.user_id, cashbook_id, lim)
        return [to_recent(r) for r in rows]

    async def snapshot(self, cashbook_id: int, rng: DateRange) -> MetricsSnapshot:
        rows = await self.store.get_transactions_in_range(self.user_id, cashbook_id, rng.start_date, rng.end_date)
        return aggregate(rows, rng.start_date, rng.end_date)

    async def snapshot_with_count(self, cashbook_id: int, rng: DateRange):
        """One range scan serving both the snapshot and the in-range count."""
        rows = await self.store.get_transactions_in_range(self.user_id, cashbook_id, rng.start_date, rng.end_date)
        return aggregate(rows, rng.start_date, rng.end_date), len(rows)

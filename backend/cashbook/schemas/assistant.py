"""Schemas for the cashbook assistant: inputs read from storage, derived
query structures and the request/response bodies of the chat endpoint."""

import datetime as dt
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field, model_validator


class TransactionType(str, Enum):
    INFLOW = "inflow"
    OUTFLOW = "outflow"


class IntentKind(str, Enum):
    """What a question is asking for."""
    FULL = "full"
    RECENT = "recent"
    BUDGET = "budget"
    CATEGORY = "category"
    TREND = "trend"
    COUNT = "count"
    METRIC = "metric"


class Metric(str, Enum):
    BALANCE = "balance"
    INFLOW = "inflow"
    OUTFLOW = "outflow"
    NET = "net"
    TOTALS = "totals"
    SUMMARY = "summary"


class ForecastStatus(str, Enum):
    ON_TRACK = "on_track"
    OVER_BUDGET = "over_budget"
    NO_BUDGET = "no_budget"


# ============================================
# Rows read from storage
# ============================================

class CashbookRef(BaseModel):
    id: int
    user_id: Optional[int] = None
    name: str
    description: Optional[str] = None
    created_at: Optional[dt.datetime] = None


class TransactionRow(BaseModel):
    id: int
    cashbook_id: int
    type: TransactionType
    amount: float = Field(gt=0)
    date: dt.date
    created_at: Optional[dt.datetime] = None
    description: str = ""


class UserProfile(BaseModel):
    id: int
    username: Optional[str] = None
    email: Optional[str] = None
    mobile: Optional[str] = None


class AllTimeBalance(BaseModel):
    total_inflow: float = 0
    total_outflow: float = 0
    balance: float = 0


class RecentTransaction(BaseModel):
    """A transaction with its category tag decoded for display."""
    id: int
    date: dt.date
    type: TransactionType
    amount: float
    category: str = ""
    description: str = ""


# ============================================
# Derived query structures
# ============================================

_DIRECTIONAL = (Metric.INFLOW, Metric.OUTFLOW)


class QueryIntent(BaseModel):
    """Classified intent of a question.

    ``metric`` is required for METRIC, restricted to inflow/outflow for
    CATEGORY and TREND, and absent for every other kind.
    """
    kind: IntentKind
    metric: Optional[Metric] = None

    @model_validator(mode="after")
    def _check_metric(self) -> "QueryIntent":
        if self.kind == IntentKind.METRIC:
            if self.metric is None:
                raise ValueError("metric intent requires a metric")
        elif self.kind in (IntentKind.CATEGORY, IntentKind.TREND):
            if self.metric is None:
                self.metric = Metric.OUTFLOW
            elif self.metric not in _DIRECTIONAL:
                raise ValueError(f"{self.kind.value} intent only supports inflow/outflow")
        elif self.metric is not None:
            raise ValueError(f"{self.kind.value} intent takes no metric")
        return self


class DateRange(BaseModel):
    """Inclusive calendar-day range produced by the date resolver."""
    start_date: dt.date
    end_date: dt.date
    is_explicit: bool = True


class ResolvedRange(BaseModel):
    """The range an answer actually used.

    All-time ranges carry no dates and a label that replaces them in text.
    """
    start_date: Optional[dt.date] = None
    end_date: Optional[dt.date] = None
    label: str = ""
    is_default: bool = False

    @classmethod
    def all_time(cls) -> "ResolvedRange":
        return cls(label="all time")

    @classmethod
    def from_range(cls, rng: DateRange) -> "ResolvedRange":
        return cls(start_date=rng.start_date, end_date=rng.end_date, is_default=not rng.is_explicit)


class ClarificationNeeded(BaseModel):
    question: str
    candidates: List[str] = Field(default_factory=list)


# ============================================
# Aggregates
# ============================================

class Totals(BaseModel):
    inflow: float = 0
    outflow: float = 0
    net: float = 0


class CategoryTotal(BaseModel):
    name: str
    inflow: float = 0
    outflow: float = 0


class DailyTotal(BaseModel):
    date: dt.date
    inflow: float = 0
    outflow: float = 0


class MetricsSnapshot(BaseModel):
    start_date: Optional[dt.date] = None
    end_date: Optional[dt.date] = None
    range_days: int = 0
    totals: Totals = Field(default_factory=Totals)
    categories: List[CategoryTotal] = Field(default_factory=list)
    daily: List[DailyTotal] = Field(default_factory=list)


class BudgetForecast(BaseModel):
    monthly_budget: float
    avg_daily_outflow: float
    projected_month_outflow: float
    remaining: Optional[float] = None
    status: ForecastStatus
    month_days: int


class CashbookBlock(BaseModel):
    """Everything fetched for one cashbook while answering one question."""
    cashbook: CashbookRef
    all_time: Optional[AllTimeBalance] = None
    transaction_count: Optional[int] = None
    recent: List[RecentTransaction] = Field(default_factory=list)
    range_summary: Optional[MetricsSnapshot] = None
    last_7_days: Optional[MetricsSnapshot] = None
    this_month: Optional[MetricsSnapshot] = None
    budget_forecast: Optional[BudgetForecast] = None


# ============================================
# LLM query plan
# ============================================

class PlanInclude(BaseModel):
    balance: bool = True
    totals: bool = True
    recent: int = 5
    category_breakdown: bool = True
    daily_trend: bool = True
    budget_forecast: bool = True

    @property
    def needs_range_scan(self) -> bool:
        return self.totals or self.category_breakdown or self.daily_trend or self.budget_forecast


class QueryPlan(BaseModel):
    """Normalized plan returned by the planner call."""
    cashbook_ids: List[int] = Field(default_factory=list)
    start_date: Optional[dt.date] = None
    end_date: Optional[dt.date] = None
    include: PlanInclude = Field(default_factory=PlanInclude)


# ============================================
# Chat endpoint
# ============================================

class ChatRequest(BaseModel):
    """Request to the assistant endpoint."""
    message: str = ""
    current_cashbook_id: Optional[Union[int, str]] = None
    budgets_by_cashbook: Optional[Dict[str, Any]] = None


class AssistantAnswer(BaseModel):
    """Response from the assistant endpoint."""
    answer: str

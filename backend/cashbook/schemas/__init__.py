from .assistant import (
    AssistantAnswer,
    BudgetForecast,
    CashbookBlock,
    CashbookRef,
    ChatRequest,
    ClarificationNeeded,
    IntentKind,
    Metric,
    MetricsSnapshot,
    QueryIntent,
    QueryPlan,
    ResolvedRange,
    TransactionRow,
    TransactionType,
)
from .trace import ExecutionTrace, TraceEventType

"""Local intent classification.

Classification is an ordered decision list: several triggers can appear
in one sentence ("full budget breakdown"), so the first rule that
matches decides the intent. The rule tables are plain data; add a
phrasing by extending a pattern or inserting a rule at the right
priority.
"""

import re
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

from ...schemas.assistant import IntentKind, Metric, QueryIntent

FULL_DETAILS_RE = re.compile(
    r"\b(all\s+details|full\s+details|everything|complete\s+details|entire\s+cashbook"
    r"|full\s+report|complete\s+report|summary\s+report)\b"
)
RECENT_RE = re.compile(r"\brecent\b|\blast\s+transactions?\b|\blatest\b|\bshow\s+last\b")
BUDGET_RE = re.compile(r"\bbudget\b|\bforecast\b|\bprediction\b|\bplan\b")
CATEGORY_RE = re.compile(r"\bcategory\b|\bcategories\b|\btop\s+category\b|\bcategory-wise\b|\bbreakdown\b")
TREND_RE = re.compile(r"\btrend\b|\bdaily\b|\bgraph\b|\bchart\b|\bbar\b|\bline\b")
COUNT_RE = re.compile(
    r"\b(how\s+many|count|number\s+of)\s+transactions?\b"
    r"|\btransactions?\s+count\b"
    r"|\btransactions?\s+number\b"
    r"|\btotal\s+transactions?\b"
)

BALANCE_RE = re.compile(r"\bbalance\b")
INFLOW_RE = re.compile(r"\binflow\b|\bincome\b|\breceived\b|\bcredit\b|\bdeposited\b")
OUTFLOW_RE = re.compile(r"\boutflow\b|\bexpense\b|\bspent\b|\bspend\b|\bdebit\b|\bpaid\b")
NET_RE = re.compile(r"\bnet\b|\bprofit\b|\bsurplus\b|\bdeficit\b")


@dataclass(frozen=True)
class Signals:
    """Keyword signals found in one normalized question."""
    balance: bool
    inflow: bool
    outflow: bool
    net: bool

    @classmethod
    def of(cls, text: str) -> "Signals":
        return cls(
            balance=bool(BALANCE_RE.search(text)),
            inflow=bool(INFLOW_RE.search(text)),
            outflow=bool(OUTFLOW_RE.search(text)),
            net=bool(NET_RE.search(text)),
        )

    @property
    def direction(self) -> Metric:
        """Inflow only when inflow words appear without outflow words."""
        return Metric.INFLOW if self.inflow and not self.outflow else Metric.OUTFLOW


@dataclass(frozen=True)
class IntentRule:
    kind: IntentKind
    pattern: re.Pattern
    directional: bool = False


INTENT_RULES: List[IntentRule] = [
    IntentRule(IntentKind.FULL, FULL_DETAILS_RE),
    IntentRule(IntentKind.RECENT, RECENT_RE),
    IntentRule(IntentKind.BUDGET, BUDGET_RE),
    IntentRule(IntentKind.CATEGORY, CATEGORY_RE, directional=True),
    IntentRule(IntentKind.TREND, TREND_RE, directional=True),
    IntentRule(IntentKind.COUNT, COUNT_RE),
]

# Metric precedence for questions that match no intent rule.
METRIC_RULES: List[Tuple[Metric, Callable[[Signals], bool]]] = [
    (Metric.BALANCE, lambda s: s.balance),
    (Metric.NET, lambda s: s.net),
    (Metric.OUTFLOW, lambda s: s.outflow and not s.inflow),
    (Metric.INFLOW, lambda s: s.inflow and not s.outflow),
    (Metric.TOTALS, lambda s: s.inflow and s.outflow),
]


def match_rule(text: str) -> Optional[IntentRule]:
    for rule in INTENT_RULES:
        if rule.pattern.search(text):
            return rule
    return None


def pick_metric(signals: Signals) -> Metric:
    for metric, predicate in METRIC_RULES:
        if predicate(signals):
            return metric
    return Metric.SUMMARY


def classify(normalized_text: str) -> QueryIntent:
    """Map a normalized question to a QueryIntent."""
    text = normalized_text or ""
    signals = Signals.of(text)

    rule = match_rule(text)
    if rule is not None:
        if rule.directional:
            return QueryIntent(kind=rule.kind, metric=signals.direction)
        return QueryIntent(kind=rule.kind)

    return QueryIntent(kind=IntentKind.METRIC, metric=pick_metric(signals))


def is_metric_keyword_present(normalized_text: str) -> bool:
    return bool(re.search(r"\b(inflow|outflow|spent|spend|balance|net)\b", normalized_text or ""))

"""Turn an intent plus fetched cashbook data into the assistant's reply.

There is one render function per intent kind. Each handles one cashbook
and several: with several, every section is introduced by the cashbook
name.
"""

import re
from typing import Callable, Dict, List

from ...schemas.assistant import (
    BudgetForecast,
    CashbookBlock,
    ForecastStatus,
    IntentKind,
    Metric,
    MetricsSnapshot,
    QueryIntent,
    RecentTransaction,
    ResolvedRange,
    TransactionType,
)
from .intents import is_metric_keyword_present

MAX_LISTED_RECENT = 5
MAX_LISTED_CATEGORIES = 5
MAX_TREND_POINTS = 7

_ANSWER_ONLY_RE = re.compile(r"\b(answer\s*only|only\s*answer|just\s*answer)\b")
_JUST_NUMBER_RE = re.compile(r"\b(only|just)\b.*\b(number|amount|value)\b")

_STATUS_TEXT = {
    ForecastStatus.ON_TRACK: "On track",
    ForecastStatus.OVER_BUDGET: "Over budget",
    ForecastStatus.NO_BUDGET: "No budget set",
}

_METRIC_LABELS = {
    Metric.INFLOW: "total inflow",
    Metric.OUTFLOW: "total spending",
    Metric.NET: "net amount",
}


# Formatting

def money(value) -> str:
    return f"Rs {float(value or 0):.2f}"


def plain_number(value) -> str:
    """Integers as-is, anything else to at most 2 decimals without trailing zeros."""
    try:
        v = float(value or 0)
    except (TypeError, ValueError):
        return "0"
    if v != v or v in (float("inf"), float("-inf")):
        return "0"
    if v.is_integer():
        return str(int(v))
    text = f"{round(v, 2):.2f}".rstrip("0").rstrip(".")
    return "0" if text in ("-0", "") else text


def format_range_label(rng: ResolvedRange) -> str:
    if rng.label:
        return rng.label
    if not rng.start_date or not rng.end_date:
        return ""
    if rng.start_date == rng.end_date:
        return f"on {rng.start_date.isoformat()}"
    return f"from {rng.start_date.isoformat()} to {rng.end_date.isoformat()}"


def default_range_disclosure(rng: ResolvedRange) -> str:
    return (
        f"(I used the last 30 days, {format_range_label(rng)}, by default. "
        'Say "this month", "last 7 days", "last month" or give dates like YYYY-MM-DD to change it.)'
    )


def wants_number_only(normalized_text: str, intent: QueryIntent, multiple_cashbooks: bool) -> bool:
    """Whether a single-cashbook question asks for just a bare number.

    Explicit "just the number" phrasing, short count questions, and short
    metric questions asked with a question mark ("mar inflow?").
    """
    if multiple_cashbooks:
        return False
    q = (normalized_text or "").strip()
    if not q:
        return False

    if _ANSWER_ONLY_RE.search(q) or _JUST_NUMBER_RE.search(q):
        return True

    word_count = len(q.split())
    if intent.kind == IntentKind.COUNT and word_count <= 6:
        return True

    if intent.kind == IntentKind.METRIC and q.endswith("?") and word_count <= 5:
        return is_metric_keyword_present(q)

    return False


def _recent_line(r: RecentTransaction, with_type: bool = True) -> str:
    sign = "+" if r.type == TransactionType.INFLOW else "-"
    kind = f" {r.type.value}" if with_type else ""
    cat = f" ({r.category})" if r.category else ""
    desc = f": {r.description}" if r.description else ""
    return f"{r.date.isoformat()}: {sign}{money(r.amount)}{kind}{cat}{desc}".strip()


def _section(lines: List[str], block: CashbookBlock, multi: bool) -> None:
    if multi:
        lines.append(f'\nCashbook "{block.cashbook.name}":')


def _snapshot_line(title: str, s: MetricsSnapshot) -> str:
    return (
        f"{title} ({s.start_date.isoformat()} to {s.end_date.isoformat()}): "
        f"Inflow {money(s.totals.inflow)}, Outflow {money(s.totals.outflow)}, Net {money(s.totals.net)}"
    )


def _forecast_line(f: BudgetForecast) -> str:
    return (
        f"{_STATUS_TEXT[f.status]}: projected spending {money(f.projected_month_outflow)} "
        f"this month (avg/day {money(f.avg_daily_outflow)})"
    )


# Renderers

def render_full(intent, rng, blocks, number_only) -> str:
    lines = ["Here are the full details from your cashbook data:"]
    for b in blocks:
        lines.append(f'\nCashbook "{b.cashbook.name}"')
        if b.all_time:
            lines.append(
                f"All time: Balance {money(b.all_time.balance)} "
                f"(Inflow {money(b.all_time.total_inflow)}, Outflow {money(b.all_time.total_outflow)})"
            )
        if b.transaction_count is not None:
            lines.append(f"Transactions: {b.transaction_count} total")
        if b.last_7_days:
            lines.append(_snapshot_line("Last 7 days", b.last_7_days))
        if b.this_month:
            lines.append(_snapshot_line("This month", b.this_month))
            top = b.this_month.categories[0] if b.this_month.categories else None
            if top and top.outflow > 0:
                lines.append(f"Top category this month: {top.name} ({money(top.outflow)})")
        f = b.budget_forecast
        if f and f.monthly_budget > 0:
            lines.append(
                f"Budget: {_STATUS_TEXT[f.status]}. Budget {money(f.monthly_budget)}, "
                f"projected spend {money(f.projected_month_outflow)}, remaining {money(f.remaining)}"
            )
        if b.recent:
            lines.append("Recent transactions:")
            lines.extend(_recent_line(r, with_type=False) for r in b.recent[:MAX_LISTED_RECENT])
        else:
            lines.append("Recent transactions: none")
    return "\n".join(lines)


def render_recent(intent, rng, blocks, number_only) -> str:
    multi = len(blocks) > 1
    lines = ["Here are the latest transactions:"]
    for b in blocks:
        _section(lines, b, multi)
        if not b.recent:
            lines.append("No recent transactions found.")
            continue
        lines.extend(_recent_line(r) for r in b.recent[:MAX_LISTED_RECENT])
    return "\n".join(lines)


def render_budget(intent, rng, blocks, number_only) -> str:
    multi = len(blocks) > 1
    lines = [f"Budget forecast based on your spending {format_range_label(rng)}:"]
    for b in blocks:
        f = b.budget_forecast
        if not f:
            lines.append(f'\nCashbook "{b.cashbook.name}": No budget data.' if multi else "No budget data.")
            continue
        base = _forecast_line(f)
        lines.append(f'\nCashbook "{b.cashbook.name}": {base}' if multi else base)
        if f.monthly_budget > 0:
            lines.append(f"Budget: {money(f.monthly_budget)} • Remaining: {money(f.remaining)}")
        else:
            lines.append("Set a monthly budget in the Report page to track it here.")
    return "\n".join(lines)


def render_category(intent, rng, blocks, number_only) -> str:
    multi = len(blocks) > 1
    inflow = intent.metric == Metric.INFLOW
    label = "inflow" if inflow else "spending"
    lines = [f"Category breakdown for {label} {format_range_label(rng)}:"]
    for b in blocks:
        _section(lines, b, multi)
        cats = b.range_summary.categories if b.range_summary else []
        value = (lambda c: c.inflow) if inflow else (lambda c: c.outflow)
        top = [c for c in sorted(cats, key=value, reverse=True) if value(c) > 0][:MAX_LISTED_CATEGORIES]
        if not top:
            lines.append("No category totals found in this range.")
            continue
        lines.extend(f"{c.name}: {money(value(c))}" for c in top)
    return "\n".join(lines)


def render_trend(intent, rng, blocks, number_only) -> str:
    multi = len(blocks) > 1
    inflow = intent.metric == Metric.INFLOW
    lines = [f"Daily {'inflow' if inflow else 'outflow'} trend {format_range_label(rng)}:"]
    for b in blocks:
        _section(lines, b, multi)
        days = b.range_summary.daily if b.range_summary else []
        if not days:
            lines.append("No daily data in this range.")
            continue
        for d in days[-MAX_TREND_POINTS:]:
            lines.append(f"{d.date.isoformat()}: {money(d.inflow if inflow else d.outflow)}")
    return "\n".join(lines)


def render_count(intent, rng, blocks, number_only) -> str:
    if number_only and len(blocks) == 1:
        return plain_number(blocks[0].transaction_count or 0)

    label = format_range_label(rng)
    suffix = f" {label}" if label else ""
    multi = len(blocks) > 1
    lines = []
    for b in blocks:
        c = b.transaction_count or 0
        noun = "transaction" if c == 1 else "transactions"
        if multi:
            lines.append(f'In "{b.cashbook.name}", you have {c} {noun}{suffix}.')
        else:
            lines.append(f'You have {c} {noun} in "{b.cashbook.name}"{suffix}.')
    return "\n".join(lines)


def _render_balance(blocks: List[CashbookBlock]) -> str:
    multi = len(blocks) > 1
    lines = ["Here's your balance:"]
    for b in blocks:
        bal = b.all_time
        if not bal:
            lines.append(f'\nCashbook "{b.cashbook.name}": Balance not available.' if multi else "Balance not available.")
            continue
        sentence = (
            f'Balance for "{b.cashbook.name}" is {money(bal.balance)} '
            f"(inflow {money(bal.total_inflow)}, outflow {money(bal.total_outflow)})."
        )
        lines.append(f"\n{sentence}" if multi else sentence)
    return "\n".join(lines)


def _render_summary(rng: ResolvedRange, blocks: List[CashbookBlock]) -> str:
    label = format_range_label(rng)
    lines = ["Here is a quick summary from your cashbook data:"]
    for b in blocks:
        lines.append(f'\nCashbook "{b.cashbook.name}"')
        s = b.range_summary
        if s:
            prefix = f"{label[0].upper()}{label[1:]}" if label else "Totals"
            lines.append(
                f"{prefix}: Inflow {money(s.totals.inflow)}, "
                f"Outflow {money(s.totals.outflow)}, Net {money(s.totals.net)}"
            )
    return "\n".join(lines)


def render_metric(intent, rng, blocks, number_only) -> str:
    metric = intent.metric
    if metric == Metric.BALANCE:
        if number_only and len(blocks) == 1 and blocks[0].all_time:
            return plain_number(blocks[0].all_time.balance)
        return _render_balance(blocks)

    if metric == Metric.SUMMARY:
        return _render_summary(rng, blocks)

    label = format_range_label(rng)
    suffix = f" {label}." if label else "."
    lines = []
    for b in blocks:
        totals = b.range_summary.totals if b.range_summary else None
        if totals is None:
            continue
        if metric == Metric.TOTALS:
            lines.append(
                f'In "{b.cashbook.name}", inflow is {money(totals.inflow)}, outflow is {money(totals.outflow)}, '
                f"net is {money(totals.net)}{suffix}"
            )
            continue
        value = {Metric.INFLOW: totals.inflow, Metric.OUTFLOW: totals.outflow, Metric.NET: totals.net}[metric]
        if number_only:
            return plain_number(value)
        lines.append(f'In "{b.cashbook.name}", your {_METRIC_LABELS[metric]} is {money(value)}{suffix}')
    return "\n".join(lines)


Renderer = Callable[[QueryIntent, ResolvedRange, List[CashbookBlock], bool], str]

RENDERERS: Dict[IntentKind, Renderer] = {
    IntentKind.FULL: render_full,
    IntentKind.RECENT: render_recent,
    IntentKind.BUDGET: render_budget,
    IntentKind.CATEGORY: render_category,
    IntentKind.TREND: render_trend,
    IntentKind.COUNT: render_count,
    IntentKind.METRIC: render_metric,
}


def compose(
    intent: QueryIntent,
    resolved_range: ResolvedRange,
    blocks: List[CashbookBlock],
    number_only: bool = False,
) -> str:
    """Render the final answer text."""
    answer = RENDERERS[intent.kind](intent, resolved_range, blocks, number_only)
    if resolved_range.is_default and not _is_bare_number(answer, number_only):
        answer = f"{answer}\n{default_range_disclosure(resolved_range)}"
    return answer


def _is_bare_number(answer: str, number_only: bool) -> bool:
    return number_only and "\n" not in answer and " " not in answer

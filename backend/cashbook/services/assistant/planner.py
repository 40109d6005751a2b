"""Planner call: ask the language model which data a question needs."""

import json
import logging
from datetime import date
from typing import Any, Dict, List, Optional

from ...schemas.assistant import CashbookRef, DateRange, PlanInclude, QueryPlan
from .dates import clamp_range, default_range, parse_iso_date
from .entities import coerce_cashbook_id
from .llm import ChatCompletionClient, LLMError

logger = logging.getLogger(__name__)

MAX_PLAN_RECENT = 10

PLANNER_SYSTEM_PROMPT = (
    "You are a planning assistant for a cashbook app. Return ONLY valid JSON. "
    "Decide which cashbook(s) the user refers to and what date range and metrics are needed. "
    "If user does not specify date range, use last 30 days for trends/categories and all-time for balance. "
    "Never include extra keys.\n\n"
    "JSON schema:\n"
    "{\n"
    '  "cashbookIds": "all" | "current" | number[],\n'
    '  "startDate": "YYYY-MM-DD" | null,\n'
    '  "endDate": "YYYY-MM-DD" | null,\n'
    '  "include": {\n'
    '    "balance": boolean,\n'
    '    "totals": boolean,\n'
    '    "recent": number,\n'
    '    "categoryBreakdown": boolean,\n'
    '    "dailyTrend": boolean,\n'
    '    "budgetForecast": boolean\n'
    "  }\n"
    "}"
)


class PlanParseError(LLMError):
    """The planner replied with something that is not a JSON object."""


def build_planner_messages(
    question: str,
    cashbooks: List[CashbookRef],
    current_cashbook_id: Optional[int],
    today: date,
) -> List[Dict[str, str]]:
    return [
        {"role": "system", "content": PLANNER_SYSTEM_PROMPT},
        {
            "role": "user",
            "content": json.dumps({
                "question": question,
                "today": today.isoformat(),
                "currentCashbookId": current_cashbook_id,
                "cashbooks": [{"id": c.id, "name": c.name} for c in cashbooks],
            }),
        },
    ]


def parse_plan_text(text: str) -> Dict[str, Any]:
    """Decode the planner reply, tolerating a markdown code fence around it."""
    cleaned = (text or "").strip()
    if cleaned.startswith("```"):
        lines = cleaned.split("\n")
        cleaned = "\n".join(lines[1:-1] if lines[-1].startswith("```") else lines[1:])
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise PlanParseError(f"Plan is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise PlanParseError("Plan is not a JSON object")
    return data


def _flag(include: Dict[str, Any], key: str) -> bool:
    # Anything but an explicit false means "include it".
    return include.get(key) is not False


def _recent_count(value) -> int:
    if value is None:
        return 5
    try:
        n = int(float(value))
    except (TypeError, ValueError, OverflowError):
        return 5
    return max(0, min(MAX_PLAN_RECENT, n))


def normalize_plan(
    raw: Any,
    cashbooks: List[CashbookRef],
    current_cashbook_id=None,
) -> QueryPlan:
    """Coerce whatever the planner returned into a usable plan.

    Unknown or foreign cashbook ids are dropped; if nothing valid is left
    the current cashbook (or the first owned one) is used.
    """
    plan = raw if isinstance(raw, dict) else {}
    include = plan.get("include") if isinstance(plan.get("include"), dict) else {}

    owned_ids = [c.id for c in cashbooks]
    current_id = coerce_cashbook_id(current_cashbook_id)
    if current_id not in owned_ids:
        current_id = None

    requested = plan.get("cashbookIds")
    if requested == "all":
        ids = list(owned_ids)
    elif requested == "current":
        ids = [current_id] if current_id is not None else []
    elif isinstance(requested, list):
        ids = [i for i in (coerce_cashbook_id(v) for v in requested) if i is not None]
    else:
        ids = []

    ids = [i for i in dict.fromkeys(ids) if i in owned_ids]
    if not ids:
        if current_id is not None:
            ids = [current_id]
        elif owned_ids:
            ids = [owned_ids[0]]

    return QueryPlan(
        cashbook_ids=ids,
        start_date=parse_iso_date(plan.get("startDate")),
        end_date=parse_iso_date(plan.get("endDate")),
        include=PlanInclude(
            balance=_flag(include, "balance"),
            totals=_flag(include, "totals"),
            recent=_recent_count(include.get("recent")),
            category_breakdown=_flag(include, "categoryBreakdown"),
            daily_trend=_flag(include, "dailyTrend"),
            budget_forecast=_flag(include, "budgetForecast"),
        ),
    )


def plan_range(plan: QueryPlan, today: date) -> DateRange:
    """Concrete range for a plan; missing ends default to the trailing 30 days."""
    fallback = default_range(today)
    start, end = clamp_range(plan.start_date or fallback.start_date, plan.end_date or fallback.end_date)
    return DateRange(start_date=start, end_date=end, is_explicit=bool(plan.start_date or plan.end_date))


class QueryPlanner:
    """Runs the planner call and normalizes its answer."""

    def __init__(self, client: ChatCompletionClient):
        self.client = client

    async def plan(
        self,
        question: str,
        cashbooks: List[CashbookRef],
        current_cashbook_id=None,
        today: Optional[date] = None,
    ) -> QueryPlan:
        today = today or date.today()
        messages = build_planner_messages(question, cashbooks, coerce_cashbook_id(current_cashbook_id), today)
        text = await self.client.complete(messages, json_mode=True)
        logger.debug(f"[Planner] Raw plan: {text[:300]}")
        plan = normalize_plan(parse_plan_text(text), cashbooks, current_cashbook_id)
        logger.info(f"[Planner] Plan for {len(plan.cashbook_ids)} cashbook(s), include={plan.include.model_dump()}")
        return plan

"""Orchestrator for answering one assistant question.

The flow is an explicit state machine:
1. START: normalize the question, load the user's profile and cashbooks
2. PROFILE: greeting / identity / help questions, answered directly
3. NO_CASHBOOKS: nothing to answer from yet
4. LLM_PLAN -> LLM_RESPOND: when an API key is configured, the model
   plans which data to fetch and then phrases the answer
5. RESOLVE -> (AMBIGUOUS | LOCAL_COMPUTE): the deterministic path, also
   the target of every LLM failure
6. ANSWERED: terminal
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional

from ...schemas.assistant import (
    AssistantAnswer,
    CashbookBlock,
    CashbookRef,
    DateRange,
    IntentKind,
    Metric,
    QueryIntent,
    QueryPlan,
    ResolvedRange,
    UserProfile,
)
from ...schemas.trace import ExecutionTrace, TraceEventType, format_trace_summary
from ..storage import CashbookStore
from .composer import compose, wants_number_only
from .dates import add_days, default_range, resolve_range, start_of_month
from .entities import (
    coerce_cashbook_id,
    is_ambiguous_number_question,
    number_clarification,
    resolve_cashbooks,
)
from .intents import classify
from .llm import ChatCompletionClient, LLMError
from .metrics import MetricsAggregator, all_time_snapshot, budget_forecast, month_days_for
from .normalizer import normalize
from .planner import QueryPlanner, plan_range
from .profile import answer_profile_question, is_profile_question
from .responder import AnswerResponder

logger = logging.getLogger(__name__)

NO_CASHBOOKS_ANSWER = (
    "You have no cashbooks yet. Create one first, then ask me about totals, categories, or budgets."
)

# Bare metrics that default to all time when no range is named.
ALL_TIME_METRICS = (Metric.INFLOW, Metric.OUTFLOW, Metric.NET, Metric.TOTALS)


class AssistantState(str, Enum):
    START = "start"
    PROFILE = "profile"
    NO_CASHBOOKS = "no_cashbooks"
    LLM_PLAN = "llm_plan"
    LLM_RESPOND = "llm_respond"
    RESOLVE = "resolve"
    AMBIGUOUS = "ambiguous"
    LOCAL_COMPUTE = "local_compute"
    ANSWERED = "answered"


@dataclass
class AssistantContext:
    """Per-request working state passed between state handlers."""
    user_id: int
    question: str
    current_cashbook_id: Optional[int]
    budgets: Dict[str, Any]
    today: date
    trace: ExecutionTrace
    client: Optional[ChatCompletionClient] = None
    normalized: str = ""
    profile: Optional[UserProfile] = None
    cashbooks: List[CashbookRef] = field(default_factory=list)
    cashbook_ids: List[int] = field(default_factory=list)
    clarification: Optional[str] = None
    plan: Optional[QueryPlan] = None
    plan_range: Optional[DateRange] = None
    plan_blocks: List[CashbookBlock] = field(default_factory=list)
    answer: Optional[str] = None

    @property
    def username(self) -> Optional[str]:
        return self.profile.username if self.profile else None

    def cashbook(self, cashbook_id: int) -> Optional[CashbookRef]:
        return next((c for c in self.cashbooks if c.id == cashbook_id), None)

    def monthly_budget(self, cashbook_id: int) -> float:
        raw = self.budgets.get(str(cashbook_id), self.budgets.get(cashbook_id))
        try:
            return float(raw or 0)
        except (TypeError, ValueError):
            return 0.0


StateHandler = Callable[[AssistantContext], Awaitable[AssistantState]]


class AssistantOrchestrator:
    """Answers questions about a user's cashbooks.

    Either LLM step failing with an ``LLMError`` moves the request onto the
    deterministic path, so the user always gets an answer. Only storage
    failures propagate.
    """

    def __init__(
        self,
        store: CashbookStore,
        client: Optional[ChatCompletionClient] = None,
        clock: Callable[[], date] = date.today,
    ):
        self.store = store
        self.client = client
        self.clock = clock
        self.transitions: Dict[AssistantState, StateHandler] = {
            AssistantState.START: self._start,
            AssistantState.PROFILE: self._profile,
            AssistantState.NO_CASHBOOKS: self._no_cashbooks,
            AssistantState.LLM_PLAN: self._llm_plan,
            AssistantState.LLM_RESPOND: self._llm_respond,
            AssistantState.RESOLVE: self._resolve,
            AssistantState.AMBIGUOUS: self._ambiguous,
            AssistantState.LOCAL_COMPUTE: self._local_compute,
        }

    async def answer_question(
        self,
        user_id: int,
        question: str,
        current_cashbook_id=None,
        budgets_by_cashbook: Optional[Dict[str, Any]] = None,
    ) -> AssistantAnswer:
        ctx = await self.run(user_id, question, current_cashbook_id, budgets_by_cashbook)
        return AssistantAnswer(answer=ctx.answer or "")

    async def run(
        self,
        user_id: int,
        question: str,
        current_cashbook_id=None,
        budgets_by_cashbook: Optional[Dict[str, Any]] = None,
    ) -> AssistantContext:
        """Drive the state machine to ANSWERED and return the finished context."""
        ctx = AssistantContext(
            user_id=user_id,
            question=question or "",
            current_cashbook_id=coerce_cashbook_id(current_cashbook_id),
            budgets=budgets_by_cashbook if isinstance(budgets_by_cashbook, dict) else {},
            today=self.clock(),
            trace=ExecutionTrace(user_id=user_id, user_query=question or ""),
        )

        state = AssistantState.START
        while state != AssistantState.ANSWERED:
            ctx.trace.add_event(TraceEventType.STATE_ENTERED, state=state.value)
            state = await self.transitions[state](ctx)

        ctx.trace.add_event(TraceEventType.STATE_ENTERED, state=AssistantState.ANSWERED.value)
        ctx.trace.finalize(response=ctx.answer)
        logger.debug(f"[Orchestrator] {format_trace_summary(ctx.trace)}")
        return ctx

    # ------------------------------------------------------------------
    # States
    # ------------------------------------------------------------------

    async def _start(self, ctx: AssistantContext) -> AssistantState:
        ctx.normalized = normalize(ctx.question).strip()
        ctx.profile, ctx.cashbooks = await asyncio.gather(
            self.store.get_user_profile(ctx.user_id),
            self.store.list_cashbooks(ctx.user_id),
        )

        if is_profile_question(ctx.normalized):
            return AssistantState.PROFILE
        if not ctx.cashbooks:
            return AssistantState.NO_CASHBOOKS

        ctx.client = self.client or ChatCompletionClient()
        if ctx.client.configured:
            return AssistantState.LLM_PLAN
        return AssistantState.RESOLVE

    async def _profile(self, ctx: AssistantContext) -> AssistantState:
        ctx.answer = answer_profile_question(ctx.normalized, ctx.profile)
        return AssistantState.ANSWERED

    async def _no_cashbooks(self, ctx: AssistantContext) -> AssistantState:
        ctx.answer = NO_CASHBOOKS_ANSWER
        return AssistantState.ANSWERED

    async def _llm_plan(self, ctx: AssistantContext) -> AssistantState:
        planner = QueryPlanner(ctx.client)
        started = time.time()
        ctx.trace.add_event(TraceEventType.LLM_CALL, state=AssistantState.LLM_PLAN.value, data={"model": ctx.client.model})
        try:
            ctx.plan = await planner.plan(ctx.question, ctx.cashbooks, ctx.current_cashbook_id, ctx.today)
        except LLMError as e:
            return self._fall_back(ctx, AssistantState.LLM_PLAN, e)

        ctx.trace.events[-1].duration_ms = (time.time() - started) * 1000
        ctx.plan_range = plan_range(ctx.plan, ctx.today)
        ctx.plan_blocks = list(await asyncio.gather(
            *(self._plan_block(ctx, cid) for cid in ctx.plan.cashbook_ids if ctx.cashbook(cid))
        ))
        ctx.trace.add_event(
            TraceEventType.DATA_FETCHED,
            state=AssistantState.LLM_PLAN.value,
            data={"cashbooks": ctx.plan.cashbook_ids, "range": [str(ctx.plan_range.start_date), str(ctx.plan_range.end_date)]},
        )
        return AssistantState.LLM_RESPOND

    async def _llm_respond(self, ctx: AssistantContext) -> AssistantState:
        responder = AnswerResponder(ctx.client)
        started = time.time()
        ctx.trace.add_event(TraceEventType.LLM_CALL, state=AssistantState.LLM_RESPOND.value, data={"model": ctx.client.model})
        try:
            ctx.answer = await responder.respond(ctx.question, ctx.plan, ctx.plan_range, ctx.plan_blocks)
        except LLMError as e:
            return self._fall_back(ctx, AssistantState.LLM_RESPOND, e)

        ctx.trace.events[-1].duration_ms = (time.time() - started) * 1000
        return AssistantState.ANSWERED

    async def _resolve(self, ctx: AssistantContext) -> AssistantState:
        if is_ambiguous_number_question(ctx.normalized):
            ctx.clarification = number_clarification(ctx.username).question
            return AssistantState.AMBIGUOUS

        resolved = resolve_cashbooks(ctx.normalized, ctx.cashbooks, ctx.current_cashbook_id, ctx.username)
        if isinstance(resolved, list):
            ctx.cashbook_ids = resolved
            return AssistantState.LOCAL_COMPUTE

        ctx.clarification = resolved.question
        return AssistantState.AMBIGUOUS

    async def _ambiguous(self, ctx: AssistantContext) -> AssistantState:
        logger.info(f"[Orchestrator] Asking for clarification: {ctx.clarification}")
        ctx.answer = ctx.clarification
        return AssistantState.ANSWERED

    async def _local_compute(self, ctx: AssistantContext) -> AssistantState:
        intent = classify(ctx.normalized)
        rng = resolve_range(ctx.normalized, ctx.today)
        resolved = self._answer_range(intent, rng)
        logger.info(
            f"[Orchestrator] Local answer: intent={intent.kind.value} metric={intent.metric.value if intent.metric else None} "
            f"range={resolved.label or f'{rng.start_date}..{rng.end_date}'} cashbooks={ctx.cashbook_ids}"
        )

        blocks = list(await asyncio.gather(
            *(self._local_block(ctx, cid, intent, rng) for cid in ctx.cashbook_ids if ctx.cashbook(cid))
        ))
        ctx.trace.add_event(
            TraceEventType.DATA_FETCHED,
            state=AssistantState.LOCAL_COMPUTE.value,
            data={"intent": intent.kind.value, "cashbooks": ctx.cashbook_ids},
        )

        number_only = wants_number_only(ctx.normalized, intent, len(blocks) > 1)
        ctx.answer = compose(intent, resolved, blocks, number_only)
        return AssistantState.ANSWERED

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _fall_back(self, ctx: AssistantContext, state: AssistantState, error: LLMError) -> AssistantState:
        logger.warning(f"[Orchestrator] {state.value} failed, using local answer: {error}")
        ctx.trace.add_event(
            TraceEventType.LLM_FAILED,
            state=state.value,
            data={"error": str(error), "status_code": error.status_code},
        )
        ctx.trace.add_event(TraceEventType.FALLBACK_TRIGGERED, state=state.value)
        return AssistantState.RESOLVE

    @staticmethod
    def _answer_range(intent: QueryIntent, rng: DateRange) -> ResolvedRange:
        """The range an answer reports.

        Balance is always all time, and so are bare metrics and counts when
        the question names no range. Recent and full-details answers state
        their own windows.
        """
        if intent.kind == IntentKind.METRIC and intent.metric == Metric.BALANCE:
            return ResolvedRange.all_time()
        if not rng.is_explicit and (
            intent.kind == IntentKind.COUNT
            or (intent.kind == IntentKind.METRIC and intent.metric in ALL_TIME_METRICS)
        ):
            return ResolvedRange.all_time()
        if intent.kind in (IntentKind.RECENT, IntentKind.FULL):
            return ResolvedRange(start_date=rng.start_date, end_date=rng.end_date)
        return ResolvedRange.from_range(rng)

    async def _local_block(
        self,
        ctx: AssistantContext,
        cashbook_id: int,
        intent: QueryIntent,
        rng: DateRange,
    ) -> CashbookBlock:
        agg = MetricsAggregator(self.store, ctx.user_id)
        block = CashbookBlock(cashbook=ctx.cashbook(cashbook_id))
        kind, metric = intent.kind, intent.metric
        all_time = self._answer_range(intent, rng).start_date is None

        if kind == IntentKind.FULL:
            last_7 = DateRange(start_date=add_days(ctx.today, -6), end_date=ctx.today)
            this_month = DateRange(start_date=start_of_month(ctx.today), end_date=ctx.today)
            budget = ctx.monthly_budget(cashbook_id)
            (
                block.all_time,
                block.transaction_count,
                block.recent,
                block.last_7_days,
                block.this_month,
            ) = await asyncio.gather(
                agg.all_time_balance(cashbook_id),
                agg.transaction_count(cashbook_id),
                agg.recent(cashbook_id),
                agg.snapshot(cashbook_id, last_7),
                agg.snapshot(cashbook_id, this_month),
            )
            # The ranged scan only feeds the forecast.
            if budget > 0:
                block.range_summary = await agg.snapshot(cashbook_id, rng)
                block.budget_forecast = self._forecast(block, rng, budget)
            return block

        if kind == IntentKind.RECENT:
            block.recent = await agg.recent(cashbook_id)
            return block

        if kind == IntentKind.COUNT:
            if all_time:
                block.transaction_count = await agg.transaction_count(cashbook_id)
            else:
                block.range_summary, block.transaction_count = await agg.snapshot_with_count(cashbook_id, rng)
            return block

        if kind == IntentKind.METRIC and metric == Metric.BALANCE:
            block.all_time = await agg.all_time_balance(cashbook_id)
            return block

        if all_time:
            block.all_time = await agg.all_time_balance(cashbook_id)
            block.range_summary = all_time_snapshot(block.all_time)
            return block

        block.range_summary = await agg.snapshot(cashbook_id, rng)
        if kind == IntentKind.BUDGET:
            block.budget_forecast = self._forecast(block, rng, ctx.monthly_budget(cashbook_id))
        return block

    async def _plan_block(self, ctx: AssistantContext, cashbook_id: int) -> CashbookBlock:
        """Fetch exactly what the plan asked for, concurrently."""
        agg = MetricsAggregator(self.store, ctx.user_id)
        include = ctx.plan.include
        rng = ctx.plan_range

        async def nothing():
            return None

        all_time, recent, summary = await asyncio.gather(
            agg.all_time_balance(cashbook_id) if include.balance else nothing(),
            agg.recent(cashbook_id, include.recent) if include.recent > 0 else nothing(),
            agg.snapshot(cashbook_id, rng) if include.needs_range_scan else nothing(),
        )

        block = CashbookBlock(
            cashbook=ctx.cashbook(cashbook_id),
            all_time=all_time,
            recent=recent or [],
            range_summary=summary,
        )
        if include.budget_forecast and summary is not None:
            block.budget_forecast = self._forecast(block, rng, ctx.monthly_budget(cashbook_id))
        return block

    @staticmethod
    def _forecast(block: CashbookBlock, rng: DateRange, monthly_budget: float):
        summary = block.range_summary
        return budget_forecast(
            outflow=summary.totals.outflow,
            range_days=max(1, summary.range_days),
            month_days=month_days_for(rng.end_date),
            monthly_budget=monthly_budget,
        )


_orchestrator: Optional[AssistantOrchestrator] = None


def get_orchestrator() -> AssistantOrchestrator:
    """Get or create the global orchestrator instance."""
    global _orchestrator
    if _orchestrator is None:
        from ...database import AsyncSessionLocal
        _orchestrator = AssistantOrchestrator(CashbookStore(AsyncSessionLocal))
    return _orchestrator


async def answer_question(
    user_id: int,
    question: str,
    current_cashbook_id=None,
    budgets_by_cashbook: Optional[Dict[str, Any]] = None,
) -> AssistantAnswer:
    """Main entry point for assistant questions.

    Args:
        user_id: Caller's user id, already authenticated upstream
        question: Free-text question
        current_cashbook_id: Cashbook open in the client, if any
        budgets_by_cashbook: Monthly budget per cashbook id (string keys)

    Returns:
        AssistantAnswer with the reply text
    """
    return await get_orchestrator().answer_question(
        user_id, question, current_cashbook_id, budgets_by_cashbook
    )

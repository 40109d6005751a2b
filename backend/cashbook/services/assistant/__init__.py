"""Cashbook assistant.

Answers free-text questions about a user's cashbooks. Everything is
computed locally from stored transactions; when an OpenAI-compatible API
key is configured, the model plans the data to fetch and phrases the
reply, with the local path as the fallback.

Main entry point:
    answer_question(user_id, question, current_cashbook_id, budgets_by_cashbook) -> AssistantAnswer

Architecture:
    AssistantOrchestrator (state machine)
    ├── profile      greeting / identity answers
    ├── QueryPlanner (LLM) → QueryPlan → MetricsAggregator → AnswerResponder (LLM)
    └── local path
        ├── normalizer, entities, dates, intents
        ├── MetricsAggregator
        └── composer
"""

from .llm import LLMError, is_llm_configured
from .orchestrator import AssistantOrchestrator, AssistantState, answer_question, get_orchestrator

__all__ = [
    "answer_question",
    "get_orchestrator",
    "AssistantOrchestrator",
    "AssistantState",
    "LLMError",
    "is_llm_configured",
]

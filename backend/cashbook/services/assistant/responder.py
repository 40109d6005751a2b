"""Responder call: have the language model phrase an answer from fetched data."""

import json
import logging
from typing import Dict, List

from ...schemas.assistant import CashbookBlock, DateRange, QueryPlan
from .llm import ChatCompletionClient

logger = logging.getLogger(__name__)

RESPONDER_SYSTEM_PROMPT = (
    "You are a helpful cashbook assistant. Answer ONLY using the provided data. "
    "If the user asks for something not available, say what you need (cashbook name, dates). "
    "Be concise and use simple bullet points when useful. Use INR formatting like Rs 123.45."
)


def build_responder_messages(
    question: str,
    plan: QueryPlan,
    rng: DateRange,
    blocks: List[CashbookBlock],
) -> List[Dict[str, str]]:
    payload = {
        "question": question,
        "plan": plan.model_dump(mode="json"),
        "data": {
            "dateRangeUsed": {
                "startDate": rng.start_date.isoformat(),
                "endDate": rng.end_date.isoformat(),
            },
            "cashbooks": [b.model_dump(mode="json", exclude_none=True) for b in blocks],
        },
    }
    return [
        {"role": "system", "content": RESPONDER_SYSTEM_PROMPT},
        {"role": "user", "content": json.dumps(payload)},
    ]


class AnswerResponder:
    def __init__(self, client: ChatCompletionClient):
        self.client = client

    async def respond(
        self,
        question: str,
        plan: QueryPlan,
        rng: DateRange,
        blocks: List[CashbookBlock],
    ) -> str:
        messages = build_responder_messages(question, plan, rng, blocks)
        answer = await self.client.complete(messages, json_mode=False)
        logger.info(f"[Responder] Answer ready ({len(answer)} chars)")
        return answer.strip()

import logging

from fastapi import APIRouter, Depends, Header, HTTPException

from ..schemas.assistant import AssistantAnswer, ChatRequest
from ..services.assistant import AssistantOrchestrator, get_orchestrator
from ..services.storage import StorageUnavailableError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/assistant", tags=["Assistant"])


def get_assistant() -> AssistantOrchestrator:
    return get_orchestrator()


@router.post("/chat", response_model=AssistantAnswer)
async def chat_with_assistant(
    chat: ChatRequest,
    x_user_id: int = Header(...),
    assistant: AssistantOrchestrator = Depends(get_assistant),
):
    """
    Ask the cashbook assistant a question.

    The caller's id comes from the `X-User-Id` header set by the auth layer
    in front of this service.

    **Example questions:**
    - "mar inflow", "balance", "net this month"
    - "spent last 7 days in mar"
    - "top category this month", "daily trend last 30 days"
    - "how many transactions?"
    - "mar full details"

    Include `current_cashbook_id` to answer about the open cashbook, and
    `budgets_by_cashbook` (monthly budget keyed by cashbook id) for
    budget forecasts.
    """
    if not chat.message or not chat.message.strip():
        raise HTTPException(status_code=400, detail="message is required")

    try:
        return await assistant.answer_question(
            x_user_id,
            chat.message,
            current_cashbook_id=chat.current_cashbook_id,
            budgets_by_cashbook=chat.budgets_by_cashbook,
        )
    except StorageUnavailableError as e:
        logger.error(f"[Assistant] Storage unavailable for user {x_user_id}: {e}")
        raise HTTPException(status_code=503, detail="Cashbook data is unavailable, try again shortly")

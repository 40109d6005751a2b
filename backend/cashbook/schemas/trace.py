"""Execution trace schemas for debugging and observability."""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field
import uuid


class TraceEventType(str, Enum):
    """Types of events recorded while answering a question."""
    STATE_ENTERED = "state_entered"
    LLM_CALL = "llm_call"
    LLM_FAILED = "llm_failed"
    DATA_FETCHED = "data_fetched"
    FALLBACK_TRIGGERED = "fallback_triggered"


class TraceEvent(BaseModel):
    """A single event in the execution trace."""
    timestamp: datetime = Field(default_factory=datetime.now)
    event_type: TraceEventType
    state: Optional[str] = None
    data: Dict[str, Any] = Field(default_factory=dict)
    duration_ms: Optional[float] = None


class ExecutionTrace(BaseModel):
    """Trace of one assistant request: states visited, LLM calls, fallbacks."""
    trace_id: str = Field(default_factory=lambda: str(uuid.uuid4())[:12])
    user_id: int
    user_query: str
    events: List[TraceEvent] = Field(default_factory=list)
    total_duration_ms: float = 0
    llm_calls: int = 0
    llm_failures: int = 0
    used_fallback: bool = False
    final_response: Optional[str] = None
    started_at: datetime = Field(default_factory=datetime.now)

    def add_event(
        self,
        event_type: TraceEventType,
        state: Optional[str] = None,
        data: Optional[Dict[str, Any]] = None,
        duration_ms: Optional[float] = None,
    ) -> None:
        """Add an event to the trace."""
        self.events.append(TraceEvent(
            event_type=event_type,
            state=state,
            data=data or {},
            duration_ms=duration_ms,
        ))

        if event_type == TraceEventType.LLM_CALL:
            self.llm_calls += 1
        elif event_type == TraceEventType.LLM_FAILED:
            self.llm_failures += 1
        elif event_type == TraceEventType.FALLBACK_TRIGGERED:
            self.used_fallback = True

    @property
    def states(self) -> List[str]:
        return [e.state for e in self.events if e.event_type == TraceEventType.STATE_ENTERED and e.state]

    def finalize(self, response: Optional[str] = None) -> None:
        """Finalize the trace with the answer that was returned."""
        self.final_response = response
        self.total_duration_ms = (datetime.now() - self.started_at).total_seconds() * 1000


def format_trace_summary(trace: ExecutionTrace) -> str:
    """Format a trace into a human-readable summary."""
    lines = [
        f"Trace {trace.trace_id} ({trace.user_query[:50]})",
        f"  Duration: {trace.total_duration_ms:.0f}ms",
        f"  States: {' -> '.join(trace.states)}",
        f"  LLM calls: {trace.llm_calls} ({trace.llm_failures} failed)",
        f"  Fallback: {trace.used_fallback}",
    ]
    return "\n".join(lines)

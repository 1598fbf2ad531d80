"""
Interaction Log Models for the AI Tutor Orchestration Engine

Models and storage for the provenance trail of every tutor interaction.

Models:
    - InteractionLogEntry: Single interaction event
    - InteractionLogStore: In-memory sink, queried by admins
"""

from datetime import datetime
from typing import Dict, Any, Optional, List, Literal
from pydantic import BaseModel, Field
import threading

from tutor_engine.models.session import utc_now


TutorEventType = Literal[
    "session_start",
    "session_end",
    "mode_change",
    "agent_switch",
    "message_sent",
    "message_received",
    "conversation_clear",
    "error",
]


class InteractionLogEntry(BaseModel):
    """
    Single interaction log entry.

    Captures who talked to which agent, how the reply was produced, and how
    long it took.
    """

    timestamp: datetime = Field(
        default_factory=utc_now,
        description="When this log entry was created"
    )
    user_id: int
    event_type: TutorEventType
    session_id: Optional[int] = None
    conversation_id: Optional[int] = None
    message_id: Optional[int] = None
    agent_id: Optional[int] = None
    agent_name: Optional[str] = None
    agent_display_name: Optional[str] = None
    user_message: Optional[str] = None
    assistant_message: Optional[str] = None
    message_char_count: Optional[int] = None
    response_char_count: Optional[int] = None
    mode: Optional[str] = None
    ai_model: Optional[str] = None
    ai_provider: Optional[str] = None
    prompt_tokens: Optional[int] = None
    completion_tokens: Optional[int] = None
    total_tokens: Optional[int] = None
    response_time_ms: Optional[int] = None
    routing_reason: Optional[str] = None
    routing_confidence: Optional[float] = None
    routing_alternatives: Optional[str] = Field(
        default=None,
        description="JSON-encoded ranked alternatives"
    )
    agent_contributions: Optional[str] = Field(
        default=None,
        description="JSON-encoded collaborative contributions"
    )
    error_message: Optional[str] = None
    error_code: Optional[str] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    device_type: Optional[str] = None


class InteractionLogStore:
    """
    In-memory storage for interaction logs.

    Stores logs per user with FIFO trimming.
    Thread-safe for concurrent access.
    """

    def __init__(self, max_logs_per_user: int = 500):
        """
        Initialize the log store.

        Args:
            max_logs_per_user: Maximum logs to keep per user
        """
        self._logs: Dict[int, List[InteractionLogEntry]] = {}
        self._lock = threading.Lock()
        self._max_logs = max_logs_per_user

    def add_log(self, entry: InteractionLogEntry) -> None:
        """Add a log entry."""
        with self._lock:
            logs = self._logs.setdefault(entry.user_id, [])
            logs.append(entry)
            if len(logs) > self._max_logs:
                self._logs[entry.user_id] = logs[-self._max_logs:]

    def get_logs(
        self,
        user_id: Optional[int] = None,
        session_id: Optional[int] = None,
        event_type: Optional[str] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        limit: int = 100,
    ) -> List[InteractionLogEntry]:
        """
        Get logs with optional filtering, newest first.

        Args:
            user_id: Optional user filter
            session_id: Optional session filter
            event_type: Optional event type filter
            start_date: Only entries at or after this time
            end_date: Only entries at or before this time
            limit: Maximum number of entries to return

        Returns:
            Matching log entries ordered newest first
        """
        with self._lock:
            if user_id is not None:
                logs = list(self._logs.get(user_id, []))
            else:
                logs = [log for entries in self._logs.values() for log in entries]

        logs = [log for log in logs if _in_range(log.timestamp, start_date, end_date)]
        if session_id is not None:
            logs = [log for log in logs if log.session_id == session_id]
        if event_type:
            logs = [log for log in logs if log.event_type == event_type]

        logs.sort(key=lambda log: log.timestamp, reverse=True)
        return logs[:limit]

    def get_stats(
        self,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """
        Aggregate received-message events by mode and agent.

        Returns:
            Dict with messages_by_mode, messages_by_agent and
            avg_response_time_ms
        """
        received = self.get_logs(
            event_type="message_received",
            start_date=start_date,
            end_date=end_date,
            limit=10**9,
        )

        by_mode: Dict[Optional[str], int] = {}
        by_agent: Dict[Optional[str], int] = {}
        timings = []
        for log in received:
            by_mode[log.mode] = by_mode.get(log.mode, 0) + 1
            by_agent[log.agent_name] = by_agent.get(log.agent_name, 0) + 1
            if log.response_time_ms is not None:
                timings.append(log.response_time_ms)

        return {
            "messages_by_mode": [{"mode": m, "count": c} for m, c in by_mode.items()],
            "messages_by_agent": [{"agent": a, "count": c} for a, c in by_agent.items()],
            "avg_response_time_ms": sum(timings) / len(timings) if timings else None,
        }

    def clear(self) -> None:
        with self._lock:
            self._logs.clear()


def _in_range(
    timestamp: datetime,
    start: Optional[datetime],
    end: Optional[datetime],
) -> bool:
    if start is not None and timestamp < start:
        return False
    if end is not None and timestamp > end:
        return False
    return True

"""
Session/Conversation Store

Durable record of each user's tutor session and of the per-(session, agent)
conversation threads with their ordered messages.

Design:
- Protocol-based interface so handlers never depend on a concrete backend
- In-memory implementation guarded by a single lock
- Get-or-create operations are single atomic upserts

Usage:
    from tutor_engine.services.conversation_store import create_conversation_store

    store = create_conversation_store()
    session, created = store.get_or_create_session(user_id)
    conversation = store.get_or_create_conversation(session.id, agent.id)
    store.append_message(conversation.id, "user", "hello")
"""

import itertools
import threading
from typing import Any, Dict, List, Optional, Protocol, Tuple

from tutor_engine.models.session import (
    TutorConversation,
    TutorMessage,
    TutorMode,
    TutorSession,
    utc_now,
)
from tutor_engine.exceptions import (
    ConfigurationError,
    ConversationNotFoundError,
    SessionNotFoundError,
)
from tutor_engine.logging_config import get_logger


logger = get_logger("conversation_store")


# ===========================================
# Protocol (Interface)
# ===========================================


class ConversationStore(Protocol):
    """
    Protocol for session and conversation storage.

    Implementations must make each append atomic; callers sequence the
    writes within one turn themselves.
    """

    def get_or_create_session(self, user_id: int) -> Tuple[TutorSession, bool]:
        """Return the user's session and whether it was just created."""
        ...

    def get_session(self, user_id: int) -> Optional[TutorSession]:
        ...

    def update_mode(self, user_id: int, mode: TutorMode) -> TutorSession:
        ...

    def set_active_agent(self, user_id: int, agent_id: Optional[int]) -> TutorSession:
        ...

    def get_or_create_conversation(self, session_id: int, agent_id: int) -> TutorConversation:
        ...

    def find_conversation(self, session_id: int, agent_id: int) -> Optional[TutorConversation]:
        ...

    def get_conversation(self, conversation_id: int) -> Optional[TutorConversation]:
        ...

    def list_conversations(self, session_id: int) -> List[TutorConversation]:
        """Conversations of a session, most recently active first."""
        ...

    def append_message(self, conversation_id: int, role: str, content: str, **provenance: Any) -> TutorMessage:
        ...

    def recent_messages(self, conversation_id: int, limit: int) -> List[TutorMessage]:
        """The last `limit` messages, oldest first."""
        ...

    def get_messages(self, conversation_id: int, limit: Optional[int] = None) -> List[TutorMessage]:
        """Messages oldest first, optionally only the first `limit`."""
        ...

    def last_message(self, conversation_id: int) -> Optional[TutorMessage]:
        ...

    def record_exchange(self, conversation_id: int, count: int = 2) -> TutorConversation:
        ...

    def clear_conversation(self, session_id: int, agent_id: int) -> TutorConversation:
        ...

    def count_sessions(self) -> int:
        ...

    def count_messages(self, role: Optional[str] = None) -> int:
        ...


# ===========================================
# In-Memory Implementation
# ===========================================


class InMemoryConversationStore:
    """
    In-memory session and conversation storage.

    Thread-safe implementation using one lock for all tables.

    Attributes:
        _sessions: user_id -> TutorSession
        _conversations: conversation id -> TutorConversation
        _conversation_index: (session_id, agent_id) -> conversation id
        _messages: conversation id -> ordered messages
    """

    def __init__(self):
        self._sessions: Dict[int, TutorSession] = {}
        self._conversations: Dict[int, TutorConversation] = {}
        self._conversation_index: Dict[Tuple[int, int], int] = {}
        self._messages: Dict[int, List[TutorMessage]] = {}
        self._lock = threading.RLock()

        self._session_ids = itertools.count(1)
        self._conversation_ids = itertools.count(1)
        self._message_ids = itertools.count(1)

    # ---------------------------------------
    # Sessions
    # ---------------------------------------

    def get_or_create_session(self, user_id: int) -> Tuple[TutorSession, bool]:
        with self._lock:
            session = self._sessions.get(user_id)
            if session is not None:
                return session, False

            session = TutorSession(id=next(self._session_ids), user_id=user_id)
            self._sessions[user_id] = session

        logger.info(
            f"Session created for user {user_id}",
            extra={
                "component": "conversation_store",
                "event": "session_created",
                "user_id": user_id,
                "session_id": session.id,
            },
        )
        return session, True

    def get_session(self, user_id: int) -> Optional[TutorSession]:
        with self._lock:
            return self._sessions.get(user_id)

    def _require_session(self, user_id: int) -> TutorSession:
        session = self._sessions.get(user_id)
        if session is None:
            raise SessionNotFoundError(user_id)
        return session

    def update_mode(self, user_id: int, mode: TutorMode) -> TutorSession:
        """
        Raises:
            SessionNotFoundError: If the user has no session
        """
        with self._lock:
            session = self._require_session(user_id)
            session.mode = TutorMode(mode)
            session.updated_at = utc_now()
            return session

    def set_active_agent(self, user_id: int, agent_id: Optional[int]) -> TutorSession:
        """
        Raises:
            SessionNotFoundError: If the user has no session
        """
        with self._lock:
            session = self._require_session(user_id)
            session.active_agent_id = agent_id
            session.updated_at = utc_now()
            return session

    def count_sessions(self) -> int:
        with self._lock:
            return len(self._sessions)

    # ---------------------------------------
    # Conversations
    # ---------------------------------------

    def get_or_create_conversation(self, session_id: int, agent_id: int) -> TutorConversation:
        with self._lock:
            key = (session_id, agent_id)
            conversation_id = self._conversation_index.get(key)
            if conversation_id is not None:
                return self._conversations[conversation_id]

            conversation = TutorConversation(
                id=next(self._conversation_ids),
                session_id=session_id,
                agent_id=agent_id,
            )
            self._conversations[conversation.id] = conversation
            self._conversation_index[key] = conversation.id
            self._messages[conversation.id] = []

        logger.debug(
            f"Conversation created: {conversation.id}",
            extra={
                "component": "conversation_store",
                "event": "conversation_created",
                "session_id": session_id,
                "conversation_id": conversation.id,
                "data": {"agent_id": agent_id},
            },
        )
        return conversation

    def find_conversation(self, session_id: int, agent_id: int) -> Optional[TutorConversation]:
        with self._lock:
            conversation_id = self._conversation_index.get((session_id, agent_id))
            if conversation_id is None:
                return None
            return self._conversations[conversation_id]

    def get_conversation(self, conversation_id: int) -> Optional[TutorConversation]:
        with self._lock:
            return self._conversations.get(conversation_id)

    def list_conversations(self, session_id: int) -> List[TutorConversation]:
        with self._lock:
            conversations = [
                c for c in self._conversations.values() if c.session_id == session_id
            ]
        # Never-used conversations sort last
        return sorted(
            conversations,
            key=lambda c: (c.last_message_at is not None, c.last_message_at or c.created_at),
            reverse=True,
        )

    def record_exchange(self, conversation_id: int, count: int = 2) -> TutorConversation:
        """
        Bump the message counter and last-message timestamp.

        Raises:
            ConversationNotFoundError: If the conversation does not exist
        """
        with self._lock:
            conversation = self._conversations.get(conversation_id)
            if conversation is None:
                raise ConversationNotFoundError(conversation_id=conversation_id)
            conversation.message_count += count
            conversation.last_message_at = utc_now()
            return conversation

    def clear_conversation(self, session_id: int, agent_id: int) -> TutorConversation:
        """
        Delete every message and reset counters. Clearing an empty
        conversation is a no-op.

        Raises:
            ConversationNotFoundError: If the conversation was never created
        """
        with self._lock:
            conversation_id = self._conversation_index.get((session_id, agent_id))
            if conversation_id is None:
                raise ConversationNotFoundError(session_id, agent_id)
            conversation = self._conversations[conversation_id]
            removed = len(self._messages[conversation_id])
            self._messages[conversation_id] = []
            conversation.message_count = 0
            conversation.last_message_at = None

        logger.info(
            f"Conversation cleared: {conversation_id}",
            extra={
                "component": "conversation_store",
                "event": "conversation_cleared",
                "session_id": session_id,
                "conversation_id": conversation_id,
                "data": {"removed_messages": removed},
            },
        )
        return conversation

    # ---------------------------------------
    # Messages
    # ---------------------------------------

    def append_message(
        self,
        conversation_id: int,
        role: str,
        content: str,
        **provenance: Any,
    ) -> TutorMessage:
        """
        Append a message to a conversation.

        Args:
            conversation_id: Target conversation
            role: "user" or "assistant"
            content: Message text
            **provenance: Optional TutorMessage provenance fields

        Raises:
            ConversationNotFoundError: If the conversation does not exist
        """
        with self._lock:
            messages = self._messages.get(conversation_id)
            if messages is None:
                raise ConversationNotFoundError(conversation_id=conversation_id)
            message = TutorMessage(
                id=next(self._message_ids),
                conversation_id=conversation_id,
                role=role,
                content=content,
                **provenance,
            )
            messages.append(message)
            return message

    def recent_messages(self, conversation_id: int, limit: int) -> List[TutorMessage]:
        if limit <= 0:
            return []
        with self._lock:
            return list(self._messages.get(conversation_id, [])[-limit:])

    def get_messages(self, conversation_id: int, limit: Optional[int] = None) -> List[TutorMessage]:
        with self._lock:
            messages = list(self._messages.get(conversation_id, []))
        return messages if limit is None else messages[:limit]

    def last_message(self, conversation_id: int) -> Optional[TutorMessage]:
        with self._lock:
            messages = self._messages.get(conversation_id)
            return messages[-1] if messages else None

    def count_messages(self, role: Optional[str] = None) -> int:
        with self._lock:
            return sum(
                1
                for messages in self._messages.values()
                for m in messages
                if role is None or m.role == role
            )


# ===========================================
# Factory Function
# ===========================================


def create_conversation_store(store_type: str = "memory") -> ConversationStore:
    """
    Factory function to create a conversation store.

    Args:
        store_type: Type of store ("memory" for now)

    Returns:
        ConversationStore implementation

    Raises:
        ConfigurationError: If store_type is unknown
    """
    if store_type == "memory":
        return InMemoryConversationStore()
    raise ConfigurationError("store_type", f"unknown conversation store type: {store_type}")

"""
Single-Agent Exchange

The shared primitive behind manual, router and random modes: persist the
learner's message, ask one agent for a reply with recent history as
context, and persist the reply with its provenance.

A completion failure here is fatal for the request: it is logged and
re-raised as UpstreamFailureError.
"""

import asyncio
import time
from typing import Optional, Tuple

from tutor_engine.config import settings
from tutor_engine.exceptions import LLMTimeoutError, UpstreamFailureError
from tutor_engine.logging_config import get_logger, log_agent_event
from tutor_engine.models.agents import TutorAgent
from tutor_engine.models.interaction_logs import InteractionLogEntry
from tutor_engine.models.messages import ClientMetadata, CompletionResult
from tutor_engine.models.routing import RoutingInfo
from tutor_engine.models.session import TutorConversation, TutorMessage, TutorMode, TutorSession
from tutor_engine.prompts.templates import (
    AGENT_IDENTITY_TEMPLATE,
    COLLABORATIVE_IDENTITY_TEMPLATE,
    RESPONSE_GUIDELINES_TEMPLATE,
    format_list_for_prompt,
)
from tutor_engine.utils.prompt_utils import to_chat_history, truncate_text


logger = get_logger("exchange")


def build_system_prompt(
    agent: TutorAgent,
    collaborative: bool = False,
    max_length: Optional[int] = None,
) -> str:
    """
    Persona text plus the fixed behavioural contract and the agent's
    DO / DON'T lists.

    Args:
        agent: Agent whose persona is used
        collaborative: Use the multi-agent identity line
        max_length: Character budget stated to the model
    """
    identity = COLLABORATIVE_IDENTITY_TEMPLATE if collaborative else AGENT_IDENTITY_TEMPLATE
    parts = []
    if agent.system_prompt.strip():
        parts.append(agent.system_prompt.strip())
    parts.append(identity.render(display_name=agent.display_name))
    parts.append(
        RESPONSE_GUIDELINES_TEMPLATE.render(
            display_name=agent.display_name,
            max_length=max_length or settings.max_response_length,
        )
    )

    dos = agent.dos
    if dos:
        parts.append("DO:\n" + format_list_for_prompt(dos))
    donts = agent.donts
    if donts:
        parts.append("DON'T:\n" + format_list_for_prompt(donts))

    return "\n\n".join(parts)


def agent_temperature(agent: TutorAgent) -> float:
    if agent.temperature is not None:
        return agent.temperature
    return settings.default_temperature


class AgentExchange:
    """
    Runs one learner-to-agent round trip against a conversation.

    Attributes:
        client: CompletionClient used for the reply
        store: ConversationStore the messages are appended to
        interaction_logger: Receives an "error" entry on completion failure
    """

    def __init__(
        self,
        client,
        store,
        interaction_logger,
        history_window: Optional[int] = None,
        timeout_seconds: Optional[float] = None,
    ):
        self.client = client
        self.store = store
        self.interaction_logger = interaction_logger
        self.history_window = history_window or settings.history_window
        self.timeout_seconds = timeout_seconds or settings.agent_timeout_seconds

    async def run(
        self,
        session: TutorSession,
        agent: TutorAgent,
        conversation: TutorConversation,
        message: str,
        mode: TutorMode = TutorMode.MANUAL,
        routing_info: Optional[RoutingInfo] = None,
        client_metadata: Optional[ClientMetadata] = None,
    ) -> Tuple[TutorMessage, TutorMessage]:
        """
        Exchange one message with `agent`.

        Returns:
            (user_message, assistant_message) as stored

        Raises:
            UpstreamFailureError: If the completion service gave no reply
        """
        routing_fields = {}
        if routing_info is not None:
            routing_fields = {
                "routing_reason": routing_info.reason,
                "routing_confidence": routing_info.confidence,
            }

        history = to_chat_history(
            self.store.recent_messages(conversation.id, self.history_window),
            limit=self.history_window,
        )
        user_message = self.store.append_message(conversation.id, "user", message, **routing_fields)

        temperature = agent_temperature(agent)
        start_time = time.time()
        try:
            result: CompletionResult = await self._complete(agent, message, history, temperature)
        except Exception as e:
            self._record_failure(session, agent, conversation, message, mode, e, client_metadata)
            raise UpstreamFailureError(agent.name, str(e)) from e
        response_time_ms = int((time.time() - start_time) * 1000)

        usage = result.usage
        assistant_message = self.store.append_message(
            conversation.id,
            "assistant",
            result.text,
            ai_model=result.model_name,
            ai_provider=result.provider,
            prompt_tokens=usage.prompt_tokens if usage else None,
            completion_tokens=usage.completion_tokens if usage else None,
            total_tokens=usage.total_tokens if usage else None,
            response_time_ms=response_time_ms,
            temperature=temperature,
            **routing_fields,
        )
        self.store.record_exchange(conversation.id, 2)

        log_agent_event(
            logger=logger,
            agent_name=agent.name,
            event="agent_replied",
            data={
                "conversation_id": conversation.id,
                "mode": TutorMode(mode).value,
                "model": result.model_name,
                "response_length": len(result.text),
            },
            duration_ms=response_time_ms,
        )

        return user_message, assistant_message

    async def _complete(self, agent, message, history, temperature) -> CompletionResult:
        try:
            return await asyncio.wait_for(
                self.client.complete(
                    message=message,
                    system_instructions=build_system_prompt(agent),
                    history=history,
                    temperature=temperature,
                    caller=f"agent:{agent.name}",
                ),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError as e:
            raise LLMTimeoutError(self.timeout_seconds) from e

    def _record_failure(
        self,
        session: TutorSession,
        agent: TutorAgent,
        conversation: TutorConversation,
        message: str,
        mode: TutorMode,
        error: Exception,
        client_metadata: Optional[ClientMetadata],
    ) -> None:
        logger.error(
            f"AI response failed for {agent.name}: {error}",
            extra={
                "component": f"agent:{agent.name}",
                "event": "agent_failed",
                "agent": agent.name,
                "user_id": session.user_id,
                "session_id": session.id,
                "conversation_id": conversation.id,
                "error": str(error),
            },
        )
        try:
            self.interaction_logger.log(
                InteractionLogEntry(
                    user_id=session.user_id,
                    event_type="error",
                    session_id=session.id,
                    conversation_id=conversation.id,
                    agent_id=agent.id,
                    agent_name=agent.name,
                    agent_display_name=agent.display_name,
                    user_message=truncate_text(message),
                    message_char_count=len(message),
                    mode=TutorMode(mode).value,
                    error_message=str(error),
                    error_code="AI_ERROR",
                    **(client_metadata.model_dump() if client_metadata else {}),
                )
            )
        except Exception as log_error:
            logger.warning(
                f"Failed to record interaction error log: {log_error}",
                extra={"component": "exchange", "event": "log_failed"},
            )

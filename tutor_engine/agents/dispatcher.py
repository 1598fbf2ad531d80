"""
Mode Dispatcher (TutorService)

Top-level entry point of the orchestration engine. Loads the user's
session, dispatches each incoming message to the handler for the session's
mode and records the interaction.

Modes:
    - manual: the targeted (or active) agent answers directly
    - router: the routing engine picks the agent
    - random: one active agent chosen uniformly at random
    - collaborative: several agents answer through the collaboration
      orchestrator; stored in the team conversation

Usage:
    from tutor_engine.agents.dispatcher import create_tutor_service

    service = create_tutor_service()
    await service.update_mode(user_id, TutorMode.ROUTER)
    result = await service.send_message(user_id, None, "I built a function but it throws an error")
    print(result.routing_info.selected_agent.display_name)
"""

import json
import random
import time
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from tutor_engine.config import RoutingConfig, settings
from tutor_engine.exceptions import (
    AgentNotFoundError,
    ConversationNotFoundError,
    NoAgentsAvailableError,
    SessionNotFoundError,
)
from tutor_engine.logging_config import get_logger
from tutor_engine.models.agents import TutorAgent
from tutor_engine.models.collaboration import CollaborativeInfo, CollaborativeSettings
from tutor_engine.models.interaction_logs import InteractionLogEntry, InteractionLogStore
from tutor_engine.models.messages import ClientMetadata, SendMessageResult
from tutor_engine.models.routing import RoutingInfo, SelectedAgent
from tutor_engine.models.session import (
    ConversationWithMessages,
    ConversationWithPreview,
    MessagePreview,
    SessionOverview,
    TutorMessage,
    TutorMode,
    TutorSession,
)
from tutor_engine.agents.collaboration import CollaborationOrchestrator
from tutor_engine.agents.exchange import AgentExchange
from tutor_engine.agents.router import KeywordRouter, RoutingStrategy, create_router
from tutor_engine.services.agent_registry import AgentRegistry
from tutor_engine.services.conversation_store import ConversationStore, create_conversation_store
from tutor_engine.services.interaction_logger import InteractionLogger
from tutor_engine.services.llm_service import LLMService
from tutor_engine.utils.prompt_utils import to_chat_history


logger = get_logger("dispatcher")


HandlerOutcome = Tuple[SendMessageResult, TutorAgent]


class TutorService:
    """
    Orchestrates tutor sessions across the four interaction modes.

    Attributes:
        registry: AgentRegistry with the tutor roster
        store: ConversationStore for sessions, conversations and messages
        client: CompletionClient used by every agent call
        router: RoutingStrategy for router mode
        interaction_logger: Fire-and-forget provenance log
        rng: Random source for random mode and the random collaborative style
    """

    def __init__(
        self,
        registry: AgentRegistry,
        store: ConversationStore,
        client,
        router: Optional[RoutingStrategy] = None,
        interaction_logger: Optional[InteractionLogger] = None,
        rng: Optional[random.Random] = None,
    ):
        self.registry = registry
        self.store = store
        self.client = client
        self.router = router or KeywordRouter()
        self.interaction_logger = interaction_logger or InteractionLogger()
        self.rng = rng or random.Random()

        self.exchange = AgentExchange(client, store, self.interaction_logger)
        self.collaboration = CollaborationOrchestrator(client, rng=self.rng)

        self._handlers = {
            TutorMode.MANUAL: self._handle_manual,
            TutorMode.ROUTER: self._handle_router,
            TutorMode.RANDOM: self._handle_random,
            TutorMode.COLLABORATIVE: self._handle_collaborative,
        }

    # ===========================================
    # Session management
    # ===========================================

    def _session(self, user_id: int) -> TutorSession:
        session, created = self.store.get_or_create_session(user_id)
        if created:
            self._log(
                InteractionLogEntry(
                    user_id=user_id,
                    session_id=session.id,
                    event_type="session_start",
                    mode=session.mode.value,
                )
            )
        return session

    async def get_or_create_session(self, user_id: int) -> SessionOverview:
        """Session plus conversation previews and the available agents."""
        session = self._session(user_id)
        return SessionOverview(
            session=session,
            conversations=self._previews(session),
            agents=self.registry.list_active_agents(),
        )

    async def update_mode(self, user_id: int, mode: TutorMode) -> TutorSession:
        self._session(user_id)
        session = self.store.update_mode(user_id, TutorMode(mode))
        self._log(
            InteractionLogEntry(
                user_id=user_id,
                session_id=session.id,
                event_type="mode_change",
                mode=session.mode.value,
            )
        )
        return session

    async def set_active_agent(self, user_id: int, agent_id: int) -> TutorSession:
        """
        Raises:
            AgentNotFoundError: If the agent does not exist
            AgentInactiveError: If the agent is disabled
        """
        agent = self.registry.require_active(agent_id)
        self._session(user_id)
        session = self.store.set_active_agent(user_id, agent.id)
        self._log(
            InteractionLogEntry(
                user_id=user_id,
                session_id=session.id,
                event_type="agent_switch",
                agent_id=agent.id,
                agent_name=agent.name,
                agent_display_name=agent.display_name,
                mode=session.mode.value,
            )
        )
        return session

    async def get_available_agents(self) -> List[TutorAgent]:
        return self.registry.list_active_agents()

    # ===========================================
    # Conversations
    # ===========================================

    def _previews(self, session: TutorSession) -> List[ConversationWithPreview]:
        previews = []
        for conversation in self.store.list_conversations(session.id):
            agent = self.registry.get(conversation.agent_id)
            last = self.store.last_message(conversation.id)
            previews.append(
                ConversationWithPreview(
                    **conversation.model_dump(),
                    agent=agent.summary() if agent else {},
                    last_message=(
                        MessagePreview(role=last.role, content=last.content, created_at=last.created_at)
                        if last
                        else None
                    ),
                )
            )
        return previews

    async def get_conversations(self, user_id: int) -> List[ConversationWithPreview]:
        """Conversations of the user's session, most recently active first."""
        return self._previews(self._session(user_id))

    async def get_or_create_conversation(self, user_id: int, agent_id: int) -> ConversationWithMessages:
        """
        Raises:
            AgentNotFoundError: If the agent does not exist
            AgentInactiveError: If the agent is disabled
        """
        agent = self.registry.require_active(agent_id)
        session = self._session(user_id)
        conversation = self.store.get_or_create_conversation(session.id, agent.id)
        return ConversationWithMessages(
            **conversation.model_dump(),
            messages=self.store.get_messages(conversation.id),
        )

    async def get_message_history(self, conversation_id: int, limit: int = 50) -> List[TutorMessage]:
        """
        Raises:
            ConversationNotFoundError: If the conversation does not exist
        """
        if self.store.get_conversation(conversation_id) is None:
            raise ConversationNotFoundError(conversation_id=conversation_id)
        return self.store.get_messages(conversation_id, limit)

    async def clear_conversation(self, user_id: int, agent_id: int) -> None:
        """
        Delete all messages of the (user, agent) conversation.

        Raises:
            SessionNotFoundError: If the user has no session
            ConversationNotFoundError: If the conversation was never created
        """
        session = self.store.get_session(user_id)
        if session is None:
            raise SessionNotFoundError(user_id)

        conversation = self.store.clear_conversation(session.id, agent_id)
        agent = self.registry.get(agent_id)
        self._log(
            InteractionLogEntry(
                user_id=user_id,
                session_id=session.id,
                conversation_id=conversation.id,
                event_type="conversation_clear",
                agent_id=agent_id,
                agent_name=agent.name if agent else None,
                agent_display_name=agent.display_name if agent else None,
                mode=session.mode.value,
            )
        )

    # ===========================================
    # Message handling
    # ===========================================

    async def send_message(
        self,
        user_id: int,
        target_agent_id: Optional[int],
        message: str,
        client_metadata: Optional[ClientMetadata] = None,
        collaborative_settings: Optional[CollaborativeSettings] = None,
    ) -> SendMessageResult:
        """
        Handle one learner message according to the session's mode.

        Args:
            user_id: Learner id; the session is created on first use
            target_agent_id: Agent addressed by the client, if any
            message: Learner text
            client_metadata: Optional client info for the interaction log
            collaborative_settings: Style and selection for collaborative mode

        Returns:
            SendMessageResult with the stored user and assistant messages

        Raises:
            AgentNotFoundError / AgentInactiveError: Bad target agent
            NoAgentsAvailableError: No active agents
            UpstreamFailureError: Single-agent completion failed
        """
        session = self._session(user_id)
        target = None
        if target_agent_id is not None:
            target = self.registry.require_active(target_agent_id)

        mode = TutorMode(session.mode)
        start_time = time.time()
        result, agent = await self._handlers[mode](
            session, target, message, client_metadata, collaborative_settings
        )
        duration_ms = int((time.time() - start_time) * 1000)

        logger.info(
            f"Message handled in {mode.value} mode by {agent.name}",
            extra={
                "component": "dispatcher",
                "event": "message_handled",
                "user_id": user_id,
                "session_id": session.id,
                "conversation_id": result.assistant_message.conversation_id,
                "agent": agent.name,
                "mode": mode.value,
                "duration_ms": duration_ms,
            },
        )
        self._log_turn(session, mode, agent, message, result, client_metadata)
        return result

    def _active_agents(self) -> List[TutorAgent]:
        agents = self.registry.list_active_agents()
        if not agents:
            raise NoAgentsAvailableError()
        return agents

    async def _handle_manual(self, session, target, message, client_metadata, _settings) -> HandlerOutcome:
        agent = target
        if agent is None:
            if session.active_agent_id is None:
                raise AgentNotFoundError("no target or active agent")
            agent = self.registry.require_active(session.active_agent_id)

        conversation = self.store.get_or_create_conversation(session.id, agent.id)
        user_message, assistant_message = await self.exchange.run(
            session,
            agent,
            conversation,
            message,
            mode=TutorMode.MANUAL,
            client_metadata=client_metadata,
        )
        return (
            SendMessageResult(
                user_message=user_message,
                assistant_message=assistant_message,
                mode=TutorMode.MANUAL.value,
            ),
            agent,
        )

    async def _handle_router(self, session, _target, message, client_metadata, _settings) -> HandlerOutcome:
        agents = self._active_agents()
        routing_info = await self.router.route(message, agents)
        agent = self.registry.require_active(routing_info.selected_agent.id)
        return await self._exchange_routed(
            session, agent, message, routing_info, TutorMode.ROUTER, client_metadata
        )

    async def _handle_random(self, session, _target, message, client_metadata, _settings) -> HandlerOutcome:
        agents = self._active_agents()
        agent = self.rng.choice(agents)
        routing_info = RoutingInfo(
            selected_agent=SelectedAgent(id=agent.id, name=agent.name, display_name=agent.display_name),
            reason=RoutingConfig.RANDOM_REASON,
            confidence=1.0,
            strategy="random",
        )
        return await self._exchange_routed(
            session, agent, message, routing_info, TutorMode.RANDOM, client_metadata
        )

    async def _exchange_routed(
        self,
        session: TutorSession,
        agent: TutorAgent,
        message: str,
        routing_info: RoutingInfo,
        mode: TutorMode,
        client_metadata: Optional[ClientMetadata],
    ) -> HandlerOutcome:
        conversation = self.store.get_or_create_conversation(session.id, agent.id)
        user_message, assistant_message = await self.exchange.run(
            session,
            agent,
            conversation,
            message,
            mode=mode,
            routing_info=routing_info,
            client_metadata=client_metadata,
        )
        return (
            SendMessageResult(
                user_message=user_message,
                assistant_message=assistant_message,
                routing_info=routing_info,
                mode=mode.value,
            ),
            agent,
        )

    async def _handle_collaborative(
        self, session, _target, message, _client_metadata, collaborative_settings
    ) -> HandlerOutcome:
        agents = self._active_agents()
        # TODO: replace the first-agent "team" thread with a dedicated synthetic team identity
        team_agent = agents[0]
        conversation = self.store.get_or_create_conversation(session.id, team_agent.id)

        history = to_chat_history(
            self.store.recent_messages(conversation.id, settings.history_window),
            limit=settings.history_window,
        )
        user_message = self.store.append_message(conversation.id, "user", message)

        start_time = time.time()
        outcome = await self.collaboration.collaborate(
            message, agents, collaborative_settings, history
        )
        response_time_ms = int((time.time() - start_time) * 1000)

        models = [c.model for c in outcome.contributions if c.model]
        assistant_message = self.store.append_message(
            conversation.id,
            "assistant",
            outcome.display_text,
            ai_model=models[0] if models else None,
            response_time_ms=response_time_ms,
            synthesized_from=outcome.to_record_json(),
        )
        self.store.record_exchange(conversation.id, 2)

        return (
            SendMessageResult(
                user_message=user_message,
                assistant_message=assistant_message,
                collaborative_info=CollaborativeInfo(
                    style=outcome.style,
                    agent_contributions=outcome.contributions,
                    mentioned_agents=outcome.mentioned_agents,
                    total_rounds=outcome.total_rounds,
                ),
                mode=TutorMode.COLLABORATIVE.value,
            ),
            team_agent,
        )

    # ===========================================
    # Interaction logging
    # ===========================================

    def _log(self, entry: InteractionLogEntry) -> None:
        try:
            self.interaction_logger.log(entry)
        except Exception as e:
            logger.warning(
                f"Failed to log tutor interaction: {e}",
                extra={"component": "dispatcher", "event": "log_failed", "error": str(e)},
            )

    def _log_turn(
        self,
        session: TutorSession,
        mode: TutorMode,
        agent: TutorAgent,
        message: str,
        result: SendMessageResult,
        client_metadata: Optional[ClientMetadata],
    ) -> None:
        try:
            common: Dict[str, Any] = {
                "user_id": session.user_id,
                "session_id": session.id,
                "conversation_id": result.assistant_message.conversation_id,
                "agent_id": agent.id,
                "agent_name": agent.name,
                "agent_display_name": agent.display_name,
                "mode": mode.value,
                **(client_metadata.model_dump() if client_metadata else {}),
            }
            routing = result.routing_info
            if routing is not None:
                common["routing_reason"] = routing.reason
                common["routing_confidence"] = routing.confidence
                common["routing_alternatives"] = json.dumps(
                    [a.model_dump() for a in routing.alternatives]
                )

            reply = result.assistant_message
            contributions = None
            if result.collaborative_info is not None:
                contributions = json.dumps(
                    [c.model_dump() for c in result.collaborative_info.agent_contributions]
                )

            self._log(
                InteractionLogEntry(
                    event_type="message_sent",
                    message_id=result.user_message.id,
                    user_message=message,
                    message_char_count=len(message),
                    **common,
                )
            )
            self._log(
                InteractionLogEntry(
                    event_type="message_received",
                    message_id=reply.id,
                    assistant_message=reply.content,
                    response_char_count=len(reply.content),
                    ai_model=reply.ai_model,
                    ai_provider=reply.ai_provider,
                    prompt_tokens=reply.prompt_tokens,
                    completion_tokens=reply.completion_tokens,
                    total_tokens=reply.total_tokens,
                    response_time_ms=reply.response_time_ms,
                    agent_contributions=contributions,
                    **common,
                )
            )
        except Exception as e:
            logger.warning(
                f"Failed to log tutor interaction: {e}",
                extra={"component": "dispatcher", "event": "log_failed", "error": str(e)},
            )

    async def get_interaction_logs(
        self,
        user_id: Optional[int] = None,
        session_id: Optional[int] = None,
        event_type: Optional[str] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        limit: int = 100,
    ) -> List[InteractionLogEntry]:
        """Interaction logs, newest first."""
        await self.interaction_logger.flush()
        return self.interaction_logger.store.get_logs(
            user_id=user_id,
            session_id=session_id,
            event_type=event_type,
            start_date=start_date,
            end_date=end_date,
            limit=limit,
        )

    async def get_stats(
        self,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """Aggregate usage: sessions, assistant messages, per-mode and per-agent counts."""
        await self.interaction_logger.flush()
        stats = self.interaction_logger.store.get_stats(start_date, end_date)
        return {
            "total_sessions": self.store.count_sessions(),
            "total_messages": self.store.count_messages(role="assistant"),
            **stats,
        }


# ===========================================
# Factory Function
# ===========================================


def create_tutor_service(
    client=None,
    registry: Optional[AgentRegistry] = None,
    store: Optional[ConversationStore] = None,
    router: Optional[RoutingStrategy] = None,
    interaction_logger: Optional[InteractionLogger] = None,
    rng: Optional[random.Random] = None,
) -> TutorService:
    """
    Wire a TutorService from settings, overriding any collaborator given.

    Args:
        client: CompletionClient (defaults to LLMService)
        registry: Agent roster (defaults to settings.agents_file or built-ins)
        store: ConversationStore (defaults to in-memory)
        router: RoutingStrategy (defaults to settings.routing_strategy)
        interaction_logger: InteractionLogger (defaults to in-memory sink)
        rng: Random source
    """
    if client is None:
        client = LLMService()

    if registry is None:
        if settings.agents_file:
            registry = AgentRegistry.from_file(settings.agents_file)
        else:
            registry = AgentRegistry.with_defaults()

    if interaction_logger is None:
        interaction_logger = InteractionLogger(
            InteractionLogStore(max_logs_per_user=settings.max_logs_per_user)
        )

    service = TutorService(
        registry=registry,
        store=store or create_conversation_store("memory"),
        client=client,
        router=router or create_router(settings.routing_strategy, client=client),
        interaction_logger=interaction_logger,
        rng=rng,
    )

    logger.info(
        f"Tutor service created ({len(registry)} agents, routing: {service.router.name})",
        extra={"component": "dispatcher", "event": "service_created"},
    )
    return service

"""
Custom Exception Hierarchy for the AI Tutor Orchestration Engine

Exception Hierarchy:
    TutorEngineError (base)
    ├── LLMError
    │   ├── LLMServiceError
    │   ├── LLMTimeoutError
    │   └── LLMRateLimitError
    ├── NotFoundError
    │   ├── SessionNotFoundError
    │   ├── AgentNotFoundError
    │   ├── ConversationNotFoundError
    │   └── NoAgentsAvailableError
    ├── AgentInactiveError
    ├── UpstreamFailureError
    ├── RoutingError
    │   └── RoutingResponseError
    ├── PromptError
    │   └── PromptTemplateError
    └── ConfigurationError

Usage:
    from tutor_engine.exceptions import NotFoundError, UpstreamFailureError

    try:
        result = await service.send_message(user_id, agent_id, text)
    except NotFoundError as e:
        ...
"""

from typing import Optional


# ===========================================
# Base Exception
# ===========================================


class TutorEngineError(Exception):
    """
    Base exception for all tutor engine errors.

    All custom exceptions in the application inherit from this class,
    making it easy to catch all application-specific errors.
    """

    def __init__(self, message: str, details: Optional[dict] = None):
        """
        Initialize the exception.

        Args:
            message: Human-readable error message
            details: Optional dictionary of additional error details
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}


# ===========================================
# LLM Errors
# ===========================================


class LLMError(TutorEngineError):
    """Base exception for completion-service errors."""

    pass


class LLMServiceError(LLMError):
    """Raised when a completion API call fails."""

    def __init__(
        self,
        message: str,
        model_name: Optional[str] = None,
        attempts: Optional[int] = None,
    ):
        """
        Initialize LLM service error.

        Args:
            message: Error message
            model_name: Name of the model that failed
            attempts: Number of attempts made
        """
        super().__init__(message)
        self.model_name = model_name
        self.attempts = attempts


class LLMTimeoutError(LLMError):
    """Raised when a completion call times out."""

    def __init__(self, timeout_seconds: float, model_name: Optional[str] = None):
        message = f"LLM call timed out after {timeout_seconds}s"
        if model_name:
            message += f" (model: {model_name})"
        super().__init__(message)
        self.timeout_seconds = timeout_seconds
        self.model_name = model_name


class LLMRateLimitError(LLMError):
    """Raised when the provider rate limit is exceeded."""

    def __init__(self, retry_after: Optional[int] = None):
        message = "LLM rate limit exceeded"
        if retry_after:
            message += f". Retry after {retry_after}s"
        super().__init__(message)
        self.retry_after = retry_after


# ===========================================
# Lookup Errors
# ===========================================


class NotFoundError(TutorEngineError):
    """Base exception for a referenced entity that does not exist."""

    pass


class SessionNotFoundError(NotFoundError):
    """Raised when a user has no tutor session."""

    def __init__(self, user_id: int):
        super().__init__(f"Session not found for user: {user_id}")
        self.user_id = user_id


class AgentNotFoundError(NotFoundError):
    """Raised when an agent id or name is not in the registry."""

    def __init__(self, agent_ref: object):
        super().__init__(f"Agent not found: {agent_ref}")
        self.agent_ref = agent_ref


class ConversationNotFoundError(NotFoundError):
    """Raised when a (session, agent) conversation was never created."""

    def __init__(
        self,
        session_id: Optional[int] = None,
        agent_id: Optional[int] = None,
        conversation_id: Optional[int] = None,
    ):
        if conversation_id is not None:
            message = f"Conversation not found: {conversation_id}"
        else:
            message = f"Conversation not found (session: {session_id}, agent: {agent_id})"
        super().__init__(message)
        self.session_id = session_id
        self.agent_id = agent_id
        self.conversation_id = conversation_id


class NoAgentsAvailableError(NotFoundError):
    """Raised when no active agents exist to handle a message."""

    def __init__(self):
        super().__init__("No agents available")


# ===========================================
# Agent State Errors
# ===========================================


class AgentInactiveError(TutorEngineError):
    """Raised when the target agent exists but is disabled."""

    def __init__(self, agent_id: int, agent_name: Optional[str] = None):
        label = agent_name or str(agent_id)
        super().__init__(f"Agent is inactive: {label}")
        self.agent_id = agent_id
        self.agent_name = agent_name


class UpstreamFailureError(TutorEngineError):
    """
    Raised when the completion service produced no reply for a
    single-agent exchange.
    """

    def __init__(self, agent_name: str, reason: str):
        super().__init__(
            f"Failed to get AI response from {agent_name}: {reason}",
            details={"agent": agent_name},
        )
        self.agent_name = agent_name
        self.reason = reason


# ===========================================
# Routing Errors
# ===========================================


class RoutingError(TutorEngineError):
    """Base exception for routing errors."""

    pass


class RoutingResponseError(RoutingError):
    """Raised when an AI routing reply cannot be used."""

    def __init__(self, reason: str, raw_response: Optional[str] = None):
        super().__init__(f"Invalid AI routing response: {reason}")
        self.reason = reason
        self.raw_response = raw_response


# ===========================================
# Prompt Errors
# ===========================================


class PromptError(TutorEngineError):
    """Base exception for prompt-related errors."""

    pass


class PromptTemplateError(PromptError):
    """Raised when prompt template rendering fails."""

    def __init__(self, template_name: str, missing_vars: list[str]):
        """
        Initialize prompt template error.

        Args:
            template_name: Name of the template
            missing_vars: List of missing template variables
        """
        message = f"Prompt template '{template_name}' missing variables: {', '.join(missing_vars)}"
        super().__init__(message)
        self.template_name = template_name
        self.missing_vars = missing_vars


# ===========================================
# Configuration Errors
# ===========================================


class ConfigurationError(TutorEngineError):
    """Raised when configuration is invalid or missing."""

    def __init__(self, config_key: str, reason: str):
        message = f"Configuration error for '{config_key}': {reason}"
        super().__init__(message)
        self.config_key = config_key
        self.reason = reason

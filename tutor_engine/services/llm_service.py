"""
Completion Client for the AI Tutor Orchestration Engine

The engine reaches a language model only through the CompletionClient
protocol below. LLMService implements it on OpenAI chat completions, or on
Anthropic's Messages API when app_llm_provider=anthropic.

- Multi-turn: system instructions, prior turns, then the new message
- Rate limits and timeouts are retried with exponential backoff
- Other provider errors become LLMServiceError

Usage:
    from tutor_engine.services.llm_service import LLMService

    llm = LLMService(api_key=settings.openai_api_key)
    result = await llm.complete(
        message="Explain recursion",
        system_instructions="You are a Socratic tutor.",
        history=[],
        temperature=0.7,
    )
"""

import time
import asyncio
from typing import Awaitable, Callable, List, Optional, Protocol

import anthropic
from openai import AsyncOpenAI, OpenAIError, RateLimitError, APITimeoutError

from tutor_engine.config import settings
from tutor_engine.exceptions import ConfigurationError, LLMRateLimitError, LLMServiceError
from tutor_engine.logging_config import get_logger, log_llm_event
from tutor_engine.models.messages import ChatTurn, CompletionResult, TokenUsage
from tutor_engine.services.anthropic_adapter import AnthropicAdapter


logger = get_logger("llm")


RETRYABLE_ERRORS = (RateLimitError, APITimeoutError, anthropic.RateLimitError, anthropic.APITimeoutError)
PROVIDER_ERRORS = (OpenAIError, anthropic.APIError)


# ===========================================
# Protocol (Interface)
# ===========================================


class CompletionClient(Protocol):
    """
    A language-model completion capability.

    Implementations may raise any exception on failure; callers decide
    whether that failure is fatal.
    """

    async def complete(
        self,
        message: str,
        system_instructions: str,
        history: List[ChatTurn],
        temperature: float,
        caller: str = "unknown",
    ) -> CompletionResult:
        ...


# ===========================================
# OpenAI / Anthropic Implementation
# ===========================================


class LLMService:
    """
    CompletionClient backed by OpenAI or Anthropic.

    Attributes:
        provider: "openai" or "anthropic"
        model: Model used for every call
        max_retries: Attempts before giving up on retryable errors
        initial_retry_delay: First backoff delay; doubled after each retry
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        max_retries: Optional[int] = None,
        initial_retry_delay: float = 1.0,
        timeout: Optional[int] = None,
        provider: Optional[str] = None,
        model: Optional[str] = None,
    ):
        """
        Raises:
            ConfigurationError: If no API key is available for the provider
        """
        self.provider = provider or settings.app_llm_provider
        self.max_retries = max_retries or settings.llm_max_retries
        self.initial_retry_delay = initial_retry_delay
        self.timeout = timeout or settings.llm_timeout_seconds

        self._anthropic: Optional[AnthropicAdapter] = None
        self.async_client: Optional[AsyncOpenAI] = None

        if self.provider == "anthropic":
            self.api_key = api_key or settings.anthropic_api_key
            if not self.api_key:
                raise ConfigurationError("anthropic_api_key", "required when app_llm_provider=anthropic")
            self._anthropic = AnthropicAdapter(api_key=self.api_key, timeout=self.timeout, model=model)
            self.model = self._anthropic.model
        else:
            self.api_key = api_key or settings.openai_api_key
            if not self.api_key:
                raise ConfigurationError("openai_api_key", "required when app_llm_provider=openai")
            self.async_client = AsyncOpenAI(api_key=self.api_key)
            self.model = model or settings.llm_model

    @property
    def model_name(self) -> str:
        return self.model

    async def complete(
        self,
        message: str,
        system_instructions: str,
        history: List[ChatTurn],
        temperature: float,
        caller: str = "unknown",
    ) -> CompletionResult:
        """
        Generate a reply to `message`.

        Args:
            message: The new user-side message
            system_instructions: System prompt for this call
            history: Prior turns, oldest first
            temperature: Sampling temperature
            caller: "router" or "agent:<name>", for logging

        Raises:
            LLMServiceError: If the provider call fails after retries
        """
        log_llm_event(
            logger=logger,
            model=self.model,
            status="starting",
            caller=caller,
            params={
                "temperature": temperature,
                "history_length": len(history),
                "prompt": message if settings.log_llm_prompts else None,
            },
        )

        if self._anthropic is not None:
            call = lambda: self._anthropic.complete(
                message=message,
                system_instructions=system_instructions,
                history=history,
                temperature=temperature,
            )
        else:
            call = lambda: self._openai_complete(message, system_instructions, history, temperature)

        return await self._with_retries(call, caller)

    async def _openai_complete(
        self,
        message: str,
        system_instructions: str,
        history: List[ChatTurn],
        temperature: float,
    ) -> CompletionResult:
        messages = [{"role": "system", "content": system_instructions}]
        messages += [{"role": turn.role, "content": turn.content} for turn in history]
        messages.append({"role": "user", "content": message})

        response = await self.async_client.chat.completions.create(
            model=self.model,
            messages=messages,
            temperature=temperature,
            max_tokens=settings.llm_max_tokens,
            timeout=self.timeout,
        )

        usage = None
        if response.usage is not None:
            usage = TokenUsage(
                prompt_tokens=response.usage.prompt_tokens,
                completion_tokens=response.usage.completion_tokens,
                total_tokens=response.usage.total_tokens,
            )

        return CompletionResult(
            text=response.choices[0].message.content or "",
            model_name=response.model or self.model,
            provider="openai",
            usage=usage,
        )

    async def _with_retries(
        self,
        call: Callable[[], Awaitable[CompletionResult]],
        caller: str,
    ) -> CompletionResult:
        """Run `call`, retrying rate limits and timeouts with backoff."""
        start_time = time.time()
        delay = self.initial_retry_delay
        last_error: Optional[Exception] = None

        for attempt in range(1, self.max_retries + 1):
            try:
                result = await call()
            except RETRYABLE_ERRORS as e:
                last_error = e
                logger.warning(
                    f"{self.model} {type(e).__name__} (attempt {attempt}/{self.max_retries})",
                    extra={"component": "llm", "event": "llm_retry", "caller": caller, "attempts": attempt},
                )
                if attempt < self.max_retries:
                    await asyncio.sleep(delay)
                    delay *= 2
                continue
            except PROVIDER_ERRORS as e:
                self._log_failure(caller, str(e), start_time, attempt)
                raise LLMServiceError(str(e), self.model, attempt) from e

            log_llm_event(
                logger=logger,
                model=self.model,
                status="complete",
                caller=caller,
                output={
                    "response_length": len(result.text),
                    "response": result.text if settings.log_llm_responses else None,
                },
                duration_ms=int((time.time() - start_time) * 1000),
                attempts=attempt,
            )
            return result

        self._log_failure(caller, str(last_error), start_time, self.max_retries)
        if isinstance(last_error, (RateLimitError, anthropic.RateLimitError)):
            raise LLMRateLimitError() from last_error
        raise LLMServiceError(
            f"Failed after {self.max_retries} attempts: {last_error}",
            self.model,
            self.max_retries,
        )

    def _log_failure(self, caller: str, error: str, start_time: float, attempts: int) -> None:
        log_llm_event(
            logger=logger,
            model=self.model,
            status="failed",
            caller=caller,
            error=error,
            duration_ms=int((time.time() - start_time) * 1000),
            attempts=attempts,
        )

"""
Anthropic (Claude) Adapter for the AI Tutor Orchestration Engine

Maps the completion interface used by LLMService onto Anthropic's Messages
API: system instructions go in the `system` field and prior turns become the
alternating `messages` list.
"""

from typing import Any, Dict, List, Optional

import anthropic

from tutor_engine.config import settings
from tutor_engine.models.messages import ChatTurn, CompletionResult, TokenUsage


class AnthropicAdapter:
    """Adapter that translates chat-completion calls to Anthropic's Messages API."""

    def __init__(self, api_key: str, timeout: int = 60, model: Optional[str] = None):
        self.model = model or settings.anthropic_model
        self.async_client = anthropic.AsyncAnthropic(api_key=api_key, timeout=timeout)

    def _build_kwargs(
        self,
        message: str,
        system_instructions: str,
        history: List[ChatTurn],
        temperature: float,
    ) -> Dict[str, Any]:
        """Build kwargs for anthropic messages.create()."""
        messages: List[Dict[str, str]] = []
        for turn in history:
            # Messages API requires alternating roles; merge consecutive turns
            if messages and messages[-1]["role"] == turn.role:
                messages[-1]["content"] += "\n\n" + turn.content
            else:
                messages.append({"role": turn.role, "content": turn.content})

        if messages and messages[0]["role"] == "assistant":
            messages.insert(0, {"role": "user", "content": "(conversation resumed)"})

        if messages and messages[-1]["role"] == "user":
            messages[-1]["content"] += "\n\n" + message
        else:
            messages.append({"role": "user", "content": message})

        kwargs: Dict[str, Any] = {
            "model": self.model,
            "max_tokens": settings.llm_max_tokens,
            "temperature": min(temperature, 1.0),
            "messages": messages,
        }
        if system_instructions:
            kwargs["system"] = system_instructions
        return kwargs

    def _parse_response(self, response: Any) -> CompletionResult:
        """Parse an Anthropic response into a CompletionResult."""
        text_parts = [block.text for block in response.content if block.type == "text"]

        usage = None
        if getattr(response, "usage", None) is not None:
            input_tokens = response.usage.input_tokens
            output_tokens = response.usage.output_tokens
            usage = TokenUsage(
                prompt_tokens=input_tokens,
                completion_tokens=output_tokens,
                total_tokens=(input_tokens or 0) + (output_tokens or 0),
            )

        return CompletionResult(
            text="".join(text_parts),
            model_name=getattr(response, "model", None) or self.model,
            provider="anthropic",
            usage=usage,
        )

    async def complete(
        self,
        message: str,
        system_instructions: str,
        history: List[ChatTurn],
        temperature: float,
    ) -> CompletionResult:
        """Async call to Claude, returning a CompletionResult."""
        kwargs = self._build_kwargs(message, system_instructions, history, temperature)
        response = await self.async_client.messages.create(**kwargs)
        return self._parse_response(response)

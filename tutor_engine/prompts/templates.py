"""
Prompt Template System for the AI Tutor Orchestration Engine

A small reusable template type with variable interpolation and validation,
plus the templates every tutor agent call is built from.

Usage:
    from tutor_engine.prompts.templates import PromptTemplate

    template = PromptTemplate("You are {display_name}.", name="identity")
    prompt = template.render(display_name="Laila")
"""

from typing import Any, Optional
from string import Formatter

from tutor_engine.exceptions import PromptTemplateError


class PromptTemplate:
    """
    Reusable template for generating prompts.

    Supports variable interpolation with optional defaults and validation.

    Attributes:
        template: Raw template string with {variable} placeholders
        required_vars: Set of required variable names
        name: Optional template name for error reporting
    """

    def __init__(
        self,
        template: str,
        name: Optional[str] = None,
        defaults: Optional[dict[str, Any]] = None,
    ):
        self.template = template.strip()
        self.name = name or "unnamed"
        self.defaults = defaults or {}
        self.required_vars = self._extract_variables()

    def _extract_variables(self) -> set[str]:
        """Extract variable names from template string."""
        variables = set()
        for _, field_name, _, _ in Formatter().parse(self.template):
            if field_name is not None:
                base_name = field_name.split(".")[0].split("[")[0]
                if base_name:
                    variables.add(base_name)
        return variables

    def render(self, **kwargs: Any) -> str:
        """
        Render the template with provided variables.

        Raises:
            PromptTemplateError: If required variables are missing
        """
        values = {**self.defaults, **kwargs}

        missing = self.required_vars - set(values.keys())
        if missing:
            raise PromptTemplateError(
                template_name=self.name,
                missing_vars=sorted(missing),
            )

        try:
            return self.template.format(**values)
        except KeyError as e:
            raise PromptTemplateError(
                template_name=self.name,
                missing_vars=[str(e)],
            ) from e

    def partial(self, **kwargs: Any) -> "PromptTemplate":
        """Create a partial template with some variables pre-filled."""
        return PromptTemplate(
            template=self.template,
            name=f"{self.name}_partial",
            defaults={**self.defaults, **kwargs},
        )

    def __repr__(self) -> str:
        return f"PromptTemplate(name='{self.name}', vars={self.required_vars})"


# ===========================================
# Agent System Prompt Templates
# ===========================================


AGENT_IDENTITY_TEMPLATE = PromptTemplate(
    """IMPORTANT: You are {display_name}. Stay in character throughout the conversation. Remember what the learner has told you and refer back to previous messages when relevant.""",
    name="agent_identity",
)


COLLABORATIVE_IDENTITY_TEMPLATE = PromptTemplate(
    """IMPORTANT: You are {display_name}, one of several tutors answering the same learner together. Give a focused response from your own perspective and be aware of what has been discussed previously.""",
    name="collaborative_identity",
)


RESPONSE_GUIDELINES_TEMPLATE = PromptTemplate(
    """RESPONSE GUIDELINES:
- Speak directly to the learner.
- Never begin your reply with your name or a speaker label such as "{display_name}:".
- Keep your reply under {max_length} characters, about 2-3 sentences.
- Avoid heavy markdown: no headings, tables or long bullet lists.""",
    name="response_guidelines",
)


# ===========================================
# Collaborative Turn Templates
# ===========================================


SEQUENTIAL_FOLLOWUP_TEMPLATE = PromptTemplate(
    """{message}

Other tutors have already responded to this in the current discussion:

{transcript}

Acknowledge what they said and build on it from your own perspective. Do not repeat points that were already made.""",
    name="sequential_followup",
)


DEBATE_ROUND_TEMPLATE = PromptTemplate(
    """{message}

This is round {round} of a discussion between tutors. Here is everything said so far:

{transcript}

Respond to the other tutors directly. Say where you agree, where you disagree, or what nuance they missed, and keep it constructive.""",
    name="debate_round",
)


# ===========================================
# Routing Templates
# ===========================================


ROUTING_SYSTEM_PROMPT = (
    "You are a routing assistant. Always respond with valid JSON only, "
    "no markdown formatting."
)


ROUTING_TEMPLATE = PromptTemplate(
    """You are a routing assistant. Analyze the learner's message and determine which tutor agent would be best suited to help them.

Available agents:
{agent_descriptions}

Learner's message: "{message}"

Respond in this exact JSON format (no markdown, just JSON):
{{
  "selectedAgent": "agent-name-here",
  "reason": "Brief explanation of why this agent is best",
  "confidence": 0.85,
  "scores": {{
    "agent-name-1": 0.85,
    "agent-name-2": 0.60
  }}
}}

Consider:
- Emotional tone (frustrated, curious, casual, urgent)
- Type of help needed (conceptual understanding, step-by-step guidance, project work, emotional support)
- Complexity of the question
- Whether they need encouragement or direct answers""",
    name="routing",
)


# ===========================================
# Helper Functions
# ===========================================


def format_list_for_prompt(items: list[str], bullet: str = "-") -> str:
    """Format a list as bullet points for prompt inclusion."""
    if not items:
        return "None"
    return "\n".join(f"{bullet} {item}" for item in items)

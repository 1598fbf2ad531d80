"""
Prompt Utilities for the AI Tutor Orchestration Engine

Reusable functions for building model input and cleaning model output.

Usage:
    from tutor_engine.utils.prompt_utils import to_chat_history, strip_speaker_prefix

    history = to_chat_history(messages, limit=10)
    reply = strip_speaker_prefix(raw_reply, ["Laila", "laila-peer"])
"""

import json
import re
from typing import Any, Iterable, Optional, TYPE_CHECKING

from tutor_engine.models.messages import ChatTurn

if TYPE_CHECKING:
    from tutor_engine.models.session import TutorMessage
    from tutor_engine.models.collaboration import AgentContribution


_JSON_OBJECT_PATTERN = re.compile(r"\{[\s\S]*\}")
_WORD_PATTERN = re.compile(r"[a-z0-9']+")


def to_chat_history(messages: list["TutorMessage"], limit: int = 10) -> list[ChatTurn]:
    """
    Convert stored messages into ordered role/content pairs.

    Args:
        messages: Messages ordered oldest first
        limit: Keep only the most recent `limit` messages

    Returns:
        List of ChatTurn, oldest first
    """
    if limit <= 0:
        return []
    return [ChatTurn(role=m.role, content=m.content) for m in messages[-limit:]]


def format_transcript(contributions: Iterable["AgentContribution"]) -> str:
    """
    Format contributions as a running transcript for follow-up prompts.

    Example:
        >>> print(format_transcript(contribs))
        **Laila**: I see it differently...

        **Carmen**: When I took this...
    """
    return "\n\n".join(
        f"**{c.agent_display_name}**: {c.contribution}" for c in contributions
    )


def strip_speaker_prefix(text: str, names: Iterable[str]) -> str:
    """
    Remove a leading "Name:" or "**Name**:" from a model reply.

    Args:
        text: Raw reply text
        names: Names the speaker may have prefixed itself with

    Returns:
        Reply without the speaker label
    """
    cleaned = text.strip()
    for name in names:
        if not name:
            continue
        pattern = re.compile(
            rf"^\s*(\*\*)?{re.escape(name)}(\*\*)?\s*:\s*(\*\*)?\s*",
            re.IGNORECASE,
        )
        stripped = pattern.sub("", cleaned, count=1)
        if stripped != cleaned:
            return stripped.strip()
    return cleaned


def extract_json_object(text: str) -> Optional[dict[str, Any]]:
    """
    Pull the outermost JSON object out of a reply that may wrap it in prose
    or markdown fences.

    Returns:
        Parsed dict, or None when no JSON object can be decoded
    """
    match = _JSON_OBJECT_PATTERN.search(text or "")
    if not match:
        return None
    try:
        parsed = json.loads(match.group(0))
    except json.JSONDecodeError:
        return None
    return parsed if isinstance(parsed, dict) else None


def content_words(text: str, min_length: int = 5) -> list[str]:
    """
    Lowercased words of at least `min_length` characters, in order of first
    appearance and without duplicates.
    """
    seen = []
    for word in _WORD_PATTERN.findall(text.lower()):
        if len(word) >= min_length and word not in seen:
            seen.append(word)
    return seen


def truncate_text(text: str, max_length: int = 500, suffix: str = "...") -> str:
    """
    Truncate text to a maximum length with suffix.

    Args:
        text: Text to truncate
        max_length: Maximum length (including suffix)
        suffix: Suffix to append if truncated

    Returns:
        Truncated text
    """
    if len(text) <= max_length:
        return text

    return text[: max_length - len(suffix)] + suffix

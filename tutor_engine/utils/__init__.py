"""
Shared Utilities for the AI Tutor Orchestration Engine

Modules:
    - prompt_utils: History conversion, transcripts, reply cleanup, JSON extraction
"""

from tutor_engine.utils.prompt_utils import (
    to_chat_history,
    format_transcript,
    strip_speaker_prefix,
    extract_json_object,
    content_words,
    truncate_text,
)

__all__ = [
    "to_chat_history",
    "format_transcript",
    "strip_speaker_prefix",
    "extract_json_object",
    "content_words",
    "truncate_text",
]

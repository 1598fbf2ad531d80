"""
Mention Parser

Resolves explicit @-references in a learner's message to tutor agents and
strips them out before the text is sent to a model.

Recognized forms:
    @"Helpful Guide"    double-quoted, may contain spaces
    @'Helpful Guide'    single-quoted
    @laila              bare token (letters, digits, '_', '-', '.')

Usage:
    from tutor_engine.agents.mentions import parse_mentions, strip_mentions

    agents = parse_mentions('@"Helper Tutor" explain recursion', roster)
    clean = strip_mentions('@"Helper Tutor" explain recursion')  # "explain recursion"
"""

import re
from typing import List

from tutor_engine.models.agents import TutorAgent


MENTION_PATTERN = re.compile(r"""@"([^"]+)"|@'([^']+)'|(?<!\S)@([\w.-]+)""")
_WHITESPACE = re.compile(r"\s+")


def _normalize(value: str) -> str:
    value = value.lower().replace("-", " ").replace("_", " ")
    return _WHITESPACE.sub(" ", value).strip(" .")


def extract_mentions(text: str) -> List[str]:
    """Raw mention strings in the order they appear."""
    mentions = []
    for match in MENTION_PATTERN.finditer(text or ""):
        raw = next(group for group in match.groups() if group is not None)
        mentions.append(raw)
    return mentions


def _matches(mention: str, agent: TutorAgent) -> bool:
    for candidate in (agent.name, agent.display_name):
        target = _normalize(candidate)
        if target and (mention in target or target in mention):
            return True
    return False


def parse_mentions(text: str, agents: List[TutorAgent]) -> List[TutorAgent]:
    """
    Agents referenced by @-mentions in `text`.

    Matching is case-insensitive and works on substrings in either
    direction against both the machine name and the display name, with
    '-' and '_' treated as spaces. Every agent a mention matches is
    selected; the result is ordered by first mention, without duplicates.
    """
    selected: List[TutorAgent] = []
    seen_ids = set()
    for raw in extract_mentions(text):
        mention = _normalize(raw)
        if not mention:
            continue
        for agent in agents:
            if agent.id not in seen_ids and _matches(mention, agent):
                seen_ids.add(agent.id)
                selected.append(agent)
    return selected


def strip_mentions(text: str) -> str:
    """Remove every mention form and collapse the remaining whitespace."""
    return _WHITESPACE.sub(" ", MENTION_PATTERN.sub(" ", text or "")).strip()

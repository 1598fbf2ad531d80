"""
Mention Parser Tests

Covers the three mention forms, roster matching and stripping.
"""

from tutor_engine.agents.mentions import extract_mentions, parse_mentions, strip_mentions


def _names(agents):
    return [a.name for a in agents]


# =============================================================================
# Parsing
# =============================================================================


def test_double_quoted_mention_matches_machine_name(agents):
    """'Helper Tutor' resolves to helper-tutor once '-' is treated as a space."""
    assert _names(parse_mentions('@"Helper Tutor" explain recursion', agents)) == ["helper-tutor"]


def test_single_quoted_mention_matches_display_name(agents):
    assert _names(parse_mentions("@'Socratic Guide' why is the sky blue", agents)) == ["socratic-tutor"]


def test_bare_mention_is_case_insensitive(agents):
    assert _names(parse_mentions("@LAILA what do you think?", agents)) == ["laila-peer"]


def test_partial_name_resolves(agents):
    assert _names(parse_mentions("@bea can you help", agents)) == ["beatrice-peer"]


def test_multiple_mentions_keep_mention_order(agents):
    text = "@laila and @carmen, which approach is better?"
    assert _names(parse_mentions(text, agents)) == ["laila-peer", "carmen-peer"]


def test_repeated_mention_selects_agent_once(agents):
    assert _names(parse_mentions("@laila @Laila @laila-peer", agents)) == ["laila-peer"]


def test_unknown_mention_matches_nothing(agents):
    assert parse_mentions("@nobody help", agents) == []


def test_email_address_is_not_a_mention(agents):
    assert parse_mentions("send it to carmen@example.com please", agents) == []


def test_trailing_punctuation_is_ignored(agents):
    assert _names(parse_mentions("thanks @carmen.", agents)) == ["carmen-peer"]


def test_extract_mentions_returns_raw_text():
    assert extract_mentions("""@"Helpful Guide" and @'Study Buddy' and @laila""") == [
        "Helpful Guide",
        "Study Buddy",
        "laila",
    ]


# =============================================================================
# Stripping
# =============================================================================


def test_strip_quoted_mention():
    stripped = strip_mentions('@"Helper Tutor" explain recursion')
    assert stripped == "explain recursion"
    assert "@" not in stripped


def test_strip_keeps_remaining_words_in_order():
    text = "hey @laila can you and @'Study Buddy' help me with @carmen loops"
    assert strip_mentions(text) == "hey can you and help me with loops"


def test_strip_without_mentions_only_collapses_whitespace():
    assert strip_mentions("  what   is a   closure ") == "what is a closure"


def test_strip_leaves_email_addresses():
    assert strip_mentions("mail carmen@example.com") == "mail carmen@example.com"

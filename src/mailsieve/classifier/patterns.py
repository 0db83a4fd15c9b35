"""Phrase-pattern and structural heuristic signals for spam scoring.

Both signals are table-driven: the phrase list and every heuristic weight
live in module-level constants so the scoring policy can be audited and
tested without training a model.

CRITICAL SECURITY NOTE:
All regex operations use the `regex` library with a timeout passed at match
time. Message bodies are attacker-controlled, and a pattern that times out
is treated as a non-match instead of stalling ingestion.

Usage:
    from mailsieve.classifier.patterns import score_heuristics, score_patterns

    pattern_score = score_patterns(message.subject, message.body_text)
    heuristic_score = score_heuristics(message)
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING

import regex

from mailsieve.core.logging import get_logger

if TYPE_CHECKING:
    from mailsieve.models import Message

logger = get_logger(__name__)

# Regex timeout in seconds (all match operations MUST use this)
REGEX_TIMEOUT = 1.0

# =============================================================================
# Phrase patterns
# =============================================================================

PATTERN_MATCH_WEIGHT = 15
PATTERN_SCORE_CAP = 100

SPAM_PATTERNS: tuple[tuple[str, regex.Pattern], ...] = (
    ("pharmacy", regex.compile(r"\b(viagra|cialis|pharmacy)\b", regex.IGNORECASE)),
    ("diet", regex.compile(r"\b(weight loss|lose weight|diet pills)\b", regex.IGNORECASE)),
    ("click_now", regex.compile(r"\b(click here|click now|act now)\b", regex.IGNORECASE)),
    ("urgency", regex.compile(r"\b(limited time|urgent|immediate)\b", regex.IGNORECASE)),
    ("prize", regex.compile(r"\b(congratulations|you've won|winner)\b", regex.IGNORECASE)),
    (
        "money_making",
        regex.compile(r"\b(free money|make money fast|earn \$\$\$)\b", regex.IGNORECASE),
    ),
    (
        "advance_fee",
        regex.compile(r"\b(nigerian prince|inheritance|lottery)\b", regex.IGNORECASE),
    ),
    ("enhancement", regex.compile(r"\b(enlarge|enhancement|miracle)\b", regex.IGNORECASE)),
)

# =============================================================================
# Structural heuristics
# =============================================================================

WEIGHT_ALL_CAPS_SUBJECT = 15
WEIGHT_EXCLAMATIONS = 10
WEIGHT_MANY_URLS = 15
WEIGHT_URL_SHORTENER = 10
WEIGHT_LINE_BREAKS = 10
WEIGHT_HTML_ONLY = 5
WEIGHT_MANY_RECIPIENTS = 15

ALL_CAPS_MIN_LENGTH = 10
MAX_SUBJECT_EXCLAMATIONS = 3
MAX_BODY_URLS = 5
MAX_LINE_BREAKS = 50
SHORT_BODY_LENGTH = 1000
MAX_RECIPIENTS = 20

URL_PATTERN = regex.compile(r"https?://")
URL_SHORTENER_PATTERN = regex.compile(r"bit\.ly|tinyurl|goo\.gl", regex.IGNORECASE)


def _count_matches(pattern: regex.Pattern, text: str) -> int:
    """Count non-overlapping matches with timeout.

    Args:
        pattern: Compiled regex pattern
        text: Text to search

    Returns:
        Number of matches, or 0 if the search timed out
    """
    try:
        return len(pattern.findall(text, timeout=REGEX_TIMEOUT))
    except TimeoutError:
        logger.warning(
            "Regex timeout during spam check",
            pattern=pattern.pattern[:50],
        )
        return 0


def score_patterns(subject: str | None, body_text: str | None) -> int:
    """Score a message against the spam phrase table.

    Each pattern that matches anywhere in the lowercased subject + body adds
    PATTERN_MATCH_WEIGHT, however many times it matches.

    Args:
        subject: Message subject
        body_text: Plain-text body

    Returns:
        Pattern score in [0, 100]
    """
    text = f"{subject or ''} {body_text or ''}".lower()
    matched = [name for name, pattern in SPAM_PATTERNS if _count_matches(pattern, text) > 0]
    if matched:
        logger.debug("spam_patterns_matched", patterns=matched)
    return min(PATTERN_SCORE_CAP, len(matched) * PATTERN_MATCH_WEIGHT)


@dataclass(frozen=True, slots=True)
class HeuristicRule:
    """One structural check and the weight it contributes when it fires.

    Attributes:
        name: Short identifier used in debug logs
        weight: Points added to the heuristic score
        check: Predicate over the message
    """

    name: str
    weight: int
    check: Callable[[Message], bool]


def _all_caps_subject(message: Message) -> bool:
    subject = message.subject or ""
    return len(subject) > ALL_CAPS_MIN_LENGTH and subject == subject.upper()


def _excessive_exclamations(message: Message) -> bool:
    return (message.subject or "").count("!") > MAX_SUBJECT_EXCLAMATIONS


def _many_urls(message: Message) -> bool:
    return _count_matches(URL_PATTERN, message.body_text or "") > MAX_BODY_URLS


def _url_shortener(message: Message) -> bool:
    return _count_matches(URL_SHORTENER_PATTERN, message.body_text or "") > 0


def _excessive_line_breaks(message: Message) -> bool:
    text = message.body_text or ""
    return text.count("\n") > MAX_LINE_BREAKS and len(text) < SHORT_BODY_LENGTH


def _html_only(message: Message) -> bool:
    return not message.body_text and bool(message.body_html)


def _many_recipients(message: Message) -> bool:
    return len(message.to_addresses) + len(message.cc_addresses) > MAX_RECIPIENTS


HEURISTIC_RULES: tuple[HeuristicRule, ...] = (
    HeuristicRule("all_caps_subject", WEIGHT_ALL_CAPS_SUBJECT, _all_caps_subject),
    HeuristicRule("excessive_exclamations", WEIGHT_EXCLAMATIONS, _excessive_exclamations),
    HeuristicRule("many_urls", WEIGHT_MANY_URLS, _many_urls),
    HeuristicRule("url_shortener", WEIGHT_URL_SHORTENER, _url_shortener),
    HeuristicRule("excessive_line_breaks", WEIGHT_LINE_BREAKS, _excessive_line_breaks),
    HeuristicRule("html_only", WEIGHT_HTML_ONLY, _html_only),
    HeuristicRule("many_recipients", WEIGHT_MANY_RECIPIENTS, _many_recipients),
)


def score_heuristics(message: Message) -> int:
    """Sum the weights of every structural heuristic the message trips.

    Args:
        message: Message to inspect

    Returns:
        Heuristic score (uncapped; the final score is capped by the filter)
    """
    fired = [rule for rule in HEURISTIC_RULES if rule.check(message)]
    if fired:
        logger.debug("spam_heuristics_fired", rules=[rule.name for rule in fired])
    return sum(rule.weight for rule in fired)

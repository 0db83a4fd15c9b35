"""Subject normalization and References header parsing for threading."""

from __future__ import annotations

import regex

from mailsieve.core.logging import get_logger

logger = get_logger(__name__)

# Regex timeout for security (used in match operations)
REGEX_TIMEOUT = 1.0

# Reply/forward prefixes, tried in order until none matches
# Note: timeout is passed at match time (sub, findall), not compile time
SUBJECT_PREFIX_PATTERNS = (
    regex.compile(r"^re:\s*", regex.IGNORECASE),
    regex.compile(r"^fwd:\s*", regex.IGNORECASE),
    regex.compile(r"^fw:\s*", regex.IGNORECASE),
    regex.compile(r"^forward:\s*", regex.IGNORECASE),
    regex.compile(r"^\[fwd:\s*\]", regex.IGNORECASE),
    regex.compile(r"^\[fw:\s*\]", regex.IGNORECASE),
)

MESSAGE_ID_PATTERN = regex.compile(r"<[^>]+>")


def normalize_subject(subject: str | None) -> str:
    """Strip repeated leading Re:/Fwd:/Fw:/Forward: markers from a subject.

    Matching is case-insensitive and whitespace is trimmed after every pass,
    so "Re: RE:  Fwd: Report" becomes "Report". The rest of the subject
    (including its case) is left untouched.

    Args:
        subject: Email subject

    Returns:
        Normalized subject for comparison
    """
    if not subject:
        return ""

    normalized = subject.strip()
    try:
        changed = True
        while changed:
            changed = False
            for pattern in SUBJECT_PREFIX_PATTERNS:
                stripped = pattern.sub("", normalized, count=1, timeout=REGEX_TIMEOUT)
                if stripped != normalized:
                    normalized = stripped
                    changed = True
                    break
            normalized = normalized.strip()
    except TimeoutError:
        logger.warning("Regex timeout during subject normalization")
        return subject.strip()

    return normalized


def parse_references(references: str | None) -> list[str]:
    """Extract message identifiers from a References header.

    Args:
        references: Raw header value, e.g. "<a@host> <b@host>"

    Returns:
        Angle-bracketed identifiers in header order; empty for missing,
        empty or malformed input
    """
    if not references:
        return []

    try:
        return MESSAGE_ID_PATTERN.findall(references, timeout=REGEX_TIMEOUT)
    except TimeoutError:
        logger.warning("Regex timeout while parsing References header")
        return []

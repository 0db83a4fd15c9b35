"""Thread preview snippets.

A thread snippet is the first line of the latest message's body, preferring
the plain-text part and falling back to the HTML part with tags stripped.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import regex

from mailsieve.core.logging import get_logger

if TYPE_CHECKING:
    from mailsieve.models import Message

logger = get_logger(__name__)

DEFAULT_SNIPPET_LENGTH = 500
ELLIPSIS = "..."

# Regex timeout in seconds
REGEX_TIMEOUT = 1.0

HTML_TAG_PATTERN = regex.compile(r"<[^>]+>")


def strip_html(text: str) -> str:
    """Remove HTML tags from text.

    Args:
        text: Text possibly containing markup

    Returns:
        Text with every <...> tag removed; unchanged if the regex times out
    """
    try:
        return HTML_TAG_PATTERN.sub("", text, timeout=REGEX_TIMEOUT)
    except TimeoutError:
        logger.warning("Regex timeout while stripping HTML from snippet")
        return text


def generate_thread_snippet(message: Message, max_length: int = DEFAULT_SNIPPET_LENGTH) -> str:
    """Build a one-line preview of a message body.

    Args:
        message: Message to preview
        max_length: Maximum snippet length, ellipsis included

    Returns:
        First body line; when longer than max_length it is cut so that the
        text plus "..." is exactly max_length characters

    Raises:
        ValueError: If max_length is too short to hold the ellipsis
    """
    if max_length < len(ELLIPSIS):
        raise ValueError(f"max_length must be at least {len(ELLIPSIS)}, got {max_length}")

    text = message.body_text or message.body_html or ""
    plain = strip_html(text).strip()
    first_line = plain.split("\n")[0]

    if len(first_line) <= max_length:
        return first_line

    return first_line[: max_length - len(ELLIPSIS)] + ELLIPSIS

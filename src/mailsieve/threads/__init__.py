"""Conversation threading components.

This package provides:
- Subject normalization and References header parsing
- Thread preview snippets
- EmailThreader for thread resolution, aggregates, grouping and sorting
"""

from mailsieve.threads.snippet import generate_thread_snippet, strip_html
from mailsieve.threads.subject import normalize_subject, parse_references
from mailsieve.threads.threader import (
    EmailThreader,
    ThreadingOptions,
    create_email_threader,
)

__all__ = [
    # Subject
    "normalize_subject",
    "parse_references",
    # Snippet
    "generate_thread_snippet",
    "strip_html",
    # Threader
    "EmailThreader",
    "ThreadingOptions",
    "create_email_threader",
]

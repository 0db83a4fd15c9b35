"""Word tokenizer for the Bayesian spam model."""

from __future__ import annotations

import regex

# Minimum token length kept (tokens of this length or shorter are dropped)
MIN_TOKEN_LENGTH = 2

WORD_PATTERN = regex.compile(r"\b\w+\b")

# Common English function words that carry no spam/ham signal
STOP_WORDS = frozenset(
    {
        "the",
        "is",
        "at",
        "which",
        "on",
        "and",
        "or",
        "but",
        "in",
        "with",
        "to",
        "for",
        "of",
        "as",
        "by",
        "an",
        "be",
        "this",
        "that",
        "from",
        "they",
        "we",
        "say",
        "her",
        "she",
        "will",
        "my",
        "one",
        "all",
        "would",
        "there",
        "their",
    }
)


def is_stop_word(word: str) -> bool:
    """Check whether a lowercased word is in the stop-word set."""
    return word in STOP_WORDS


def tokenize(subject: str | None, body_text: str | None) -> set[str]:
    """Extract the distinct classifier tokens from a subject and plain-text body.

    Text is lowercased and split into word-character runs. Tokens of two
    characters or fewer and stop words are discarded.

    Args:
        subject: Message subject
        body_text: Plain-text body (HTML bodies are not tokenized)

    Returns:
        Set of tokens; repeated words count once
    """
    text = f"{subject or ''} {body_text or ''}".lower()
    return {
        word
        for word in WORD_PATTERN.findall(text)
        if len(word) > MIN_TOKEN_LENGTH and not is_stop_word(word)
    }

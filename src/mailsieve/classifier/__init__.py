"""Spam classification components.

This package provides the spam scoring pipeline:
- Tokenizer and stop-word filter for the Bayesian model
- Phrase-pattern and structural heuristic signals
- Sender reputation signal
- Trainable token statistics with a simplified Bayesian combiner
- SpamFilter facade and JSON model persistence
"""

from mailsieve.classifier.bayes import ClassifierModel, TokenStats, combine_probabilities
from mailsieve.classifier.model_store import ModelSnapshot, load_model, save_model
from mailsieve.classifier.patterns import score_heuristics, score_patterns
from mailsieve.classifier.reputation import score_sender_reputation
from mailsieve.classifier.spam_filter import (
    FilterStats,
    SpamFilter,
    SpamFilterOptions,
    SynchronizedSpamFilter,
    create_spam_filter,
)
from mailsieve.classifier.tokenizer import STOP_WORDS, tokenize

__all__ = [
    # Bayesian model
    "ClassifierModel",
    "TokenStats",
    "combine_probabilities",
    # Persistence
    "ModelSnapshot",
    "load_model",
    "save_model",
    # Signals
    "score_heuristics",
    "score_patterns",
    "score_sender_reputation",
    # Filter
    "FilterStats",
    "SpamFilter",
    "SpamFilterOptions",
    "SynchronizedSpamFilter",
    "create_spam_filter",
    # Tokenizer
    "STOP_WORDS",
    "tokenize",
]

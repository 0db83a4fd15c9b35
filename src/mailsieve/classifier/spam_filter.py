"""Spam filter combining Bayesian, pattern, reputation and heuristic signals.

Each incoming message is scored 0-100:

1. Bayesian signal (weight 0.6), active once the model has seen at least one
   spam and one ham message
2. Phrase-pattern signal (full weight)
3. Sender reputation signal (full weight)
4. Structural heuristic signal (full weight, always on)

The weighted sum is capped to [0, 100] and compared against the threshold.
Training and untraining are driven by user corrections (mark as spam / mark
as not spam) and mutate the injected ClassifierModel.

Usage:
    from mailsieve.classifier.spam_filter import SpamFilter, SpamFilterOptions

    spam_filter = SpamFilter(SpamFilterOptions(threshold=60))
    result = spam_filter.calculate_spam_score(message)
    if result.is_spam:
        print(result.reasons)
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from mailsieve.classifier.bayes import ClassifierModel
from mailsieve.classifier.patterns import score_heuristics, score_patterns
from mailsieve.classifier.reputation import score_sender_reputation
from mailsieve.classifier.tokenizer import tokenize
from mailsieve.core.logging import get_logger
from mailsieve.models import SpamScore

if TYPE_CHECKING:
    from mailsieve.config_schema import ClassifierConfig
    from mailsieve.models import Message

logger = get_logger(__name__)

DEFAULT_THRESHOLD = 50.0
BAYESIAN_WEIGHT = 0.6
MAX_SCORE = 100.0

# A signal above its cutoff adds a human-readable reason to the result
BAYESIAN_REASON_CUTOFF = 70
PATTERN_REASON_CUTOFF = 20
REPUTATION_REASON_CUTOFF = 30
HEURISTIC_REASON_CUTOFF = 20


@dataclass(frozen=True, slots=True)
class SpamFilterOptions:
    """Construction-time spam filter settings.

    Attributes:
        threshold: Minimum score for a spam verdict
        enable_bayesian: Use the trained token model
        enable_patterns: Use the spam phrase table
        enable_reputation: Use the sender reputation checks
    """

    threshold: float = DEFAULT_THRESHOLD
    enable_bayesian: bool = True
    enable_patterns: bool = True
    enable_reputation: bool = True


@dataclass(frozen=True, slots=True)
class FilterStats:
    """Snapshot of the filter's model size and settings."""

    total_tokens: int
    spam_emails_trained: int
    ham_emails_trained: int
    threshold: float


class SpamFilter:
    """Scores messages for spam and learns from user corrections.

    The filter is a pure function of the message and the current model when
    scoring. The model is owned by the caller and injected at construction;
    when omitted, an empty model is created.

    Attributes:
        options: Construction-time settings
        model: Trained token statistics
    """

    def __init__(
        self,
        options: SpamFilterOptions | None = None,
        model: ClassifierModel | None = None,
    ):
        self.options = options or SpamFilterOptions()
        self.model = model if model is not None else ClassifierModel()

    @classmethod
    def from_config(
        cls,
        config: ClassifierConfig,
        model: ClassifierModel | None = None,
    ) -> SpamFilter:
        """Create a filter from the classifier section of config.yaml."""
        options = SpamFilterOptions(
            threshold=config.threshold,
            enable_bayesian=config.enable_bayesian,
            enable_patterns=config.enable_patterns,
            enable_reputation=config.enable_reputation,
        )
        return cls(options=options, model=model)

    @property
    def threshold(self) -> float:
        return self.options.threshold

    def tokenize(self, message: Message) -> set[str]:
        """Extract the classifier tokens of a message (subject + plain-text body)."""
        return tokenize(message.subject, message.body_text)

    def calculate_spam_score(self, message: Message) -> SpamScore:
        """Score a message without changing any state.

        Args:
            message: Parsed message

        Returns:
            SpamScore with the capped score, verdict and reasons
        """
        reasons: list[str] = []
        score = 0.0

        if self.options.enable_bayesian and self.model.is_trained:
            bayesian_score = self.model.bayesian_score(self.tokenize(message))
            score += bayesian_score * BAYESIAN_WEIGHT
            if bayesian_score > BAYESIAN_REASON_CUTOFF:
                reasons.append(f"Bayesian classifier: {bayesian_score:.1f}%")

        if self.options.enable_patterns:
            pattern_score = score_patterns(message.subject, message.body_text)
            score += pattern_score
            if pattern_score > PATTERN_REASON_CUTOFF:
                reasons.append("Suspicious patterns detected")

        if self.options.enable_reputation:
            reputation_score = score_sender_reputation(message.from_address, message.from_name)
            score += reputation_score
            if reputation_score > REPUTATION_REASON_CUTOFF:
                reasons.append("Low sender reputation")

        heuristic_score = score_heuristics(message)
        score += heuristic_score
        if heuristic_score > HEURISTIC_REASON_CUTOFF:
            reasons.append("Suspicious email characteristics")

        score = max(0.0, min(MAX_SCORE, score))
        is_spam = score >= self.options.threshold

        logger.debug(
            "spam_score_calculated",
            email_id=message.id,
            score=round(score, 2),
            is_spam=is_spam,
        )

        return SpamScore(score=score, is_spam=is_spam, reasons=reasons)

    def train_spam(self, message: Message) -> None:
        """Train the model with a message the user marked as spam."""
        tokens = self.tokenize(message)
        self.model.train_spam(tokens)
        logger.debug("trained_spam", email_id=message.id, tokens=len(tokens))

    def train_ham(self, message: Message) -> None:
        """Train the model with a message the user marked as legitimate."""
        tokens = self.tokenize(message)
        self.model.train_ham(tokens)
        logger.debug("trained_ham", email_id=message.id, tokens=len(tokens))

    def untrain_spam(self, message: Message) -> None:
        """Reverse a previous train_spam() for the same message."""
        tokens = self.tokenize(message)
        self.model.untrain_spam(tokens)
        logger.debug("untrained_spam", email_id=message.id, tokens=len(tokens))

    def untrain_ham(self, message: Message) -> None:
        """Reverse a previous train_ham() for the same message."""
        tokens = self.tokenize(message)
        self.model.untrain_ham(tokens)
        logger.debug("untrained_ham", email_id=message.id, tokens=len(tokens))

    def export(self) -> dict[str, Any]:
        """Export the trained model as a plain structure."""
        return self.model.export()

    def import_model(self, data: dict[str, Any]) -> None:
        """Replace the trained model with an exported structure (not a merge)."""
        self.model.import_model(data)

    def get_stats(self) -> FilterStats:
        return FilterStats(
            total_tokens=len(self.model.tokens),
            spam_emails_trained=self.model.spam_count,
            ham_emails_trained=self.model.ham_count,
            threshold=self.options.threshold,
        )


class SynchronizedSpamFilter:
    """SpamFilter wrapper that serializes every call behind one lock.

    Use this when several threads share a single model. Workers that each own
    their own SpamFilter do not need it.
    """

    def __init__(self, spam_filter: SpamFilter):
        self._filter = spam_filter
        self._lock = threading.Lock()

    @property
    def threshold(self) -> float:
        return self._filter.threshold

    def calculate_spam_score(self, message: Message) -> SpamScore:
        with self._lock:
            return self._filter.calculate_spam_score(message)

    def train_spam(self, message: Message) -> None:
        with self._lock:
            self._filter.train_spam(message)

    def train_ham(self, message: Message) -> None:
        with self._lock:
            self._filter.train_ham(message)

    def untrain_spam(self, message: Message) -> None:
        with self._lock:
            self._filter.untrain_spam(message)

    def untrain_ham(self, message: Message) -> None:
        with self._lock:
            self._filter.untrain_ham(message)

    def export(self) -> dict[str, Any]:
        with self._lock:
            return self._filter.export()

    def import_model(self, data: dict[str, Any]) -> None:
        with self._lock:
            self._filter.import_model(data)

    def get_stats(self) -> FilterStats:
        with self._lock:
            return self._filter.get_stats()


def create_spam_filter(options: SpamFilterOptions | None = None) -> SpamFilter:
    """Create a spam filter with an empty model."""
    return SpamFilter(options)

"""Trainable token statistics and the Bayesian spam signal.

The model records, for each token, how many spam-trained and ham-trained
messages contained it, plus the number of messages trained per class. It
holds no reference to any message and persists only through export() and
import_model().

The probability combiner is a simplified product rule, not textbook
Fisher's method (no chi-squared transform):

    combined = prod(p) / (prod(p) + prod(1 - p))

with every per-token probability clamped to [0.01, 0.99] first.

Usage:
    from mailsieve.classifier.bayes import ClassifierModel

    model = ClassifierModel()
    model.train_spam({"viagra", "cheap"})
    model.train_ham({"meeting", "notes"})
    score = model.bayesian_score({"viagra"})  # 0-100
"""

from __future__ import annotations

import math
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from mailsieve.core.logging import get_logger

logger = get_logger(__name__)

PROBABILITY_FLOOR = 0.01
PROBABILITY_CEILING = 0.99

# Signal value when none of the message tokens have been seen in training
NEUTRAL_SCORE = 50.0


@dataclass(slots=True)
class TokenStats:
    """Per-token training counts.

    Attributes:
        spam_count: Spam-trained messages containing the token
        ham_count: Ham-trained messages containing the token
    """

    spam_count: int = 0
    ham_count: int = 0


def combine_probabilities(probabilities: Iterable[float]) -> float:
    """Combine per-token spam probabilities into one probability.

    Evaluated in log space so long messages cannot underflow both products
    to zero; the result equals prod(p) / (prod(p) + prod(1 - p)).

    Args:
        probabilities: Per-token spam probabilities in [0, 1]

    Returns:
        Combined probability in [0, 1], or 0.5 when no probabilities are given
    """
    safe = [max(PROBABILITY_FLOOR, min(PROBABILITY_CEILING, p)) for p in probabilities]
    if not safe:
        return 0.5

    # log(prod(1 - p) / prod(p))
    log_ratio = sum(math.log1p(-p) - math.log(p) for p in safe)
    if log_ratio >= 0:
        inverse = math.exp(-log_ratio)
        return inverse / (1 + inverse)
    return 1 / (1 + math.exp(log_ratio))


class ClassifierModel:
    """Mutable token statistics for the Bayesian spam signal.

    Not internally synchronized: callers sharing one model across threads
    must serialize access (see SynchronizedSpamFilter).

    Attributes:
        tokens: Mapping of token to its TokenStats
        spam_count: Total spam-trained messages (never negative)
        ham_count: Total ham-trained messages (never negative)
    """

    def __init__(
        self,
        tokens: dict[str, TokenStats] | None = None,
        spam_count: int = 0,
        ham_count: int = 0,
    ):
        self.tokens: dict[str, TokenStats] = tokens if tokens is not None else {}
        self.spam_count = spam_count
        self.ham_count = ham_count

    @property
    def is_trained(self) -> bool:
        """True once at least one spam and one ham message have been trained."""
        return self.spam_count > 0 and self.ham_count > 0

    def train_spam(self, tokens: Iterable[str]) -> None:
        """Record one spam message containing the given distinct tokens."""
        self.spam_count += 1
        for token in set(tokens):
            self.tokens.setdefault(token, TokenStats()).spam_count += 1

    def train_ham(self, tokens: Iterable[str]) -> None:
        """Record one ham message containing the given distinct tokens."""
        self.ham_count += 1
        for token in set(tokens):
            self.tokens.setdefault(token, TokenStats()).ham_count += 1

    def untrain_spam(self, tokens: Iterable[str]) -> None:
        """Reverse one spam training, flooring every count at zero.

        Untraining a message that was never trained is absorbed silently by
        the floor rather than raising.
        """
        self.spam_count = max(0, self.spam_count - 1)
        for token in set(tokens):
            stats = self.tokens.get(token)
            if stats is None:
                continue
            stats.spam_count = max(0, stats.spam_count - 1)
            self._drop_if_empty(token, stats)

    def untrain_ham(self, tokens: Iterable[str]) -> None:
        """Reverse one ham training, flooring every count at zero."""
        self.ham_count = max(0, self.ham_count - 1)
        for token in set(tokens):
            stats = self.tokens.get(token)
            if stats is None:
                continue
            stats.ham_count = max(0, stats.ham_count - 1)
            self._drop_if_empty(token, stats)

    def _drop_if_empty(self, token: str, stats: TokenStats) -> None:
        # Stored tokens always have at least one count
        if stats.spam_count == 0 and stats.ham_count == 0:
            del self.tokens[token]

    def token_probability(self, token: str) -> float | None:
        """Spam probability for one token, or None if it carries no evidence.

        Args:
            token: Normalized token

        Returns:
            p / (p + q) where p and q are the token's per-class frequencies,
            or None when the token is unknown, the model is untrained, or
            p + q is zero
        """
        stats = self.tokens.get(token)
        if stats is None or not self.is_trained:
            return None

        spam_prob = stats.spam_count / self.spam_count
        ham_prob = stats.ham_count / self.ham_count
        if spam_prob + ham_prob == 0:
            return None
        return spam_prob / (spam_prob + ham_prob)

    def bayesian_score(self, tokens: Iterable[str]) -> float:
        """Score a message's tokens on a 0-100 scale.

        Args:
            tokens: Distinct tokens of the message

        Returns:
            Combined spam probability x 100, or 50 when no token is known
        """
        probabilities = [
            p for p in (self.token_probability(token) for token in tokens) if p is not None
        ]
        if not probabilities:
            return NEUTRAL_SCORE
        return combine_probabilities(probabilities) * 100

    def export(self) -> dict[str, Any]:
        """Serialize the model to a plain structure.

        Returns:
            {"tokens": [[token, {"spam_count", "ham_count"}], ...],
             "spam_count": int, "ham_count": int}
        """
        return {
            "tokens": [
                [token, {"spam_count": stats.spam_count, "ham_count": stats.ham_count}]
                for token, stats in self.tokens.items()
            ],
            "spam_count": self.spam_count,
            "ham_count": self.ham_count,
        }

    def import_model(self, data: dict[str, Any]) -> None:
        """Replace the whole model with a previously exported structure.

        The structure is not validated here; see model_store.load_model()
        for validated loading from disk.

        Args:
            data: Structure produced by export()
        """
        self.tokens = {
            token: TokenStats(
                spam_count=counts["spam_count"],
                ham_count=counts["ham_count"],
            )
            for token, counts in data["tokens"]
        }
        self.spam_count = data["spam_count"]
        self.ham_count = data["ham_count"]
        logger.debug(
            "classifier_model_imported",
            tokens=len(self.tokens),
            spam_count=self.spam_count,
            ham_count=self.ham_count,
        )

    @classmethod
    def from_export(cls, data: dict[str, Any]) -> ClassifierModel:
        """Build a new model from a previously exported structure."""
        model = cls()
        model.import_model(data)
        return model

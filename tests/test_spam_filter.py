"""Tests for the spam filter facade.

Covers pattern, heuristic and reputation signals through the full filter,
Bayesian training, export/import, thresholds and thread-safe wrapping.
"""

from __future__ import annotations

import threading

import pytest

from mailsieve.classifier.spam_filter import (
    SpamFilter,
    SpamFilterOptions,
    SynchronizedSpamFilter,
    create_spam_filter,
)
from mailsieve.config_schema import ClassifierConfig


@pytest.fixture
def spam_filter() -> SpamFilter:
    """Return a filter with default options and an empty model."""
    return SpamFilter()


def train_viagra_vs_meetings(spam_filter: SpamFilter, make_message) -> None:
    """Train ten pharmacy spams and ten meeting hams."""
    for i in range(10):
        spam_filter.train_spam(
            make_message(
                id=f"spam-{i}",
                subject=f"Spam {i}: buy viagra now",
                body_text="cheap viagra pills online",
            )
        )
    for i in range(10):
        spam_filter.train_ham(
            make_message(
                id=f"ham-{i}",
                subject=f"Meeting {i}: weekly sync",
                body_text="let us discuss the project status",
            )
        )


class TestScenarios:
    """End-to-end scoring scenarios."""

    def test_untrained_pharmacy_spam_from_suspicious_sender(
        self, spam_filter: SpamFilter, make_message
    ) -> None:
        """Pattern + reputation alone push an obvious spam over the threshold."""
        message = make_message(
            subject="Buy cheap viagra now!!!",
            body_text=None,
            from_address="noreply@random123456.com",
            from_name=None,
        )

        result = spam_filter.calculate_spam_score(message)

        # viagra (15) + noreply (10) + digit run (20) + no name (15)
        assert result.score == pytest.approx(60)
        assert result.score > 50
        assert result.is_spam is True
        assert "Low sender reputation" in result.reasons

    def test_trained_model_separates_spam_and_ham(
        self, spam_filter: SpamFilter, make_message
    ) -> None:
        """Bayesian training pushes similar spam up and meeting notes down."""
        train_viagra_vs_meetings(spam_filter, make_message)

        spam_result = spam_filter.calculate_spam_score(
            make_message(subject="Buy viagra cheap", body_text="viagra pills available")
        )
        ham_result = spam_filter.calculate_spam_score(
            make_message(subject="Weekly meeting notes", body_text="discuss project deliverables")
        )

        assert spam_result.score > 50
        assert spam_result.is_spam is True
        assert any(r.startswith("Bayesian classifier:") for r in spam_result.reasons)
        assert ham_result.score < 50
        assert ham_result.is_spam is False

    def test_normal_email_scores_low(self, spam_filter: SpamFilter, make_message) -> None:
        """An ordinary message from a named sender scores zero."""
        message = make_message(
            subject="Meeting tomorrow at 2pm",
            body_text="Hi team, let's discuss the project tomorrow",
        )

        result = spam_filter.calculate_spam_score(message)

        assert result.score == 0
        assert result.is_spam is False
        assert result.reasons == []


class TestSignals:
    """Tests for individual signals through the filter."""

    def test_pattern_reason_needs_more_than_one_match(
        self, spam_filter: SpamFilter, make_message
    ) -> None:
        """One phrase match (15) stays below the pattern disclosure cutoff."""
        result = spam_filter.calculate_spam_score(
            make_message(subject="viagra", body_text="")
        )
        assert result.score == pytest.approx(15)
        assert "Suspicious patterns detected" not in result.reasons

    def test_pattern_reason_with_two_matches(self, spam_filter: SpamFilter, make_message) -> None:
        """Two phrase matches (30) disclose the pattern reason."""
        result = spam_filter.calculate_spam_score(
            make_message(
                subject="Congratulations! You've won the lottery!",
                body_text="You are the lucky winner",
            )
        )
        assert result.score == pytest.approx(30)
        assert "Suspicious patterns detected" in result.reasons

    def test_paypal_phishing_is_spam(self, spam_filter: SpamFilter, make_message) -> None:
        """A PayPal display name on an unrelated noreply address is spam."""
        result = spam_filter.calculate_spam_score(
            make_message(from_name="PayPal Security", from_address="noreply@suspicious.com")
        )
        assert result.score > 50
        assert result.is_spam is True

    def test_heuristic_reason(self, spam_filter: SpamFilter, make_message) -> None:
        """All-caps subject with many exclamations discloses the heuristic reason."""
        result = spam_filter.calculate_spam_score(
            make_message(subject="FREE STUFF TODAY!!!!", body_text="")
        )
        assert result.score == pytest.approx(25)
        assert "Suspicious email characteristics" in result.reasons

    def test_html_only_message_scores_above_zero(
        self, spam_filter: SpamFilter, make_message
    ) -> None:
        """An HTML body with no plain-text part adds a small penalty."""
        result = spam_filter.calculate_spam_score(
            make_message(body_text=None, body_html="<html><body>Content</body></html>")
        )
        assert result.score == pytest.approx(5)

    def test_disabled_signals_do_not_contribute(self, make_message) -> None:
        """Pattern and reputation signals can be switched off."""
        quiet = SpamFilter(SpamFilterOptions(enable_patterns=False, enable_reputation=False))
        message = make_message(
            subject="viagra lottery",
            from_address="noreply@random123456.com",
            from_name=None,
        )
        assert quiet.calculate_spam_score(message).score == 0

    def test_bayesian_disabled_ignores_training(self, make_message) -> None:
        """With the Bayesian signal off, training does not change the score."""
        spam_filter = SpamFilter(SpamFilterOptions(enable_bayesian=False))
        train_viagra_vs_meetings(spam_filter, make_message)

        result = spam_filter.calculate_spam_score(
            make_message(subject="cheap pills", body_text="online")
        )
        assert result.score == 0

    def test_bayesian_inactive_until_both_classes_trained(
        self, spam_filter: SpamFilter, make_message
    ) -> None:
        """Training only spam leaves the Bayesian signal off."""
        spam_filter.train_spam(make_message(subject="cheap pills online"))

        result = spam_filter.calculate_spam_score(make_message(subject="cheap pills online"))
        assert result.score == 0

    def test_unknown_tokens_give_neutral_bayesian_signal(
        self, spam_filter: SpamFilter, make_message
    ) -> None:
        """A message with no known tokens gets 50 x 0.6 from the Bayesian signal."""
        spam_filter.train_spam(make_message(subject="alpha"))
        spam_filter.train_ham(make_message(subject="bravo"))

        result = spam_filter.calculate_spam_score(make_message(subject="charlie", body_text=""))
        assert result.score == pytest.approx(30)


class TestScoreBounds:
    """Tests for score capping."""

    def test_score_never_exceeds_100(self, spam_filter: SpamFilter, make_message) -> None:
        """Every signal firing at once is capped at 100."""
        body = (
            "viagra weight loss click here urgent winner free money lottery miracle "
            + " ".join(f"http://bit.ly/{i}" for i in range(10))
        )
        message = make_message(
            subject="URGENT WINNER NOTICE!!!!!",
            body_text=body,
            from_address="noreply@random123456.com",
            from_name="PayPal Bank",
            to_addresses=[f"user{i}@example.com" for i in range(30)],
        )

        result = spam_filter.calculate_spam_score(message)

        assert 0 <= result.score <= 100
        assert result.score == 100
        assert result.is_spam is True

    def test_empty_message_has_valid_score(self, spam_filter: SpamFilter, make_message) -> None:
        """A message with no text at all still scores within bounds."""
        result = spam_filter.calculate_spam_score(
            make_message(subject="", body_text=None, from_name=None)
        )
        assert 0 <= result.score <= 100
        assert result.score == pytest.approx(15)


class TestThreshold:
    """Tests for the spam verdict threshold."""

    def test_default_threshold_is_50(self) -> None:
        """Default threshold is 50."""
        assert create_spam_filter().get_stats().threshold == 50

    def test_verdict_matches_threshold_comparison(self, make_message) -> None:
        """is_spam is always score >= threshold."""
        message = make_message(from_name="PayPal Security", from_address="noreply@suspicious.com")
        for threshold in (0, 30, 59.9, 60, 60.1, 100):
            result = SpamFilter(SpamFilterOptions(threshold=threshold)).calculate_spam_score(
                message
            )
            assert result.is_spam == (result.score >= threshold)

    def test_raising_threshold_never_creates_spam(self, make_message) -> None:
        """Once a verdict is non-spam, higher thresholds keep it non-spam."""
        message = make_message(from_name="PayPal Security", from_address="noreply@suspicious.com")
        verdicts = [
            SpamFilter(SpamFilterOptions(threshold=t)).calculate_spam_score(message).is_spam
            for t in (10, 50, 60, 61, 80, 100)
        ]

        assert verdicts == [True, True, True, False, False, False]

    def test_from_config(self) -> None:
        """Options are taken from the classifier config section."""
        config = ClassifierConfig(threshold=65, enable_patterns=False)
        spam_filter = SpamFilter.from_config(config)

        assert spam_filter.threshold == 65
        assert spam_filter.options.enable_patterns is False
        assert spam_filter.options.enable_bayesian is True


class TestTraining:
    """Tests for training, untraining and model statistics."""

    def test_train_spam_updates_stats(self, spam_filter: SpamFilter, make_message) -> None:
        """Training spam increments the counter and records tokens."""
        spam_filter.train_spam(
            make_message(subject="Get rich quick", body_text="Make money fast with our system")
        )
        stats = spam_filter.get_stats()

        assert stats.spam_emails_trained == 1
        assert stats.ham_emails_trained == 0
        assert stats.total_tokens > 0

    def test_train_ham_updates_stats(self, spam_filter: SpamFilter, make_message) -> None:
        """Training ham increments the ham counter."""
        spam_filter.train_ham(
            make_message(subject="Project update", body_text="Here is the weekly project status")
        )
        assert spam_filter.get_stats().ham_emails_trained == 1

    def test_training_twice_doubles_counts(self, spam_filter: SpamFilter, make_message) -> None:
        """Training is not deduplicated across calls."""
        message = make_message(subject="duplicate offer", body_text="")
        spam_filter.train_spam(message)
        spam_filter.train_spam(message)

        assert spam_filter.model.spam_count == 2
        assert spam_filter.model.tokens["duplicate"].spam_count == 2

    def test_train_then_untrain_restores_model(
        self, spam_filter: SpamFilter, make_message
    ) -> None:
        """train_spam followed by untrain_spam restores every count."""
        spam_filter.train_spam(make_message(subject="cheap offer today", body_text="buy now"))
        spam_filter.train_ham(make_message(subject="offer letter", body_text="signed copy"))
        before = spam_filter.export()

        message = make_message(subject="cheap offer again", body_text="limited stock")
        spam_filter.train_spam(message)
        spam_filter.untrain_spam(message)

        assert spam_filter.export() == before

    def test_untrain_without_training_floors_at_zero(
        self, spam_filter: SpamFilter, make_message
    ) -> None:
        """Untraining an untrained message is absorbed by the zero floor."""
        spam_filter.untrain_ham(make_message(subject="never trained"))

        stats = spam_filter.get_stats()
        assert stats.ham_emails_trained == 0
        assert stats.total_tokens == 0

    def test_stop_words_and_short_words_not_trained(
        self, spam_filter: SpamFilter, make_message
    ) -> None:
        """Stop words and tokens of two characters or fewer are skipped."""
        spam_filter.train_spam(
            make_message(subject="the meeting is on tuesday", body_text="a b cd we will discuss")
        )
        tokens = {token for token, _ in spam_filter.export()["tokens"]}

        assert tokens == {"meeting", "tuesday", "discuss"}


class TestExportImport:
    """Tests for model export and import."""

    def test_export_structure(self, spam_filter: SpamFilter, make_message) -> None:
        """Export lists tokens with per-class counts plus both totals."""
        spam_filter.train_spam(make_message(subject="spam", body_text=""))
        spam_filter.train_ham(make_message(subject="ham", body_text=""))

        data = spam_filter.export()

        assert data["spam_count"] == 1
        assert data["ham_count"] == 1
        assert ["spam", {"spam_count": 1, "ham_count": 0}] in data["tokens"]
        assert ["ham", {"spam_count": 0, "ham_count": 1}] in data["tokens"]

    def test_import_replaces_model(self, spam_filter: SpamFilter, make_message) -> None:
        """Import discards previous training instead of merging."""
        spam_filter.train_spam(make_message(subject="previous training data"))

        spam_filter.import_model(
            {
                "tokens": [
                    ["spam", {"spam_count": 5, "ham_count": 0}],
                    ["legitimate", {"spam_count": 0, "ham_count": 5}],
                ],
                "spam_count": 5,
                "ham_count": 5,
            }
        )
        stats = spam_filter.get_stats()

        assert stats.spam_emails_trained == 5
        assert stats.ham_emails_trained == 5
        assert stats.total_tokens == 2
        assert "previous" not in spam_filter.model.tokens

    def test_training_survives_export_import(self, make_message) -> None:
        """A filter built from an export scores like the original."""
        original = SpamFilter()
        original.train_spam(make_message(subject="viagra pills", body_text=""))
        original.train_ham(make_message(subject="project meeting", body_text=""))

        restored = SpamFilter()
        restored.import_model(original.export())
        message = make_message(subject="viagra", body_text="")

        assert restored.calculate_spam_score(message).score > 30
        assert (
            restored.calculate_spam_score(message).score
            == original.calculate_spam_score(message).score
        )


class TestSynchronizedSpamFilter:
    """Tests for the lock-wrapped filter."""

    def test_concurrent_training_loses_no_updates(self, make_message) -> None:
        """Parallel train calls through the wrapper all land in the model."""
        inner = SpamFilter()
        shared = SynchronizedSpamFilter(inner)
        message = make_message(subject="shared token", body_text="")

        def worker() -> None:
            for _ in range(200):
                shared.train_spam(message)

        threads = [threading.Thread(target=worker) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        stats = shared.get_stats()
        assert stats.spam_emails_trained == 800
        assert inner.model.tokens["shared"].spam_count == 800
        assert inner.model.tokens["token"].spam_count == 800

    def test_delegates_scoring(self, make_message) -> None:
        """Scores through the wrapper match the wrapped filter."""
        inner = SpamFilter(SpamFilterOptions(threshold=40))
        wrapped = SynchronizedSpamFilter(inner)
        message = make_message(from_name=None)

        assert wrapped.threshold == 40
        assert wrapped.calculate_spam_score(message) == inner.calculate_spam_score(message)

"""Tests for logging setup and batch tracing."""

import pytest

from mailsieve.core.logging import (
    add_batch_id,
    batch_context,
    configure_logging,
    get_batch_id,
)


def test_no_batch_by_default() -> None:
    """Outside a batch there is no batch ID."""
    assert get_batch_id() is None
    assert add_batch_id(None, "info", {"event": "x"}) == {"event": "x"}


def test_batch_context_generates_id() -> None:
    """A random ID is set for the block and cleared afterwards."""
    with batch_context() as batch_id:
        assert len(batch_id) == 32
        assert get_batch_id() == batch_id
        assert add_batch_id(None, "info", {"event": "x"}) == {"event": "x", "batch_id": batch_id}
    assert get_batch_id() is None


def test_nested_batches_restore_outer_id() -> None:
    """Leaving an inner block restores the outer ID."""
    with batch_context("outer"):
        with batch_context("inner"):
            assert get_batch_id() == "inner"
        assert get_batch_id() == "outer"


def test_batch_id_reset_on_error() -> None:
    """The ID is cleared even when the block raises."""
    with pytest.raises(RuntimeError):
        with batch_context("failing"):
            raise RuntimeError("boom")
    assert get_batch_id() is None


def test_explicit_batch_id_wins_over_context() -> None:
    """An explicitly bound batch_id is not overwritten."""
    with batch_context("ctx"):
        event = add_batch_id(None, "info", {"event": "x", "batch_id": "explicit"})
    assert event["batch_id"] == "explicit"


def test_configure_logging_rejects_unknown_level() -> None:
    """Unknown level names are refused."""
    with pytest.raises(ValueError, match="Unknown log level"):
        configure_logging(log_level="LOUD")


def test_configure_logging_accepts_lowercase() -> None:
    """Level names are case-insensitive."""
    configure_logging(log_level="debug", json_output=True)
    configure_logging(log_level="WARNING", json_output=False)

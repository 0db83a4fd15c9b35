"""Pytest fixtures and configuration for mailsieve tests.

Provides common fixtures for configuration and message construction.
"""

import os
from collections.abc import Callable
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Generator

import pytest

from mailsieve.config import reset_config
from mailsieve.config_schema import AppConfig
from mailsieve.models import EmailAddress, Message

BASE_TIME = datetime(2026, 3, 2, 9, 0, tzinfo=UTC)

MessageFactory = Callable[..., Message]


@pytest.fixture(autouse=True)
def reset_config_singleton() -> Generator[None, None, None]:
    """Reset the config singleton before each test."""
    reset_config()
    yield
    reset_config()


@pytest.fixture
def make_message() -> MessageFactory:
    """Return a factory for ordinary, legitimate-looking messages.

    Keyword arguments override Message fields. Recipient lists may be given
    as plain address strings.
    """

    def factory(**overrides: Any) -> Message:
        for key in ("to_addresses", "cc_addresses", "bcc_addresses"):
            if key in overrides:
                overrides[key] = [EmailAddress.parse(a) for a in overrides[key]]
        fields: dict[str, Any] = {
            "id": "email-1",
            "message_id": "<msg@example.com>",
            "from_address": "sender@example.com",
            "from_name": "Sender Name",
            "to_addresses": [EmailAddress("recipient@example.com")],
            "subject": "Test Subject",
            "body_text": "Test body content",
            "received_at": BASE_TIME,
            "size_bytes": 1024,
        }
        fields.update(overrides)
        return Message(**fields)

    return factory


@pytest.fixture
def temp_config_dir(tmp_path: Path) -> Path:
    """Create a temporary config directory."""
    config_dir = tmp_path / "config"
    config_dir.mkdir()
    return config_dir


@pytest.fixture
def sample_config_dict(tmp_path: Path) -> dict[str, Any]:
    """Return a minimal valid config as a dictionary."""
    return {
        "schema_version": 1,
        "classifier": {
            "threshold": 50,
            "model_path": str(tmp_path / "data" / "spam_model.json"),
        },
        "threading": {
            "max_thread_age_days": 30,
            "normalize_subjects": True,
        },
        "logging": {
            "level": "INFO",
            "json_output": False,
        },
    }


@pytest.fixture
def sample_config(sample_config_dict: dict[str, Any]) -> AppConfig:
    """Return a minimal valid AppConfig instance."""
    return AppConfig(**sample_config_dict)


@pytest.fixture
def config_file(temp_config_dir: Path, sample_config_dict: dict[str, Any]) -> Path:
    """Create a temporary config file with valid content."""
    import yaml

    config_path = temp_config_dir / "config.yaml"
    config_path.write_text(yaml.safe_dump(sample_config_dict))
    return config_path


@pytest.fixture
def set_config_env(config_file: Path) -> Generator[None, None, None]:
    """Set the MAILSIEVE_CONFIG_PATH environment variable."""
    old_value = os.environ.get("MAILSIEVE_CONFIG_PATH")
    os.environ["MAILSIEVE_CONFIG_PATH"] = str(config_file)
    yield
    if old_value is None:
        del os.environ["MAILSIEVE_CONFIG_PATH"]
    else:
        os.environ["MAILSIEVE_CONFIG_PATH"] = old_value

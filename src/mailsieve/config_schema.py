"""Pydantic configuration schema for mailsieve.

This module defines the configuration schema that mirrors config.yaml structure.
All configuration is validated against these models when loaded. Settings are
read when the spam filter and threader are constructed; changing them requires
building new instances.

Usage:
    from mailsieve.config_schema import AppConfig

    # Validate a config dict
    config = AppConfig(**yaml_data)
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Current schema version - increment when adding new required fields
CURRENT_SCHEMA_VERSION = 1


class _StrictModel(BaseModel):
    """Base for config sections; unknown keys are errors so typos surface."""

    model_config = ConfigDict(extra="forbid")


class ClassifierConfig(_StrictModel):
    """Spam classifier configuration."""

    threshold: float = Field(
        default=50.0,
        ge=0,
        le=100,
        description="Minimum score (0-100) for a spam verdict",
    )
    enable_bayesian: bool = Field(
        default=True,
        description="Use the trained Bayesian token model",
    )
    enable_patterns: bool = Field(
        default=True,
        description="Use the spam phrase pattern table",
    )
    enable_reputation: bool = Field(
        default=True,
        description="Use sender reputation checks",
    )
    model_path: str = Field(
        default="data/spam_model.json",
        description="Path to the saved classifier model (JSON)",
    )

    @field_validator("model_path")
    @classmethod
    def validate_model_path(cls, v: str) -> str:
        """Ensure model path doesn't contain path traversal."""
        if not v or not v.strip():
            raise ValueError("Model path cannot be empty")
        if ".." in v:
            raise ValueError("Model path cannot contain '..' (path traversal)")
        return v


class ThreadingConfig(_StrictModel):
    """Conversation threading configuration."""

    max_thread_age_days: int = Field(
        default=30,
        ge=1,
        le=3650,
        description="Subject-matched messages must be within this many days",
    )
    normalize_subjects: bool = Field(
        default=True,
        description="Strip Re:/Fwd: prefixes before comparing subjects",
    )
    snippet_max_length: int = Field(
        default=500,
        ge=4,
        le=10000,
        description="Maximum characters in a thread snippet",
    )


class LoggingConfig(_StrictModel):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Minimum log level",
    )
    json_output: bool = Field(
        default=True,
        description="Emit JSON logs (False for human-readable console output)",
    )


class AppConfig(_StrictModel):
    """Root configuration schema for mailsieve.

    This model validates the entire config.yaml structure. Every section is
    optional; an empty file yields the defaults.
    """

    schema_version: int = Field(
        default=CURRENT_SCHEMA_VERSION,
        ge=1,
        description="Config schema version for migration tracking",
    )
    classifier: ClassifierConfig = Field(default_factory=ClassifierConfig)
    threading: ThreadingConfig = Field(default_factory=ThreadingConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

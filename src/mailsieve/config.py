"""Loading and caching of config.yaml.

The spam filter and threader take their settings at construction time, so
a config change only takes effect when the caller builds new instances.
reload_config_if_changed() tells a long-running ingestion loop when that
is needed.

Usage:
    from mailsieve.config import get_config, reload_config_if_changed

    config = get_config()
    spam_filter = SpamFilter.from_config(config.classifier, model=model)

    # Between batches
    if reload_config_if_changed():
        spam_filter = SpamFilter.from_config(get_config().classifier, model=model)
"""

import os
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from mailsieve.config_schema import CURRENT_SCHEMA_VERSION, AppConfig
from mailsieve.core.errors import ConfigLoadError, ConfigNotFoundError, ConfigValidationError
from mailsieve.core.logging import get_logger

logger = get_logger(__name__)

CONFIG_PATH_ENV = "MAILSIEVE_CONFIG_PATH"
DEFAULT_CONFIG_PATH = Path("config/config.yaml")

# Pydantic error type -> message template. Templates may use {field} and
# any key of the error's ctx (e.g. {ge}, {le}, {expected}).
_ERROR_TEMPLATES = {
    "missing": "Missing required field '{field}'",
    "extra_forbidden": "Unknown field '{field}' (check for typos)",
    "int_type": "Field '{field}' must be a whole number",
    "int_parsing": "Field '{field}' must be a whole number",
    "int_from_float": "Field '{field}' must be a whole number",
    "float_type": "Field '{field}' must be a number",
    "float_parsing": "Field '{field}' must be a number",
    "bool_type": "Field '{field}' must be true or false",
    "bool_parsing": "Field '{field}' must be true or false",
    "string_type": "Field '{field}' must be a string",
    "greater_than_equal": "Field '{field}' must be at least {ge}",
    "less_than_equal": "Field '{field}' must be at most {le}",
    "literal_error": "Field '{field}' must be one of {expected}",
    "model_type": "Section '{field}' must be a mapping",
}


@dataclass(frozen=True)
class _LoadedConfig:
    config: AppConfig
    path: Path
    mtime: float


_lock = threading.Lock()
_loaded: _LoadedConfig | None = None


def config_path_from_env() -> Path:
    """Return $MAILSIEVE_CONFIG_PATH, or config/config.yaml when unset."""
    return Path(os.environ.get(CONFIG_PATH_ENV) or DEFAULT_CONFIG_PATH)


def describe_validation_error(error: ValidationError) -> str:
    """Turn a pydantic ValidationError into one readable line per field.

    Args:
        error: Error raised while building AppConfig

    Returns:
        Lines like "  - Field 'classifier.threshold' must be at most 100"
    """
    lines = []
    for err in error.errors():
        field = ".".join(str(part) for part in err["loc"]) or "<root>"
        text = f"Field '{field}': {err['msg']}"
        template = _ERROR_TEMPLATES.get(err["type"])
        if template:
            try:
                text = template.format(field=field, **err.get("ctx", {}))
            except (KeyError, IndexError):
                pass
        lines.append(f"  - {text}")
    return "\n".join(lines)


def _read_yaml_mapping(path: Path) -> dict[str, Any]:
    """Parse a YAML file that must hold a mapping (or nothing at all).

    Raises:
        ConfigNotFoundError: The file does not exist
        ConfigLoadError: Unreadable file, bad YAML, or a
            document that is not a mapping
    """
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError as e:
        raise ConfigNotFoundError(
            f"Configuration file not found: {path}\n"
            f"Copy config/config.yaml.example to {path}, or set {CONFIG_PATH_ENV}."
        ) from e
    except OSError as e:
        raise ConfigLoadError(f"Cannot read configuration file {path}: {e}") from e

    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ConfigLoadError(f"Failed to parse YAML in {path}:\n{e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigLoadError(
            f"Configuration file {path} must be a YAML mapping, got {type(data).__name__}"
        )
    return data


def load_config(path: Path | None = None) -> AppConfig:
    """Read and validate a config file, bypassing the cache.

    Args:
        path: Config file; defaults to config_path_from_env()

    Returns:
        Validated AppConfig

    Raises:
        ConfigLoadError: If the file cannot be read or parsed
        ConfigValidationError: If the content fails schema validation or
            was written for a newer mailsieve
    """
    path = path or config_path_from_env()
    data = _read_yaml_mapping(path)

    try:
        config = AppConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigValidationError(
            f"Configuration validation failed for {path}:\n{describe_validation_error(e)}"
        ) from e

    if config.schema_version > CURRENT_SCHEMA_VERSION:
        raise ConfigValidationError(
            f"{path} uses config schema version {config.schema_version}, which is newer "
            f"than supported version {CURRENT_SCHEMA_VERSION}. Upgrade mailsieve."
        )

    logger.info(
        "config_loaded",
        path=str(path),
        threshold=config.classifier.threshold,
        max_thread_age_days=config.threading.max_thread_age_days,
    )
    return config


def get_config() -> AppConfig:
    """Return the cached config, loading it on first use.

    Raises:
        ConfigLoadError: If the first load cannot read the file
        ConfigValidationError: If the first load fails validation
    """
    global _loaded

    with _lock:
        if _loaded is None:
            path = config_path_from_env()
            config = load_config(path)
            _loaded = _LoadedConfig(config=config, path=path, mtime=path.stat().st_mtime)
        return _loaded.config


def reload_config_if_changed() -> bool:
    """Reload the cached config if its file was modified since the last load.

    An edit that fails to load is logged and the previous config stays in
    effect; the edit is not retried until the file changes again.

    Returns:
        True if a new config is now cached, False otherwise (including when
        nothing has been loaded yet)
    """
    global _loaded

    with _lock:
        if _loaded is None:
            return False

        path = _loaded.path
        try:
            mtime = path.stat().st_mtime
        except OSError as e:
            logger.warning("config_stat_failed", path=str(path), error=str(e))
            return False

        if mtime <= _loaded.mtime:
            return False

        try:
            config = load_config(path)
        except (ConfigLoadError, ConfigValidationError) as e:
            logger.warning("config_reload_rejected", path=str(path), error=str(e))
            _loaded = _LoadedConfig(config=_loaded.config, path=path, mtime=mtime)
            return False

        _loaded = _LoadedConfig(config=config, path=path, mtime=mtime)
        return True


def validate_config_file(path: Path | None = None) -> tuple[bool, str]:
    """Check a config file without touching the cache.

    Returns:
        (True, summary of the effective settings) or (False, error message)
    """
    try:
        config = load_config(path)
    except ConfigLoadError as e:
        return False, f"Load error: {e}"
    except ConfigValidationError as e:
        return False, f"Validation error: {e}"

    summary = [
        f"Configuration valid (schema version {config.schema_version})",
        f"  - spam threshold {config.classifier.threshold:g}",
        f"  - thread age window {config.threading.max_thread_age_days} days",
        f"  - model file {config.classifier.model_path}",
    ]
    return True, "\n".join(summary)


def reset_config() -> None:
    """Drop the cached config. Used by tests."""
    global _loaded
    with _lock:
        _loaded = None

"""Custom exception types for mailsieve.

Error messages should say what failed, where, and how to fix it when the
fix is something the caller can act on.
"""


class MailSieveError(Exception):
    """Base exception for all mailsieve errors."""

    pass


class ConfigValidationError(MailSieveError):
    """Raised when config.yaml fails Pydantic validation.

    Includes specific field errors with actionable messages.
    """

    pass


class ConfigLoadError(MailSieveError):
    """Raised when config.yaml cannot be loaded (file not found, YAML parse error)."""

    pass


class ConfigNotFoundError(ConfigLoadError):
    """Raised when the config file does not exist.

    The CLI treats this as "use the defaults"; every other load error is fatal.
    """

    pass


class ThreadBuildError(MailSieveError, ValueError):
    """Raised when a thread aggregate cannot be derived from the given messages.

    A thread needs at least one member message. Callers maintaining thread
    rows should skip the aggregate update for the batch rather than dropping
    the message itself.
    """

    pass


class ModelPersistenceError(MailSieveError):
    """Raised when a saved classifier model cannot be read or written.

    Attributes:
        path: The model file involved, if known
    """

    def __init__(self, message: str, path: str | None = None):
        super().__init__(message)
        self.path = path

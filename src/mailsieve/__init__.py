"""mailsieve - spam classification and conversation threading for mail."""

__version__ = "0.1.0"

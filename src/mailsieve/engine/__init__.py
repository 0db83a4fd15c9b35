"""Message processing engine.

Runs threading and spam classification for incoming messages and applies
user spam corrections.
"""

from mailsieve.engine.mail_processor import (
    MailProcessor,
    ProcessingResult,
    new_thread_id,
    system_label_for,
)

__all__ = [
    "MailProcessor",
    "ProcessingResult",
    "new_thread_id",
    "system_label_for",
]

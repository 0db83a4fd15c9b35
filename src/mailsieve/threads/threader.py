"""Conversation threading for incoming messages.

Decides whether a new message continues an existing conversation, and
derives thread aggregates from a set of member messages.

Resolution order for a new message (first match wins):
1. In-Reply-To names a candidate that already has a thread
2. Any References entry, in header order, names a threaded candidate
3. A candidate with the same normalized subject, received within the age
   window (either direction), sharing at least two participants
4. Otherwise no thread: the caller creates a new one

Candidates are expected to be pre-filtered to a recent window by the caller;
the threader does not bound the candidate set itself.

Usage:
    from mailsieve.threads.threader import EmailThreader

    threader = EmailThreader()
    thread_id = threader.find_thread_for_email(message, recent_messages)
    if thread_id is None:
        thread_id = new_thread_id()
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import timedelta
from typing import TYPE_CHECKING, Protocol, TypeVar

from mailsieve.core.errors import ThreadBuildError
from mailsieve.core.logging import get_logger
from mailsieve.models import ThreadData
from mailsieve.threads.snippet import DEFAULT_SNIPPET_LENGTH, generate_thread_snippet
from mailsieve.threads.subject import normalize_subject, parse_references

if TYPE_CHECKING:
    from datetime import datetime

    from mailsieve.config_schema import ThreadingConfig
    from mailsieve.models import Message

logger = get_logger(__name__)

DEFAULT_MAX_THREAD_AGE_DAYS = 30

# Subject-only matches need this many shared participants; one shared
# address (e.g. a mailing list) is not enough
MIN_SHARED_PARTICIPANTS = 2


class _HasLastMessageAt(Protocol):
    last_message_at: datetime


ThreadT = TypeVar("ThreadT", bound=_HasLastMessageAt)


@dataclass(frozen=True, slots=True)
class ThreadingOptions:
    """Construction-time threading settings.

    Attributes:
        max_thread_age_days: Subject matches must be received within this
            many days of each other
        normalize_subjects: Strip Re:/Fwd: prefixes before comparing subjects
        snippet_max_length: Maximum length of thread snippets
    """

    max_thread_age_days: int = DEFAULT_MAX_THREAD_AGE_DAYS
    normalize_subjects: bool = True
    snippet_max_length: int = DEFAULT_SNIPPET_LENGTH


class EmailThreader:
    """Groups messages into conversations.

    Stateless apart from its options, so one instance can be shared freely
    across threads.
    """

    def __init__(self, options: ThreadingOptions | None = None):
        self.options = options or ThreadingOptions()

    @classmethod
    def from_config(cls, config: ThreadingConfig) -> EmailThreader:
        """Create a threader from the threading section of config.yaml."""
        return cls(
            ThreadingOptions(
                max_thread_age_days=config.max_thread_age_days,
                normalize_subjects=config.normalize_subjects,
                snippet_max_length=config.snippet_max_length,
            )
        )

    def normalize_subject(self, subject: str | None) -> str:
        """Normalize a subject, or return it unchanged when normalization is off."""
        if not self.options.normalize_subjects:
            return subject or ""
        return normalize_subject(subject)

    def parse_references(self, references: str | None) -> list[str]:
        return parse_references(references)

    def find_thread_for_email(
        self,
        message: Message,
        candidates: Sequence[Message],
    ) -> str | None:
        """Find the existing thread a new message belongs to.

        Args:
            message: The incoming message
            candidates: Recent prior messages of the same mailbox

        Returns:
            Thread ID to join, or None if a new thread is needed
        """
        by_message_id: dict[str, Message] = {}
        for candidate in candidates:
            by_message_id.setdefault(candidate.message_id, candidate)

        # 1. In-Reply-To header
        if message.in_reply_to:
            parent = by_message_id.get(message.in_reply_to)
            if parent is not None and parent.thread_id:
                logger.debug(
                    "thread_resolved",
                    email_id=message.id,
                    thread_id=parent.thread_id,
                    match="in_reply_to",
                )
                return parent.thread_id

        # 2. References header
        for ref in self.parse_references(message.references):
            referenced = by_message_id.get(ref)
            if referenced is not None and referenced.thread_id:
                logger.debug(
                    "thread_resolved",
                    email_id=message.id,
                    thread_id=referenced.thread_id,
                    match="references",
                )
                return referenced.thread_id

        # 3. Subject + time window + participant overlap
        normalized = self.normalize_subject(message.subject)
        max_age = timedelta(days=self.options.max_thread_age_days)

        for existing in candidates:
            if not existing.thread_id:
                continue
            if self.normalize_subject(existing.subject) != normalized:
                continue
            if abs(message.received_at - existing.received_at) > max_age:
                continue
            if self.has_overlapping_participants(message, existing):
                logger.debug(
                    "thread_resolved",
                    email_id=message.id,
                    thread_id=existing.thread_id,
                    match="subject",
                )
                return existing.thread_id

        logger.debug("thread_not_found", email_id=message.id)
        return None

    def has_overlapping_participants(self, first: Message, second: Message) -> bool:
        """Check whether two messages share at least two participants.

        Participants are the sender plus all to/cc addresses, compared
        exactly as given.
        """
        shared = first.participants() & second.participants()
        return len(shared) >= MIN_SHARED_PARTICIPANTS

    def generate_thread_snippet(self, message: Message, max_length: int | None = None) -> str:
        """Preview of a message body; see snippet.generate_thread_snippet()."""
        if max_length is None:
            max_length = self.options.snippet_max_length
        return generate_thread_snippet(message, max_length)

    def build_thread_data(self, messages: Sequence[Message]) -> ThreadData:
        """Derive the thread aggregate from its member messages.

        Args:
            messages: Member messages, in any order

        Returns:
            ThreadData; OR-combined starred/important/attachments flags,
            AND-combined archived/trashed flags

        Raises:
            ThreadBuildError: If messages is empty
        """
        if not messages:
            raise ThreadBuildError("Cannot build thread from empty email list")

        ordered = sorted(messages, key=lambda m: m.received_at)
        earliest = ordered[0]
        latest = ordered[-1]

        thread_ids = {m.thread_id for m in ordered if m.thread_id}
        thread_id = thread_ids.pop() if len(thread_ids) == 1 else None

        return ThreadData(
            subject=self.normalize_subject(earliest.subject),
            snippet=self.generate_thread_snippet(latest),
            message_count=len(ordered),
            unread_count=sum(1 for m in ordered if not m.is_read),
            has_attachments=any(m.has_attachments for m in ordered),
            is_starred=any(m.is_starred for m in ordered),
            is_important=any(m.is_important for m in ordered),
            is_archived=all(m.is_archived for m in ordered),
            is_trashed=all(m.is_trashed for m in ordered),
            last_message_at=latest.received_at,
            thread_id=thread_id,
        )

    def group_emails_into_threads(self, messages: Sequence[Message]) -> dict[str, list[Message]]:
        """Group messages by thread ID.

        Messages without a thread ID become singleton threads keyed by
        their own ID. Insertion order follows first appearance.
        """
        threads: dict[str, list[Message]] = {}
        for message in messages:
            key = message.thread_id or message.id
            threads.setdefault(key, []).append(message)
        return threads

    def sort_threads(self, threads: Sequence[ThreadT]) -> list[ThreadT]:
        """Sort threads by last activity, most recent first."""
        return sorted(threads, key=lambda t: t.last_message_at, reverse=True)

    def sort_thread_emails(self, messages: Sequence[Message]) -> list[Message]:
        """Sort a thread's messages oldest first."""
        return sorted(messages, key=lambda m: m.received_at)


def create_email_threader(options: ThreadingOptions | None = None) -> EmailThreader:
    """Create a threader with the given (or default) options."""
    return EmailThreader(options)

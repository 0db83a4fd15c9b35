"""Ingestion and feedback flow tying the threader and spam filter together.

For each incoming message the processor:
1. Resolves its thread (existing thread, or a freshly generated ID)
2. Scores it for spam, unless it is a draft
3. Rebuilds the thread aggregate from the known members

Thread aggregate failures are logged and skipped; they never block a
message from being stored. User corrections (mark as spam / not spam)
retrain the classifier.

Usage:
    from mailsieve.engine.mail_processor import MailProcessor

    processor = MailProcessor(spam_filter, threader)
    result = processor.process_incoming(message, recent_messages)
    store(result.message, result.thread)
"""

from __future__ import annotations

import uuid
from collections.abc import Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING

from mailsieve.core.errors import ThreadBuildError
from mailsieve.core.logging import batch_context, get_logger

if TYPE_CHECKING:
    from mailsieve.classifier.spam_filter import SpamFilter, SynchronizedSpamFilter
    from mailsieve.models import Message, SpamScore, ThreadData
    from mailsieve.threads.threader import EmailThreader

logger = get_logger(__name__)

LABEL_DRAFTS = "Drafts"
LABEL_SENT = "Sent"
LABEL_INBOX = "Inbox"


@dataclass
class ProcessingResult:
    """Outcome of processing one incoming message.

    Attributes:
        message: The processed message (thread_id and spam fields filled in)
        thread_id: Thread the message was assigned to
        is_new_thread: True if no existing thread matched
        spam: Spam verdict, or None for drafts
        thread: Rebuilt thread aggregate, or None if it could not be built
        label: System label for the message (Inbox, Sent or Drafts)
    """

    message: Message
    thread_id: str
    is_new_thread: bool
    spam: SpamScore | None
    thread: ThreadData | None
    label: str


def new_thread_id() -> str:
    """Generate an identifier for a new thread."""
    return uuid.uuid4().hex


def system_label_for(message: Message) -> str:
    """Pick the system label a message is filed under."""
    if message.is_draft:
        return LABEL_DRAFTS
    if message.is_sent:
        return LABEL_SENT
    return LABEL_INBOX


class MailProcessor:
    """Runs threading and spam classification for incoming messages.

    Attributes:
        spam_filter: Filter used for scoring and training
        threader: Threader used for thread resolution and aggregates
    """

    def __init__(
        self,
        spam_filter: SpamFilter | SynchronizedSpamFilter,
        threader: EmailThreader,
    ):
        self.spam_filter = spam_filter
        self.threader = threader

    def process_incoming(
        self,
        message: Message,
        candidates: Sequence[Message],
    ) -> ProcessingResult:
        """Thread and classify one incoming message.

        Args:
            message: Newly received or composed message
            candidates: Recent prior messages of the same mailbox

        Returns:
            ProcessingResult describing the thread and spam outcome
        """
        thread_id = self.threader.find_thread_for_email(message, candidates)
        is_new_thread = thread_id is None
        if thread_id is None:
            thread_id = new_thread_id()
        message.thread_id = thread_id

        spam: SpamScore | None = None
        if not message.is_draft:
            spam = self.spam_filter.calculate_spam_score(message)
            message.spam_score = spam.score
            message.is_spam = spam.is_spam
            if spam.is_spam:
                logger.info(
                    "message_marked_spam",
                    email_id=message.id,
                    score=round(spam.score, 2),
                    reasons=spam.reasons,
                )

        members = [c for c in candidates if c.thread_id == thread_id and c.id != message.id]
        members.append(message)
        thread = self._build_thread(members)

        logger.debug(
            "message_processed",
            email_id=message.id,
            thread_id=thread_id,
            is_new_thread=is_new_thread,
        )

        return ProcessingResult(
            message=message,
            thread_id=thread_id,
            is_new_thread=is_new_thread,
            spam=spam,
            thread=thread,
            label=system_label_for(message),
        )

    def process_batch(self, messages: Sequence[Message]) -> list[ProcessingResult]:
        """Process messages in order, each threaded against those before it.

        Log lines emitted during the batch carry a fresh batch_id.

        Args:
            messages: Messages to process, typically oldest first

        Returns:
            One ProcessingResult per message, in input order
        """
        seen: list[Message] = []
        results: list[ProcessingResult] = []
        with batch_context():
            for message in messages:
                results.append(self.process_incoming(message, seen))
                seen.append(message)
            logger.info(
                "batch_processed",
                messages=len(results),
                new_threads=sum(1 for r in results if r.is_new_thread),
                spam=sum(1 for r in results if r.spam is not None and r.spam.is_spam),
            )
        return results

    def mark_as_spam(self, message: Message) -> None:
        """Record a user's "this is spam" correction."""
        self.spam_filter.train_spam(message)
        message.is_spam = True
        logger.info("user_marked_spam", email_id=message.id)

    def mark_as_not_spam(self, message: Message) -> None:
        """Record a user's "this is not spam" correction.

        Reverses the spam training for the message and trains it as ham.
        """
        self.spam_filter.untrain_spam(message)
        self.spam_filter.train_ham(message)
        message.is_spam = False
        logger.info("user_marked_not_spam", email_id=message.id)

    def _build_thread(self, members: list[Message]) -> ThreadData | None:
        try:
            return self.threader.build_thread_data(members)
        except ThreadBuildError as e:
            logger.warning(
                "Thread aggregate update skipped",
                thread_id=members[0].thread_id if members else None,
                error=str(e),
            )
            return None

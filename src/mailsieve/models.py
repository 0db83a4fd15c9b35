"""Message and result records shared by the classifier and threader.

Messages arrive already parsed from the ingestion layer. The core treats them
as read-only apart from the thread assignment and the spam verdict fields,
which the mail processor fills in.

Usage:
    from mailsieve.models import Message

    message = Message.from_dict(
        {
            "id": "m1",
            "message_id": "<m1@example.com>",
            "from_address": "alice@example.com",
            "to_addresses": ["bob@example.com"],
            "subject": "Quarterly report",
            "received_at": "2026-03-01T09:00:00Z",
        }
    )
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

_FLAG_FIELDS = (
    "is_read",
    "is_starred",
    "is_important",
    "is_archived",
    "is_trashed",
    "is_spam",
    "has_attachments",
    "is_draft",
    "is_sent",
)


@dataclass
class EmailAddress:
    """A single mailbox address with optional display name."""

    address: str
    name: str | None = None

    @staticmethod
    def parse(value: str | dict[str, Any] | EmailAddress) -> EmailAddress:
        """Build an address from a bare string or an {address, name} mapping."""
        if isinstance(value, EmailAddress):
            return value
        if isinstance(value, str):
            return EmailAddress(address=value)
        return EmailAddress(address=value.get("address", ""), name=value.get("name"))


@dataclass
class Message:
    """A parsed email message.

    Attributes:
        id: Storage identifier of the message
        message_id: Protocol Message-ID header value (e.g. "<abc@host>")
        from_address: Sender address
        from_name: Sender display name, if any
        to_addresses: Primary recipients
        cc_addresses: Carbon-copy recipients
        bcc_addresses: Blind carbon-copy recipients
        subject: Subject line
        body_text: Plain-text body, if any
        body_html: HTML body, if any
        in_reply_to: In-Reply-To header value, if any
        references: Raw References header value, if any
        thread_id: Assigned thread, set by the threader
        received_at: When the message was received
        size_bytes: Raw message size
        spam_score: Last computed spam score, if scored
    """

    id: str
    message_id: str
    from_address: str
    subject: str = ""
    received_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    from_name: str | None = None
    to_addresses: list[EmailAddress] = field(default_factory=list)
    cc_addresses: list[EmailAddress] = field(default_factory=list)
    bcc_addresses: list[EmailAddress] = field(default_factory=list)
    body_text: str | None = None
    body_html: str | None = None
    in_reply_to: str | None = None
    references: str | None = None
    thread_id: str | None = None
    is_read: bool = False
    is_starred: bool = False
    is_important: bool = False
    is_archived: bool = False
    is_trashed: bool = False
    is_spam: bool = False
    has_attachments: bool = False
    is_draft: bool = False
    is_sent: bool = False
    size_bytes: int = 0
    spam_score: float | None = None

    def participants(self) -> set[str]:
        """Return the sender plus every to/cc address, as given (case-sensitive)."""
        people = {self.from_address}
        people.update(a.address for a in self.to_addresses)
        people.update(a.address for a in self.cc_addresses)
        return people

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Message:
        """Build a message from a plain mapping (JSON or YAML message files).

        Args:
            data: Mapping using the attribute names of this class. Recipient
                lists may hold strings or {address, name} mappings, and
                received_at may be an ISO-8601 string or a datetime; one
                without an offset is taken as UTC.

        Returns:
            Parsed Message
        """
        received = data.get("received_at")
        if isinstance(received, str):
            received_at = datetime.fromisoformat(received.replace("Z", "+00:00"))
        elif isinstance(received, datetime):
            received_at = received
        else:
            received_at = datetime.now(UTC)
        # Naive and aware datetimes cannot be compared when threading
        if received_at.tzinfo is None:
            received_at = received_at.replace(tzinfo=UTC)

        flags = {name: bool(data.get(name, False)) for name in _FLAG_FIELDS}

        return cls(
            id=str(data["id"]),
            message_id=data.get("message_id") or f"<{data['id']}>",
            from_address=data.get("from_address", ""),
            from_name=data.get("from_name"),
            to_addresses=[EmailAddress.parse(a) for a in data.get("to_addresses") or []],
            cc_addresses=[EmailAddress.parse(a) for a in data.get("cc_addresses") or []],
            bcc_addresses=[EmailAddress.parse(a) for a in data.get("bcc_addresses") or []],
            subject=data.get("subject") or "",
            body_text=data.get("body_text"),
            body_html=data.get("body_html"),
            in_reply_to=data.get("in_reply_to"),
            references=data.get("references"),
            thread_id=data.get("thread_id"),
            received_at=received_at,
            size_bytes=int(data.get("size_bytes", 0)),
            **flags,
        )


@dataclass
class SpamScore:
    """Result of scoring one message.

    Attributes:
        score: Spam likelihood in [0, 100]
        is_spam: True when score >= the filter threshold
        reasons: Human-readable notes for each signal that fired strongly
    """

    score: float
    is_spam: bool
    reasons: list[str] = field(default_factory=list)


@dataclass
class ThreadData:
    """Aggregate view of a conversation derived from its member messages.

    Attributes:
        subject: Normalized subject of the earliest message
        snippet: Preview of the latest message body
        message_count: Number of member messages
        unread_count: Members not yet read
        has_attachments: True if any member has attachments
        is_starred: True if any member is starred
        is_important: True if any member is important
        is_archived: True only if every member is archived
        is_trashed: True only if every member is trashed
        last_message_at: Timestamp of the latest member
        thread_id: Thread identifier shared by the members, if known
    """

    subject: str
    snippet: str
    message_count: int
    unread_count: int
    has_attachments: bool
    is_starred: bool
    is_important: bool
    is_archived: bool
    is_trashed: bool
    last_message_at: datetime
    thread_id: str | None = None

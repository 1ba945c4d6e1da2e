"""
Email Transport Interface.

Protocol-based interface for sending transactional and newsletter email.
Used by SubscriberService for verification emails and by CampaignService
for campaign delivery.

Key requirements:
- Send single transactional emails (verification)
- Send one newsletter body to many recipients in bounded batches
- Never expose one recipient's address to another
- Append an unsubscribe footer to newsletter HTML

Implementation strategies:
1. DevEmailTransport: Logs batches to console (dev/test)
2. SMTPEmailTransport: Sends via SMTP

All strategies implement the same EmailTransportPort interface.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Protocol


class EmailStatus(Enum):
    """Email send result status."""

    SENT = "sent"
    FAILED = "failed"
    SKIPPED = "skipped"  # Dev transport


@dataclass(frozen=True)
class EmailAddress:
    """
    Email address with optional display name.

    Examples:
        EmailAddress("news@example.com")
        EmailAddress("news@example.com", "Acme Consulting")
    """

    email: str
    name: str | None = None

    def __str__(self) -> str:
        """Format as RFC 5322 address."""
        if self.name:
            safe_name = self.name.replace('"', '\\"')
            return f'"{safe_name}" <{self.email}>'
        return self.email


@dataclass
class EmailResult:
    """Result of a single email send attempt."""

    status: EmailStatus
    message_id: str | None = None
    error: str | None = None
    sent_at: datetime | None = None
    recipient: str = ""

    @classmethod
    def success(cls, recipient: str, message_id: str | None = None) -> EmailResult:
        """Create a successful send result."""
        return cls(
            status=EmailStatus.SENT,
            message_id=message_id,
            recipient=recipient,
            sent_at=datetime.now(UTC),
        )

    @classmethod
    def skipped(cls, recipient: str, reason: str = "Dev mode") -> EmailResult:
        """Create a skipped result (dev transport)."""
        return cls(
            status=EmailStatus.SKIPPED,
            recipient=recipient,
            error=reason,
        )

    @classmethod
    def failed(cls, recipient: str, error: str) -> EmailResult:
        """Create a failed result."""
        return cls(
            status=EmailStatus.FAILED,
            recipient=recipient,
            error=error,
        )


@dataclass(frozen=True)
class BulkSendResult:
    """Result of a completed bulk send."""

    total_recipients: int
    batches: int
    message_ids: list[str] = field(default_factory=list)


class EmailTransportPort(Protocol):
    """
    Email transport interface.

    Implementations:
    - DevEmailTransport: Logs to console (dev/test)
    - SMTPEmailTransport: Sends via SMTP
    """

    def send_email(
        self,
        recipient: str,
        subject: str,
        body_html: str,
        body_text: str | None = None,
    ) -> EmailResult:
        """
        Send a transactional email.

        Must not raise; failures are reported through the result status.
        """
        ...

    def send_bulk(
        self,
        recipients: list[str],
        subject: str,
        body_html: str,
    ) -> BulkSendResult:
        """
        Send one newsletter to many recipients.

        Recipients are chunked into batches and addressed via Bcc so no
        recipient sees another's address. An unsubscribe footer is appended
        to the HTML body.

        Raises:
            EmailSendError: if any batch could not be handed to the server
        """
        ...


# --- Error Types ---


class EmailError(Exception):
    """Base exception for email-related errors."""

    pass


class EmailSendError(EmailError):
    """Failed to send email."""

    def __init__(self, recipients: list[str], error: str, retriable: bool = True) -> None:
        self.recipients = recipients
        self.error = error
        self.retriable = retriable
        super().__init__(f"Failed to send email to {len(recipients)} recipient(s): {error}")


# --- Constants ---

DEFAULT_BATCH_SIZE = 50

DEFAULT_VERIFICATION_SUBJECT = "Please confirm your subscription to {site_name}"

"""
Dev Email Transport.

Logs emails to console instead of sending.
Used for local development and testing.

Production uses SMTPEmailTransport; this provides safe testing without
sending actual emails.

Key behaviors:
- Logs email details per batch
- Returns SKIPPED status for single sends
- Chunks bulk sends exactly like the SMTP transport
- Stores emails in memory for test assertions
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from uuid import uuid4

from newsdesk.adapters.email_batching import chunk_recipients, with_unsubscribe_footer
from newsdesk.core.ports.email import (
    DEFAULT_BATCH_SIZE,
    BulkSendResult,
    EmailResult,
    EmailStatus,
)

logger = logging.getLogger(__name__)


@dataclass
class SentEmail:
    """Record of a logged email for test assertions."""

    id: str
    recipients: list[str]
    subject: str
    body_html: str
    body_text: str
    logged_at: datetime

    @property
    def recipient(self) -> str:
        """First recipient (single sends have exactly one)."""
        return self.recipients[0] if self.recipients else ""


@dataclass
class DevEmailTransport:
    """
    Dev email transport that logs instead of sending.

    Emails are logged to console and stored in memory for test assertions.
    Implements EmailTransportPort.
    """

    sent_emails: list[SentEmail] = field(default_factory=list)

    # Configuration
    batch_size: int = DEFAULT_BATCH_SIZE
    site_name: str = "Newsdesk"
    unsubscribe_url: str = "http://localhost:3000/newsletter/unsubscribe"
    log_level: int = logging.INFO
    log_body: bool = True
    body_preview_length: int = 100

    def send_email(
        self,
        recipient: str,
        subject: str,
        body_html: str,
        body_text: str | None = None,
    ) -> EmailResult:
        """Log a transactional email instead of sending."""
        message_id = self._record([recipient], subject, body_html, body_text or "")
        return EmailResult(
            status=EmailStatus.SKIPPED,
            message_id=message_id,
            recipient=recipient,
            error="Dev mode - email logged, not sent",
        )

    def send_bulk(
        self,
        recipients: list[str],
        subject: str,
        body_html: str,
    ) -> BulkSendResult:
        """Log one entry per batch instead of sending."""
        html = with_unsubscribe_footer(body_html, self.unsubscribe_url, self.site_name)
        message_ids = [
            self._record(batch, subject, html, "")
            for batch in chunk_recipients(recipients, self.batch_size)
        ]
        return BulkSendResult(
            total_recipients=len(recipients),
            batches=len(message_ids),
            message_ids=message_ids,
        )

    def _record(
        self,
        recipients: list[str],
        subject: str,
        body_html: str,
        body_text: str,
    ) -> str:
        message_id = f"dev-{uuid4().hex[:12]}"
        self.sent_emails.append(
            SentEmail(
                id=message_id,
                recipients=list(recipients),
                subject=subject,
                body_html=body_html,
                body_text=body_text,
                logged_at=datetime.now(UTC),
            )
        )
        self._log_email(recipients, subject, body_html, message_id)
        return message_id

    def _log_email(
        self,
        recipients: list[str],
        subject: str,
        body_html: str,
        message_id: str,
    ) -> None:
        """Log email details to console."""
        parts = [
            f"EMAIL (dev): Bcc={len(recipients)} recipient(s)",
            f"Subject={subject}",
        ]

        if self.log_body and body_html:
            preview = body_html[: self.body_preview_length]
            if len(body_html) > self.body_preview_length:
                preview += "..."
            parts.append(f"Body={preview}")

        parts.append(f"MessageID={message_id}")
        logger.log(self.log_level, ", ".join(parts))

    # --- Test Helper Methods ---

    def get_last_email(self) -> SentEmail | None:
        """Get the most recently logged email."""
        return self.sent_emails[-1] if self.sent_emails else None

    def get_emails_to(self, recipient: str) -> list[SentEmail]:
        """Get all emails that included a specific recipient."""
        return [e for e in self.sent_emails if recipient in e.recipients]

    def clear(self) -> None:
        """Clear all stored emails (for test isolation)."""
        self.sent_emails.clear()

    @property
    def email_count(self) -> int:
        """Get the number of logged messages."""
        return len(self.sent_emails)

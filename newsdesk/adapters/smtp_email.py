"""
SMTP Email Transport.

Sends transactional and newsletter email through an SMTP relay.

Key behaviors:
- One SMTP session per send_email / send_bulk call
- Bulk sends are chunked; each batch is one message with the sender in
  To and the batch in the envelope only (Bcc), so recipients never see
  each other
- Any SMTP or socket failure during a bulk send raises EmailSendError;
  batches already handed to the relay are not recalled
"""

from __future__ import annotations

import logging
import smtplib
import ssl
from collections.abc import Callable
from dataclasses import dataclass
from email.message import EmailMessage
from email.utils import make_msgid

from newsdesk.adapters.email_batching import chunk_recipients, with_unsubscribe_footer
from newsdesk.core.ports.email import (
    DEFAULT_BATCH_SIZE,
    BulkSendResult,
    EmailAddress,
    EmailResult,
    EmailSendError,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SMTPSettings:
    """Connection settings for the SMTP relay."""

    host: str
    port: int = 587
    username: str | None = None
    password: str | None = None
    use_tls: bool = True
    timeout_seconds: float = 30.0

    @property
    def use_ssl(self) -> bool:
        """Port 465 speaks implicit TLS."""
        return self.port == 465


SMTPFactory = Callable[[SMTPSettings], smtplib.SMTP]


def default_smtp_factory(settings: SMTPSettings) -> smtplib.SMTP:
    """Open an authenticated SMTP session."""
    if settings.use_ssl:
        client: smtplib.SMTP = smtplib.SMTP_SSL(
            settings.host,
            settings.port,
            timeout=settings.timeout_seconds,
            context=ssl.create_default_context(),
        )
    else:
        client = smtplib.SMTP(settings.host, settings.port, timeout=settings.timeout_seconds)
    try:
        if settings.use_tls and not settings.use_ssl:
            client.starttls(context=ssl.create_default_context())
        if settings.username and settings.password:
            client.login(settings.username, settings.password)
    except (smtplib.SMTPException, OSError):
        client.close()
        raise
    return client


class SMTPEmailTransport:
    """SMTP implementation of EmailTransportPort."""

    def __init__(
        self,
        settings: SMTPSettings,
        sender: EmailAddress,
        *,
        batch_size: int = DEFAULT_BATCH_SIZE,
        site_name: str = "Newsdesk",
        unsubscribe_url: str = "",
        smtp_factory: SMTPFactory = default_smtp_factory,
    ) -> None:
        self._settings = settings
        self._sender = sender
        self._batch_size = batch_size
        self._site_name = site_name
        self._unsubscribe_url = unsubscribe_url
        self._smtp_factory = smtp_factory

    def _build_message(
        self,
        to: str,
        subject: str,
        body_html: str,
        body_text: str | None,
    ) -> EmailMessage:
        message = EmailMessage()
        message["From"] = str(self._sender)
        message["To"] = to
        message["Subject"] = subject
        message["Message-ID"] = make_msgid(domain=self._sender.email.split("@")[-1])
        message.set_content(body_text or "This email requires an HTML-capable client.")
        message.add_alternative(body_html, subtype="html")
        return message

    def send_email(
        self,
        recipient: str,
        subject: str,
        body_html: str,
        body_text: str | None = None,
    ) -> EmailResult:
        """Send a transactional email; failures are returned, not raised."""
        message = self._build_message(recipient, subject, body_html, body_text)
        try:
            with self._smtp_factory(self._settings) as client:
                client.send_message(message, from_addr=self._sender.email, to_addrs=[recipient])
        except (smtplib.SMTPException, OSError) as e:
            logger.warning("SMTP send to %s failed: %s", recipient, e)
            return EmailResult.failed(recipient, str(e))
        return EmailResult.success(recipient, message_id=message["Message-ID"])

    def send_bulk(
        self,
        recipients: list[str],
        subject: str,
        body_html: str,
    ) -> BulkSendResult:
        """Send a newsletter in Bcc batches over one SMTP session."""
        html = with_unsubscribe_footer(body_html, self._unsubscribe_url, self._site_name)
        message_ids: list[str] = []
        batch: list[str] = []
        try:
            with self._smtp_factory(self._settings) as client:
                for batch in chunk_recipients(recipients, self._batch_size):
                    # Sender in To; the batch only travels in the envelope.
                    message = self._build_message(self._sender.email, subject, html, None)
                    client.send_message(message, from_addr=self._sender.email, to_addrs=batch)
                    message_ids.append(message["Message-ID"])
                    logger.debug("Sent newsletter batch of %d", len(batch))
        except (smtplib.SMTPException, OSError) as e:
            raise EmailSendError(batch, str(e)) from e

        logger.info(
            "Newsletter '%s' handed to SMTP relay: %d recipient(s) in %d batch(es)",
            subject,
            len(recipients),
            len(message_ids),
        )
        return BulkSendResult(
            total_recipients=len(recipients),
            batches=len(message_ids),
            message_ids=message_ids,
        )

"""
Subscribers component ports.

Protocol interfaces for subscriber service dependencies.
"""

from __future__ import annotations

from datetime import datetime
from typing import Protocol
from uuid import UUID

from newsdesk.components.subscribers.models import (
    RecipientCriteria,
    Subscriber,
    SubscriberDeliveryUpdate,
    SubscriberStatus,
)


class SubscriberRepoPort(Protocol):
    """
    Subscriber repository interface.

    Abstracts data persistence for newsletter subscribers.
    """

    def get_by_id(self, subscriber_id: UUID) -> Subscriber | None:
        """Get subscriber by ID."""
        ...

    def get_by_email(self, email: str) -> Subscriber | None:
        """Get subscriber by (lower-cased) email address."""
        ...

    def get_by_verification_token(self, token_hash: str) -> Subscriber | None:
        """Get subscriber by hashed verification token."""
        ...

    def save(self, subscriber: Subscriber) -> Subscriber:
        """
        Save or update subscriber (history is not rewritten).

        Raises DuplicateSubscriberError when a different subscriber already
        holds the email address.
        """
        ...

    def delete(self, subscriber_id: UUID) -> bool:
        """Delete subscriber by ID."""
        ...

    def list(
        self,
        status: SubscriberStatus | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[Subscriber]:
        """List subscribers, newest first."""
        ...

    def count(self, status: SubscriberStatus | None = None) -> int:
        """Count subscribers."""
        ...

    def find_emails(self, criteria: RecipientCriteria) -> list[str]:
        """Emails of subscribers matching the criteria."""
        ...

    def bulk_record_delivery(self, updates: list[SubscriberDeliveryUpdate]) -> int:
        """
        Apply delivery updates in one batch.

        Sets last_email_sent and appends the history entry for every
        matching email. Returns the number of subscribers updated.
        """
        ...


class TimePort(Protocol):
    """Time port."""

    def now_utc(self) -> datetime:
        """Get current UTC time."""
        ...

"""
Campaigns component ports.

Protocol interfaces for campaign service dependencies. Subscriber access
uses SubscriberRepoPort from the subscribers component; delivery uses
EmailTransportPort.

Every write to an existing campaign is conditional on its current status,
so a write based on a stale read can never undo a concurrent transition.
"""

from __future__ import annotations

from collections.abc import Collection
from datetime import datetime
from typing import Protocol
from uuid import UUID

from newsdesk.components.campaigns.models import Campaign, CampaignStatus


class CampaignRepoPort(Protocol):
    """
    Campaign repository interface.

    Abstracts data persistence for campaigns.
    """

    def get_by_id(self, campaign_id: UUID) -> Campaign | None:
        """Get campaign by ID."""
        ...

    def add(self, campaign: Campaign) -> Campaign:
        """Insert a new campaign."""
        ...

    def update_content(
        self,
        campaign_id: UUID,
        expected: Collection[CampaignStatus],
        *,
        name: str,
        subject: str,
        content: str,
        target_groups: dict[str, bool],
        now_utc: datetime,
    ) -> bool:
        """
        Replace the editable fields if the current status is one of `expected`.

        Status, schedule and delivery fields are never touched.
        """
        ...

    def transition_status(
        self,
        campaign_id: UUID,
        expected: Collection[CampaignStatus],
        new_status: CampaignStatus,
        now_utc: datetime,
        *,
        scheduled_for: datetime | None = None,
        sent_at: datetime | None = None,
        total_sent: int | None = None,
    ) -> bool:
        """
        Atomically set status if the current status is one of `expected`.

        The optional fields are written in the same update when given.
        Returns True if the row was updated, False if the status no longer
        matched (or the campaign is gone).
        """
        ...

    def delete(self, campaign_id: UUID, expected: Collection[CampaignStatus]) -> bool:
        """Delete the campaign if its current status is one of `expected`."""
        ...

    def list(
        self,
        status: CampaignStatus | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[Campaign]:
        """List campaigns, newest first."""
        ...

    def count(self, status: CampaignStatus | None = None) -> int:
        """Count campaigns."""
        ...

    def find_due(self, now_utc: datetime) -> list[Campaign]:
        """Scheduled campaigns with scheduled_for <= now, oldest schedule first."""
        ...


class TimePort(Protocol):
    """Time port."""

    def now_utc(self) -> datetime:
        """Get current UTC time."""
        ...

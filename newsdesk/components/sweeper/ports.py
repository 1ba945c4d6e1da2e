"""
Sweeper component ports.

The sweeper only needs to find due campaigns and send one by id; both
are satisfied by the campaigns component.
"""

from __future__ import annotations

from datetime import datetime
from typing import Protocol
from uuid import UUID

from newsdesk.components.campaigns.models import Campaign


class DueCampaignSourcePort(Protocol):
    """Source of scheduled campaigns that are due."""

    def find_due(self, now_utc: datetime) -> list[Campaign]:
        """Scheduled campaigns with scheduled_for <= now, oldest first."""
        ...


class CampaignSenderPort(Protocol):
    """Sends a campaign now."""

    def send(self, campaign_id: UUID) -> Campaign:
        """Send and return the updated campaign; raises on failure."""
        ...


class TimePort(Protocol):
    """Time port."""

    def now_utc(self) -> datetime:
        """Get current UTC time."""
        ...

"""
Campaigns component models.

Data models for newsletter campaign lifecycle and delivery.

State machine (Campaign): draft → scheduled → sending → sent,
with sending → draft as the only rollback (delivery failure).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from uuid import UUID

# --- State Machine ---


class CampaignStatus(Enum):
    """
    Campaign status.

    State transitions:
    - draft → scheduled (schedule for a future time)
    - draft → sending, scheduled → sending (send now / sweeper)
    - sending → sent (transport confirmed)
    - sending → draft (transport failed)
    """

    DRAFT = "draft"
    SCHEDULED = "scheduled"
    SENDING = "sending"
    SENT = "sent"  # Terminal


VALID_TRANSITIONS: dict[CampaignStatus, set[CampaignStatus]] = {
    CampaignStatus.DRAFT: {CampaignStatus.SCHEDULED, CampaignStatus.SENDING},
    CampaignStatus.SCHEDULED: {CampaignStatus.SENDING},
    CampaignStatus.SENDING: {CampaignStatus.SENT, CampaignStatus.DRAFT},
    CampaignStatus.SENT: set(),
}

# Statuses from which a send may claim the campaign.
SENDABLE_STATUSES: frozenset[CampaignStatus] = frozenset(
    {CampaignStatus.DRAFT, CampaignStatus.SCHEDULED}
)

# Statuses in which content may be edited or the campaign deleted.
EDITABLE_STATUSES: frozenset[CampaignStatus] = frozenset(
    {CampaignStatus.DRAFT, CampaignStatus.SCHEDULED}
)


def can_transition(from_status: CampaignStatus, to_status: CampaignStatus) -> bool:
    """Check if a campaign state transition is valid."""
    return to_status in VALID_TRANSITIONS.get(from_status, set())


# --- Entity ---


@dataclass
class CampaignStats:
    """Delivery statistics."""

    total_sent: int = 0


@dataclass
class Campaign:
    """Newsletter campaign entity."""

    id: UUID
    name: str
    subject: str
    content: str
    created_by: UUID
    target_groups: dict[str, bool] = field(default_factory=dict)
    status: CampaignStatus = CampaignStatus.DRAFT
    scheduled_for: datetime | None = None
    sent_at: datetime | None = None
    stats: CampaignStats = field(default_factory=CampaignStats)
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = field(default_factory=lambda: datetime.now(UTC))


# --- Input Models ---


@dataclass(frozen=True)
class CreateCampaignInput:
    """Input for creating a campaign."""

    name: str
    subject: str
    content: str
    target_groups: dict[str, bool] | None = None


@dataclass(frozen=True)
class CampaignPatch:
    """Partial update; None leaves a field unchanged."""

    name: str | None = None
    subject: str | None = None
    content: str | None = None
    target_groups: dict[str, bool] | None = None


# --- Configuration ---


@dataclass(frozen=True)
class CampaignConfig:
    """Campaign service configuration."""

    groups: tuple[str, ...] = ("productUpdates", "industryNews", "events", "marketing")


# --- Error Types ---


class CampaignError(Exception):
    """Base campaign error."""

    pass


class CampaignNotFoundError(CampaignError):
    """Referenced campaign does not exist."""

    def __init__(self, campaign_id: UUID) -> None:
        self.campaign_id = campaign_id
        super().__init__("Campaign not found")


class InvalidCampaignStateError(CampaignError):
    """Operation not allowed in the campaign's current state."""

    def __init__(self, message: str, status: CampaignStatus | None = None) -> None:
        self.status = status
        super().__init__(message)


class DeliveryFailedError(CampaignError):
    """Email transport failed; the campaign was reverted to draft."""

    def __init__(self, campaign_id: UUID, reason: str) -> None:
        self.campaign_id = campaign_id
        self.reason = reason
        super().__init__(f"Failed to send campaign: {reason}")

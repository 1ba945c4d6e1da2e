"""
Subscribers component models.

Data models for newsletter subscriber management.

State machine (Subscriber): active ⇄ unsubscribed, with is_verified
gating campaign eligibility.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Literal
from uuid import UUID

# --- Subscriber Status ---


class SubscriberStatus(Enum):
    """
    Newsletter subscriber status.

    - active: receives campaigns once verified
    - unsubscribed: soft opt-out, record kept; re-subscribing reactivates it
    """

    ACTIVE = "active"
    UNSUBSCRIBED = "unsubscribed"


SubscriberSource = Literal["website", "blog", "case-study", "landing-page", "referral", "other"]

SUBSCRIBER_SOURCES: tuple[str, ...] = (
    "website",
    "blog",
    "case-study",
    "landing-page",
    "referral",
    "other",
)


# --- Entities ---


@dataclass(frozen=True)
class CampaignHistoryEntry:
    """One campaign delivered to a subscriber."""

    campaign_id: UUID
    sent_at: datetime


@dataclass
class Subscriber:
    """
    Newsletter subscriber entity.

    Email is the natural key (stored lower-cased). Tokens are never exposed
    through the API: verification_token holds the SHA-256 digest of the
    token that was emailed.
    """

    id: UUID
    email: str
    first_name: str | None = None
    last_name: str | None = None
    status: SubscriberStatus = SubscriberStatus.ACTIVE
    is_verified: bool = False
    preferences: dict[str, bool] = field(default_factory=dict)
    source: SubscriberSource = "website"
    verification_token: str | None = None
    verification_token_expiry: datetime | None = None
    unsubscribe_token: str | None = None
    subscribed_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    last_email_sent: datetime | None = None
    campaigns: list[CampaignHistoryEntry] = field(default_factory=list)
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = field(default_factory=lambda: datetime.now(UTC))


# --- Recipient Query ---


@dataclass(frozen=True)
class RecipientCriteria:
    """
    Recipient selection for a campaign.

    any_of_groups=None means every eligible subscriber; otherwise a
    subscriber qualifies when at least one listed preference flag is true.
    An empty tuple therefore matches nobody.
    """

    status: SubscriberStatus = SubscriberStatus.ACTIVE
    is_verified: bool = True
    any_of_groups: tuple[str, ...] | None = None


@dataclass(frozen=True)
class SubscriberDeliveryUpdate:
    """Bulk-update instruction keyed by email."""

    email: str
    last_email_sent: datetime
    history_entry: CampaignHistoryEntry


# --- Input Models ---


@dataclass(frozen=True)
class SubscribeInput:
    """Input for a subscribe request."""

    email: str
    first_name: str | None = None
    last_name: str | None = None
    preferences: dict[str, bool] | None = None
    source: SubscriberSource = "website"


# --- Output Models ---


@dataclass(frozen=True)
class ValidateEmailOutput:
    """Output from email validation."""

    is_valid: bool
    normalized_email: str | None = None
    error: str | None = None


@dataclass(frozen=True)
class SubscribeOutput:
    """Output from a subscribe request."""

    subscriber: Subscriber
    created: bool = False
    reactivated: bool = False
    verification_sent: bool = False


# --- Configuration ---


@dataclass(frozen=True)
class SubscriberConfig:
    """Subscriber service configuration."""

    groups: tuple[str, ...] = ("productUpdates", "industryNews", "events", "marketing")
    verification_token_expiry_hours: int = 24
    site_name: str = "Newsdesk"
    base_url: str = "http://localhost:3000"
    verify_path: str = "/newsletter/verify"


# --- Error Types ---


class SubscriberError(Exception):
    """Base subscriber error."""

    pass


class SubscriberNotFoundError(SubscriberError):
    """Referenced subscriber does not exist."""

    def __init__(self, reference: str) -> None:
        self.reference = reference
        super().__init__("Subscriber not found")


class DuplicateSubscriberError(SubscriberError):
    """Another subscriber already holds this email address."""

    def __init__(self, email: str) -> None:
        self.email = email
        super().__init__("Subscriber already exists")


class EmailValidationError(SubscriberError):
    """Email validation failed."""

    def __init__(self, email: str, reason: str) -> None:
        self.email = email
        self.reason = reason
        super().__init__(f"Invalid email '{email}': {reason}")


class InvalidTokenError(SubscriberError):
    """Verification or unsubscribe token rejected."""

    def __init__(self, reason: str = "Invalid or expired token") -> None:
        self.reason = reason
        super().__init__(reason)

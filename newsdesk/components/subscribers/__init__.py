"""
Subscribers component.

Newsletter subscriber management: subscribe, verify, preferences, unsubscribe.
"""

from newsdesk.components.subscribers.component import (
    EMAIL_REGEX,
    SubscriberService,
    build_verification_email,
    build_verification_url,
    default_preferences,
    generate_token,
    hash_token,
    matches_criteria,
    normalize_email,
    validate_email,
)
from newsdesk.components.subscribers.models import (
    SUBSCRIBER_SOURCES,
    CampaignHistoryEntry,
    DuplicateSubscriberError,
    EmailValidationError,
    InvalidTokenError,
    RecipientCriteria,
    SubscribeInput,
    SubscribeOutput,
    Subscriber,
    SubscriberConfig,
    SubscriberDeliveryUpdate,
    SubscriberError,
    SubscriberNotFoundError,
    SubscriberSource,
    SubscriberStatus,
    ValidateEmailOutput,
)
from newsdesk.components.subscribers.ports import SubscriberRepoPort, TimePort

__all__ = [
    # Service
    "SubscriberService",
    # Pure functions
    "validate_email",
    "normalize_email",
    "generate_token",
    "hash_token",
    "default_preferences",
    "matches_criteria",
    "build_verification_url",
    "build_verification_email",
    # Constants
    "EMAIL_REGEX",
    "SUBSCRIBER_SOURCES",
    # Models
    "Subscriber",
    "SubscriberStatus",
    "SubscriberSource",
    "CampaignHistoryEntry",
    "RecipientCriteria",
    "SubscriberDeliveryUpdate",
    "SubscriberConfig",
    # Input/Output
    "SubscribeInput",
    "SubscribeOutput",
    "ValidateEmailOutput",
    # Errors
    "SubscriberError",
    "SubscriberNotFoundError",
    "DuplicateSubscriberError",
    "EmailValidationError",
    "InvalidTokenError",
    # Ports
    "SubscriberRepoPort",
    "TimePort",
]

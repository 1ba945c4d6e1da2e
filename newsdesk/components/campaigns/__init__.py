"""
Campaigns component.

Newsletter campaign lifecycle: draft, schedule, send, stats.
"""

from newsdesk.components.campaigns.component import (
    CampaignService,
    as_utc,
    build_recipient_criteria,
    is_send_to_all,
    matches_target_groups,
    normalize_target_groups,
    selected_groups,
)
from newsdesk.components.campaigns.models import (
    EDITABLE_STATUSES,
    SENDABLE_STATUSES,
    VALID_TRANSITIONS,
    Campaign,
    CampaignConfig,
    CampaignError,
    CampaignNotFoundError,
    CampaignPatch,
    CampaignStats,
    CampaignStatus,
    CreateCampaignInput,
    DeliveryFailedError,
    InvalidCampaignStateError,
    can_transition,
)
from newsdesk.components.campaigns.ports import CampaignRepoPort, TimePort

__all__ = [
    # Service
    "CampaignService",
    # Pure functions
    "normalize_target_groups",
    "is_send_to_all",
    "selected_groups",
    "build_recipient_criteria",
    "matches_target_groups",
    "as_utc",
    "can_transition",
    # State machine
    "VALID_TRANSITIONS",
    "SENDABLE_STATUSES",
    "EDITABLE_STATUSES",
    # Models
    "Campaign",
    "CampaignStatus",
    "CampaignStats",
    "CampaignConfig",
    # Input
    "CreateCampaignInput",
    "CampaignPatch",
    # Errors
    "CampaignError",
    "CampaignNotFoundError",
    "InvalidCampaignStateError",
    "DeliveryFailedError",
    # Ports
    "CampaignRepoPort",
    "TimePort",
]

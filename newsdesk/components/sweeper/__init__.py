"""
Sweeper component.

Sends scheduled campaigns once they are due.
"""

from newsdesk.components.sweeper.component import CampaignSweeper
from newsdesk.components.sweeper.models import SweepResult, SweepStatus, SweepSummary
from newsdesk.components.sweeper.ports import (
    CampaignSenderPort,
    DueCampaignSourcePort,
    TimePort,
)

__all__ = [
    # Service
    "CampaignSweeper",
    # Models
    "SweepResult",
    "SweepStatus",
    "SweepSummary",
    # Ports
    "CampaignSenderPort",
    "DueCampaignSourcePort",
    "TimePort",
]

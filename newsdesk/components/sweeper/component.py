"""
CampaignSweeper component.

Dispatches scheduled campaigns whose time has come.

Key behaviors:
- Due means status scheduled and scheduled_for <= now
- Campaigns are sent one at a time, oldest schedule first
- A failing campaign is reported and the sweep moves on
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime

from newsdesk.components.sweeper.models import SweepResult, SweepSummary
from newsdesk.components.sweeper.ports import (
    CampaignSenderPort,
    DueCampaignSourcePort,
    TimePort,
)

logger = logging.getLogger(__name__)


class CampaignSweeper:
    """Finds due scheduled campaigns and sends each."""

    def __init__(
        self,
        sender: CampaignSenderPort,
        source: DueCampaignSourcePort,
        time_port: TimePort | None = None,
    ) -> None:
        self._sender = sender
        self._source = source
        self._time = time_port

    def _now_utc(self) -> datetime:
        if self._time:
            return self._time.now_utc()
        return datetime.now(UTC)

    def run(self) -> list[SweepResult]:
        """Send every due campaign and report per-campaign outcomes."""
        due = self._source.find_due(self._now_utc())
        results: list[SweepResult] = []

        for campaign in due:
            try:
                sent = self._sender.send(campaign.id)
            except Exception as e:
                logger.error("Scheduled campaign %s (%s) failed: %s", campaign.id, campaign.name, e)
                results.append(
                    SweepResult(
                        campaign_id=campaign.id,
                        name=campaign.name,
                        status="error",
                        error=str(e),
                    )
                )
                continue

            results.append(
                SweepResult(
                    campaign_id=campaign.id,
                    name=campaign.name,
                    status="sent",
                    recipient_count=sent.stats.total_sent,
                )
            )

        return results

    def run_summary(self) -> SweepSummary:
        """Run one sweep and wrap the results."""
        return SweepSummary(results=self.run())

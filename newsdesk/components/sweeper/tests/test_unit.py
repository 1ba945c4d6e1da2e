"""
Sweeper component unit tests.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from uuid import UUID, uuid4

from newsdesk.components.campaigns import (
    Campaign,
    CampaignStats,
    CampaignStatus,
    InvalidCampaignStateError,
)
from newsdesk.components.sweeper import CampaignSweeper, SweepResult

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)


def _scheduled(name: str, minutes_from_now: int) -> Campaign:
    return Campaign(
        id=uuid4(),
        name=name,
        subject=name,
        content="<p>hi</p>",
        created_by=uuid4(),
        status=CampaignStatus.SCHEDULED,
        scheduled_for=NOW + timedelta(minutes=minutes_from_now),
    )


class MockDueSource:
    def __init__(self, campaigns: list[Campaign]) -> None:
        self.campaigns = campaigns
        self.queried_at: datetime | None = None

    def find_due(self, now_utc: datetime) -> list[Campaign]:
        self.queried_at = now_utc
        due = [c for c in self.campaigns if c.scheduled_for and c.scheduled_for <= now_utc]
        return sorted(due, key=lambda c: c.scheduled_for or now_utc)


class MockSender:
    """Sends by id; ids in `failures` raise the mapped error."""

    def __init__(self, recipients: int = 3, failures: dict[UUID, Exception] | None = None) -> None:
        self.recipients = recipients
        self.failures = failures or {}
        self.sent_ids: list[UUID] = []

    def send(self, campaign_id: UUID) -> Campaign:
        self.sent_ids.append(campaign_id)
        if campaign_id in self.failures:
            raise self.failures[campaign_id]
        return Campaign(
            id=campaign_id,
            name="sent",
            subject="sent",
            content="",
            created_by=uuid4(),
            status=CampaignStatus.SENT,
            sent_at=NOW,
            stats=CampaignStats(total_sent=self.recipients),
        )


class FixedClock:
    def now_utc(self) -> datetime:
        return NOW


class TestCampaignSweeper:
    def test_nothing_due(self) -> None:
        source = MockDueSource([_scheduled("later", 30)])
        sender = MockSender()
        assert CampaignSweeper(sender, source, FixedClock()).run() == []
        assert sender.sent_ids == []
        assert source.queried_at == NOW

    def test_sends_due_oldest_first(self) -> None:
        newer = _scheduled("newer", -5)
        older = _scheduled("older", -60)
        later = _scheduled("later", 5)
        sender = MockSender(recipients=7)

        results = CampaignSweeper(sender, MockDueSource([newer, older, later]), FixedClock()).run()

        assert sender.sent_ids == [older.id, newer.id]
        assert results == [
            SweepResult(campaign_id=older.id, name="older", status="sent", recipient_count=7),
            SweepResult(campaign_id=newer.id, name="newer", status="sent", recipient_count=7),
        ]

    def test_due_exactly_now_included(self) -> None:
        due = _scheduled("now", 0)
        sender = MockSender()
        CampaignSweeper(sender, MockDueSource([due]), FixedClock()).run()
        assert sender.sent_ids == [due.id]

    def test_failure_isolated(self) -> None:
        first = _scheduled("first", -30)
        broken = _scheduled("broken", -20)
        last = _scheduled("last", -10)
        sender = MockSender(
            failures={
                broken.id: InvalidCampaignStateError("No subscribers match the target criteria")
            }
        )

        results = CampaignSweeper(sender, MockDueSource([first, broken, last]), FixedClock()).run()

        assert [r.status for r in results] == ["sent", "error", "sent"]
        assert results[1].campaign_id == broken.id
        assert results[1].error == "No subscribers match the target criteria"
        assert results[1].recipient_count is None
        assert sender.sent_ids == [first.id, broken.id, last.id]

    def test_unexpected_errors_also_isolated(self) -> None:
        broken = _scheduled("broken", -1)
        sender = MockSender(failures={broken.id: RuntimeError("db locked")})
        results = CampaignSweeper(sender, MockDueSource([broken]), FixedClock()).run()
        assert results[0].status == "error"
        assert results[0].error == "db locked"

    def test_summary_counts(self) -> None:
        ok = _scheduled("ok", -2)
        broken = _scheduled("broken", -1)
        sender = MockSender(failures={broken.id: RuntimeError("x")})
        summary = CampaignSweeper(sender, MockDueSource([ok, broken]), FixedClock()).run_summary()
        assert summary.total_processed == 2
        assert summary.sent == 1
        assert summary.failed == 1

    def test_result_to_dict(self) -> None:
        cid = uuid4()
        sent = SweepResult(campaign_id=cid, name="n", status="sent", recipient_count=2)
        failed = SweepResult(campaign_id=cid, name="n", status="error", error="boom")
        assert sent.to_dict() == {
            "campaign_id": str(cid),
            "name": "n",
            "status": "sent",
            "recipient_count": 2,
        }
        assert failed.to_dict() == {
            "campaign_id": str(cid),
            "name": "n",
            "status": "error",
            "error": "boom",
        }

"""
Campaigns component unit tests.

Covers the state machine, targeting predicate, editing guards, scheduling
and the send algorithm (success, rollback, double-send protection).
"""

from __future__ import annotations

import copy
import threading
from collections.abc import Collection
from datetime import UTC, datetime, timedelta
from uuid import UUID, uuid4

import pytest

from newsdesk.components.campaigns import (
    VALID_TRANSITIONS,
    Campaign,
    CampaignNotFoundError,
    CampaignPatch,
    CampaignService,
    CampaignStats,
    CampaignStatus,
    CreateCampaignInput,
    DeliveryFailedError,
    InvalidCampaignStateError,
    build_recipient_criteria,
    can_transition,
    is_send_to_all,
    matches_target_groups,
    normalize_target_groups,
    selected_groups,
)
from newsdesk.components.subscribers import (
    RecipientCriteria,
    Subscriber,
    SubscriberDeliveryUpdate,
    SubscriberStatus,
    matches_criteria,
)
from newsdesk.core.ports.email import BulkSendResult, EmailResult, EmailSendError

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)
GROUPS = ("productUpdates", "industryNews", "events", "marketing")
CREATOR = uuid4()


# --- Mocks ---


class MockCampaignRepo:
    """In-memory campaign repository; stores copies like a real database."""

    def __init__(self) -> None:
        self._campaigns: dict[UUID, Campaign] = {}
        self._lock = threading.Lock()

    def get_by_id(self, campaign_id: UUID) -> Campaign | None:
        with self._lock:
            stored = self._campaigns.get(campaign_id)
            return copy.deepcopy(stored) if stored else None

    def add(self, campaign: Campaign) -> Campaign:
        with self._lock:
            self._campaigns[campaign.id] = copy.deepcopy(campaign)
        return campaign

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
        with self._lock:
            stored = self._campaigns.get(campaign_id)
            if stored is None or stored.status not in expected:
                return False
            stored.name = name
            stored.subject = subject
            stored.content = content
            stored.target_groups = dict(target_groups)
            stored.updated_at = now_utc
            return True

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
        with self._lock:
            stored = self._campaigns.get(campaign_id)
            if stored is None or stored.status not in expected:
                return False
            stored.status = new_status
            stored.updated_at = now_utc
            if scheduled_for is not None:
                stored.scheduled_for = scheduled_for
            if sent_at is not None:
                stored.sent_at = sent_at
            if total_sent is not None:
                stored.stats = CampaignStats(total_sent=total_sent)
            return True

    def delete(self, campaign_id: UUID, expected: Collection[CampaignStatus]) -> bool:
        with self._lock:
            stored = self._campaigns.get(campaign_id)
            if stored is None or stored.status not in expected:
                return False
            del self._campaigns[campaign_id]
            return True

    def list(
        self,
        status: CampaignStatus | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[Campaign]:
        with self._lock:
            items = [c for c in self._campaigns.values() if status is None or c.status == status]
        items.sort(key=lambda c: c.created_at, reverse=True)
        return [copy.deepcopy(c) for c in items[offset : offset + limit]]

    def count(self, status: CampaignStatus | None = None) -> int:
        return len(self.list(status, limit=10_000))

    def find_due(self, now_utc: datetime) -> list[Campaign]:
        with self._lock:
            due = [
                c
                for c in self._campaigns.values()
                if c.status == CampaignStatus.SCHEDULED
                and c.scheduled_for is not None
                and c.scheduled_for <= now_utc
            ]
        due.sort(key=lambda c: c.scheduled_for or now_utc)
        return [copy.deepcopy(c) for c in due]

    def stored_status(self, campaign_id: UUID) -> CampaignStatus:
        return self._campaigns[campaign_id].status


class StaleReadRepo(MockCampaignRepo):
    """Serves one snapshot taken before a concurrent writer moved the campaign on."""

    def __init__(self) -> None:
        super().__init__()
        self.stale: Campaign | None = None

    def get_by_id(self, campaign_id: UUID) -> Campaign | None:
        if self.stale is not None:
            stale, self.stale = self.stale, None
            return stale
        return super().get_by_id(campaign_id)


class MockSubscriberRepo:
    """Recipient lookup and delivery bookkeeping."""

    def __init__(self, subscribers: list[Subscriber] | None = None) -> None:
        self.subscribers = subscribers or []
        self.delivery_updates: list[SubscriberDeliveryUpdate] = []
        self.bulk_calls = 0

    def find_emails(self, criteria: RecipientCriteria) -> list[str]:
        return [s.email for s in self.subscribers if matches_criteria(criteria, s)]

    def bulk_record_delivery(self, updates: list[SubscriberDeliveryUpdate]) -> int:
        self.bulk_calls += 1
        self.delivery_updates.extend(updates)
        return len(updates)


class MockEmailTransport:
    """Bulk transport that can fail or block."""

    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.calls: list[tuple[list[str], str, str]] = []
        self.entered = threading.Event()
        self.release: threading.Event | None = None

    def send_email(
        self,
        recipient: str,
        subject: str,
        body_html: str,
        body_text: str | None = None,
    ) -> EmailResult:
        return EmailResult.success(recipient)

    def send_bulk(self, recipients: list[str], subject: str, body_html: str) -> BulkSendResult:
        self.calls.append((list(recipients), subject, body_html))
        self.entered.set()
        if self.release is not None:
            self.release.wait(timeout=5)
        if self.error is not None:
            raise self.error
        return BulkSendResult(total_recipients=len(recipients), batches=1, message_ids=["m1"])


class FixedClock:
    def __init__(self, now: datetime = NOW) -> None:
        self.now = now

    def now_utc(self) -> datetime:
        return self.now


def _subscriber(
    email: str, prefs: dict[str, bool] | None = None, **overrides: object
) -> Subscriber:
    data: dict[str, object] = {
        "id": uuid4(),
        "email": email,
        "status": SubscriberStatus.ACTIVE,
        "is_verified": True,
        "preferences": prefs if prefs is not None else {g: True for g in GROUPS},
    }
    data.update(overrides)
    return Subscriber(**data)  # type: ignore[arg-type]


def _only(*groups: str) -> dict[str, bool]:
    return {g: g in groups for g in GROUPS}


# --- Fixtures ---


@pytest.fixture
def repo() -> MockCampaignRepo:
    return MockCampaignRepo()


@pytest.fixture
def subscribers() -> MockSubscriberRepo:
    return MockSubscriberRepo(
        [
            _subscriber("a@example.com"),
            _subscriber("b@example.com"),
            _subscriber("unverified@example.com", is_verified=False),
            _subscriber("gone@example.com", status=SubscriberStatus.UNSUBSCRIBED),
        ]
    )


@pytest.fixture
def transport() -> MockEmailTransport:
    return MockEmailTransport()


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def service(
    repo: MockCampaignRepo,
    subscribers: MockSubscriberRepo,
    transport: MockEmailTransport,
    clock: FixedClock,
) -> CampaignService:
    return CampaignService(repo, subscribers, transport, clock)


def _draft(service: CampaignService, target_groups: dict[str, bool] | None = None) -> Campaign:
    return service.create(
        CreateCampaignInput(
            name="March update",
            subject="What's new",
            content="<p>Hello</p>",
            target_groups=target_groups,
        ),
        CREATOR,
    )


# --- State Machine ---


class TestStateMachine:
    def test_valid_transitions_defined(self) -> None:
        assert set(VALID_TRANSITIONS) == set(CampaignStatus)

    def test_forward_transitions(self) -> None:
        assert can_transition(CampaignStatus.DRAFT, CampaignStatus.SCHEDULED)
        assert can_transition(CampaignStatus.DRAFT, CampaignStatus.SENDING)
        assert can_transition(CampaignStatus.SCHEDULED, CampaignStatus.SENDING)
        assert can_transition(CampaignStatus.SENDING, CampaignStatus.SENT)

    def test_rollback_only_from_sending(self) -> None:
        assert can_transition(CampaignStatus.SENDING, CampaignStatus.DRAFT)
        assert not can_transition(CampaignStatus.SCHEDULED, CampaignStatus.DRAFT)

    def test_sent_is_terminal(self) -> None:
        for status in CampaignStatus:
            assert not can_transition(CampaignStatus.SENT, status)

    def test_no_skipping_sending(self) -> None:
        assert not can_transition(CampaignStatus.DRAFT, CampaignStatus.SENT)
        assert not can_transition(CampaignStatus.SCHEDULED, CampaignStatus.SENT)


# --- Targeting ---


class TestTargeting:
    def test_missing_groups_default_selected(self) -> None:
        groups = normalize_target_groups({"marketing": False}, GROUPS)
        assert groups == {
            "productUpdates": True,
            "industryNews": True,
            "events": True,
            "marketing": False,
        }

    def test_send_to_all(self) -> None:
        assert is_send_to_all(normalize_target_groups(None, GROUPS), GROUPS)
        assert not is_send_to_all(_only("events"), GROUPS)

    def test_selected_groups(self) -> None:
        assert selected_groups(_only("productUpdates", "events")) == ("productUpdates", "events")

    def test_criteria_for_send_to_all_has_no_group_filter(self) -> None:
        criteria = build_recipient_criteria(normalize_target_groups(None, GROUPS), GROUPS)
        assert criteria.any_of_groups is None
        assert criteria.status == SubscriberStatus.ACTIVE
        assert criteria.is_verified is True

    def test_criteria_lists_selected_groups(self) -> None:
        criteria = build_recipient_criteria(_only("events", "marketing"), GROUPS)
        assert criteria.any_of_groups == ("events", "marketing")

    def test_no_selected_group_matches_nobody(self) -> None:
        criteria = build_recipient_criteria(_only(), GROUPS)
        assert criteria.any_of_groups == ()
        assert not matches_target_groups(_only(), {g: True for g in GROUPS}, GROUPS)

    def test_predicate_is_or_over_selected_groups(self) -> None:
        target = _only("productUpdates", "events")
        assert matches_target_groups(target, _only("productUpdates"), GROUPS)
        assert matches_target_groups(target, _only("events"), GROUPS)
        assert not matches_target_groups(target, _only("industryNews"), GROUPS)
        assert not matches_target_groups(target, _only(), GROUPS)

    def test_send_to_all_ignores_preferences(self) -> None:
        assert matches_target_groups(normalize_target_groups(None, GROUPS), _only(), GROUPS)


# --- Editing ---


class TestCreateUpdateDelete:
    def test_create_draft(self, service: CampaignService, repo: MockCampaignRepo) -> None:
        campaign = _draft(service, {"marketing": False})
        assert campaign.status == CampaignStatus.DRAFT
        assert campaign.created_by == CREATOR
        assert campaign.target_groups["marketing"] is False
        assert campaign.target_groups["events"] is True
        assert campaign.stats.total_sent == 0
        assert repo.get_by_id(campaign.id) is not None

    def test_get_missing(self, service: CampaignService) -> None:
        with pytest.raises(CampaignNotFoundError):
            service.get(uuid4())

    def test_update_fields(self, service: CampaignService) -> None:
        campaign = _draft(service)
        updated = service.update(
            campaign.id, CampaignPatch(subject="New subject", target_groups={"events": False})
        )
        assert updated.subject == "New subject"
        assert updated.name == "March update"
        assert updated.target_groups["events"] is False
        assert updated.target_groups["marketing"] is True

    def test_update_scheduled_allowed(self, service: CampaignService) -> None:
        campaign = _draft(service)
        service.schedule(campaign.id, NOW + timedelta(days=1))
        assert service.update(campaign.id, CampaignPatch(name="Renamed")).name == "Renamed"

    def test_update_sent_rejected(self, service: CampaignService) -> None:
        campaign = _draft(service)
        service.send(campaign.id)
        with pytest.raises(InvalidCampaignStateError, match="already been sent"):
            service.update(campaign.id, CampaignPatch(name="x"))

    def test_update_missing(self, service: CampaignService) -> None:
        with pytest.raises(CampaignNotFoundError):
            service.update(uuid4(), CampaignPatch(name="x"))

    def test_delete_draft(self, service: CampaignService, repo: MockCampaignRepo) -> None:
        campaign = _draft(service)
        service.delete(campaign.id)
        assert repo.get_by_id(campaign.id) is None

    def test_delete_sent_rejected(self, service: CampaignService, repo: MockCampaignRepo) -> None:
        campaign = _draft(service)
        service.send(campaign.id)
        with pytest.raises(InvalidCampaignStateError, match="Cannot delete"):
            service.delete(campaign.id)
        assert repo.get_by_id(campaign.id) is not None

    def test_delete_missing(self, service: CampaignService) -> None:
        with pytest.raises(CampaignNotFoundError):
            service.delete(uuid4())

    def test_list_with_total(self, service: CampaignService) -> None:
        _draft(service)
        _draft(service)
        items, total = service.list(CampaignStatus.DRAFT, limit=1)
        assert total == 2
        assert len(items) == 1


# --- Scheduling ---


class TestSchedule:
    def test_schedule_future(self, service: CampaignService) -> None:
        campaign = _draft(service)
        when = NOW + timedelta(hours=2)
        scheduled = service.schedule(campaign.id, when)
        assert scheduled.status == CampaignStatus.SCHEDULED
        assert scheduled.scheduled_for == when

    def test_schedule_now_rejected(self, service: CampaignService) -> None:
        campaign = _draft(service)
        with pytest.raises(InvalidCampaignStateError, match="Scheduled date must be in the future"):
            service.schedule(campaign.id, NOW)

    def test_schedule_past_rejected(self, service: CampaignService) -> None:
        campaign = _draft(service)
        with pytest.raises(InvalidCampaignStateError):
            service.schedule(campaign.id, NOW - timedelta(minutes=1))

    def test_naive_datetime_treated_as_utc(self, service: CampaignService) -> None:
        campaign = _draft(service)
        scheduled = service.schedule(campaign.id, datetime(2026, 3, 2, 9, 0))
        assert scheduled.scheduled_for == datetime(2026, 3, 2, 9, 0, tzinfo=UTC)

    def test_only_draft_can_be_scheduled(self, service: CampaignService) -> None:
        campaign = _draft(service)
        service.schedule(campaign.id, NOW + timedelta(hours=1))
        with pytest.raises(
            InvalidCampaignStateError, match="Cannot schedule a campaign with status: scheduled"
        ):
            service.schedule(campaign.id, NOW + timedelta(hours=2))

    def test_schedule_missing(self, service: CampaignService) -> None:
        with pytest.raises(CampaignNotFoundError):
            service.schedule(uuid4(), NOW + timedelta(hours=1))


# --- Sending ---


class TestSend:
    def test_send_success(
        self,
        service: CampaignService,
        repo: MockCampaignRepo,
        subscribers: MockSubscriberRepo,
        transport: MockEmailTransport,
    ) -> None:
        campaign = _draft(service)
        sent = service.send(campaign.id)

        assert sent.status == CampaignStatus.SENT
        assert sent.sent_at == NOW
        assert sent.stats.total_sent == 2
        assert repo.stored_status(campaign.id) == CampaignStatus.SENT

        assert transport.calls == [
            (["a@example.com", "b@example.com"], "What's new", "<p>Hello</p>")
        ]

        assert subscribers.bulk_calls == 1
        assert {u.email for u in subscribers.delivery_updates} == {"a@example.com", "b@example.com"}
        for update in subscribers.delivery_updates:
            assert update.last_email_sent == NOW
            assert update.history_entry.campaign_id == campaign.id
            assert update.history_entry.sent_at == NOW

    def test_send_scheduled_campaign(self, service: CampaignService) -> None:
        campaign = _draft(service)
        service.schedule(campaign.id, NOW + timedelta(hours=1))
        assert service.send(campaign.id).status == CampaignStatus.SENT

    def test_get_stats_after_send(self, service: CampaignService) -> None:
        campaign = _draft(service)
        service.send(campaign.id)
        assert service.get_stats(campaign.id) == CampaignStats(total_sent=2)

    def test_send_missing(self, service: CampaignService) -> None:
        with pytest.raises(CampaignNotFoundError):
            service.send(uuid4())

    def test_resend_rejected(
        self, service: CampaignService, transport: MockEmailTransport
    ) -> None:
        campaign = _draft(service)
        service.send(campaign.id)
        with pytest.raises(InvalidCampaignStateError, match="Campaign has already been sent"):
            service.send(campaign.id)
        assert len(transport.calls) == 1

    def test_no_recipients(
        self, repo: MockCampaignRepo, transport: MockEmailTransport, clock: FixedClock
    ) -> None:
        service = CampaignService(repo, MockSubscriberRepo([]), transport, clock)
        campaign = _draft(service)
        with pytest.raises(InvalidCampaignStateError, match="No subscribers match"):
            service.send(campaign.id)
        assert repo.stored_status(campaign.id) == CampaignStatus.DRAFT
        assert transport.calls == []

    def test_targeting_is_or_over_selected_groups(
        self, repo: MockCampaignRepo, transport: MockEmailTransport, clock: FixedClock
    ) -> None:
        subs = MockSubscriberRepo(
            [
                _subscriber("a@example.com", _only("productUpdates")),
                _subscriber("b@example.com", _only("events")),
                _subscriber("c@example.com", _only("industryNews")),
                _subscriber("d@example.com", _only()),
            ]
        )
        service = CampaignService(repo, subs, transport, clock)
        campaign = _draft(service, _only("productUpdates", "events"))

        service.send(campaign.id)

        assert sorted(transport.calls[0][0]) == ["a@example.com", "b@example.com"]

    def test_send_to_all_includes_opted_out_preferences(
        self, repo: MockCampaignRepo, transport: MockEmailTransport, clock: FixedClock
    ) -> None:
        subs = MockSubscriberRepo([_subscriber("d@example.com", _only())])
        service = CampaignService(repo, subs, transport, clock)
        campaign = _draft(service)
        service.send(campaign.id)
        assert transport.calls[0][0] == ["d@example.com"]

    def test_no_group_selected_has_no_recipients(self, service: CampaignService) -> None:
        campaign = _draft(service, _only())
        with pytest.raises(InvalidCampaignStateError, match="No subscribers match"):
            service.send(campaign.id)

    def test_transport_failure_reverts_to_draft(
        self,
        repo: MockCampaignRepo,
        subscribers: MockSubscriberRepo,
        clock: FixedClock,
    ) -> None:
        transport = MockEmailTransport(error=EmailSendError(["a@example.com"], "relay down"))
        service = CampaignService(repo, subscribers, transport, clock)
        campaign = _draft(service)
        service.schedule(campaign.id, NOW + timedelta(hours=1))

        with pytest.raises(DeliveryFailedError) as exc_info:
            service.send(campaign.id)

        assert str(exc_info.value).startswith("Failed to send campaign: ")
        assert exc_info.value.reason.endswith("relay down")
        assert exc_info.value.campaign_id == campaign.id
        stored = repo.get_by_id(campaign.id)
        assert stored is not None
        assert stored.status == CampaignStatus.DRAFT
        assert stored.sent_at is None
        assert stored.stats.total_sent == 0
        assert subscribers.bulk_calls == 0
        assert subscribers.delivery_updates == []

    def test_failed_campaign_can_be_sent_again(
        self, repo: MockCampaignRepo, subscribers: MockSubscriberRepo, clock: FixedClock
    ) -> None:
        transport = MockEmailTransport(error=RuntimeError("boom"))
        service = CampaignService(repo, subscribers, transport, clock)
        campaign = _draft(service)
        with pytest.raises(DeliveryFailedError):
            service.send(campaign.id)

        transport.error = None
        assert service.send(campaign.id).status == CampaignStatus.SENT

    def test_concurrent_send_reaches_transport_once(
        self,
        service: CampaignService,
        repo: MockCampaignRepo,
        transport: MockEmailTransport,
    ) -> None:
        campaign = _draft(service)
        transport.release = threading.Event()
        outcome: dict[str, object] = {}

        def first_send() -> None:
            outcome["campaign"] = service.send(campaign.id)

        worker = threading.Thread(target=first_send)
        worker.start()
        assert transport.entered.wait(timeout=5)

        assert repo.stored_status(campaign.id) == CampaignStatus.SENDING
        with pytest.raises(InvalidCampaignStateError, match="already being sent"):
            service.send(campaign.id)

        transport.release.set()
        worker.join(timeout=5)

        assert len(transport.calls) == 1
        assert repo.stored_status(campaign.id) == CampaignStatus.SENT

    def test_lost_claim_reports_current_status(
        self,
        subscribers: MockSubscriberRepo,
        transport: MockEmailTransport,
        clock: FixedClock,
    ) -> None:
        repo = StaleReadRepo()
        service = CampaignService(repo, subscribers, transport, clock)
        campaign = _draft(service)
        repo.stale = repo.get_by_id(campaign.id)
        repo.transition_status(campaign.id, {CampaignStatus.DRAFT}, CampaignStatus.SENDING, NOW)

        with pytest.raises(InvalidCampaignStateError, match="already being sent"):
            service.send(campaign.id)
        assert transport.calls == []


# --- Stale Writes ---


class TestStaleWrites:
    """Writes based on a read taken before a send must not touch the sent campaign."""

    @pytest.fixture
    def stale_repo(self) -> StaleReadRepo:
        return StaleReadRepo()

    @pytest.fixture
    def stale_service(
        self,
        stale_repo: StaleReadRepo,
        subscribers: MockSubscriberRepo,
        transport: MockEmailTransport,
        clock: FixedClock,
    ) -> CampaignService:
        return CampaignService(stale_repo, subscribers, transport, clock)

    def _sent_behind_stale_read(
        self, service: CampaignService, repo: StaleReadRepo
    ) -> Campaign:
        campaign = _draft(service)
        snapshot = repo.get_by_id(campaign.id)
        service.send(campaign.id)
        repo.stale = snapshot
        return campaign

    def _assert_still_sent(self, repo: StaleReadRepo, campaign: Campaign) -> None:
        stored = repo.get_by_id(campaign.id)
        assert stored is not None
        assert stored.status == CampaignStatus.SENT
        assert stored.sent_at == NOW
        assert stored.stats.total_sent == 2
        assert stored.name == "March update"

    def test_update_after_send(
        self, stale_service: CampaignService, stale_repo: StaleReadRepo
    ) -> None:
        campaign = self._sent_behind_stale_read(stale_service, stale_repo)
        with pytest.raises(InvalidCampaignStateError, match="already been sent"):
            stale_service.update(campaign.id, CampaignPatch(name="Renamed"))
        self._assert_still_sent(stale_repo, campaign)

    def test_delete_after_send(
        self, stale_service: CampaignService, stale_repo: StaleReadRepo
    ) -> None:
        campaign = self._sent_behind_stale_read(stale_service, stale_repo)
        with pytest.raises(InvalidCampaignStateError, match="already been sent"):
            stale_service.delete(campaign.id)
        self._assert_still_sent(stale_repo, campaign)

    def test_schedule_after_send(
        self, stale_service: CampaignService, stale_repo: StaleReadRepo
    ) -> None:
        campaign = self._sent_behind_stale_read(stale_service, stale_repo)
        with pytest.raises(
            InvalidCampaignStateError, match="Cannot schedule a campaign with status: sent"
        ):
            stale_service.schedule(campaign.id, NOW + timedelta(hours=1))
        self._assert_still_sent(stale_repo, campaign)

    def test_resend_after_stale_write_rejected(
        self,
        stale_service: CampaignService,
        stale_repo: StaleReadRepo,
        transport: MockEmailTransport,
    ) -> None:
        campaign = self._sent_behind_stale_read(stale_service, stale_repo)
        with pytest.raises(InvalidCampaignStateError):
            stale_service.update(campaign.id, CampaignPatch(name="Renamed"))
        with pytest.raises(InvalidCampaignStateError, match="already been sent"):
            stale_service.send(campaign.id)
        assert len(transport.calls) == 1

    def test_update_while_sending_rejected(
        self, service: CampaignService, repo: MockCampaignRepo
    ) -> None:
        campaign = _draft(service)
        repo.transition_status(campaign.id, {CampaignStatus.DRAFT}, CampaignStatus.SENDING, NOW)
        with pytest.raises(InvalidCampaignStateError, match="is being sent"):
            service.update(campaign.id, CampaignPatch(name="Renamed"))

    def test_delete_while_sending_rejected(
        self, service: CampaignService, repo: MockCampaignRepo
    ) -> None:
        campaign = _draft(service)
        repo.transition_status(campaign.id, {CampaignStatus.DRAFT}, CampaignStatus.SENDING, NOW)
        with pytest.raises(
            InvalidCampaignStateError, match="Cannot delete a campaign that is being sent"
        ):
            service.delete(campaign.id)
        assert repo.stored_status(campaign.id) == CampaignStatus.SENDING

    def test_stale_update_of_scheduled_lands_on_scheduled(
        self, stale_service: CampaignService, stale_repo: StaleReadRepo
    ) -> None:
        campaign = _draft(stale_service)
        snapshot = stale_repo.get_by_id(campaign.id)
        stale_service.schedule(campaign.id, NOW + timedelta(hours=1))
        stale_repo.stale = snapshot

        updated = stale_service.update(campaign.id, CampaignPatch(subject="Edited"))

        assert updated.subject == "Edited"
        assert updated.status == CampaignStatus.SCHEDULED
        assert updated.scheduled_for == NOW + timedelta(hours=1)

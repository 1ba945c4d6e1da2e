"""
CampaignService component.

Campaign lifecycle and delivery for the newsletter.

Key behaviors:
- Campaigns are created as drafts and stay editable until a send claims them
- Writes to existing campaigns are conditional on status, so a stale read
  never overwrites a concurrent transition
- Scheduling requires a draft and a strictly future time
- Sending targets active, verified subscribers; when the campaign does not
  select every known group, a subscriber needs ANY selected group flag
- The move into `sending` is a conditional update, so concurrent sends of
  one campaign reach the transport at most once
- Transport failure reverts the campaign to draft and credits no subscriber
- Successful delivery is recorded on subscribers with one bulk write

Invariants:
- sent is terminal: no update, delete or resend
- never marked sent before the transport returns
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from uuid import UUID, uuid4

from newsdesk.components.campaigns.models import (
    EDITABLE_STATUSES,
    SENDABLE_STATUSES,
    Campaign,
    CampaignConfig,
    CampaignNotFoundError,
    CampaignPatch,
    CampaignStats,
    CampaignStatus,
    CreateCampaignInput,
    DeliveryFailedError,
    InvalidCampaignStateError,
)
from newsdesk.components.campaigns.ports import CampaignRepoPort, TimePort
from newsdesk.components.subscribers.models import (
    CampaignHistoryEntry,
    RecipientCriteria,
    SubscriberDeliveryUpdate,
)
from newsdesk.components.subscribers.ports import SubscriberRepoPort
from newsdesk.core.ports.email import EmailTransportPort

logger = logging.getLogger(__name__)


# --- Pure Functions (Functional Core) ---


def normalize_target_groups(
    target_groups: dict[str, bool] | None,
    known_groups: tuple[str, ...],
) -> dict[str, bool]:
    """Known groups default to selected; explicit choices win."""
    groups = {group: True for group in known_groups}
    if target_groups:
        groups.update({k: bool(v) for k, v in target_groups.items()})
    return groups


def is_send_to_all(target_groups: dict[str, bool], known_groups: tuple[str, ...]) -> bool:
    """True when every known group is selected."""
    return all(target_groups.get(group, False) for group in known_groups)


def selected_groups(target_groups: dict[str, bool]) -> tuple[str, ...]:
    """Groups whose flag is true, in declaration order."""
    return tuple(group for group, selected in target_groups.items() if selected)


def build_recipient_criteria(
    target_groups: dict[str, bool],
    known_groups: tuple[str, ...],
) -> RecipientCriteria:
    """
    Translate campaign targeting into subscriber criteria.

    Selecting every known group skips the preference filter entirely;
    otherwise subscribers need at least one matching preference.
    """
    if is_send_to_all(target_groups, known_groups):
        return RecipientCriteria()
    return RecipientCriteria(any_of_groups=selected_groups(target_groups))


def matches_target_groups(
    target_groups: dict[str, bool],
    preferences: dict[str, bool],
    known_groups: tuple[str, ...],
) -> bool:
    """
    Preference half of recipient selection.

    Status and verification are checked separately; this only answers
    whether the subscriber's interests fit the campaign.
    """
    if is_send_to_all(target_groups, known_groups):
        return True
    return any(preferences.get(group, False) for group in selected_groups(target_groups))


def as_utc(dt: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


# --- Campaign Service ---


class CampaignService:
    """
    Campaign lifecycle service.

    Owns campaign state transitions and delivery.
    """

    def __init__(
        self,
        repo: CampaignRepoPort,
        subscribers: SubscriberRepoPort,
        email: EmailTransportPort,
        time_port: TimePort | None = None,
        config: CampaignConfig | None = None,
    ) -> None:
        self._repo = repo
        self._subscribers = subscribers
        self._email = email
        self._time = time_port
        self._config = config or CampaignConfig()

    def _now_utc(self) -> datetime:
        if self._time:
            return self._time.now_utc()
        return datetime.now(UTC)

    # --- Queries ---

    def get(self, campaign_id: UUID) -> Campaign:
        """Get campaign by ID or raise CampaignNotFoundError."""
        campaign = self._repo.get_by_id(campaign_id)
        if campaign is None:
            raise CampaignNotFoundError(campaign_id)
        return campaign

    def list(
        self,
        status: CampaignStatus | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[Campaign], int]:
        """List campaigns with total count."""
        return self._repo.list(status, limit=limit, offset=offset), self._repo.count(status)

    def get_stats(self, campaign_id: UUID) -> CampaignStats:
        """Delivery statistics of a campaign."""
        return self.get(campaign_id).stats

    # --- Editing ---

    def create(self, inp: CreateCampaignInput, creator_id: UUID) -> Campaign:
        """Create a draft campaign."""
        now = self._now_utc()
        campaign = Campaign(
            id=uuid4(),
            name=inp.name,
            subject=inp.subject,
            content=inp.content,
            created_by=creator_id,
            target_groups=normalize_target_groups(inp.target_groups, self._config.groups),
            status=CampaignStatus.DRAFT,
            created_at=now,
            updated_at=now,
        )
        saved = self._repo.add(campaign)
        logger.info("Campaign %s created by %s", saved.id, creator_id)
        return saved

    def update(self, campaign_id: UUID, patch: CampaignPatch) -> Campaign:
        """
        Apply a partial update to an unsent campaign.

        The write only lands if the campaign is still editable, so an edit
        based on a read taken before a send cannot touch the sent row.
        """
        campaign = self.get(campaign_id)
        self._ensure_editable(campaign.status, "update")

        target_groups = campaign.target_groups
        if patch.target_groups is not None:
            target_groups = normalize_target_groups(
                {**campaign.target_groups, **patch.target_groups}, self._config.groups
            )
        updated = self._repo.update_content(
            campaign_id,
            EDITABLE_STATUSES,
            name=patch.name if patch.name is not None else campaign.name,
            subject=patch.subject if patch.subject is not None else campaign.subject,
            content=patch.content if patch.content is not None else campaign.content,
            target_groups=target_groups,
            now_utc=self._now_utc(),
        )
        if not updated:
            self._raise_lost_write(campaign_id, "update")
        return self.get(campaign_id)

    def delete(self, campaign_id: UUID) -> None:
        """Delete an unsent campaign that is not being delivered."""
        campaign = self.get(campaign_id)
        self._ensure_editable(campaign.status, "delete")
        if not self._repo.delete(campaign_id, EDITABLE_STATUSES):
            self._raise_lost_write(campaign_id, "delete")
        logger.info("Campaign %s deleted", campaign_id)

    # --- Lifecycle ---

    def schedule(self, campaign_id: UUID, scheduled_for: datetime) -> Campaign:
        """Schedule a draft for future delivery by the sweeper."""
        campaign = self.get(campaign_id)
        if campaign.status != CampaignStatus.DRAFT:
            raise InvalidCampaignStateError(
                f"Cannot schedule a campaign with status: {campaign.status.value}",
                campaign.status,
            )

        scheduled_for = as_utc(scheduled_for)
        now = self._now_utc()
        if scheduled_for <= now:
            raise InvalidCampaignStateError("Scheduled date must be in the future", campaign.status)

        scheduled = self._repo.transition_status(
            campaign_id,
            {CampaignStatus.DRAFT},
            CampaignStatus.SCHEDULED,
            now,
            scheduled_for=scheduled_for,
        )
        if not scheduled:
            current = self.get(campaign_id)
            raise InvalidCampaignStateError(
                f"Cannot schedule a campaign with status: {current.status.value}",
                current.status,
            )
        logger.info("Campaign %s scheduled for %s", campaign_id, scheduled_for.isoformat())
        return self.get(campaign_id)

    def send(self, campaign_id: UUID) -> Campaign:
        """
        Deliver a campaign now.

        Raises:
            CampaignNotFoundError: unknown campaign
            InvalidCampaignStateError: already sent or sending, or no recipients
            DeliveryFailedError: transport failed; campaign is back in draft
        """
        campaign = self.get(campaign_id)
        self._ensure_sendable(campaign.status)

        criteria = build_recipient_criteria(campaign.target_groups, self._config.groups)
        recipients = self._subscribers.find_emails(criteria)
        if not recipients:
            raise InvalidCampaignStateError(
                "No subscribers match the target criteria", campaign.status
            )

        self._claim_for_sending(campaign)
        logger.info("Campaign %s sending to %d subscriber(s)", campaign_id, len(recipients))

        try:
            self._email.send_bulk(recipients, campaign.subject, campaign.content)
        except Exception as e:
            self._repo.transition_status(
                campaign.id,
                {CampaignStatus.SENDING},
                CampaignStatus.DRAFT,
                self._now_utc(),
            )
            campaign.status = CampaignStatus.DRAFT
            logger.warning("Campaign %s delivery failed, reverted to draft: %s", campaign_id, e)
            raise DeliveryFailedError(campaign.id, str(e)) from e

        sent_at = self._now_utc()
        marked = self._repo.transition_status(
            campaign.id,
            {CampaignStatus.SENDING},
            CampaignStatus.SENT,
            sent_at,
            sent_at=sent_at,
            total_sent=len(recipients),
        )
        if not marked:
            # The mail is out; record delivery on subscribers regardless.
            logger.error("Campaign %s delivered but left the sending state", campaign_id)
        campaign.status = CampaignStatus.SENT
        campaign.sent_at = sent_at
        campaign.stats = CampaignStats(total_sent=len(recipients))
        campaign.updated_at = sent_at

        entry = CampaignHistoryEntry(campaign_id=campaign.id, sent_at=sent_at)
        self._subscribers.bulk_record_delivery(
            [
                SubscriberDeliveryUpdate(email=email, last_email_sent=sent_at, history_entry=entry)
                for email in recipients
            ]
        )
        logger.info("Campaign %s sent to %d subscriber(s)", campaign_id, len(recipients))
        return campaign

    def _ensure_editable(self, status: CampaignStatus, action: str) -> None:
        if status == CampaignStatus.SENT:
            raise InvalidCampaignStateError(
                f"Cannot {action} a campaign that has already been sent", status
            )
        if status == CampaignStatus.SENDING:
            raise InvalidCampaignStateError(
                f"Cannot {action} a campaign that is being sent", status
            )

    def _raise_lost_write(self, campaign_id: UUID, action: str) -> None:
        """A conditional write matched nothing; report the state that won."""
        current = self.get(campaign_id)
        self._ensure_editable(current.status, action)
        raise InvalidCampaignStateError(
            f"Cannot {action} a campaign with status: {current.status.value}", current.status
        )

    def _ensure_sendable(self, status: CampaignStatus) -> None:
        if status == CampaignStatus.SENT:
            raise InvalidCampaignStateError("Campaign has already been sent", status)
        if status == CampaignStatus.SENDING:
            raise InvalidCampaignStateError("Campaign is already being sent", status)

    def _claim_for_sending(self, campaign: Campaign) -> None:
        """Conditionally move the campaign into sending or report who won."""
        now = self._now_utc()
        claimed = self._repo.transition_status(
            campaign.id, SENDABLE_STATUSES, CampaignStatus.SENDING, now
        )
        if not claimed:
            current = self._repo.get_by_id(campaign.id)
            if current is None:
                raise CampaignNotFoundError(campaign.id)
            self._ensure_sendable(current.status)
            raise InvalidCampaignStateError(
                f"Cannot send a campaign with status: {current.status.value}", current.status
            )
        campaign.status = CampaignStatus.SENDING
        campaign.updated_at = now

"""
SubscriberService component.

Functional core and service for newsletter subscriber management.

Key behaviors:
- Email is the natural key (trimmed, lower-cased)
- Re-subscribing never duplicates: active records are returned, unsubscribed
  records are reactivated
- Verification token: random hex emailed, SHA-256 digest stored, 24h expiry
- Unsubscribe token: random hex, permanent, checked together with the email
- Unsubscribe is a soft status change; only admin delete removes a record

Invariants:
- Only active + verified subscribers are campaign recipients
- Stored verification tokens are never the raw emailed value
"""

from __future__ import annotations

import hashlib
import logging
import re
import secrets
from dataclasses import replace
from datetime import UTC, datetime, timedelta
from uuid import UUID, uuid4

from newsdesk.components.subscribers.models import (
    DuplicateSubscriberError,
    EmailValidationError,
    InvalidTokenError,
    RecipientCriteria,
    SubscribeInput,
    SubscribeOutput,
    Subscriber,
    SubscriberConfig,
    SubscriberNotFoundError,
    SubscriberStatus,
    ValidateEmailOutput,
)
from newsdesk.components.subscribers.ports import SubscriberRepoPort, TimePort
from newsdesk.core.ports.email import DEFAULT_VERIFICATION_SUBJECT, EmailStatus, EmailTransportPort

logger = logging.getLogger(__name__)

# --- Email Validation Regex (RFC 5322 simplified) ---

EMAIL_REGEX = re.compile(
    r"^[a-zA-Z0-9.!#$%&'*+/=?^_`{|}~-]+@"
    r"[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?"
    r"(?:\.[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?)+$"
)


# --- Pure Functions (Functional Core) ---


def normalize_email(email: str) -> str:
    """Trim and lower-case an email address."""
    return email.strip().lower() if email else ""


def validate_email(email: str) -> ValidateEmailOutput:
    """
    Validate email address format.

    Args:
        email: Email address to validate

    Returns:
        ValidateEmailOutput with the normalized address or the failure reason
    """
    normalized = normalize_email(email)

    if not normalized:
        return ValidateEmailOutput(is_valid=False, error="Email address is required")

    if len(normalized) > 254:
        return ValidateEmailOutput(is_valid=False, error="Email address is too long")

    if not EMAIL_REGEX.match(normalized):
        return ValidateEmailOutput(is_valid=False, error="Invalid email format")

    return ValidateEmailOutput(is_valid=True, normalized_email=normalized)


def generate_token(length: int = 32) -> str:
    """Generate a cryptographically secure hex token of `length` random bytes."""
    return secrets.token_hex(length)


def hash_token(token: str) -> str:
    """SHA-256 hex digest used to store verification tokens."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def default_preferences(
    groups: tuple[str, ...],
    overrides: dict[str, bool] | None = None,
) -> dict[str, bool]:
    """Every known group opted in, then apply explicit choices."""
    preferences = {group: True for group in groups}
    if overrides:
        preferences.update({k: bool(v) for k, v in overrides.items()})
    return preferences


def matches_criteria(criteria: RecipientCriteria, subscriber: Subscriber) -> bool:
    """
    Check a subscriber against recipient criteria.

    Used by repositories that filter in memory; SQL repositories express the
    same predicate in their query.
    """
    if subscriber.status != criteria.status:
        return False
    if subscriber.is_verified != criteria.is_verified:
        return False
    if criteria.any_of_groups is None:
        return True
    return any(subscriber.preferences.get(group, False) for group in criteria.any_of_groups)


def build_verification_url(base_url: str, token: str, path: str = "/newsletter/verify") -> str:
    """Build the verification URL for the email."""
    base = base_url.rstrip("/")
    return f"{base}{path}/{token}"


def build_verification_email(
    first_name: str | None,
    verification_url: str,
    site_name: str,
    expiry_hours: int = 24,
) -> tuple[str, str, str]:
    """Return (subject, html, text) for the verification email."""
    name = first_name or "there"
    subject = DEFAULT_VERIFICATION_SUBJECT.format(site_name=site_name)
    text = (
        f"Hi {name},\n\n"
        f"Thanks for subscribing to the {site_name} newsletter. "
        f"Please confirm your email address by visiting:\n{verification_url}\n\n"
        f"This link expires in {expiry_hours} hours. "
        "If you did not subscribe, ignore this email.\n"
    )
    html = (
        '<div style="font-family: Arial, sans-serif; line-height: 1.6;">'
        f"<h2>Confirm your subscription</h2>"
        f"<p>Hi {name},</p>"
        f"<p>Thanks for subscribing to the {site_name} newsletter. "
        "Please confirm your email address:</p>"
        f'<p><a href="{verification_url}">Confirm subscription</a></p>'
        f"<p>This link expires in {expiry_hours} hours. "
        "If you did not subscribe, ignore this email.</p>"
        "</div>"
    )
    return subject, html, text


# --- Subscriber Service ---


class SubscriberService:
    """
    Subscriber service.

    Manages subscribe, verification, preference and unsubscribe flows.
    """

    def __init__(
        self,
        repo: SubscriberRepoPort,
        email: EmailTransportPort | None = None,
        time_port: TimePort | None = None,
        config: SubscriberConfig | None = None,
    ) -> None:
        self._repo = repo
        self._email = email
        self._time = time_port
        self._config = config or SubscriberConfig()

    def _now_utc(self) -> datetime:
        if self._time:
            return self._time.now_utc()
        return datetime.now(UTC)

    # --- Subscribe / Verify ---

    def subscribe(self, inp: SubscribeInput) -> SubscribeOutput:
        """
        Handle a subscribe request.

        Existing active subscribers are returned unchanged and unsubscribed
        ones are reactivated. Unverified records get a fresh verification
        email either way.

        Raises:
            EmailValidationError: if the address is malformed
        """
        validation = validate_email(inp.email)
        if not validation.is_valid or validation.normalized_email is None:
            raise EmailValidationError(inp.email, validation.error or "Invalid email")
        email = validation.normalized_email
        now = self._now_utc()

        existing = self._repo.get_by_email(email)
        if existing is not None:
            return self._subscribe_existing(existing, now)

        subscriber = Subscriber(
            id=uuid4(),
            email=email,
            first_name=inp.first_name,
            last_name=inp.last_name,
            status=SubscriberStatus.ACTIVE,
            is_verified=False,
            preferences=default_preferences(self._config.groups, inp.preferences),
            source=inp.source,
            unsubscribe_token=generate_token(),
            subscribed_at=now,
            created_at=now,
            updated_at=now,
        )
        token = self._set_verification_token(subscriber, now)
        try:
            self._repo.save(subscriber)
        except DuplicateSubscriberError:
            # A concurrent request inserted this email after our lookup.
            existing = self._repo.get_by_email(email)
            if existing is None:
                raise
            return self._subscribe_existing(existing, now)
        logger.info("New subscriber %s from %s", subscriber.id, subscriber.source)

        return SubscribeOutput(
            subscriber=subscriber,
            created=True,
            verification_sent=self._send_verification(subscriber, token),
        )

    def _subscribe_existing(self, existing: Subscriber, now: datetime) -> SubscribeOutput:
        reactivated = False
        if existing.status == SubscriberStatus.UNSUBSCRIBED:
            existing.status = SubscriberStatus.ACTIVE
            existing.updated_at = now
            reactivated = True
            logger.info("Reactivated subscriber %s", existing.id)

        verification_sent = False
        if not existing.is_verified:
            token = self._set_verification_token(existing, now)
            self._repo.save(existing)
            verification_sent = self._send_verification(existing, token)
        elif reactivated:
            self._repo.save(existing)

        return SubscribeOutput(
            subscriber=existing,
            reactivated=reactivated,
            verification_sent=verification_sent,
        )

    def _set_verification_token(self, subscriber: Subscriber, now: datetime) -> str:
        """Store a fresh token digest on the subscriber and return the raw token."""
        token = generate_token()
        subscriber.verification_token = hash_token(token)
        subscriber.verification_token_expiry = now + timedelta(
            hours=self._config.verification_token_expiry_hours
        )
        subscriber.updated_at = now
        return token

    def _send_verification(self, subscriber: Subscriber, token: str) -> bool:
        if self._email is None:
            return False

        url = build_verification_url(self._config.base_url, token, self._config.verify_path)
        subject, html, text = build_verification_email(
            subscriber.first_name,
            url,
            self._config.site_name,
            self._config.verification_token_expiry_hours,
        )
        result = self._email.send_email(subscriber.email, subject, html, text)
        if result.status == EmailStatus.FAILED:
            logger.warning(
                "Verification email to subscriber %s failed: %s", subscriber.id, result.error
            )
            return False
        return True

    def verify(self, token: str) -> Subscriber:
        """
        Verify a subscriber by emailed token.

        Raises:
            InvalidTokenError: if the token is unknown or expired
        """
        if not token:
            raise InvalidTokenError()

        subscriber = self._repo.get_by_verification_token(hash_token(token))
        now = self._now_utc()
        if subscriber is None:
            raise InvalidTokenError()
        expiry = subscriber.verification_token_expiry
        if expiry is None or expiry <= now:
            raise InvalidTokenError()

        subscriber.is_verified = True
        subscriber.verification_token = None
        subscriber.verification_token_expiry = None
        subscriber.status = SubscriberStatus.ACTIVE
        subscriber.updated_at = now
        self._repo.save(subscriber)
        logger.info("Subscriber %s verified", subscriber.id)
        return subscriber

    # --- Queries ---

    def get(self, subscriber_id: UUID) -> Subscriber:
        """Get subscriber by ID or raise SubscriberNotFoundError."""
        subscriber = self._repo.get_by_id(subscriber_id)
        if subscriber is None:
            raise SubscriberNotFoundError(str(subscriber_id))
        return subscriber

    def get_by_email(self, email: str) -> Subscriber | None:
        """Get subscriber by email (case-insensitive)."""
        return self._repo.get_by_email(normalize_email(email))

    def list(
        self,
        status: SubscriberStatus | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[Subscriber], int]:
        """List subscribers with total count."""
        return self._repo.list(status, limit=limit, offset=offset), self._repo.count(status)

    def active_emails(self) -> list[str]:
        """Emails of all active, verified subscribers."""
        return self._repo.find_emails(RecipientCriteria())

    # --- Mutations ---

    def update_preferences(self, subscriber_id: UUID, preferences: dict[str, bool]) -> Subscriber:
        """Merge preference flags into the subscriber's preferences."""
        subscriber = self.get(subscriber_id)
        merged = {**subscriber.preferences, **{k: bool(v) for k, v in preferences.items()}}
        updated = replace(subscriber, preferences=merged, updated_at=self._now_utc())
        return self._repo.save(updated)

    def unsubscribe(self, email: str, token: str) -> Subscriber:
        """
        Unsubscribe with the permanent token from a newsletter link.

        Raises:
            InvalidTokenError: if email and token do not match
        """
        subscriber = self._repo.get_by_email(normalize_email(email))
        if (
            subscriber is None
            or not token
            or subscriber.unsubscribe_token is None
            or not secrets.compare_digest(subscriber.unsubscribe_token, token)
        ):
            raise InvalidTokenError("Invalid unsubscribe request")
        return self._mark_unsubscribed(subscriber)

    def unsubscribe_by_email(self, email: str) -> Subscriber:
        """Unsubscribe without a token (admin)."""
        subscriber = self._repo.get_by_email(normalize_email(email))
        if subscriber is None:
            raise SubscriberNotFoundError(email)
        return self._mark_unsubscribed(subscriber)

    def _mark_unsubscribed(self, subscriber: Subscriber) -> Subscriber:
        subscriber.status = SubscriberStatus.UNSUBSCRIBED
        subscriber.updated_at = self._now_utc()
        self._repo.save(subscriber)
        logger.info("Subscriber %s unsubscribed", subscriber.id)
        return subscriber

    def delete(self, subscriber_id: UUID) -> None:
        """Permanently delete a subscriber."""
        if not self._repo.delete(subscriber_id):
            raise SubscriberNotFoundError(str(subscriber_id))
        logger.info("Subscriber %s deleted", subscriber_id)

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Annotated
from uuid import UUID

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer

from newsdesk.adapters.clock import SystemClock
from newsdesk.adapters.dev_email import DevEmailTransport
from newsdesk.adapters.smtp_email import SMTPEmailTransport, SMTPSettings
from newsdesk.adapters.sqlite_db import SQLiteCampaignRepo, SQLiteSubscriberRepo
from newsdesk.api.auth_utils import decode_access_token
from newsdesk.components.campaigns import CampaignConfig, CampaignService
from newsdesk.components.subscribers import SubscriberConfig, SubscriberService
from newsdesk.components.sweeper import CampaignSweeper
from newsdesk.core.ports.email import EmailAddress, EmailTransportPort
from newsdesk.rules.loader import load_rules
from newsdesk.rules.models import Rules

ADMIN_ROLES = frozenset({"admin", "super-admin"})


# --- Settings ---
class Settings:
    def __init__(self) -> None:
        self.base_dir = Path(os.getcwd())
        self.data_dir = Path(os.environ.get("NEWSDESK_DATA_DIR", "./data"))
        self.db_path = str(self.data_dir / "newsdesk.db")
        self.migrations_dir = str(self.base_dir / "migrations")
        self.rules_path = Path(
            os.environ.get("NEWSDESK_RULES_PATH", str(self.base_dir / "rules.yaml"))
        )
        self.smtp_username = os.environ.get("NEWSDESK_SMTP_USERNAME")
        self.smtp_password = os.environ.get("NEWSDESK_SMTP_PASSWORD")


@lru_cache
def get_settings() -> Settings:
    return Settings()


# --- Rules ---
@lru_cache
def get_rules(settings: Settings = Depends(get_settings)) -> Rules:
    return load_rules(settings.rules_path)


def subscriber_config_from_rules(rules: Rules) -> SubscriberConfig:
    return SubscriberConfig(
        groups=tuple(rules.newsletter.groups),
        verification_token_expiry_hours=rules.newsletter.verification_token_expiry_hours,
        site_name=rules.site.name,
        base_url=rules.site.base_url,
        verify_path=rules.newsletter.verify_path,
    )


def campaign_config_from_rules(rules: Rules) -> CampaignConfig:
    return CampaignConfig(groups=tuple(rules.newsletter.groups))


# --- Adapters ---
_clock_instance: SystemClock | None = None


def get_clock() -> SystemClock:
    """Get clock singleton."""
    global _clock_instance
    if _clock_instance is None:
        _clock_instance = SystemClock()
    return _clock_instance


def build_email_transport(rules: Rules, settings: Settings) -> EmailTransportPort:
    """Construct the transport named in rules.email.transport."""
    unsubscribe_url = f"{rules.site.base_url}{rules.newsletter.unsubscribe_path}"
    if rules.email.transport == "smtp" and rules.email.smtp is not None:
        smtp = rules.email.smtp
        return SMTPEmailTransport(
            SMTPSettings(
                host=smtp.host,
                port=smtp.port,
                username=settings.smtp_username,
                password=settings.smtp_password,
                use_tls=smtp.use_tls,
                timeout_seconds=smtp.timeout_seconds,
            ),
            EmailAddress(rules.email.from_address, rules.email.from_name),
            batch_size=rules.newsletter.batch_size,
            site_name=rules.site.name,
            unsubscribe_url=unsubscribe_url,
        )
    return DevEmailTransport(
        batch_size=rules.newsletter.batch_size,
        site_name=rules.site.name,
        unsubscribe_url=unsubscribe_url,
        log_body=rules.email.dev.log_body,
        body_preview_length=rules.email.dev.body_preview_length,
    )


# Dev transport keeps its outbox in memory, so share one per process.
_email_transport_instance: EmailTransportPort | None = None


def get_email_transport(
    rules: Rules = Depends(get_rules),
    settings: Settings = Depends(get_settings),
) -> EmailTransportPort:
    """Get email transport singleton."""
    global _email_transport_instance
    if _email_transport_instance is None:
        _email_transport_instance = build_email_transport(rules, settings)
    return _email_transport_instance


# --- Repos ---
def get_subscriber_repo(settings: Settings = Depends(get_settings)) -> SQLiteSubscriberRepo:
    return SQLiteSubscriberRepo(settings.db_path)


def get_campaign_repo(settings: Settings = Depends(get_settings)) -> SQLiteCampaignRepo:
    return SQLiteCampaignRepo(settings.db_path)


# --- Component Services ---
def get_subscriber_service(
    repo: SQLiteSubscriberRepo = Depends(get_subscriber_repo),
    email: EmailTransportPort = Depends(get_email_transport),
    clock: SystemClock = Depends(get_clock),
    rules: Rules = Depends(get_rules),
) -> SubscriberService:
    """Get subscriber component service."""
    return SubscriberService(
        repo=repo,
        email=email,
        time_port=clock,
        config=subscriber_config_from_rules(rules),
    )


def get_campaign_service(
    repo: SQLiteCampaignRepo = Depends(get_campaign_repo),
    subscribers: SQLiteSubscriberRepo = Depends(get_subscriber_repo),
    email: EmailTransportPort = Depends(get_email_transport),
    clock: SystemClock = Depends(get_clock),
    rules: Rules = Depends(get_rules),
) -> CampaignService:
    """Get campaign component service."""
    return CampaignService(
        repo=repo,
        subscribers=subscribers,
        email=email,
        time_port=clock,
        config=campaign_config_from_rules(rules),
    )


def get_campaign_sweeper(
    service: CampaignService = Depends(get_campaign_service),
    repo: SQLiteCampaignRepo = Depends(get_campaign_repo),
    clock: SystemClock = Depends(get_clock),
) -> CampaignSweeper:
    """Get scheduled-campaign sweeper."""
    return CampaignSweeper(sender=service, source=repo, time_port=clock)


# --- Auth ---
@dataclass(frozen=True)
class Principal:
    """Authenticated caller, taken from the access token claims."""

    id: UUID
    role: str


oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)


async def get_current_user(
    request: Request,
    token: Annotated[str | None, Depends(oauth2_scheme)],
) -> Principal:
    # 1. Try Cookie first (HttpOnly)
    cookie_token = request.cookies.get("access_token")
    if cookie_token and cookie_token.startswith("Bearer "):
        token = cookie_token.split(" ")[1]

    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    # 2. Decode
    payload = decode_access_token(token)
    if not payload:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user_id = payload.get("sub")
    role = payload.get("role")
    if not isinstance(user_id, str) or not isinstance(role, str):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload",
        )

    try:
        return Principal(id=UUID(user_id), role=role)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload",
        ) from e


def require_admin(user: Principal = Depends(get_current_user)) -> Principal:
    """Allow only the admin and super-admin roles."""
    if user.role not in ADMIN_ROLES:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You do not have permission to perform this action",
        )
    return user

from typing import Literal

from pydantic import BaseModel, Field, field_validator


class ProjectRules(BaseModel):
    slug: str
    rules_version: str


class SiteRules(BaseModel):
    name: str
    base_url: str

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")


class SweeperRules(BaseModel):
    poll_interval_seconds: float = Field(gt=0)


class NewsletterRules(BaseModel):
    groups: list[str] = Field(min_length=1)
    verification_token_expiry_hours: int = Field(ge=1)
    batch_size: int = Field(ge=1)
    verify_path: str
    unsubscribe_path: str
    sweeper: SweeperRules

    @field_validator("groups")
    @classmethod
    def groups_unique(cls, v: list[str]) -> list[str]:
        if len(set(v)) != len(v):
            raise ValueError("newsletter groups must be unique")
        return v


class SMTPRules(BaseModel):
    host: str
    port: int = Field(ge=1, le=65535)
    use_tls: bool
    timeout_seconds: float = Field(gt=0)


class DevEmailRules(BaseModel):
    log_body: bool
    body_preview_length: int = Field(ge=0)


class EmailRules(BaseModel):
    transport: Literal["dev", "smtp"]
    from_address: str
    from_name: str | None = None
    dev: DevEmailRules
    smtp: SMTPRules | None = None


class Rules(BaseModel):
    project: ProjectRules
    site: SiteRules
    newsletter: NewsletterRules
    email: EmailRules

    @field_validator("email")
    @classmethod
    def smtp_settings_present(cls, v: EmailRules) -> EmailRules:
        if v.transport == "smtp" and v.smtp is None:
            raise ValueError("email.smtp is required when email.transport is 'smtp'")
        return v

"""
Admin newsletter subscribers API endpoints.

Endpoints:
- GET /api/admin/newsletter/subscribers - List subscribers
- POST /api/admin/newsletter/subscribers/unsubscribe-by-email - Unsubscribe without token
- GET /api/admin/newsletter/subscribers/{id} - Get subscriber
- PATCH /api/admin/newsletter/subscribers/{id} - Update preferences
- DELETE /api/admin/newsletter/subscribers/{id} - Delete subscriber (GDPR)
"""

from __future__ import annotations

from typing import Literal
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field

from newsdesk.api.deps import Principal, get_subscriber_service, require_admin
from newsdesk.components.subscribers import (
    Subscriber,
    SubscriberNotFoundError,
    SubscriberService,
    SubscriberStatus,
)

router = APIRouter()


# --- Request/Response Models ---


class CampaignHistoryResponse(BaseModel):
    campaign_id: str
    sent_at: str


class SubscriberResponse(BaseModel):
    """Newsletter subscriber response (tokens hidden for security)."""

    id: str = Field(..., description="Subscriber ID")
    email: str = Field(..., description="Email address")
    first_name: str | None = None
    last_name: str | None = None
    status: str = Field(..., description="Subscription status")
    is_verified: bool
    preferences: dict[str, bool]
    source: str
    subscribed_at: str
    last_email_sent: str | None = None
    campaigns: list[CampaignHistoryResponse] = Field(default_factory=list)
    created_at: str = Field(..., description="Creation timestamp")


class SubscriberListResponse(BaseModel):
    """Paginated list of subscribers."""

    subscribers: list[SubscriberResponse]
    total: int = Field(..., description="Total matching subscribers")
    offset: int = Field(..., description="Current offset")
    limit: int = Field(..., description="Page size")


class PreferencesRequest(BaseModel):
    preferences: dict[str, bool]


class UnsubscribeByEmailRequest(BaseModel):
    email: str = Field(..., min_length=1)


class MessageResponse(BaseModel):
    success: bool
    message: str


class ErrorResponse(BaseModel):
    """Error response."""

    detail: str


# --- Helper Functions ---


def _subscriber_to_response(subscriber: Subscriber) -> SubscriberResponse:
    """Convert subscriber entity to response model (no tokens exposed)."""
    return SubscriberResponse(
        id=str(subscriber.id),
        email=subscriber.email,
        first_name=subscriber.first_name,
        last_name=subscriber.last_name,
        status=subscriber.status.value,
        is_verified=subscriber.is_verified,
        preferences=subscriber.preferences,
        source=subscriber.source,
        subscribed_at=subscriber.subscribed_at.isoformat(),
        last_email_sent=(
            subscriber.last_email_sent.isoformat() if subscriber.last_email_sent else None
        ),
        campaigns=[
            CampaignHistoryResponse(
                campaign_id=str(entry.campaign_id), sent_at=entry.sent_at.isoformat()
            )
            for entry in subscriber.campaigns
        ],
        created_at=subscriber.created_at.isoformat(),
    )


def _not_found(e: SubscriberNotFoundError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


# --- Endpoints ---


@router.get(
    "/subscribers",
    response_model=SubscriberListResponse,
    responses={401: {"model": ErrorResponse}, 403: {"model": ErrorResponse}},
    summary="List newsletter subscribers",
)
def list_subscribers(
    status_filter: Literal["active", "unsubscribed"] | None = Query(
        None, alias="status", description="Filter by status"
    ),
    offset: int = Query(0, ge=0, description="Pagination offset"),
    limit: int = Query(50, ge=1, le=100, description="Page size"),
    user: Principal = Depends(require_admin),
    service: SubscriberService = Depends(get_subscriber_service),
) -> SubscriberListResponse:
    status_enum = SubscriberStatus(status_filter) if status_filter else None
    subscribers, total = service.list(status_enum, limit=limit, offset=offset)
    return SubscriberListResponse(
        subscribers=[_subscriber_to_response(s) for s in subscribers],
        total=total,
        offset=offset,
        limit=limit,
    )


@router.post(
    "/subscribers/unsubscribe-by-email",
    response_model=MessageResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Unsubscribe an address without a token",
)
def unsubscribe_by_email(
    body: UnsubscribeByEmailRequest,
    user: Principal = Depends(require_admin),
    service: SubscriberService = Depends(get_subscriber_service),
) -> MessageResponse:
    try:
        service.unsubscribe_by_email(body.email)
    except SubscriberNotFoundError as e:
        raise _not_found(e) from e
    return MessageResponse(success=True, message="You have been unsubscribed from the newsletter.")


@router.get(
    "/subscribers/{subscriber_id}",
    response_model=SubscriberResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Get subscriber details",
)
def get_subscriber(
    subscriber_id: UUID,
    user: Principal = Depends(require_admin),
    service: SubscriberService = Depends(get_subscriber_service),
) -> SubscriberResponse:
    try:
        return _subscriber_to_response(service.get(subscriber_id))
    except SubscriberNotFoundError as e:
        raise _not_found(e) from e


@router.patch(
    "/subscribers/{subscriber_id}",
    response_model=SubscriberResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Update subscriber preferences",
)
def update_preferences(
    subscriber_id: UUID,
    body: PreferencesRequest,
    user: Principal = Depends(require_admin),
    service: SubscriberService = Depends(get_subscriber_service),
) -> SubscriberResponse:
    try:
        return _subscriber_to_response(service.update_preferences(subscriber_id, body.preferences))
    except SubscriberNotFoundError as e:
        raise _not_found(e) from e


@router.delete(
    "/subscribers/{subscriber_id}",
    response_model=MessageResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Delete subscriber (GDPR)",
    description="Permanently delete a subscriber and their delivery history.",
)
def delete_subscriber(
    subscriber_id: UUID,
    user: Principal = Depends(require_admin),
    service: SubscriberService = Depends(get_subscriber_service),
) -> MessageResponse:
    try:
        service.delete(subscriber_id)
    except SubscriberNotFoundError as e:
        raise _not_found(e) from e
    return MessageResponse(success=True, message="Subscriber deleted")

"""
Public newsletter endpoints for subscription management.

Endpoints:
- POST /api/public/newsletter/subscribe - Subscribe to newsletter
- GET /api/public/newsletter/verify/{token} - Confirm subscription
- POST /api/public/newsletter/unsubscribe - Unsubscribe with emailed token
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from newsdesk.api.deps import get_subscriber_service
from newsdesk.components.subscribers import (
    EmailValidationError,
    InvalidTokenError,
    SubscribeInput,
    SubscriberService,
    SubscriberSource,
)

router = APIRouter()


# --- Request/Response Models ---


class SubscribeRequest(BaseModel):
    """Request body for newsletter subscription."""

    email: str = Field(..., min_length=1, description="Email address to subscribe")
    first_name: str | None = Field(None, max_length=100)
    last_name: str | None = Field(None, max_length=100)
    preferences: dict[str, bool] | None = None
    source: SubscriberSource = "website"


class SubscriberSummary(BaseModel):
    email: str
    first_name: str | None = None
    is_verified: bool


class SubscribeResponse(BaseModel):
    """Response for subscription request."""

    success: bool
    message: str
    subscriber: SubscriberSummary


class UnsubscribeRequest(BaseModel):
    email: str = Field(..., min_length=1)
    token: str = Field(..., min_length=1)


class MessageResponse(BaseModel):
    success: bool
    message: str


class ErrorResponse(BaseModel):
    """Error response."""

    detail: str


# --- Endpoints ---


@router.post(
    "/subscribe",
    response_model=SubscribeResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}},
    summary="Subscribe to newsletter",
)
def subscribe(
    body: SubscribeRequest,
    service: SubscriberService = Depends(get_subscriber_service),
) -> SubscribeResponse:
    try:
        result = service.subscribe(
            SubscribeInput(
                email=body.email,
                first_name=body.first_name,
                last_name=body.last_name,
                preferences=body.preferences,
                source=body.source,
            )
        )
    except EmailValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.reason) from e

    subscriber = result.subscriber
    return SubscribeResponse(
        success=True,
        message=(
            "Thank you for subscribing! Please check your email to verify your subscription."
        ),
        subscriber=SubscriberSummary(
            email=subscriber.email,
            first_name=subscriber.first_name,
            is_verified=subscriber.is_verified,
        ),
    )


@router.get(
    "/verify/{token}",
    response_model=MessageResponse,
    responses={400: {"model": ErrorResponse}},
    summary="Verify subscription",
)
def verify(
    token: str,
    service: SubscriberService = Depends(get_subscriber_service),
) -> MessageResponse:
    try:
        service.verify(token)
    except InvalidTokenError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
    return MessageResponse(
        success=True,
        message="Email verification successful! You are now subscribed to our newsletter.",
    )


@router.post(
    "/unsubscribe",
    response_model=MessageResponse,
    responses={400: {"model": ErrorResponse}},
    summary="Unsubscribe from newsletter",
)
def unsubscribe(
    body: UnsubscribeRequest,
    service: SubscriberService = Depends(get_subscriber_service),
) -> MessageResponse:
    try:
        service.unsubscribe(body.email, body.token)
    except InvalidTokenError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
    return MessageResponse(
        success=True, message="You have been unsubscribed from the newsletter."
    )

"""
Admin newsletter campaign API endpoints.

Endpoints:
- GET /api/admin/newsletter/campaigns - List campaigns
- POST /api/admin/newsletter/campaigns - Create draft
- POST /api/admin/newsletter/campaigns/process-scheduled - Run the sweeper once
- GET /api/admin/newsletter/campaigns/{id} - Get campaign
- PATCH /api/admin/newsletter/campaigns/{id} - Update unsent campaign
- DELETE /api/admin/newsletter/campaigns/{id} - Delete unsent campaign
- POST /api/admin/newsletter/campaigns/{id}/schedule - Schedule draft
- POST /api/admin/newsletter/campaigns/{id}/send - Send now
- GET /api/admin/newsletter/campaigns/{id}/stats - Delivery stats
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal, NoReturn
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field

from newsdesk.api.deps import (
    Principal,
    get_campaign_service,
    get_campaign_sweeper,
    require_admin,
)
from newsdesk.components.campaigns import (
    Campaign,
    CampaignError,
    CampaignNotFoundError,
    CampaignPatch,
    CampaignService,
    CampaignStatus,
    CreateCampaignInput,
    DeliveryFailedError,
    InvalidCampaignStateError,
)
from newsdesk.components.sweeper import CampaignSweeper

router = APIRouter()


# --- Request/Response Models ---


class CreateCampaignRequest(BaseModel):
    """Request body for a new campaign."""

    name: str = Field(..., min_length=1, max_length=200)
    subject: str = Field(..., min_length=1, max_length=200)
    content: str = Field(..., min_length=1, description="HTML body")
    target_groups: dict[str, bool] | None = Field(
        None, description="Interest groups; omitted groups are selected"
    )


class UpdateCampaignRequest(BaseModel):
    """Partial update; omitted fields are unchanged."""

    name: str | None = Field(None, min_length=1, max_length=200)
    subject: str | None = Field(None, min_length=1, max_length=200)
    content: str | None = Field(None, min_length=1)
    target_groups: dict[str, bool] | None = None


class ScheduleRequest(BaseModel):
    """Request body for scheduling."""

    scheduled_for: datetime = Field(..., description="Send time (ISO-8601, UTC if naive)")


class StatsResponse(BaseModel):
    total_sent: int


class CampaignResponse(BaseModel):
    """Campaign response."""

    id: str
    name: str
    subject: str
    content: str
    target_groups: dict[str, bool]
    status: str
    scheduled_for: str | None = None
    sent_at: str | None = None
    stats: StatsResponse
    created_by: str
    created_at: str
    updated_at: str


class CampaignListResponse(BaseModel):
    """Paginated list of campaigns."""

    campaigns: list[CampaignResponse]
    total: int = Field(..., description="Total matching campaigns")
    offset: int = Field(..., description="Current offset")
    limit: int = Field(..., description="Page size")


class SendResponse(BaseModel):
    message: str
    campaign: CampaignResponse


class SweepResultResponse(BaseModel):
    campaign_id: str
    name: str
    status: Literal["sent", "error"]
    recipient_count: int | None = None
    error: str | None = None


class ProcessScheduledResponse(BaseModel):
    message: str
    results: list[SweepResultResponse]


class DeleteResponse(BaseModel):
    """Response for delete operation."""

    success: bool
    message: str


class ErrorResponse(BaseModel):
    """Error response."""

    detail: str


# --- Helper Functions ---


def _to_response(campaign: Campaign) -> CampaignResponse:
    return CampaignResponse(
        id=str(campaign.id),
        name=campaign.name,
        subject=campaign.subject,
        content=campaign.content,
        target_groups=campaign.target_groups,
        status=campaign.status.value,
        scheduled_for=campaign.scheduled_for.isoformat() if campaign.scheduled_for else None,
        sent_at=campaign.sent_at.isoformat() if campaign.sent_at else None,
        stats=StatsResponse(total_sent=campaign.stats.total_sent),
        created_by=str(campaign.created_by),
        created_at=campaign.created_at.isoformat(),
        updated_at=campaign.updated_at.isoformat(),
    )


def _raise_http(e: CampaignError) -> NoReturn:
    """Map campaign errors to HTTP errors."""
    if isinstance(e, CampaignNotFoundError):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    if isinstance(e, DeliveryFailedError):
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Sending failed, campaign reverted to draft: {e.reason}",
        ) from e
    if isinstance(e, InvalidCampaignStateError):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
    raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e)) from e


_ERRORS: dict[int | str, dict[str, object]] = {
    401: {"model": ErrorResponse},
    403: {"model": ErrorResponse},
}


# --- Endpoints ---


@router.get(
    "/campaigns",
    response_model=CampaignListResponse,
    responses=_ERRORS,
    summary="List campaigns",
)
def list_campaigns(
    status_filter: Literal["draft", "scheduled", "sending", "sent"] | None = Query(
        None, alias="status", description="Filter by status"
    ),
    offset: int = Query(0, ge=0, description="Pagination offset"),
    limit: int = Query(50, ge=1, le=100, description="Page size"),
    user: Principal = Depends(require_admin),
    service: CampaignService = Depends(get_campaign_service),
) -> CampaignListResponse:
    """List campaigns, newest first."""
    status_enum = CampaignStatus(status_filter) if status_filter else None
    campaigns, total = service.list(status_enum, limit=limit, offset=offset)
    return CampaignListResponse(
        campaigns=[_to_response(c) for c in campaigns],
        total=total,
        offset=offset,
        limit=limit,
    )


@router.post(
    "/campaigns",
    response_model=CampaignResponse,
    status_code=status.HTTP_201_CREATED,
    responses=_ERRORS,
    summary="Create a draft campaign",
)
def create_campaign(
    body: CreateCampaignRequest,
    user: Principal = Depends(require_admin),
    service: CampaignService = Depends(get_campaign_service),
) -> CampaignResponse:
    campaign = service.create(
        CreateCampaignInput(
            name=body.name,
            subject=body.subject,
            content=body.content,
            target_groups=body.target_groups,
        ),
        creator_id=user.id,
    )
    return _to_response(campaign)


@router.post(
    "/campaigns/process-scheduled",
    response_model=ProcessScheduledResponse,
    responses=_ERRORS,
    summary="Send all due scheduled campaigns",
)
def process_scheduled(
    user: Principal = Depends(require_admin),
    sweeper: CampaignSweeper = Depends(get_campaign_sweeper),
) -> ProcessScheduledResponse:
    """
    Run one sweep.

    Per-campaign failures are reported in the results; the request itself
    succeeds.
    """
    results = sweeper.run()
    return ProcessScheduledResponse(
        message=f"Processed {len(results)} scheduled campaign(s)",
        results=[
            SweepResultResponse(
                campaign_id=str(r.campaign_id),
                name=r.name,
                status=r.status,
                recipient_count=r.recipient_count,
                error=r.error,
            )
            for r in results
        ],
    )


@router.get(
    "/campaigns/{campaign_id}",
    response_model=CampaignResponse,
    responses={**_ERRORS, 404: {"model": ErrorResponse}},
    summary="Get campaign",
)
def get_campaign(
    campaign_id: UUID,
    user: Principal = Depends(require_admin),
    service: CampaignService = Depends(get_campaign_service),
) -> CampaignResponse:
    try:
        return _to_response(service.get(campaign_id))
    except CampaignError as e:
        _raise_http(e)


@router.patch(
    "/campaigns/{campaign_id}",
    response_model=CampaignResponse,
    responses={**_ERRORS, 400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
    summary="Update an unsent campaign",
)
def update_campaign(
    campaign_id: UUID,
    body: UpdateCampaignRequest,
    user: Principal = Depends(require_admin),
    service: CampaignService = Depends(get_campaign_service),
) -> CampaignResponse:
    patch = CampaignPatch(
        name=body.name,
        subject=body.subject,
        content=body.content,
        target_groups=body.target_groups,
    )
    try:
        return _to_response(service.update(campaign_id, patch))
    except CampaignError as e:
        _raise_http(e)


@router.delete(
    "/campaigns/{campaign_id}",
    response_model=DeleteResponse,
    responses={**_ERRORS, 400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
    summary="Delete an unsent campaign",
)
def delete_campaign(
    campaign_id: UUID,
    user: Principal = Depends(require_admin),
    service: CampaignService = Depends(get_campaign_service),
) -> DeleteResponse:
    try:
        service.delete(campaign_id)
    except CampaignError as e:
        _raise_http(e)
    return DeleteResponse(success=True, message="Campaign deleted")


@router.post(
    "/campaigns/{campaign_id}/schedule",
    response_model=CampaignResponse,
    responses={**_ERRORS, 400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
    summary="Schedule a draft campaign",
)
def schedule_campaign(
    campaign_id: UUID,
    body: ScheduleRequest,
    user: Principal = Depends(require_admin),
    service: CampaignService = Depends(get_campaign_service),
) -> CampaignResponse:
    try:
        return _to_response(service.schedule(campaign_id, body.scheduled_for))
    except CampaignError as e:
        _raise_http(e)


@router.post(
    "/campaigns/{campaign_id}/send",
    response_model=SendResponse,
    responses={
        **_ERRORS,
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
    },
    summary="Send a campaign now",
)
def send_campaign(
    campaign_id: UUID,
    user: Principal = Depends(require_admin),
    service: CampaignService = Depends(get_campaign_service),
) -> SendResponse:
    try:
        campaign = service.send(campaign_id)
    except CampaignError as e:
        _raise_http(e)
    return SendResponse(
        message=f"Campaign sent to {campaign.stats.total_sent} subscriber(s)",
        campaign=_to_response(campaign),
    )


@router.get(
    "/campaigns/{campaign_id}/stats",
    response_model=StatsResponse,
    responses={**_ERRORS, 404: {"model": ErrorResponse}},
    summary="Campaign delivery stats",
)
def get_campaign_stats(
    campaign_id: UUID,
    user: Principal = Depends(require_admin),
    service: CampaignService = Depends(get_campaign_service),
) -> StatsResponse:
    try:
        stats = service.get_stats(campaign_id)
    except CampaignError as e:
        _raise_http(e)
    return StatsResponse(total_sent=stats.total_sent)

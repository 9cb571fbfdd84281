"""
Leads API Endpoints
Company lead snapshot, derived caller state, sync and lead mutations
"""
import logging
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field

from leadsync.api.v1.dependencies import (
    get_lead_activity,
    get_lead_service,
    get_optional_user,
    get_sync_service,
    get_sync_worker,
)
from leadsync.core.errors import (
    ConversationProviderError,
    LeadNotFoundError,
    PersistenceError,
    describe_error,
)
from leadsync.domain.models import (
    AIInsights,
    CallerTracking,
    CallLog,
    CallLogStatus,
    Lead,
    LeadDraft,
    Note,
    TimeBasedStatus,
)
from leadsync.domain.services.caller_grouping import group_returning_callers
from leadsync.domain.services.caller_tracking import compute_caller_tracking
from leadsync.domain.services.time_status import (
    classify,
    color_class_for,
    format_time_difference,
    text_color_for,
)
from leadsync.infrastructure.storage.profile_repository import UserProfile
from leadsync.services.lead_activity import LeadActivityListener
from leadsync.services.lead_service import LeadService
from leadsync.services.sync_service import LeadSyncService
from leadsync.utils.time_utils import ensure_aware, utc_now
from leadsync.workers.sync_worker import SyncWorker

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/companies/{company_id}/leads", tags=["Leads"])


# =============================================================================
# Request/Response Models
# =============================================================================

class LeadView(Lead):
    """Lead with the presentation state derived from the company snapshot"""
    caller_tracking: CallerTracking
    time_status: TimeBasedStatus
    color_class: str
    text_color: str
    time_label: str


class LeadListResponse(BaseModel):
    leads: List[LeadView]
    total: int


class GroupedLeadsResponse(BaseModel):
    returning_groups: List[List[LeadView]]
    single_callers: List[LeadView]


class SyncResponse(BaseModel):
    success: bool
    new_leads: int = 0
    total_leads: int = 0
    from_cache: bool = False
    skipped: bool = False
    error: Optional[str] = None


class BackfillResponse(BaseModel):
    updated: int


class AlertResponse(BaseModel):
    """Unacknowledged new-lead alert for a company"""
    new_lead_count: int = 0
    lead_ids: List[str] = []
    raised_at: Optional[datetime] = None
    conversions: int = 0


class CreateLeadRequest(BaseModel):
    """Request to add a lead by hand"""
    first_name: str = Field(..., min_length=1)
    last_name: str = ""
    company: str = ""
    email: str = ""
    phone: str = ""
    issue_description: Optional[str] = None


class AddNoteRequest(BaseModel):
    text: str = Field(..., min_length=1)


class RecordCallRequest(BaseModel):
    """Outbound call to log against a lead"""
    start_time: datetime
    end_time: datetime
    status: CallLogStatus = CallLogStatus.COMPLETED


# =============================================================================
# Helpers
# =============================================================================

async def _ensure_snapshot(
    company_id: str,
    sync_service: LeadSyncService,
    sync_worker: Optional[SyncWorker],
) -> None:
    """
    Build the company snapshot on first access and schedule background sync.

    A pass already running for the company is waited on rather than
    reported as an empty list. A failed first pass is a 502.
    """
    if not sync_service.snapshots.has(company_id):
        result = await sync_service.sync_company(company_id, foreground=True)
        if result.skipped:
            await sync_service.wait_until_idle(company_id)
            if not sync_service.snapshots.has(company_id):
                result = await sync_service.sync_company(company_id, foreground=True)
        if not result.success:
            logger.error(f"Initial sync failed for company {company_id}: {result.error}")
            raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=result.error)
    if sync_worker is not None:
        sync_worker.start_company(company_id, initial_delay=sync_worker.interval)


def present_lead(lead: Lead, all_leads: List[Lead], now: datetime) -> LeadView:
    """Attach caller tracking and time-decay styling to one lead."""
    tracking = compute_caller_tracking(all_leads, lead, now)
    # Latest of any call from this number and the lead's own last contact
    # (outbound calls, "contacted"); lead.last_contact_time alone ignores repeat calls
    last_contact = tracking.last_contact_time
    if lead.last_contact_time and (last_contact is None or ensure_aware(lead.last_contact_time) > last_contact):
        last_contact = ensure_aware(lead.last_contact_time)

    time_status = classify(last_contact, now)
    return LeadView(
        **lead.model_dump(),
        caller_tracking=tracking,
        time_status=time_status,
        color_class=color_class_for(time_status, lead.status),
        text_color=text_color_for(time_status),
        time_label=format_time_difference(last_contact, now),
    )


def _raise_http(error: Exception) -> None:
    if isinstance(error, LeadNotFoundError):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=error.message)
    if isinstance(error, (PersistenceError, ConversationProviderError)):
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=describe_error(error))
    raise error


# =============================================================================
# Endpoints
# =============================================================================

@router.get("", response_model=LeadListResponse)
async def list_leads(
    company_id: str,
    sync_service: LeadSyncService = Depends(get_sync_service),
    sync_worker: Optional[SyncWorker] = Depends(get_sync_worker),
) -> LeadListResponse:
    """
    Current lead snapshot for a company.

    The first request for a company runs a sync pass to build the snapshot
    and schedules the company for background sync.
    """
    await _ensure_snapshot(company_id, sync_service, sync_worker)

    leads = sync_service.snapshots.get(company_id)
    now = utc_now()
    return LeadListResponse(
        leads=[present_lead(lead, leads, now) for lead in leads],
        total=len(leads),
    )


@router.get("/grouped", response_model=GroupedLeadsResponse)
async def list_grouped_leads(
    company_id: str,
    sync_service: LeadSyncService = Depends(get_sync_service),
    sync_worker: Optional[SyncWorker] = Depends(get_sync_worker),
) -> GroupedLeadsResponse:
    """Leads split into returning-caller stacks and single callers."""
    await _ensure_snapshot(company_id, sync_service, sync_worker)

    leads = sync_service.snapshots.get(company_id)
    groups = group_returning_callers(leads)
    now = utc_now()
    return GroupedLeadsResponse(
        returning_groups=[
            [present_lead(lead, leads, now) for lead in group]
            for group in groups.returning_groups
        ],
        single_callers=[present_lead(lead, leads, now) for lead in groups.single_callers],
    )


@router.post("/refresh", response_model=SyncResponse)
async def refresh_leads(
    company_id: str,
    force: bool = Query(False, description="Bypass the freshness cache"),
    sync_service: LeadSyncService = Depends(get_sync_service),
    sync_worker: Optional[SyncWorker] = Depends(get_sync_worker),
    user: Optional[UserProfile] = Depends(get_optional_user),
) -> SyncResponse:
    """
    Foreground sync pass.

    Served from cache when the last fetch is fresh unless ``force`` is set.
    Restarts the company's background timer.
    """
    result = await sync_service.sync_company(company_id, foreground=True, force=force, user=user)
    if sync_worker is not None:
        sync_worker.reset_company(company_id)

    return SyncResponse(
        success=result.success,
        new_leads=result.new_count,
        total_leads=result.total_leads,
        from_cache=result.from_cache,
        skipped=result.skipped,
        error=result.error,
    )


@router.post("/backfill", response_model=BackfillResponse)
async def backfill_contact_details(
    company_id: str,
    sync_service: LeadSyncService = Depends(get_sync_service),
) -> BackfillResponse:
    """Fill missing phone numbers and emails on imported leads."""
    try:
        updated = await sync_service.backfill_contact_details(company_id)
    except (PersistenceError, ConversationProviderError) as e:
        _raise_http(e)
    return BackfillResponse(updated=updated)


@router.get("/alerts", response_model=AlertResponse)
async def get_new_lead_alert(
    company_id: str,
    lead_activity: Optional[LeadActivityListener] = Depends(get_lead_activity),
) -> AlertResponse:
    """New leads imported since the alert was last acknowledged."""
    if lead_activity is None:
        return AlertResponse()

    alert = lead_activity.latest_alert(company_id)
    conversions = lead_activity.conversion_count(company_id)
    if alert is None:
        return AlertResponse(conversions=conversions)
    return AlertResponse(
        new_lead_count=alert.count,
        lead_ids=alert.lead_ids,
        raised_at=alert.raised_at,
        conversions=conversions,
    )


@router.delete("/alerts", status_code=status.HTTP_204_NO_CONTENT)
async def acknowledge_new_lead_alert(
    company_id: str,
    lead_activity: Optional[LeadActivityListener] = Depends(get_lead_activity),
) -> None:
    if lead_activity is not None:
        lead_activity.acknowledge(company_id)


@router.post("", response_model=Lead, status_code=status.HTTP_201_CREATED)
async def create_lead(
    company_id: str,
    request: CreateLeadRequest,
    lead_service: LeadService = Depends(get_lead_service),
) -> Lead:
    draft = LeadDraft(company_id=company_id, **request.model_dump())
    try:
        return await lead_service.add_lead(company_id, draft)
    except PersistenceError as e:
        _raise_http(e)


@router.put("/{lead_id}", response_model=Lead)
async def update_lead(
    company_id: str,
    lead_id: str,
    lead: Lead,
    lead_service: LeadService = Depends(get_lead_service),
) -> Lead:
    if lead.id != lead_id or lead.company_id != company_id:
        raise HTTPException(status_code=400, detail="Lead id or company does not match the path")
    try:
        return await lead_service.update_lead(company_id, lead)
    except (LeadNotFoundError, PersistenceError) as e:
        _raise_http(e)


@router.delete("/{lead_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_lead(
    company_id: str,
    lead_id: str,
    lead_service: LeadService = Depends(get_lead_service),
) -> None:
    try:
        await lead_service.delete_lead(company_id, lead_id)
    except (LeadNotFoundError, PersistenceError, ConversationProviderError) as e:
        _raise_http(e)


@router.post("/{lead_id}/notes", response_model=Note, status_code=status.HTTP_201_CREATED)
async def add_note(
    company_id: str,
    lead_id: str,
    request: AddNoteRequest,
    lead_service: LeadService = Depends(get_lead_service),
) -> Note:
    try:
        return await lead_service.add_note(company_id, lead_id, request.text)
    except (LeadNotFoundError, PersistenceError) as e:
        _raise_http(e)


@router.post("/{lead_id}/contacted", response_model=Lead)
async def mark_contacted(
    company_id: str,
    lead_id: str,
    lead_service: LeadService = Depends(get_lead_service),
) -> Lead:
    try:
        return await lead_service.mark_contacted(company_id, lead_id)
    except (LeadNotFoundError, PersistenceError) as e:
        _raise_http(e)


@router.post("/{lead_id}/calls", response_model=CallLog, status_code=status.HTTP_201_CREATED)
async def record_call(
    company_id: str,
    lead_id: str,
    request: RecordCallRequest,
    lead_service: LeadService = Depends(get_lead_service),
) -> CallLog:
    if request.end_time < request.start_time:
        raise HTTPException(status_code=400, detail="end_time must not be before start_time")
    try:
        return await lead_service.record_outbound_call(
            company_id,
            lead_id,
            start_time=request.start_time,
            end_time=request.end_time,
            status=request.status,
        )
    except (LeadNotFoundError, PersistenceError) as e:
        _raise_http(e)


@router.post("/{lead_id}/insights", response_model=AIInsights)
async def generate_insights(
    company_id: str,
    lead_id: str,
    lead_service: LeadService = Depends(get_lead_service),
) -> AIInsights:
    """Regenerate AI insights for a lead, replacing the previous ones."""
    try:
        return await lead_service.generate_insights(company_id, lead_id)
    except (LeadNotFoundError, PersistenceError) as e:
        _raise_http(e)
    except RuntimeError as e:
        logger.error(f"Insight generation failed for lead {lead_id}: {e}")
        raise HTTPException(status_code=503, detail=str(e))

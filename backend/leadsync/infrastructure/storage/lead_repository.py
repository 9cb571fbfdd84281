"""
Lead Repository
Supabase persistence for the ``leads`` table and the row <-> Lead mapping
"""
import logging
from typing import Any, Dict, List, Optional

from supabase import Client

from leadsync.core.errors import PersistenceError, describe_error
from leadsync.domain.models.lead import (
    AIInsights,
    CallDetails,
    CallLog,
    Lead,
    LeadDraft,
    LeadSource,
    LeadStatus,
    LifecycleLabel,
    Note,
)
from leadsync.utils.company_filter import apply_company_filter
from leadsync.utils.time_utils import to_iso

logger = logging.getLogger(__name__)

LEADS_TABLE = "leads"
CONVERSATION_KEY = "source_conversation_id"

_STATUS_VALUES = {s.value: s for s in LeadStatus}
_LABEL_VALUES = {s.value: s for s in LifecycleLabel}
_SOURCE_VALUES = {s.value: s for s in LeadSource}


def _parse_status(value: Optional[str]):
    if value in _STATUS_VALUES:
        return _STATUS_VALUES[value]
    if value in _LABEL_VALUES:
        return _LABEL_VALUES[value]
    return LeadStatus.NEW


def from_row(row: Dict[str, Any]) -> Lead:
    """Build a Lead from a snake_case ``leads`` row."""
    conversation_id = row.get(CONVERSATION_KEY)
    last_outgoing = row.get("last_outgoing_call")
    history = row.get("call_history") or []
    call_details = None
    if conversation_id or last_outgoing or history:
        call_details = CallDetails(
            conversation_id=conversation_id,
            agent_id=row.get("agent_id"),
            summary_title=row.get("summary_title") or row.get("issue_description") or "",
            transcript_summary=row.get("issue_description") or "",
            call_start_time=row.get("call_start_time"),
            call_duration=row.get("call_duration_secs"),
            last_outgoing_call=CallLog(**last_outgoing) if last_outgoing else None,
            call_history=[CallLog(**c) for c in history],
        )

    insights = row.get("ai_insights")

    return Lead(
        id=str(row["id"]),
        created_at=row["created_at"],
        company_id=str(row["company_id"]),
        first_name=row.get("first_name") or "",
        last_name=row.get("last_name") or "",
        company=row.get("company") or "",
        email=row.get("email") or "",
        phone=row.get("phone") or "",
        status=_parse_status(row.get("status")),
        source=_SOURCE_VALUES.get(row.get("source"), LeadSource.MANUAL),
        issue_description=row.get("issue_description"),
        notes=[Note(**n) for n in row.get("notes") or []],
        ai_insights=AIInsights(**insights) if insights else None,
        call_details=call_details,
        last_contact_time=row.get("last_contacted_at"),
    )


def to_row(lead: LeadDraft) -> Dict[str, Any]:
    """Snake_case row for insert/upsert. Never includes id or created_at."""
    row: Dict[str, Any] = {
        "company_id": lead.company_id,
        "first_name": lead.first_name,
        "last_name": lead.last_name,
        "company": lead.company,
        "email": lead.email,
        "phone": lead.phone,
        "status": lead.status.value,
        "source": lead.source.value,
        "notes": [n.model_dump(mode="json") for n in lead.notes],
        "issue_description": lead.issue_description,
        "ai_insights": lead.ai_insights.model_dump(mode="json") if lead.ai_insights else None,
        "last_contacted_at": to_iso(lead.last_contact_time),
    }

    details = lead.call_details
    if details:
        row.update({
            CONVERSATION_KEY: details.conversation_id,
            "agent_id": details.agent_id,
            "summary_title": details.summary_title,
            "call_start_time": to_iso(details.call_start_time),
            "call_duration_secs": details.call_duration,
            "call_history": [c.model_dump(mode="json") for c in details.call_history],
            "last_outgoing_call": (
                details.last_outgoing_call.model_dump(mode="json")
                if details.last_outgoing_call else None
            ),
        })

    return row


class LeadRepository:
    """
    Supabase-backed lead storage.

    Responsibilities:
    - Load the company snapshot ordered newest-first
    - Upsert call leads keyed on the conversation id
    - Insert, update and delete individual leads
    - Wrap every client failure into PersistenceError
    """

    def __init__(self, supabase: Client):
        self.supabase = supabase

    def _execute(self, query: Any, action: str) -> List[Dict[str, Any]]:
        try:
            response = query.execute()
        except Exception as e:
            logger.error(f"Lead {action} failed: {describe_error(e)}")
            raise PersistenceError(
                describe_error(e, fallback=f"Lead {action} failed"),
                code=getattr(e, "code", None),
                details=getattr(e, "details", None),
            ) from e
        return response.data or []

    async def list_for_company(self, company_id: str) -> List[Lead]:
        query = self.supabase.table(LEADS_TABLE).select("*")
        query = apply_company_filter(query, company_id).order("created_at", desc=True)
        rows = self._execute(query, "list")
        return [from_row(row) for row in rows]

    async def list_incoming_call_leads(self, company_id: str) -> List[Lead]:
        """Incoming Call leads that carry a conversation id."""
        query = self.supabase.table(LEADS_TABLE).select("*")
        query = apply_company_filter(query, company_id)
        query = query.eq("source", LeadSource.INCOMING_CALL.value).not_.is_(CONVERSATION_KEY, "null")
        rows = self._execute(query, "list")
        return [from_row(row) for row in rows]

    async def upsert_by_conversation(self, drafts: List[LeadDraft]) -> List[Lead]:
        """Insert-or-merge on ``source_conversation_id``; returns the stored rows."""
        if not drafts:
            return []
        rows = [to_row(draft) for draft in drafts]
        query = self.supabase.table(LEADS_TABLE).upsert(rows, on_conflict=CONVERSATION_KEY)
        stored = self._execute(query, "upsert")
        logger.info(f"Upserted {len(stored)} conversation leads")
        return [from_row(row) for row in stored]

    async def insert(self, draft: LeadDraft) -> Lead:
        rows = self._execute(self.supabase.table(LEADS_TABLE).insert(to_row(draft)), "insert")
        if not rows:
            raise PersistenceError("Lead insert returned no row")
        return from_row(rows[0])

    async def update(self, lead: Lead) -> None:
        query = self.supabase.table(LEADS_TABLE).update(to_row(lead)).eq("id", lead.id)
        self._execute(query, "update")

    async def upsert_lead(self, lead: Lead) -> None:
        """Write a call lead back through its conversation id."""
        row = to_row(lead)
        row["id"] = lead.id
        query = self.supabase.table(LEADS_TABLE).upsert(row, on_conflict=CONVERSATION_KEY)
        self._execute(query, "upsert")

    async def update_fields(self, lead_id: str, fields: Dict[str, Any]) -> None:
        query = self.supabase.table(LEADS_TABLE).update(fields).eq("id", lead_id)
        self._execute(query, "update")

    async def delete_by_id(self, lead_id: str) -> None:
        self._execute(self.supabase.table(LEADS_TABLE).delete().eq("id", lead_id), "delete")

    async def delete_by_conversation(self, conversation_id: str) -> None:
        query = self.supabase.table(LEADS_TABLE).delete().eq(CONVERSATION_KEY, conversation_id)
        self._execute(query, "delete")


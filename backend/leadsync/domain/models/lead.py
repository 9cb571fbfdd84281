"""
Lead Domain Models
Lead record, its call details and the status vocabularies
"""
from datetime import datetime
from enum import Enum
from typing import List, Optional, Union
import uuid

from pydantic import BaseModel, Field

from leadsync.utils.time_utils import ensure_aware, utc_now


PLACEHOLDER_EMAIL_DOMAIN = "@imported-lead.com"
PLACEHOLDER_EMAIL_PREFIX = "conv_"
PLACEHOLDER_PHONE = "N/A"

# Bound on the per-lead call history
MAX_CALL_HISTORY = 10


class LeadStatus(str, Enum):
    """Lifecycle status of a lead"""
    NEW = "New"
    CONTACTED = "Contacted"
    QUALIFIED = "Qualified"
    UNQUALIFIED = "Unqualified"
    CLOSED_WON = "Closed - Won"
    CLOSED_LOST = "Closed - Lost"


class LifecycleLabel(str, Enum):
    """
    Long-term labels checked by the card color classifier.

    Kept separate from LeadStatus: none of these values is a LeadStatus,
    so the override only fires for rows carrying one of these labels.
    """
    CLIENT = "Client"
    LOST = "Lost"
    ARCHIVE = "Archive"


class LeadSource(str, Enum):
    """Where a lead came from. Set at creation."""
    MANUAL = "Manual"
    INCOMING_CALL = "Incoming Call"
    BOT = "Bot"
    WEB_FORM = "Web Form"


class CallType(str, Enum):
    INCOMING = "incoming"
    OUTGOING = "outgoing"


class CallLogStatus(str, Enum):
    COMPLETED = "completed"
    MISSED = "missed"
    CANCELLED = "cancelled"


class Note(BaseModel):
    """Free-text annotation on a lead"""
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    text: str
    created_at: datetime = Field(default_factory=utc_now)


class CallLog(BaseModel):
    """Single call attempt recorded against a lead"""
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    start_time: datetime
    end_time: datetime
    duration: int = Field(..., ge=0, description="Duration in seconds")
    type: CallType = CallType.OUTGOING
    status: Optional[CallLogStatus] = CallLogStatus.COMPLETED


class CallDetails(BaseModel):
    """
    Call correlation data.

    conversation_id is the deduplication key for imported calls. Manual
    leads carry details without one once an outbound call is logged.
    """
    conversation_id: Optional[str] = None
    agent_id: Optional[str] = None
    summary_title: str = ""
    transcript_summary: str = ""
    call_start_time: Optional[datetime] = None
    call_duration: Optional[int] = None
    last_outgoing_call: Optional[CallLog] = None
    call_history: List[CallLog] = []

    def with_call(self, call: CallLog) -> "CallDetails":
        """Copy with ``call`` prepended to the bounded history."""
        history = [call, *self.call_history][:MAX_CALL_HISTORY]
        update = {"call_history": history}
        if call.type == CallType.OUTGOING:
            update["last_outgoing_call"] = call
        return self.model_copy(update=update)


class AIInsights(BaseModel):
    """Structured analysis of a lead. Replaced wholesale when regenerated."""
    qualification_score: int = 50
    justification: str = ""
    key_pain_points: List[str] = []
    suggested_next_steps: List[str] = []
    detailed_analysis: Optional[str] = None


class LeadDraft(BaseModel):
    """Lead fields before the persistence layer assigns id and created_at"""
    company_id: str
    first_name: str
    last_name: str
    company: str = ""
    email: str = ""
    phone: str = ""
    # Legacy rows may still carry a lifecycle label
    status: Union[LeadStatus, LifecycleLabel] = LeadStatus.NEW
    source: LeadSource = LeadSource.MANUAL
    issue_description: Optional[str] = None
    notes: List[Note] = []
    ai_insights: Optional[AIInsights] = None
    call_details: Optional[CallDetails] = None
    last_contact_time: Optional[datetime] = None

    @property
    def conversation_id(self) -> Optional[str]:
        if self.call_details and self.call_details.conversation_id:
            return self.call_details.conversation_id
        return None


class Lead(LeadDraft):
    """Prospective customer record"""
    id: str
    created_at: datetime

    @property
    def contact_time(self) -> datetime:
        """Call start time when known, otherwise the creation time."""
        if self.call_details and self.call_details.call_start_time:
            return ensure_aware(self.call_details.call_start_time)
        return ensure_aware(self.created_at)

    @property
    def is_incoming_call(self) -> bool:
        return self.source == LeadSource.INCOMING_CALL

    @property
    def has_real_email(self) -> bool:
        return not is_placeholder_email(self.email)

    @property
    def display_email(self) -> str:
        return self.email if self.has_real_email else "None"

    @property
    def has_phone(self) -> bool:
        """False for empty phones and the "N/A" placeholder."""
        return bool(self.phone) and self.phone != PLACEHOLDER_PHONE

    @property
    def display_phone(self) -> str:
        return self.phone if self.has_phone else "Not provided"

    @property
    def full_name(self) -> str:
        return " ".join(p for p in (self.first_name, self.last_name) if p)


def is_placeholder_email(email: Optional[str]) -> bool:
    """True for synthesized addresses that stand in for a missing email."""
    if not email:
        return True
    return PLACEHOLDER_EMAIL_DOMAIN in email or email.startswith(PLACEHOLDER_EMAIL_PREFIX)

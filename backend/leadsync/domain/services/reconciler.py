"""
Conversation Reconciler
Diffs provider conversations against stored leads and materializes
lead drafts for the conversations that are not represented yet.

Deduplication is a full-set diff keyed on conversation id: every pass
re-scans the whole existing lead set and the whole fetched conversation
list. Storage is an upsert keyed on ``source_conversation_id`` so two
overlapping passes converge on one stored lead per conversation.
"""
import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Protocol, Set

from leadsync.domain.models.conversation import Conversation
from leadsync.domain.models.lead import (
    CallDetails,
    Lead,
    LeadDraft,
    LeadSource,
    LeadStatus,
)
from leadsync.domain.services.field_extraction import (
    extract_email,
    extract_name,
    extract_phone,
)
from leadsync.utils.time_utils import from_unix_seconds

logger = logging.getLogger(__name__)

DEFAULT_SUMMARY_TITLE = "Phone Conversation"
DEFAULT_TRANSCRIPT_SUMMARY = "Call imported from conversation provider"


class LeadWriter(Protocol):
    """Persistence operation the reconciler needs"""

    async def upsert_by_conversation(self, drafts: List[LeadDraft]) -> List[Lead]:
        ...


@dataclass
class ReconcileResult:
    """Outcome of one reconciliation pass"""
    drafts: List[LeadDraft] = field(default_factory=list)
    new_leads: List[Lead] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def new_count(self) -> int:
        return len(self.new_leads)


def existing_conversation_ids(leads: Iterable[Lead]) -> Set[str]:
    """Conversation ids already represented by an Incoming Call lead."""
    return {
        lead.conversation_id
        for lead in leads
        if lead.source == LeadSource.INCOMING_CALL and lead.conversation_id
    }


def find_new_conversations(
    existing_leads: Iterable[Lead],
    conversations: Iterable[Conversation],
) -> List[Conversation]:
    """
    Conversations with no lead yet, in provider order.

    A conversation id repeated inside one fetched batch is only kept once.
    """
    seen = existing_conversation_ids(existing_leads)
    fresh: List[Conversation] = []
    for conversation in conversations:
        if conversation.conversation_id in seen:
            continue
        seen.add(conversation.conversation_id)
        fresh.append(conversation)
    return fresh


def build_lead_from_conversation(company_id: str, conversation: Conversation) -> LeadDraft:
    """Synthesize a lead draft from a conversation via heuristic extraction."""
    first_name, last_name = extract_name(conversation)
    transcript = conversation.transcript_summary or DEFAULT_TRANSCRIPT_SUMMARY

    return LeadDraft(
        company_id=company_id,
        first_name=first_name,
        last_name=last_name,
        company="",
        email=extract_email(conversation),
        phone=extract_phone(conversation),
        status=LeadStatus.NEW,
        source=LeadSource.INCOMING_CALL,
        issue_description=transcript,
        notes=[],
        ai_insights=None,
        call_details=CallDetails(
            conversation_id=conversation.conversation_id,
            agent_id=conversation.agent_id,
            summary_title=conversation.summary_title or DEFAULT_SUMMARY_TITLE,
            transcript_summary=transcript,
            call_start_time=from_unix_seconds(conversation.start_time_unix_secs),
            call_duration=conversation.call_duration_secs,
        ),
    )


def reconcile(
    company_id: str,
    existing_leads: List[Lead],
    conversations: List[Conversation],
) -> ReconcileResult:
    """Pure reconciliation: drafts for every conversation not yet stored."""
    new_conversations = find_new_conversations(existing_leads, conversations)
    drafts = [build_lead_from_conversation(company_id, conv) for conv in new_conversations]
    return ReconcileResult(drafts=drafts)


def _newest_first(leads: List[Lead]) -> List[Lead]:
    return sorted(leads, key=lambda lead: lead.contact_time, reverse=True)


class ConversationReconciler:
    """
    Reconciles conversations against a lead snapshot and stores the result.

    Upsert failures are logged and reported on the result; nothing already
    applied elsewhere is rolled back.
    """

    def __init__(self, writer: LeadWriter):
        self._writer = writer

    async def reconcile_and_store(
        self,
        company_id: str,
        existing_leads: List[Lead],
        conversations: List[Conversation],
    ) -> ReconcileResult:
        result = reconcile(company_id, existing_leads, conversations)

        if not result.drafts:
            logger.info(f"No new conversations for company {company_id}")
            return result

        logger.info(f"Saving {len(result.drafts)} new conversations for company {company_id}")

        try:
            stored = await self._writer.upsert_by_conversation(result.drafts)
        except Exception as e:
            logger.error(f"Failed to upsert conversation leads for company {company_id}: {e}", exc_info=True)
            result.error = str(e)
            return result

        result.new_leads = _newest_first(stored)
        return result

"""
Lead Service
User-initiated lead mutations applied optimistically to the company snapshot
"""
import logging
from datetime import datetime
from typing import Awaitable, Callable, List, Optional

from leadsync.core.errors import ConversationProviderError, LeadNotFoundError
from leadsync.domain.models.lead import (
    AIInsights,
    CallDetails,
    CallLog,
    CallLogStatus,
    CallType,
    Lead,
    LeadDraft,
    LeadSource,
    LeadStatus,
    Note,
)
from leadsync.domain.services.optimistic import with_optimistic_update
from leadsync.infrastructure.conversations.client import ConversationProviderClient
from leadsync.infrastructure.llm.insights import InsightGenerator
from leadsync.infrastructure.notifications.email_notifier import EmailNotifier
from leadsync.infrastructure.storage.lead_repository import LeadRepository
from leadsync.infrastructure.storage.profile_repository import ProfileRepository
from leadsync.services.sync_service import LeadSnapshotStore
from leadsync.utils.time_utils import utc_now

logger = logging.getLogger(__name__)


class LeadService:
    """
    Mutations on one company's leads.

    Responsibilities:
    - Apply each change to the snapshot before the write completes
    - Restore the snapshot when the write fails and re-raise
    - Route call leads through the conversation-keyed upsert
    - Notify company admins when a note is added
    """

    def __init__(
        self,
        repository: LeadRepository,
        snapshots: LeadSnapshotStore,
        provider: Optional[ConversationProviderClient] = None,
        notifier: Optional[EmailNotifier] = None,
        profiles: Optional[ProfileRepository] = None,
        insight_generator: Optional[InsightGenerator] = None,
    ):
        self.repository = repository
        self.snapshots = snapshots
        self.provider = provider
        self.notifier = notifier
        self.profiles = profiles
        self.insight_generator = insight_generator

    def get_lead(self, company_id: str, lead_id: str) -> Lead:
        for lead in self.snapshots.get(company_id):
            if lead.id == lead_id:
                return lead
        raise LeadNotFoundError(lead_id)

    async def _optimistic(
        self,
        company_id: str,
        change: Callable[[List[Lead]], List[Lead]],
        commit: Callable[[], Awaitable[None]],
    ) -> None:
        await with_optimistic_update(
            snapshot=lambda: self.snapshots.get(company_id),
            apply=lambda: self.snapshots.apply(company_id, change),
            commit=commit,
            revert=lambda previous: self.snapshots.replace(company_id, previous),
        )

    async def _persist(self, lead: Lead) -> None:
        if lead.is_incoming_call and lead.conversation_id:
            await self.repository.upsert_lead(lead)
        else:
            await self.repository.update(lead)

    async def _replace(self, company_id: str, updated: Lead) -> Lead:
        await self._optimistic(
            company_id,
            lambda leads: [updated if lead.id == updated.id else lead for lead in leads],
            lambda: self._persist(updated),
        )
        return updated

    async def add_lead(self, company_id: str, draft: LeadDraft) -> Lead:
        """Store a manually entered lead and put it at the top of the snapshot."""
        draft = draft.model_copy(update={
            "company_id": company_id,
            "source": LeadSource.MANUAL,
            "status": LeadStatus.NEW,
        })
        lead = await self.repository.insert(draft)
        self.snapshots.prepend(company_id, [lead])
        logger.info(f"Added lead {lead.id} for company {company_id}")
        return lead

    async def update_lead(self, company_id: str, lead: Lead) -> Lead:
        self.get_lead(company_id, lead.id)
        return await self._replace(company_id, lead)

    async def delete_lead(self, company_id: str, lead_id: str) -> None:
        """
        Remove a lead.

        Call leads are deleted upstream first so the next sync pass does
        not import them again; an upstream 404 means it is already gone.
        """
        lead = self.get_lead(company_id, lead_id)

        async def commit() -> None:
            if lead.is_incoming_call and lead.conversation_id:
                await self._delete_conversation(lead.conversation_id)
                await self.repository.delete_by_conversation(lead.conversation_id)
            else:
                await self.repository.delete_by_id(lead.id)

        await self._optimistic(
            company_id,
            lambda leads: [item for item in leads if item.id != lead_id],
            commit,
        )
        logger.info(f"Deleted lead {lead_id} for company {company_id}")

    async def _delete_conversation(self, conversation_id: str) -> None:
        if self.provider is None:
            return
        try:
            await self.provider.delete_conversation(conversation_id)
        except ConversationProviderError as e:
            if e.status_code != 404:
                raise
            logger.info(f"Conversation {conversation_id} already removed upstream")

    async def add_note(self, company_id: str, lead_id: str, text: str) -> Note:
        lead = self.get_lead(company_id, lead_id)
        note = Note(text=text)
        await self._replace(company_id, lead.model_copy(update={"notes": [note, *lead.notes]}))

        if self.notifier and self.profiles:
            recipients = await self.profiles.notification_recipients(company_id)
            await self.notifier.send_message(lead, f"New note on {lead.full_name}: {text}", recipients)
        return note

    async def mark_contacted(self, company_id: str, lead_id: str) -> Lead:
        lead = self.get_lead(company_id, lead_id)
        return await self._replace(company_id, lead.model_copy(update={
            "status": LeadStatus.CONTACTED,
            "last_contact_time": utc_now(),
        }))

    async def record_outbound_call(
        self,
        company_id: str,
        lead_id: str,
        start_time: datetime,
        end_time: datetime,
        status: CallLogStatus = CallLogStatus.COMPLETED,
    ) -> CallLog:
        """Log an outgoing call; history stays most-recent-first and bounded."""
        lead = self.get_lead(company_id, lead_id)
        call = CallLog(
            start_time=start_time,
            end_time=end_time,
            duration=max(0, int((end_time - start_time).total_seconds())),
            type=CallType.OUTGOING,
            status=status,
        )
        details = lead.call_details or CallDetails()
        await self._replace(company_id, lead.model_copy(update={
            "call_details": details.with_call(call),
            "last_contact_time": end_time,
        }))
        return call

    async def generate_insights(self, company_id: str, lead_id: str) -> AIInsights:
        """Regenerate a lead's insights; the previous insights are replaced."""
        if self.insight_generator is None:
            raise RuntimeError("Insight generation is not configured. Set GROQ_API_KEY.")
        lead = self.get_lead(company_id, lead_id)
        insights = await self.insight_generator.generate(lead)
        await self._replace(company_id, lead.model_copy(update={"ai_insights": insights}))
        return insights

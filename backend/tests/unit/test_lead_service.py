"""
Unit Tests for Lead Service
Optimistic mutations with rollback on failed writes.
"""
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest

from leadsync.core.errors import ConversationProviderError, LeadNotFoundError, PersistenceError
from leadsync.domain.models import (
    AIInsights,
    CallLogStatus,
    Lead,
    LeadDraft,
    LeadSource,
    LeadStatus,
)
from leadsync.services.lead_service import LeadService
from leadsync.services.sync_service import LeadSnapshotStore

NOW = datetime(2025, 6, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def repository():
    return AsyncMock()


@pytest.fixture
def snapshots():
    return LeadSnapshotStore()


@pytest.fixture
def provider():
    return AsyncMock()


@pytest.fixture
def service(repository, snapshots, provider):
    return LeadService(repository, snapshots, provider=provider)


@pytest.fixture
def call_lead(make_lead, snapshots):
    lead = make_lead("call-lead", conversation_id="c1")
    manual = make_lead("manual-lead", source=LeadSource.MANUAL)
    snapshots.replace("company-1", [lead, manual])
    return lead


class TestAddLead:
    @pytest.mark.asyncio
    async def test_manual_lead_is_prepended(self, service, repository, snapshots, call_lead):
        """Test that source and status are forced for manual entry."""
        repository.insert.side_effect = lambda draft: Lead(id="added", created_at=NOW, **draft.model_dump())
        draft = LeadDraft(
            company_id="ignored",
            first_name="Ann",
            last_name="Lee",
            source=LeadSource.BOT,
            status=LeadStatus.QUALIFIED,
        )

        lead = await service.add_lead("company-1", draft)

        assert lead.source == LeadSource.MANUAL
        assert lead.status == LeadStatus.NEW
        assert lead.company_id == "company-1"
        assert snapshots.get("company-1")[0].id == "added"


class TestUpdateLead:
    """Tests for update_lead."""

    @pytest.mark.asyncio
    async def test_call_lead_upserts_on_conversation(self, service, repository, snapshots, call_lead):
        updated = call_lead.model_copy(update={"company": "Acme"})

        await service.update_lead("company-1", updated)

        repository.upsert_lead.assert_awaited_once_with(updated)
        repository.update.assert_not_called()
        assert snapshots.get("company-1")[0].company == "Acme"

    @pytest.mark.asyncio
    async def test_manual_lead_updates_by_id(self, service, repository, snapshots, call_lead):
        manual = snapshots.get("company-1")[1]
        updated = manual.model_copy(update={"company": "Acme"})

        await service.update_lead("company-1", updated)

        repository.update.assert_awaited_once_with(updated)
        repository.upsert_lead.assert_not_called()

    @pytest.mark.asyncio
    async def test_failed_write_rolls_back(self, service, repository, snapshots, call_lead):
        """Test that the snapshot is restored when the write fails."""
        repository.upsert_lead.side_effect = PersistenceError("update failed")

        with pytest.raises(PersistenceError):
            await service.update_lead("company-1", call_lead.model_copy(update={"company": "Acme"}))

        assert snapshots.get("company-1")[0].company == ""

    @pytest.mark.asyncio
    async def test_unknown_lead(self, service, make_lead, call_lead):
        with pytest.raises(LeadNotFoundError):
            await service.update_lead("company-1", make_lead("nope"))


class TestDeleteLead:
    """Tests for delete_lead."""

    @pytest.mark.asyncio
    async def test_call_lead_deletes_upstream_first(self, service, repository, provider, snapshots, call_lead):
        await service.delete_lead("company-1", "call-lead")

        provider.delete_conversation.assert_awaited_once_with("c1")
        repository.delete_by_conversation.assert_awaited_once_with("c1")
        assert [lead.id for lead in snapshots.get("company-1")] == ["manual-lead"]

    @pytest.mark.asyncio
    async def test_upstream_404_is_tolerated(self, service, repository, provider, call_lead):
        provider.delete_conversation.side_effect = ConversationProviderError("gone", status_code=404)

        await service.delete_lead("company-1", "call-lead")

        repository.delete_by_conversation.assert_awaited_once_with("c1")

    @pytest.mark.asyncio
    async def test_upstream_failure_rolls_back(self, service, repository, provider, snapshots, call_lead):
        provider.delete_conversation.side_effect = ConversationProviderError("boom", status_code=500)

        with pytest.raises(ConversationProviderError):
            await service.delete_lead("company-1", "call-lead")

        repository.delete_by_conversation.assert_not_called()
        assert len(snapshots.get("company-1")) == 2

    @pytest.mark.asyncio
    async def test_manual_lead_deleted_by_id(self, service, repository, provider, call_lead):
        await service.delete_lead("company-1", "manual-lead")

        repository.delete_by_id.assert_awaited_once_with("manual-lead")
        provider.delete_conversation.assert_not_called()


class TestLeadActivity:
    """Tests for notes, contact marking, call logging and insights."""

    @pytest.mark.asyncio
    async def test_add_note_prepends_and_notifies(self, repository, snapshots, call_lead):
        notifier = AsyncMock()
        profiles = AsyncMock()
        profiles.notification_recipients.return_value = ["owner@example.com"]
        service = LeadService(repository, snapshots, notifier=notifier, profiles=profiles)

        await service.add_note("company-1", "call-lead", "first")
        note = await service.add_note("company-1", "call-lead", "second")

        notes = snapshots.get("company-1")[0].notes
        assert [n.text for n in notes] == ["second", "first"]
        assert notes[0].id == note.id
        assert notifier.send_message.await_count == 2
        assert notifier.send_message.await_args.args[2] == ["owner@example.com"]

    @pytest.mark.asyncio
    async def test_mark_contacted(self, service, snapshots, call_lead):
        lead = await service.mark_contacted("company-1", "call-lead")

        assert lead.status == LeadStatus.CONTACTED
        assert lead.last_contact_time is not None
        assert snapshots.get("company-1")[0].status == LeadStatus.CONTACTED

    @pytest.mark.asyncio
    async def test_record_outbound_call(self, service, snapshots, call_lead):
        start = NOW - timedelta(minutes=5)

        call = await service.record_outbound_call("company-1", "call-lead", start, NOW)

        lead = snapshots.get("company-1")[0]
        assert call.duration == 300
        assert lead.call_details.call_history[0].id == call.id
        assert lead.call_details.last_outgoing_call.id == call.id
        assert lead.call_details.conversation_id == "c1"
        assert lead.last_contact_time == NOW

    @pytest.mark.asyncio
    async def test_call_history_is_bounded(self, service, snapshots, call_lead):
        """Test that only the ten most recent calls are kept."""
        for i in range(12):
            start = NOW + timedelta(hours=i)
            await service.record_outbound_call(
                "company-1", "call-lead", start, start + timedelta(minutes=1), CallLogStatus.MISSED
            )

        history = snapshots.get("company-1")[0].call_details.call_history
        assert len(history) == 10
        assert history[0].start_time == NOW + timedelta(hours=11)

    @pytest.mark.asyncio
    async def test_manual_lead_gets_call_details(self, service, snapshots, call_lead):
        await service.record_outbound_call("company-1", "manual-lead", NOW - timedelta(minutes=1), NOW)

        manual = snapshots.get("company-1")[1]
        assert manual.call_details.conversation_id is None
        assert len(manual.call_details.call_history) == 1

    @pytest.mark.asyncio
    async def test_generate_insights_replaces_previous(self, repository, snapshots, make_lead):
        old = AIInsights(qualification_score=10, key_pain_points=["old"])
        snapshots.replace("company-1", [make_lead("lead-1", ai_insights=old)])
        generator = AsyncMock()
        generator.generate.return_value = AIInsights(qualification_score=90, justification="Hot lead")
        service = LeadService(repository, snapshots, insight_generator=generator)

        insights = await service.generate_insights("company-1", "lead-1")

        stored = snapshots.get("company-1")[0].ai_insights
        assert insights.qualification_score == 90
        assert stored.key_pain_points == []

    @pytest.mark.asyncio
    async def test_generate_insights_unconfigured(self, service, call_lead):
        with pytest.raises(RuntimeError, match="GROQ_API_KEY"):
            await service.generate_insights("company-1", "call-lead")

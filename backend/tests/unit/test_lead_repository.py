"""
Unit Tests for Lead Repository
Row mapping and Supabase query construction.
"""
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from leadsync.core.errors import PersistenceError
from leadsync.domain.models import (
    CallDetails,
    CallLog,
    LeadDraft,
    LeadSource,
    LeadStatus,
    LifecycleLabel,
)
from leadsync.infrastructure.storage.lead_repository import LeadRepository, from_row, to_row


def _row(**overrides):
    row = {
        "id": "lead-1",
        "created_at": "2025-06-15T12:00:00+00:00",
        "company_id": "company-1",
        "first_name": "John",
        "last_name": "Doe",
        "company": None,
        "email": "c1@imported-lead.com",
        "phone": "5551234567",
        "status": "New",
        "source": "Incoming Call",
        "notes": [],
        "issue_description": "Asked about pricing",
        "source_conversation_id": "c1",
        "ai_insights": None,
        "summary_title": "Mr. John Doe",
        "call_start_time": "2025-06-15T11:30:00+00:00",
        "call_duration_secs": 120,
        "call_history": [],
        "last_outgoing_call": None,
        "last_contacted_at": None,
    }
    row.update(overrides)
    return row


class TestRowMapping:
    """Tests for from_row and to_row."""

    def test_from_row_builds_call_details(self):
        lead = from_row(_row())

        assert lead.id == "lead-1"
        assert lead.company == ""
        assert lead.source == LeadSource.INCOMING_CALL
        assert lead.conversation_id == "c1"
        assert lead.call_details.summary_title == "Mr. John Doe"
        assert lead.call_details.call_duration == 120
        assert lead.contact_time == datetime(2025, 6, 15, 11, 30, tzinfo=timezone.utc)
        assert lead.has_real_email is False

    def test_from_row_without_conversation(self):
        lead = from_row(_row(source_conversation_id=None, source="Manual"))

        assert lead.call_details is None
        assert lead.source == LeadSource.MANUAL

    def test_from_row_keeps_lifecycle_label(self):
        """Test that legacy lifecycle labels survive loading."""
        assert from_row(_row(status="Client")).status == LifecycleLabel.CLIENT

    def test_from_row_unknown_status_defaults_to_new(self):
        assert from_row(_row(status="Mystery")).status == LeadStatus.NEW

    def test_to_row_serializes_json_columns(self):
        call = CallLog(
            start_time=datetime(2025, 6, 15, 10, 0, tzinfo=timezone.utc),
            end_time=datetime(2025, 6, 15, 10, 5, tzinfo=timezone.utc),
            duration=300,
        )
        draft = LeadDraft(
            company_id="company-1",
            first_name="Jane",
            last_name="Doe",
            source=LeadSource.INCOMING_CALL,
            call_details=CallDetails(conversation_id="c2").with_call(call),
        )

        row = to_row(draft)

        assert row["source_conversation_id"] == "c2"
        assert row["status"] == "New"
        assert row["source"] == "Incoming Call"
        assert row["call_history"][0]["duration"] == 300
        assert row["last_outgoing_call"]["type"] == "outgoing"
        assert row["call_history"][0]["start_time"].startswith("2025-06-15T10:00:00")
        assert "id" not in row

    def test_round_trip_preserves_history(self):
        call = CallLog(
            start_time=datetime(2025, 6, 15, 10, 0, tzinfo=timezone.utc),
            end_time=datetime(2025, 6, 15, 10, 1, tzinfo=timezone.utc),
            duration=60,
        )
        draft = LeadDraft(
            company_id="company-1",
            first_name="Jane",
            last_name="Doe",
            call_details=CallDetails().with_call(call),
        )
        row = to_row(draft)
        row.update(id="lead-9", created_at="2025-06-15T09:00:00+00:00")

        lead = from_row(row)

        assert lead.call_details.call_history[0].duration == 60
        assert lead.call_details.last_outgoing_call.id == call.id


class TestLeadRepository:
    """Tests for LeadRepository queries."""

    @pytest.mark.asyncio
    async def test_list_for_company_filters_and_orders(self, mock_supabase):
        mock_supabase.query.execute.return_value = MagicMock(data=[_row()])
        repo = LeadRepository(mock_supabase)

        leads = await repo.list_for_company("company-1")

        assert [lead.id for lead in leads] == ["lead-1"]
        mock_supabase.table.assert_called_with("leads")
        mock_supabase.query.eq.assert_any_call("company_id", "company-1")
        mock_supabase.query.order.assert_called_with("created_at", desc=True)

    @pytest.mark.asyncio
    async def test_upsert_uses_conversation_conflict_key(self, mock_supabase):
        mock_supabase.query.execute.return_value = MagicMock(data=[_row()])
        repo = LeadRepository(mock_supabase)
        draft = LeadDraft(
            company_id="company-1",
            first_name="John",
            last_name="Doe",
            call_details=CallDetails(conversation_id="c1"),
        )

        stored = await repo.upsert_by_conversation([draft])

        assert len(stored) == 1
        _, kwargs = mock_supabase.query.upsert.call_args
        assert kwargs["on_conflict"] == "source_conversation_id"

    @pytest.mark.asyncio
    async def test_upsert_empty_list_skips_query(self, mock_supabase):
        repo = LeadRepository(mock_supabase)

        assert await repo.upsert_by_conversation([]) == []
        mock_supabase.table.assert_not_called()

    @pytest.mark.asyncio
    async def test_failures_become_persistence_errors(self, mock_supabase):
        """Test that client exceptions are wrapped with code and details."""
        failure = Exception("violates row-level security")
        failure.code = "42501"
        failure.details = None
        mock_supabase.query.execute.side_effect = failure
        repo = LeadRepository(mock_supabase)

        with pytest.raises(PersistenceError) as exc_info:
            await repo.delete_by_id("lead-1")

        assert exc_info.value.code == "42501"
        assert "row-level security" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_delete_by_conversation(self, mock_supabase):
        repo = LeadRepository(mock_supabase)

        await repo.delete_by_conversation("c1")

        mock_supabase.query.delete.assert_called_once()
        mock_supabase.query.eq.assert_called_with("source_conversation_id", "c1")

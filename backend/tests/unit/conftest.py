"""
Shared fixtures for lead sync unit tests.
"""
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional
from unittest.mock import MagicMock

import pytest

from leadsync.domain.models import (
    CallDetails,
    Conversation,
    Lead,
    LeadSource,
    LeadStatus,
)

NOW = datetime(2025, 6, 15, 12, 0, tzinfo=timezone.utc)


def build_lead(
    lead_id: Optional[str] = None,
    phone: str = "5551234567",
    company_id: str = "company-1",
    created_at: Optional[datetime] = None,
    call_start_time: Optional[datetime] = None,
    conversation_id: Optional[str] = None,
    source: LeadSource = LeadSource.INCOMING_CALL,
    status=LeadStatus.NEW,
    **fields,
) -> Lead:
    call_details = None
    if conversation_id or call_start_time:
        call_details = CallDetails(
            conversation_id=conversation_id,
            call_start_time=call_start_time,
        )
    return Lead(
        id=lead_id or str(uuid.uuid4()),
        created_at=created_at or NOW - timedelta(days=30),
        company_id=company_id,
        first_name=fields.pop("first_name", "Jane"),
        last_name=fields.pop("last_name", "Doe"),
        email=fields.pop("email", "jane@example.com"),
        phone=phone,
        status=status,
        source=source,
        call_details=call_details,
        **fields,
    )


@pytest.fixture
def make_lead():
    """Factory for Lead records with sensible defaults."""
    return build_lead


@pytest.fixture
def make_conversation():
    """Factory for provider conversations."""
    def _make(conversation_id: str = "c1", **fields) -> Conversation:
        return Conversation(conversation_id=conversation_id, **fields)
    return _make


@pytest.fixture
def mock_supabase():
    """Supabase client whose query builder chains back onto itself."""
    client = MagicMock()
    query = MagicMock()
    for method in ("select", "eq", "order", "upsert", "insert", "update", "delete", "single", "is_"):
        getattr(query, method).return_value = query
    query.not_ = query
    query.execute.return_value = MagicMock(data=[])
    client.table.return_value = query
    client.query = query
    return client

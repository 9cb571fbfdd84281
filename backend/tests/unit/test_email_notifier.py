"""
Unit Tests for Email Notifier
"""
from unittest.mock import MagicMock

import pytest

from leadsync.infrastructure.notifications.email_notifier import EmailNotifier, render_new_lead_message


class TestRenderNewLeadMessage:
    def test_placeholders_are_hidden(self, make_lead):
        """Test that placeholder phone and email render as not provided."""
        lead = make_lead(phone="N/A", email="c1@imported-lead.com", issue_description="Needs a quote")

        message = render_new_lead_message(lead)

        assert "Phone: Not provided" in message
        assert "Email: Not provided" in message
        assert "Issue: Needs a quote" in message
        assert "Name: Jane Doe" in message


class TestEmailNotifier:
    """Tests for EmailNotifier."""

    @pytest.mark.asyncio
    async def test_invokes_edge_function(self, make_lead):
        supabase = MagicMock()
        lead = make_lead("lead-1")
        notifier = EmailNotifier(supabase, "sendgrid-notifications")

        sent = await notifier.send_message(lead, "hello", ["owner@example.com"])

        assert sent is True
        name, = supabase.functions.invoke.call_args.args
        body = supabase.functions.invoke.call_args.kwargs["invoke_options"]["body"]
        assert name == "sendgrid-notifications"
        assert body["type"] == "new_message"
        assert body["recipientEmails"] == ["owner@example.com"]
        assert body["messageData"]["leadId"] == "lead-1"
        assert body["messageData"]["message"] == "hello"
        assert body["companyId"] == "company-1"

    @pytest.mark.asyncio
    async def test_failure_is_logged_not_raised(self, make_lead):
        supabase = MagicMock()
        supabase.functions.invoke.side_effect = Exception("function not found")

        sent = await EmailNotifier(supabase).send_new_lead(make_lead(), ["owner@example.com"])

        assert sent is False

    @pytest.mark.asyncio
    async def test_no_recipients_skips_send(self, make_lead):
        supabase = MagicMock()

        sent = await EmailNotifier(supabase).send_message(make_lead(), "hello", [])

        assert sent is False
        supabase.functions.invoke.assert_not_called()

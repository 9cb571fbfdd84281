"""
Email Notifier
Sends lead notifications through the Supabase email edge function
"""
import logging
from typing import List

from supabase import Client

from leadsync.domain.models.lead import Lead
from leadsync.utils.time_utils import utc_now

logger = logging.getLogger(__name__)


def render_new_lead_message(lead: Lead) -> str:
    """Plain-text body announcing a newly imported lead."""
    if lead.call_details and lead.call_details.call_start_time:
        when = f"Call Time: {lead.call_details.call_start_time.isoformat()}"
    else:
        when = f"Created: {lead.created_at.isoformat()}"

    email = lead.email if lead.has_real_email else "Not provided"
    lines = [
        "A new lead has been received:",
        "",
        f"Name: {lead.full_name}",
        f"Phone: {lead.display_phone}",
        f"Email: {email}",
        f"Source: {lead.source.value}",
        when,
    ]
    if lead.issue_description:
        lines += ["", f"Issue: {lead.issue_description}"]
    lines += ["", "Please log in to review and respond to this lead."]
    return "\n".join(lines)


class EmailNotifier:
    """
    Best-effort email delivery.

    Failures are logged and reported as ``False``; a notification never
    fails the operation that triggered it.
    """

    def __init__(self, supabase: Client, function_name: str = "sendgrid-notifications"):
        self.supabase = supabase
        self.function_name = function_name

    async def send_message(self, lead: Lead, body: str, recipients: List[str]) -> bool:
        """Send ``body`` about ``lead`` to every recipient."""
        if not recipients:
            logger.info(f"No notification recipients for lead {lead.id}")
            return False

        payload = {
            "type": "new_message",
            "messageData": {
                "leadId": lead.id,
                "leadName": lead.full_name,
                "leadEmail": lead.email,
                "message": body,
                "timestamp": utc_now().isoformat(),
            },
            "recipientEmails": recipients,
            "companyId": lead.company_id,
        }

        try:
            self.supabase.functions.invoke(self.function_name, invoke_options={"body": payload})
        except Exception as e:
            logger.error(f"Error sending email notification for lead {lead.id}: {e}")
            return False

        logger.info(f"Email notification sent for lead {lead.id} to {len(recipients)} recipient(s)")
        return True

    async def send_new_lead(self, lead: Lead, recipients: List[str]) -> bool:
        return await self.send_message(lead, render_new_lead_message(lead), recipients)

"""
Lead Activity
Conversion events and new-lead alerts raised by sync passes
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

from leadsync.domain.models.lead import Lead
from leadsync.services.sync_service import SyncListener
from leadsync.utils.time_utils import utc_now

logger = logging.getLogger(__name__)


@dataclass
class NewLeadsAlert:
    """Latest batch of imported leads for a company, until acknowledged"""
    company_id: str
    lead_ids: List[str] = field(default_factory=list)
    raised_at: datetime = field(default_factory=utc_now)

    @property
    def count(self) -> int:
        return len(self.lead_ids)


class LeadActivityListener(SyncListener):
    """
    Default sync listener for the API and the worker.

    Responsibilities:
    - Log one conversion event per imported lead
    - Count conversions per company
    - Keep the latest unacknowledged new-lead alert per company
    """

    def __init__(self):
        self._conversions: Dict[str, int] = {}
        self._alerts: Dict[str, NewLeadsAlert] = {}

    async def lead_converted(self, lead: Lead) -> None:
        self._conversions[lead.company_id] = self._conversions.get(lead.company_id, 0) + 1
        logger.info(
            f"Lead conversion: lead={lead.id} company={lead.company_id} "
            f"source={lead.source.value} conversation={lead.conversation_id}"
        )

    async def new_leads_alert(self, company_id: str, leads: List[Lead]) -> None:
        alert = self._alerts.get(company_id)
        lead_ids = [lead.id for lead in leads]
        if alert is not None:
            # Unacknowledged alerts accumulate, newest first
            lead_ids = lead_ids + alert.lead_ids
        self._alerts[company_id] = NewLeadsAlert(company_id=company_id, lead_ids=lead_ids)
        logger.info(f"New lead alert for company {company_id}: {len(leads)} new lead(s)")

    def latest_alert(self, company_id: str) -> Optional[NewLeadsAlert]:
        return self._alerts.get(company_id)

    def acknowledge(self, company_id: str) -> None:
        self._alerts.pop(company_id, None)

    def conversion_count(self, company_id: str) -> int:
        return self._conversions.get(company_id, 0)

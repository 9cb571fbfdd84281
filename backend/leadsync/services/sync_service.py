"""
Lead Sync Service
Keeps each company's lead snapshot in step with the conversation provider.

One sync pass:
1. Serve the cached snapshot when a foreground pass finds the cache fresh
2. Load the stored leads for the company
3. Fetch conversations (provider failures degrade to an empty list)
4. Reconcile and upsert the new conversations
5. Publish the new snapshot and stamp the cache
6. Fire side effects for the new leads
"""
import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional, Tuple

from leadsync.core.errors import ConversationProviderError, describe_error
from leadsync.domain.models.conversation import Conversation
from leadsync.domain.models.lead import Lead, PLACEHOLDER_PHONE, is_placeholder_email
from leadsync.domain.services.field_extraction import (
    UNKNOWN_FIRST_NAME,
    UNKNOWN_LAST_NAME,
    extract_email,
    extract_name,
    extract_phone,
)
from leadsync.domain.services.reconciler import ConversationReconciler
from leadsync.infrastructure.conversations.client import ConversationProviderClient
from leadsync.infrastructure.notifications.email_notifier import EmailNotifier
from leadsync.infrastructure.storage.lead_repository import LeadRepository
from leadsync.infrastructure.storage.profile_repository import UserProfile
from leadsync.utils.time_utils import ensure_aware, utc_now

logger = logging.getLogger(__name__)


class SyncCache:
    """Last successful fetch time per company, kept in process memory"""

    def __init__(self):
        self._timestamps: Dict[str, datetime] = {}

    def get(self, company_id: str) -> Optional[datetime]:
        return self._timestamps.get(company_id)

    def set(self, company_id: str, timestamp: Optional[datetime] = None) -> None:
        self._timestamps[company_id] = ensure_aware(timestamp or utc_now())

    def invalidate(self, company_id: str) -> None:
        self._timestamps.pop(company_id, None)

    def is_fresh(self, company_id: str, ttl: float, now: Optional[datetime] = None) -> bool:
        """True while less than ``ttl`` seconds have passed since the last fetch."""
        stamped = self._timestamps.get(company_id)
        if stamped is None:
            return False
        now = ensure_aware(now or utc_now())
        return now - stamped < timedelta(seconds=ttl)


class LeadSnapshotStore:
    """
    The in-memory lead list each company's views read from.

    Lists are replaced, never mutated in place, so a list handed out by
    ``get`` stays a consistent snapshot.
    """

    def __init__(self):
        self._snapshots: Dict[str, List[Lead]] = {}

    def has(self, company_id: str) -> bool:
        return company_id in self._snapshots

    def get(self, company_id: str) -> List[Lead]:
        return list(self._snapshots.get(company_id, []))

    def replace(self, company_id: str, leads: List[Lead]) -> None:
        self._snapshots[company_id] = list(leads)

    def prepend(self, company_id: str, leads: List[Lead]) -> None:
        self._snapshots[company_id] = list(leads) + self._snapshots.get(company_id, [])

    def apply(self, company_id: str, change: Callable[[List[Lead]], List[Lead]]) -> None:
        self._snapshots[company_id] = list(change(self.get(company_id)))

    def clear(self, company_id: str) -> None:
        self._snapshots.pop(company_id, None)


class SyncListener:
    """
    Side-effect hooks for newly imported leads.

    Subclasses override what they need. Hook failures are logged by the
    service and never fail a pass.
    """

    async def lead_converted(self, lead: Lead) -> None:
        """Called once per new lead (conversion tracking)."""

    async def new_leads_alert(self, company_id: str, leads: List[Lead]) -> None:
        """Called once per pass that imported at least one lead."""


@dataclass
class SyncResult:
    """Outcome of one sync pass"""
    success: bool
    new_leads: List[Lead] = field(default_factory=list)
    total_leads: int = 0
    from_cache: bool = False
    skipped: bool = False
    error: Optional[str] = None

    @property
    def new_count(self) -> int:
        return len(self.new_leads)


class LeadSyncService:
    """
    Reconciliation loop body shared by the background worker and the API.

    Responsibilities:
    - Gate foreground passes on the company's cache freshness
    - Reconcile provider conversations into stored leads
    - Maintain the company's lead snapshot
    - Run at most one pass per company at a time
    - Dispatch new-lead side effects (conversions, alert, emails)
    """

    def __init__(
        self,
        repository: LeadRepository,
        provider: ConversationProviderClient,
        notifier: Optional[EmailNotifier] = None,
        snapshots: Optional[LeadSnapshotStore] = None,
        cache: Optional[SyncCache] = None,
        listeners: Optional[List[SyncListener]] = None,
        cache_ttl: float = 300.0,
    ):
        self.repository = repository
        self.provider = provider
        self.notifier = notifier
        self.snapshots = snapshots or LeadSnapshotStore()
        self.cache = cache or SyncCache()
        self.listeners = listeners or []
        self.cache_ttl = cache_ttl
        self.reconciler = ConversationReconciler(repository)
        self._locks: Dict[str, asyncio.Lock] = {}

    def _lock_for(self, company_id: str) -> asyncio.Lock:
        return self._locks.setdefault(company_id, asyncio.Lock())

    def is_running(self, company_id: str) -> bool:
        return self._lock_for(company_id).locked()

    async def wait_until_idle(self, company_id: str) -> None:
        """Return once no pass is running for the company."""
        async with self._lock_for(company_id):
            pass

    async def sync_company(
        self,
        company_id: str,
        *,
        foreground: bool = False,
        force: bool = False,
        user: Optional[UserProfile] = None,
    ) -> SyncResult:
        """
        Run one sync pass for a company.

        Never raises: failures come back as ``success=False`` with a
        readable error. A pass requested while another one is running for
        the same company is skipped.
        """
        lock = self._lock_for(company_id)
        if lock.locked():
            logger.info(f"Sync already running for company {company_id}, skipping")
            return SyncResult(
                success=True,
                skipped=True,
                total_leads=len(self.snapshots.get(company_id)),
            )

        async with lock:
            try:
                return await self._run_pass(company_id, foreground=foreground, force=force, user=user)
            except Exception as e:
                logger.error(f"Sync failed for company {company_id}: {e}", exc_info=True)
                return SyncResult(success=False, error=describe_error(e))

    async def _run_pass(
        self,
        company_id: str,
        foreground: bool,
        force: bool,
        user: Optional[UserProfile],
    ) -> SyncResult:
        if (
            foreground
            and not force
            and self.snapshots.has(company_id)
            and self.cache.is_fresh(company_id, self.cache_ttl)
        ):
            logger.info(f"Using cached leads for company {company_id}")
            return SyncResult(
                success=True,
                from_cache=True,
                total_leads=len(self.snapshots.get(company_id)),
            )

        existing = await self.repository.list_for_company(company_id)
        conversations = await self._fetch_conversations(company_id)

        result = await self.reconciler.reconcile_and_store(company_id, existing, conversations)

        snapshot = result.new_leads + existing
        self.snapshots.replace(company_id, snapshot)
        self.cache.set(company_id)

        if result.new_leads:
            logger.info(f"Imported {result.new_count} new leads for company {company_id}")
            await self._dispatch_side_effects(company_id, result.new_leads, foreground, user)

        return SyncResult(
            success=True,
            new_leads=result.new_leads,
            total_leads=len(snapshot),
            error=result.error,
        )

    async def _fetch_conversations(self, company_id: str) -> List[Conversation]:
        try:
            return await self.provider.list_conversations()
        except ConversationProviderError as e:
            logger.warning(f"Conversation fetch failed for company {company_id}, continuing with stored leads: {e.message}")
            return []

    async def _dispatch_side_effects(
        self,
        company_id: str,
        new_leads: List[Lead],
        foreground: bool,
        user: Optional[UserProfile],
    ) -> None:
        for listener in self.listeners:
            for lead in new_leads:
                try:
                    await listener.lead_converted(lead)
                except Exception as e:
                    logger.warning(f"Conversion hook failed for lead {lead.id}: {e}")
            try:
                await listener.new_leads_alert(company_id, new_leads)
            except Exception as e:
                logger.warning(f"New lead alert failed for company {company_id}: {e}")

        if not foreground or user is None or self.notifier is None:
            return
        if not user.wants_email_notifications:
            return

        for lead in new_leads:
            await self.notifier.send_new_lead(lead, [user.email])
        logger.info(f"Email notifications sent for {len(new_leads)} new lead(s)")

    async def backfill_contact_details(self, company_id: str) -> int:
        """
        Repair imported leads that were stored with placeholder details.

        Re-runs the extraction pipeline against the lead's conversation to
        fill missing phone numbers and emails and to replace the
        ``Unknown``/``Caller`` fallback names. Only real values are written,
        never a placeholder.

        Returns:
            Number of leads updated
        """
        leads = await self.repository.list_incoming_call_leads(company_id)
        needing = [
            lead for lead in leads
            if not lead.has_phone or not lead.has_real_email or _has_fallback_name(lead)
        ]
        if not needing:
            logger.info(f"No leads need contact details for company {company_id}")
            return 0

        conversations = await self.provider.list_conversations()
        by_id = {conv.conversation_id: conv for conv in conversations}

        updated = 0
        for lead in needing:
            conversation = by_id.get(lead.conversation_id)
            if conversation is None:
                continue

            fields = {}
            if not lead.has_phone:
                phone = extract_phone(conversation)
                if phone != PLACEHOLDER_PHONE:
                    fields["phone"] = phone
            if not lead.has_real_email:
                email = extract_email(conversation)
                if not is_placeholder_email(email):
                    fields["email"] = email
            if _has_fallback_name(lead):
                fields.update(_repaired_name(lead, extract_name(conversation)))

            if not fields:
                continue

            await self.repository.update_fields(lead.id, fields)
            self.snapshots.apply(
                company_id,
                lambda current, lead_id=lead.id, changes=fields: [
                    item.model_copy(update=changes) if item.id == lead_id else item
                    for item in current
                ],
            )
            updated += 1

        logger.info(f"Backfilled contact details on {updated} leads for company {company_id}")
        return updated


def _has_fallback_name(lead: Lead) -> bool:
    return lead.first_name == UNKNOWN_FIRST_NAME or lead.last_name == UNKNOWN_LAST_NAME


def _repaired_name(lead: Lead, name: Tuple[str, str]) -> Dict[str, str]:
    """Name columns to overwrite: fallback parts replaced by extracted real ones."""
    first_name, last_name = name
    fields = {}
    if lead.first_name == UNKNOWN_FIRST_NAME and first_name != UNKNOWN_FIRST_NAME:
        fields["first_name"] = first_name
    if lead.last_name == UNKNOWN_LAST_NAME and last_name != UNKNOWN_LAST_NAME:
        fields["last_name"] = last_name
    return fields

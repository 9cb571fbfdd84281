"""
Service Factory
Wires repositories, adapters and services from Settings
"""
import logging
from typing import List, Optional

from supabase import Client

from leadsync.core.config import Settings
from leadsync.infrastructure.conversations.client import ConversationProviderClient
from leadsync.infrastructure.llm.groq import GroqLLMProvider
from leadsync.infrastructure.llm.insights import InsightGenerator
from leadsync.infrastructure.notifications.email_notifier import EmailNotifier
from leadsync.infrastructure.storage.lead_repository import LeadRepository
from leadsync.infrastructure.storage.profile_repository import ProfileRepository
from leadsync.services.lead_activity import LeadActivityListener
from leadsync.services.lead_service import LeadService
from leadsync.services.sync_service import LeadSyncService, SyncListener

logger = logging.getLogger(__name__)


def create_conversation_client(settings: Settings) -> ConversationProviderClient:
    return ConversationProviderClient(
        base_url=settings.resolved_conversations_url,
        token=settings.resolved_conversations_token,
        timeout=settings.conversations_timeout,
    )


def create_profile_repository(supabase: Client, settings: Settings) -> ProfileRepository:
    return ProfileRepository(
        supabase,
        retries=settings.profile_fetch_retries,
        delay=settings.profile_fetch_delay,
    )


async def create_insight_generator(settings: Settings) -> Optional[InsightGenerator]:
    """Groq-backed generator, or None when no API key is configured."""
    if not settings.groq_api_key:
        logger.warning("GROQ_API_KEY not set, AI insights disabled")
        return None
    provider = GroqLLMProvider()
    await provider.initialize({"api_key": settings.groq_api_key, "model": settings.insights_model})
    return InsightGenerator(provider)


def create_sync_service(
    supabase: Client,
    settings: Settings,
    listeners: Optional[List[SyncListener]] = None,
) -> LeadSyncService:
    """Sync service; without explicit listeners it reports through a LeadActivityListener."""
    return LeadSyncService(
        repository=LeadRepository(supabase),
        provider=create_conversation_client(settings),
        notifier=EmailNotifier(supabase, settings.notification_function),
        listeners=listeners if listeners is not None else [LeadActivityListener()],
        cache_ttl=settings.cache_ttl_seconds,
    )


def create_lead_service(
    supabase: Client,
    settings: Settings,
    sync_service: LeadSyncService,
    insight_generator: Optional[InsightGenerator] = None,
) -> LeadService:
    """Lead service sharing the sync service's snapshot store."""
    return LeadService(
        repository=sync_service.repository,
        snapshots=sync_service.snapshots,
        provider=sync_service.provider,
        notifier=EmailNotifier(supabase, settings.notification_function),
        profiles=create_profile_repository(supabase, settings),
        insight_generator=insight_generator,
    )

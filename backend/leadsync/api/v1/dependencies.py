"""
API Dependencies
Shared dependencies for Supabase access, services and the calling user
"""
import logging
from typing import Optional

from fastapi import Depends, HTTPException, Header, Request, status
from supabase import create_client, Client

from leadsync.core.config import Settings, get_settings
from leadsync.core.errors import AuthenticationError, PersistenceError
from leadsync.infrastructure.storage.profile_repository import UserProfile
from leadsync.services.factory import create_profile_repository
from leadsync.services.lead_activity import LeadActivityListener
from leadsync.services.lead_service import LeadService
from leadsync.services.sync_service import LeadSyncService
from leadsync.workers.sync_worker import SyncWorker

logger = logging.getLogger(__name__)


def get_supabase() -> Client:
    """
    Get Supabase client with validation.

    Raises:
        RuntimeError: If Supabase URL or SERVICE_KEY is not configured
    """
    settings = get_settings()

    if not settings.supabase_url:
        raise RuntimeError(
            "SUPABASE_URL is not configured. "
            "Set SUPABASE_URL environment variable."
        )
    if not settings.supabase_service_key:
        raise RuntimeError(
            "SUPABASE_SERVICE_KEY is not configured. "
            "Set SUPABASE_SERVICE_KEY environment variable."
        )

    return create_client(settings.supabase_url, settings.supabase_service_key)


def get_sync_service(request: Request) -> LeadSyncService:
    """Process-wide sync service created during application startup."""
    return request.app.state.sync_service


def get_lead_service(request: Request) -> LeadService:
    return request.app.state.lead_service


def get_sync_worker(request: Request) -> Optional[SyncWorker]:
    return getattr(request.app.state, "sync_worker", None)


def get_lead_activity(request: Request) -> Optional[LeadActivityListener]:
    return getattr(request.app.state, "lead_activity", None)


async def get_optional_user(
    authorization: Optional[str] = Header(None, alias="Authorization"),
    supabase: Client = Depends(get_supabase),
    settings: Settings = Depends(get_settings),
) -> Optional[UserProfile]:
    """
    Resolve the calling user's profile when a bearer token is supplied.

    Returns None without a token. A token the auth service rejects, or a
    session the database rejects, is a 401.
    """
    if not authorization:
        return None

    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authorization header format. Use: Bearer <token>",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        user_response = supabase.auth.get_user(parts[1])
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Token validation failed: {str(e)}",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not user_response or not user_response.user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    profiles = create_profile_repository(supabase, settings)
    try:
        return await profiles.fetch_profile_with_retries(str(user_response.user.id))
    except AuthenticationError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=e.message,
            headers={"WWW-Authenticate": "Bearer"},
        )
    except PersistenceError as e:
        logger.warning(f"Profile lookup failed for user {user_response.user.id}: {e.message}")
        return None

"""
Profile Repository
User profile lookups and notification recipient resolution
"""
import asyncio
import logging
from typing import Any, Dict, List, Optional

from pydantic import BaseModel
from supabase import Client

from leadsync.core.errors import AuthenticationError, PersistenceError, describe_error
from leadsync.utils.company_filter import apply_company_filter

logger = logging.getLogger(__name__)

PROFILES_TABLE = "profiles"

# PostgREST error codes
NO_ROWS_CODE = "PGRST116"
JWT_EXPIRED_CODE = "PGRST301"

NOTIFICATION_ROLES = ("Owner", "SaaS Admin")


class UserProfile(BaseModel):
    """Profile row of the user driving a foreground sync"""
    id: str
    email: str
    company_id: Optional[str] = None
    role: str = "Member"
    name: Optional[str] = None
    email_notifications_enabled: Optional[bool] = None
    sound_notifications_enabled: Optional[bool] = None

    @property
    def wants_email_notifications(self) -> bool:
        # Unset means enabled
        return self.email_notifications_enabled is not False


class ProfileRepository:
    """
    Supabase access to the ``profiles`` table.

    A freshly signed-up user's profile row is written by a trigger and may
    not exist yet, so lookups retry on the "no rows" error with a linearly
    growing delay.
    """

    def __init__(self, supabase: Client, retries: int = 5, delay: float = 0.3):
        self.supabase = supabase
        self.retries = retries
        self.delay = delay

    async def fetch_profile_with_retries(self, user_id: str) -> UserProfile:
        """
        Fetch a profile, waiting for it to appear.

        Raises:
            AuthenticationError: The session was rejected (PGRST301)
            PersistenceError: The profile never appeared or the query failed
        """
        last_error: Any = None

        for attempt in range(self.retries):
            try:
                response = self.supabase.table(PROFILES_TABLE).select("*").eq(
                    "id", user_id
                ).single().execute()
            except Exception as e:
                code = getattr(e, "code", None)
                if code == JWT_EXPIRED_CODE:
                    raise AuthenticationError(describe_error(e, fallback="Session expired")) from e
                if code != NO_ROWS_CODE:
                    raise PersistenceError(describe_error(e), code=code, details=getattr(e, "details", None)) from e

                last_error = e
                if attempt < self.retries - 1:
                    wait = self.delay * (attempt + 1)
                    logger.info(f"Profile {user_id} not found yet, retrying in {wait:.1f}s")
                    await asyncio.sleep(wait)
                continue

            if response.data:
                return UserProfile(**response.data)

        raise PersistenceError(
            describe_error(last_error, fallback="Max retries reached while fetching user profile."),
            code=NO_ROWS_CODE,
        )

    async def notification_recipients(self, company_id: str) -> List[str]:
        """Emails of the company's Owner and SaaS Admin users. Empty on failure."""
        try:
            query = self.supabase.table(PROFILES_TABLE).select("email, role")
            response = apply_company_filter(query, company_id).execute()
        except Exception as e:
            logger.error(f"Error fetching notification recipients for company {company_id}: {e}")
            return []

        rows: List[Dict[str, Any]] = response.data or []
        return [row["email"] for row in rows if row.get("role") in NOTIFICATION_ROLES and row.get("email")]

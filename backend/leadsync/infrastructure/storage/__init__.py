"""Supabase-backed storage"""
from .lead_repository import LeadRepository, from_row, to_row
from .profile_repository import ProfileRepository, UserProfile

__all__ = ["LeadRepository", "from_row", "to_row", "ProfileRepository", "UserProfile"]

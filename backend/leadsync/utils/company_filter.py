"""
Company Filter Utility
Shared helper for applying consistent company scoping across Supabase queries
"""
from typing import Any, Optional


def apply_company_filter(query: Any, company_id: Optional[str], column: str = "company_id") -> Any:
    """
    Scope a Supabase query to one company.

    Every lead operation is partitioned by company. Passing ``None`` leaves
    the query unscoped, which only the SaaS admin listing relies on.

    Usage:
        query = supabase.table("leads").select("*")
        query = apply_company_filter(query, company_id)
        response = query.execute()
    """
    if company_id:
        return query.eq(column, company_id)
    return query

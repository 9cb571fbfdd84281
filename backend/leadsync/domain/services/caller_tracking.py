"""
Caller Tracking Engine
Aggregate call statistics for a lead, grouped on its exact phone string.

Recomputed from the full lead list on every call; there is no cache. The
phone comparison is raw string equality: "555-1234" and "5551234" are
different callers, and two people sharing one office line are one caller.
"""
from datetime import datetime, timedelta
from typing import List, Optional

from leadsync.domain.models.caller_tracking import CallerTracking
from leadsync.domain.models.lead import Lead
from leadsync.utils.time_utils import ensure_aware, start_of_local_day, utc_now

WEEK = timedelta(days=7)


def compute_caller_tracking(
    all_leads: List[Lead],
    target: Lead,
    now: Optional[datetime] = None,
) -> CallerTracking:
    own_time = target.contact_time

    if not target.has_phone:
        return CallerTracking(
            total_calls=1,
            calls_today=1,
            calls_this_week=1,
            is_returning=False,
            last_contact_time=own_time,
        )

    now = ensure_aware(now or utc_now())
    today = start_of_local_day(now)
    week_ago = now - WEEK

    # The target counts itself
    calls_today = 1
    calls_this_week = 1
    last_contact_time = own_time
    matches = 0

    for lead in all_leads:
        if lead.id == target.id or lead.phone != target.phone:
            continue
        matches += 1
        contact_time = lead.contact_time
        if contact_time >= today:
            calls_today += 1
        if contact_time >= week_ago:
            calls_this_week += 1
        if contact_time > last_contact_time:
            last_contact_time = contact_time

    return CallerTracking(
        total_calls=matches + 1,
        calls_today=calls_today,
        calls_this_week=calls_this_week,
        is_returning=matches > 0,
        last_contact_time=last_contact_time,
    )


def hours_since_contact(tracking: CallerTracking, now: Optional[datetime] = None) -> float:
    """Hours since the group's last contact; never-contacted sorts last."""
    if tracking.last_contact_time is None:
        return float("inf")
    now = ensure_aware(now or utc_now())
    return (now - ensure_aware(tracking.last_contact_time)).total_seconds() / 3600

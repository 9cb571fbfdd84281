"""
Returning-Caller Grouper
Partitions a lead list into repeat-caller stacks and single callers
"""
from typing import Dict, List

from leadsync.domain.models.caller_tracking import CallerGroups
from leadsync.domain.models.lead import Lead


def group_returning_callers(leads: List[Lead]) -> CallerGroups:
    """
    Bucket leads by exact phone string.

    Buckets with more than one lead become returning groups sorted
    most-recent-first; every other lead, including those without a phone,
    is a single caller. No order is promised across groups.
    """
    phone_groups: Dict[str, List[Lead]] = {}
    single_callers: List[Lead] = []

    for lead in leads:
        if not lead.has_phone:
            single_callers.append(lead)
            continue
        phone_groups.setdefault(lead.phone, []).append(lead)

    returning_groups: List[List[Lead]] = []
    for group in phone_groups.values():
        if len(group) > 1:
            returning_groups.append(sorted(group, key=lambda lead: lead.contact_time, reverse=True))
        else:
            single_callers.append(group[0])

    return CallerGroups(returning_groups=returning_groups, single_callers=single_callers)

"""
Caller Tracking Models
Derived, per-render presentation state. Never persisted.
"""
from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel

from leadsync.domain.models.lead import Lead


class TimeBasedStatus(str, Enum):
    """Recency bucket since last contact"""
    JUST_CALLED = "just_called"
    HOURS_5 = "hours_5"
    HOURS_10 = "hours_10"
    HOURS_24 = "hours_24"
    HOURS_48 = "hours_48"
    NEVER_CONTACTED = "never_contacted"


class CallerTracking(BaseModel):
    """Aggregate call statistics for every lead sharing one phone number"""
    total_calls: int
    calls_today: int
    calls_this_week: int
    is_returning: bool
    last_contact_time: Optional[datetime] = None


class CallerGroups(BaseModel):
    """Partition of a lead list into repeat callers and one-off callers"""
    returning_groups: List[List[Lead]] = []
    single_callers: List[Lead] = []

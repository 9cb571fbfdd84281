"""
Time-Decay Status Classifier
Maps elapsed time since last contact to a recency bucket and style token
"""
from datetime import datetime
from typing import Optional, Union

from leadsync.domain.models.caller_tracking import TimeBasedStatus
from leadsync.domain.models.lead import LifecycleLabel, LeadStatus
from leadsync.utils.time_utils import ensure_aware, utc_now


# Upper bounds in hours, inclusive, checked in ascending order
TIME_BUCKETS = (
    (1, TimeBasedStatus.JUST_CALLED),
    (5, TimeBasedStatus.HOURS_5),
    (10, TimeBasedStatus.HOURS_10),
    (24, TimeBasedStatus.HOURS_24),
    (48, TimeBasedStatus.HOURS_48),
)

GREEN = "bg-green-50 dark:bg-green-900/20 border-green-200 dark:border-green-700"
BLUE = "bg-blue-50 dark:bg-blue-900/20 border-blue-200 dark:border-blue-700"
ORANGE = "bg-orange-50 dark:bg-orange-900/20 border-orange-200 dark:border-orange-700"
PURPLE = "bg-purple-50 dark:bg-purple-900/20 border-purple-200 dark:border-purple-700"
RED = "bg-red-50 dark:bg-red-900/20 border-red-200 dark:border-red-700"
GRAY = "bg-gray-50 dark:bg-gray-900/20 border-gray-200 dark:border-gray-700"

LABEL_COLORS = {
    LifecycleLabel.CLIENT.value: GREEN,
    LifecycleLabel.LOST.value: RED,
    LifecycleLabel.ARCHIVE.value: GRAY,
}

TIME_COLORS = {
    TimeBasedStatus.JUST_CALLED: GREEN,
    TimeBasedStatus.HOURS_5: BLUE,
    TimeBasedStatus.HOURS_10: ORANGE,
    TimeBasedStatus.HOURS_24: PURPLE,
    TimeBasedStatus.HOURS_48: RED,
    TimeBasedStatus.NEVER_CONTACTED: GRAY,
}

TEXT_COLORS = {
    TimeBasedStatus.JUST_CALLED: "text-green-600 dark:text-green-400",
    TimeBasedStatus.HOURS_5: "text-blue-600 dark:text-blue-400",
    TimeBasedStatus.HOURS_10: "text-orange-600 dark:text-orange-400",
    TimeBasedStatus.HOURS_24: "text-purple-600 dark:text-purple-400",
    TimeBasedStatus.HOURS_48: "text-red-600 dark:text-red-400",
}
DEFAULT_TEXT_COLOR = "text-gray-600 dark:text-gray-400"


def classify(
    last_contact_time: Optional[datetime],
    now: Optional[datetime] = None,
) -> TimeBasedStatus:
    """
    Bucket the time since last contact.

    Anything older than 48 hours, and a missing timestamp, both come back
    as NEVER_CONTACTED.
    """
    if last_contact_time is None:
        return TimeBasedStatus.NEVER_CONTACTED

    now = ensure_aware(now or utc_now())
    hours_diff = (now - ensure_aware(last_contact_time)).total_seconds() / 3600

    for upper_bound, status in TIME_BUCKETS:
        if hours_diff <= upper_bound:
            return status
    return TimeBasedStatus.NEVER_CONTACTED


def color_class_for(
    time_status: TimeBasedStatus,
    lead_status: Union[LeadStatus, LifecycleLabel, str, None],
) -> str:
    """Card style token; lifecycle labels override the time bucket."""
    label = lead_status.value if isinstance(lead_status, (LeadStatus, LifecycleLabel)) else lead_status
    if label in LABEL_COLORS:
        return LABEL_COLORS[label]
    return TIME_COLORS.get(time_status, GRAY)


def text_color_for(time_status: TimeBasedStatus) -> str:
    return TEXT_COLORS.get(time_status, DEFAULT_TEXT_COLOR)


def format_time_difference(
    last_contact_time: Optional[datetime],
    now: Optional[datetime] = None,
) -> str:
    if last_contact_time is None:
        return "Never contacted"

    now = ensure_aware(now or utc_now())
    diff_hours = int((now - ensure_aware(last_contact_time)).total_seconds() // 3600)

    if diff_hours < 1:
        return "Just called"
    if diff_hours < 24:
        return f"{diff_hours}h ago"
    return f"{diff_hours // 24}d ago"

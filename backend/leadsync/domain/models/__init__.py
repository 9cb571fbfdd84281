"""Domain models"""

# Lead models
from .lead import (
    LeadStatus,
    LifecycleLabel,
    LeadSource,
    CallType,
    CallLogStatus,
    Note,
    CallLog,
    CallDetails,
    AIInsights,
    LeadDraft,
    Lead,
    is_placeholder_email,
)

# Conversation models
from .conversation import (
    ConversationMetadata,
    Conversation,
)

# Derived presentation models
from .caller_tracking import (
    TimeBasedStatus,
    CallerTracking,
    CallerGroups,
)

__all__ = [
    "LeadStatus",
    "LifecycleLabel",
    "LeadSource",
    "CallType",
    "CallLogStatus",
    "Note",
    "CallLog",
    "CallDetails",
    "AIInsights",
    "LeadDraft",
    "Lead",
    "is_placeholder_email",
    "ConversationMetadata",
    "Conversation",
    "TimeBasedStatus",
    "CallerTracking",
    "CallerGroups",
]

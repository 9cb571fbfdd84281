"""
Error Types
Exception hierarchy shared by the sync, storage and API layers
"""
import json
from typing import Any, Optional


class LeadSyncError(Exception):
    """Base exception for lead sync failures."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)


class ConversationProviderError(LeadSyncError):
    """Raised when the conversation provider returns an error response or is unreachable."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class PersistenceError(LeadSyncError):
    """Raised when a Supabase read or write fails."""

    def __init__(self, message: str, code: Optional[str] = None, details: Optional[str] = None):
        super().__init__(message)
        self.code = code
        self.details = details


class AuthenticationError(LeadSyncError):
    """Raised when the persistence layer rejects the session (PGRST301)."""


class LeadNotFoundError(LeadSyncError):
    """Raised when a lead id is not part of the company snapshot."""

    def __init__(self, lead_id: str):
        super().__init__(f"Lead not found: {lead_id}")
        self.lead_id = lead_id


def _read(source: Any, key: str) -> Any:
    if isinstance(source, dict):
        return source.get(key)
    return getattr(source, key, None)


def describe_error(error: Any, fallback: str = "An unknown error occurred.") -> str:
    """
    Best-effort human readable message for an error object.

    Tries, in order: the value itself when it is a string, ``details``,
    ``message``, a nested ``error.message``, then the JSON form of the
    object. Returns ``fallback`` when none of these produce text.
    """
    if isinstance(error, str):
        return error
    if error is None:
        return fallback

    details = _read(error, "details")
    if isinstance(details, str) and details:
        return details

    message = _read(error, "message")
    if isinstance(message, str) and message:
        return message

    nested = _read(error, "error")
    if nested is not None and not isinstance(nested, str):
        nested_message = _read(nested, "message")
        if isinstance(nested_message, str) and nested_message:
            return nested_message

    if isinstance(error, BaseException):
        text = str(error)
        if text:
            return text

    try:
        stringified = json.dumps(error)
    except (TypeError, ValueError):
        return fallback
    if stringified != "{}":
        return stringified
    return fallback

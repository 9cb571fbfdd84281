"""
Field Extraction
Heuristic name, phone and email extraction from provider conversations.

Each field is resolved by an ordered list of small ``try_*`` steps. A step
takes the conversation and returns a value or ``None``; the first non-None
result wins, and the field falls back to a fixed placeholder when every
step misses. Steps are pure, so each one can be tested on its own.
"""
import re
from typing import Callable, Iterable, Optional, Sequence, Tuple, TypeVar

from leadsync.domain.models.conversation import Conversation
from leadsync.domain.models.lead import (
    PLACEHOLDER_EMAIL_DOMAIN,
    PLACEHOLDER_PHONE,
)

T = TypeVar("T")

Name = Tuple[str, str]

UNKNOWN_FIRST_NAME = "Unknown"
UNKNOWN_LAST_NAME = "Caller"
MAX_TITLE_AS_NAME_LENGTH = 50

_HONORIFIC = r"(?:(?:Dr|Mr|Ms|Mrs)\.?\s+)?"
_NAME_TOKEN = r"(?!(?:Dr|Mr|Ms|Mrs)\.?\s)[A-Z][A-Za-z]*(?:'[A-Za-z]+)*"

FULL_NAME_PATTERN = re.compile(rf"^\s*{_HONORIFIC}({_NAME_TOKEN})\s+({_NAME_TOKEN})\b")
SINGLE_NAME_PATTERN = re.compile(rf"^\s*{_HONORIFIC}({_NAME_TOKEN})\b")
NAME_LIKE_TITLE_PATTERN = re.compile(r"^[A-Za-z' ]+$")
TRANSCRIPT_NAME_PATTERN = re.compile(
    r"(?:caller|user|customer)(?:\s+is|\s+named)?\s+([A-Za-z']+(?:\s+[A-Za-z']+)?)",
    re.IGNORECASE,
)
PHONE_PATTERN = re.compile(r"\d{3}[-.]?\d{3}[-.]?\d{4}")
EMAIL_PATTERN = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}")

# Trailing words that mark a title as a business rather than a person
ORGANIZATION_SUFFIXES = frozenset({
    "corp", "corporation", "inc", "llc", "ltd", "co", "company",
    "group", "partners", "associates",
})


def first_match(steps: Iterable[Callable[[Conversation], Optional[T]]], conversation: Conversation) -> Optional[T]:
    """Run ``steps`` in order and return the first non-None result."""
    for step in steps:
        value = step(conversation)
        if value is not None:
            return value
    return None


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def _title(conversation: Conversation) -> Optional[str]:
    return _clean(conversation.summary_title)


def _names_an_organization(title: str) -> bool:
    last_word = title.split()[-1].strip(".,").lower()
    return last_word in ORGANIZATION_SUFFIXES


# =============================================================================
# Name
# =============================================================================

def try_full_name_from_title(conversation: Conversation) -> Optional[Name]:
    """'Dr. Jane O'Brien' -> ('Jane', "O'Brien")"""
    title = _title(conversation)
    if not title or _names_an_organization(title):
        return None
    match = FULL_NAME_PATTERN.match(title)
    if match:
        return match.group(1), match.group(2)
    return None


def try_single_name_from_title(conversation: Conversation) -> Optional[Name]:
    """'Mrs. Smith' -> ('Smith', 'Caller')"""
    title = _title(conversation)
    if not title or _names_an_organization(title):
        return None
    match = SINGLE_NAME_PATTERN.match(title)
    if match:
        return match.group(1), UNKNOWN_LAST_NAME
    return None


def try_title_as_last_name(conversation: Conversation) -> Optional[Name]:
    """Short letters-only titles become the last name of an unknown caller."""
    title = _title(conversation)
    if not title or len(title) > MAX_TITLE_AS_NAME_LENGTH:
        return None
    if NAME_LIKE_TITLE_PATTERN.match(title):
        return UNKNOWN_FIRST_NAME, title
    return None


def try_name_from_transcript(conversation: Conversation) -> Optional[Name]:
    """'the customer named Bob Smith called' -> ('Bob', 'Smith')"""
    transcript = _clean(conversation.transcript_summary)
    if not transcript:
        return None
    match = TRANSCRIPT_NAME_PATTERN.search(transcript)
    if not match:
        return None
    parts = match.group(1).split()
    first = parts[0]
    last = parts[1] if len(parts) > 1 else UNKNOWN_LAST_NAME
    return first, last


NAME_STEPS: Sequence[Callable[[Conversation], Optional[Name]]] = (
    try_full_name_from_title,
    try_single_name_from_title,
    try_title_as_last_name,
    # Also reached when a title exists but no title step matched it
    try_name_from_transcript,
)


def extract_name(conversation: Conversation) -> Name:
    return first_match(NAME_STEPS, conversation) or (UNKNOWN_FIRST_NAME, UNKNOWN_LAST_NAME)


# =============================================================================
# Phone
# =============================================================================

def _field(name: str) -> Callable[[Conversation], Optional[str]]:
    def step(conversation: Conversation) -> Optional[str]:
        return _clean(getattr(conversation, name))
    step.__name__ = f"try_{name}"
    return step


def _metadata_field(name: str) -> Callable[[Conversation], Optional[str]]:
    def step(conversation: Conversation) -> Optional[str]:
        if conversation.metadata is None:
            return None
        return _clean(getattr(conversation.metadata, name))
    step.__name__ = f"try_metadata_{name}"
    return step


def _transcript_search(pattern: re.Pattern) -> Callable[[Conversation], Optional[str]]:
    def step(conversation: Conversation) -> Optional[str]:
        transcript = conversation.transcript_summary
        if not transcript:
            return None
        match = pattern.search(transcript)
        return match.group(0) if match else None
    return step


try_phone_from_transcript = _transcript_search(PHONE_PATTERN)
try_email_from_transcript = _transcript_search(EMAIL_PATTERN)

PHONE_STEPS: Sequence[Callable[[Conversation], Optional[str]]] = (
    _field("caller_number"),
    _field("phone_number"),
    _field("from_number"),
    _metadata_field("caller_number"),
    try_phone_from_transcript,
)


def extract_phone(conversation: Conversation) -> str:
    return first_match(PHONE_STEPS, conversation) or PLACEHOLDER_PHONE


# =============================================================================
# Email
# =============================================================================

EMAIL_STEPS: Sequence[Callable[[Conversation], Optional[str]]] = (
    _field("caller_email"),
    _field("email_address"),
    _field("email"),
    _metadata_field("caller_email"),
    try_email_from_transcript,
)


def placeholder_email(conversation_id: str) -> str:
    return f"{conversation_id}{PLACEHOLDER_EMAIL_DOMAIN}"


def extract_email(conversation: Conversation) -> str:
    return first_match(EMAIL_STEPS, conversation) or placeholder_email(conversation.conversation_id)

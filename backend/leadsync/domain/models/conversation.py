"""
Conversation Domain Models
Call records read from the conversation provider
"""
from typing import Optional

from pydantic import BaseModel, ConfigDict


class ConversationMetadata(BaseModel):
    """Nested provider metadata; only the caller fields are read"""
    model_config = ConfigDict(extra="ignore")

    caller_number: Optional[str] = None
    caller_email: Optional[str] = None


class Conversation(BaseModel):
    """
    Externally recorded phone interaction.

    Produced by the provider, read once per sync pass and never mutated.
    The phone and email fields are redundant across providers and are
    checked in priority order by the field extractors.
    """
    model_config = ConfigDict(extra="ignore")

    conversation_id: str
    agent_id: Optional[str] = None
    summary_title: Optional[str] = None
    transcript_summary: Optional[str] = None

    caller_number: Optional[str] = None
    phone_number: Optional[str] = None
    from_number: Optional[str] = None

    caller_email: Optional[str] = None
    email_address: Optional[str] = None
    email: Optional[str] = None

    metadata: Optional[ConversationMetadata] = None

    start_time_unix_secs: Optional[float] = None
    call_duration_secs: Optional[int] = None

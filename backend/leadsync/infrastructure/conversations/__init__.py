"""Conversation provider adapter"""
from .client import ConversationProviderClient

__all__ = ["ConversationProviderClient"]

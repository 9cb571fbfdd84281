"""
Conversation Provider Client
Lists and deletes call conversations through the provider's HTTP endpoint
"""
import logging
from typing import List, Optional

import httpx
from pydantic import ValidationError

from leadsync.core.errors import ConversationProviderError
from leadsync.domain.models.conversation import Conversation

logger = logging.getLogger(__name__)


class ConversationProviderClient:
    """
    HTTP client for the conversation provider.

    The endpoint answers ``GET`` with ``{"conversations": [...]}`` and
    deletes one conversation on ``DELETE`` with ``{"conversationId": id}``.
    Any non-2xx response raises ConversationProviderError carrying the
    status code; callers decide whether that is fatal.
    """

    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url
        self.token = token
        self.timeout = timeout
        self._transport = transport

    def _get_headers(self) -> dict:
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self._transport)

    async def list_conversations(self) -> List[Conversation]:
        """Fetch every conversation currently held by the provider."""
        try:
            async with self._client() as client:
                response = await client.get(self.base_url, headers=self._get_headers())
        except httpx.HTTPError as e:
            raise ConversationProviderError(f"Conversation provider unreachable: {e}") from e

        if not response.is_success:
            logger.error(f"Conversation list failed ({response.status_code}): {response.text}")
            raise ConversationProviderError(
                f"Conversation list failed: {response.text}",
                status_code=response.status_code,
            )

        try:
            payload = response.json() or {}
        except ValueError as e:
            logger.error(f"Conversation list returned a non-JSON body: {response.text[:200]}")
            raise ConversationProviderError(
                f"Conversation list returned invalid JSON: {e}",
                status_code=response.status_code,
            ) from e
        if not isinstance(payload, dict):
            raise ConversationProviderError(
                "Conversation list returned an unexpected payload",
                status_code=response.status_code,
            )

        conversations = []
        for item in payload.get("conversations") or []:
            try:
                conversations.append(Conversation.model_validate(item))
            except ValidationError as e:
                # One malformed record never drops the batch
                logger.warning(f"Skipping invalid conversation from provider: {e}")
        logger.info(f"Fetched {len(conversations)} conversations from provider")
        return conversations

    async def delete_conversation(self, conversation_id: str) -> None:
        """Delete one conversation upstream. A 404 raises with status_code 404."""
        try:
            async with self._client() as client:
                response = await client.request(
                    "DELETE",
                    self.base_url,
                    json={"conversationId": conversation_id},
                    headers=self._get_headers(),
                )
        except httpx.HTTPError as e:
            raise ConversationProviderError(f"Conversation provider unreachable: {e}") from e

        if not response.is_success:
            logger.warning(f"Conversation delete failed ({response.status_code}) for {conversation_id}")
            raise ConversationProviderError(
                f"Conversation delete failed: {response.text}",
                status_code=response.status_code,
            )

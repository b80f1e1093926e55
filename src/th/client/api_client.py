"""
Copilot API Client - streamed chat completions.

Sends the planner prompt to the Copilot chat completions endpoint and
decodes the streamed answer into a CommandProposal.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx
from pydantic import BaseModel

from th.client.decoder import CommandProposal, read_stream
from th.client.errors import CompletionError, NetworkError
from th.core.config import COPILOT_API_BASE, EDITOR_PLUGIN_VERSION, EDITOR_VERSION, Settings

logger = logging.getLogger(__name__)


class Message(BaseModel):
    """A chat message."""
    role: str
    content: str


class CopilotClient:
    """
    Client for the Copilot chat completions API.

    The response is always requested as a stream and fully buffered before
    decoding.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        base_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings or Settings()
        self.base_url = (base_url or COPILOT_API_BASE).rstrip("/")
        self.transport = transport

    def _build_headers(self, token: str) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
            "Editor-Version": EDITOR_VERSION,
            "Editor-Plugin-Version": EDITOR_PLUGIN_VERSION,
        }

    def _build_payload(self, messages: List[Message]) -> Dict[str, Any]:
        return {
            "model": self.settings.model,
            "messages": [m.model_dump() for m in messages],
            "temperature": self.settings.temperature,
            "max_tokens": self.settings.max_tokens,
            "stream": True,
        }

    async def request_command(self, messages: List[Message], token: str) -> Optional[CommandProposal]:
        """
        Ask the model for a command.

        Args:
            messages: Planner prompt (system + user)
            token: Copilot API token

        Returns:
            The decoded proposal, or None if the model produced nothing usable

        Raises:
            CompletionError: The endpoint answered with a non-success status
            NetworkError: The endpoint could not be reached
        """
        url = f"{self.base_url}/chat/completions"
        # The caller bounds the whole request; this only stops a stalled socket
        timeout = httpx.Timeout(self.settings.timeout, connect=10.0)

        async with httpx.AsyncClient(timeout=timeout, transport=self.transport) as client:
            try:
                async with client.stream(
                    "POST",
                    url,
                    json=self._build_payload(messages),
                    headers=self._build_headers(token),
                ) as response:
                    if not response.is_success:
                        body = (await response.aread()).decode("utf-8", errors="replace")
                        logger.error(f"Completion request failed: {response.status_code} {body[:500]}")
                        raise CompletionError(
                            f"API request failed: {response.status_code} {body.strip()[:200]}",
                            status_code=response.status_code,
                        )

                    return await read_stream(response.aiter_bytes())

            except httpx.HTTPError as e:
                raise NetworkError(f"Cannot reach Copilot: {e}") from e

"""
Copilot token exchange.

The stored GitHub token is checked against the GitHub API on every call.
While it is valid, a cached Copilot token is reused until it expires;
otherwise a new one is fetched from the Copilot token endpoint and stored.

Every way of failing to produce a token is reported as a ``TokenResult``
status, and ``access()`` collapses all of them to ``None`` so callers only
have to decide whether to log in again.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional

import httpx
from pydantic import BaseModel, ValidationError

from th.client.store import CredentialRecord, CredentialStore, FileCredentialStore
from th.core.config import (
    COPILOT_API_BASE,
    COPILOT_PROVIDER,
    COPILOT_TOKEN_URL,
    EDITOR_PLUGIN_VERSION,
    EDITOR_VERSION,
    USER_AGENT,
    USER_URL,
)

logger = logging.getLogger(__name__)


def now_ms() -> int:
    return int(time.time() * 1000)


class TokenStatus(str, Enum):
    """Why a token was or was not produced."""
    OK = "ok"  # freshly exchanged
    CACHED = "cached"
    UNAUTHENTICATED = "unauthenticated"
    EXPIRED = "expired"  # GitHub or Copilot rejected the stored credential
    TRANSPORT_FAILURE = "transport_failure"
    PROTOCOL_MISMATCH = "protocol_mismatch"


@dataclass(frozen=True)
class TokenResult:
    status: TokenStatus
    token: Optional[str] = None
    api_base: str = COPILOT_API_BASE

    @property
    def ok(self) -> bool:
        return self.token is not None


class CopilotTokenResponse(BaseModel):
    """Body of the Copilot token endpoint."""
    token: str
    expires_at: int
    refresh_in: Optional[int] = None
    # only "api" is used; anything else here is ignored
    endpoints: Any = None

    @property
    def api_base(self) -> Optional[str]:
        if not isinstance(self.endpoints, dict):
            return None
        api = self.endpoints.get("api")
        return api if isinstance(api, str) and api else None


class TokenExchange:
    """Resolves a usable Copilot API token from stored credentials."""

    def __init__(
        self,
        store: Optional[CredentialStore] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 30.0,
        clock: Callable[[], int] = now_ms,
    ):
        self.store = store or FileCredentialStore()
        self.transport = transport
        self.timeout = timeout
        self.clock = clock

    async def access(self) -> Optional[str]:
        """Get a Copilot token, or None when the user has to log in again."""
        result = await self.resolve()
        return result.token

    async def resolve(self) -> TokenResult:
        record = self.store.load(COPILOT_PROVIDER)
        if record is None or not record.is_oauth or not record.refresh:
            return TokenResult(TokenStatus.UNAUTHENTICATED)

        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            status = await self._validate(client, record.refresh)
            if status is not None:
                return TokenResult(status)

            # Strictly greater: a token expiring right now is already stale
            if record.access and record.expires is not None and record.expires > self.clock():
                logger.debug("Using cached Copilot token")
                return TokenResult(
                    TokenStatus.CACHED,
                    token=record.access,
                    api_base=record.endpoint or COPILOT_API_BASE,
                )

            return await self._exchange(client, record.refresh)

    async def _validate(self, client: httpx.AsyncClient, refresh: str) -> Optional[TokenStatus]:
        """Check the GitHub token. Returns a failure status, or None if valid."""
        try:
            response = await client.get(
                USER_URL,
                headers={"Authorization": f"Bearer {refresh}", "User-Agent": USER_AGENT},
            )
        except httpx.HTTPError as e:
            logger.warning(f"GitHub token validation failed: {e}")
            return TokenStatus.TRANSPORT_FAILURE

        if not response.is_success:
            logger.info(f"GitHub token rejected ({response.status_code}), login required")
            return TokenStatus.EXPIRED
        return None

    async def _exchange(self, client: httpx.AsyncClient, refresh: str) -> TokenResult:
        try:
            response = await client.get(
                COPILOT_TOKEN_URL,
                headers={
                    "Accept": "application/json",
                    "Authorization": f"Bearer {refresh}",
                    "User-Agent": USER_AGENT,
                    "Editor-Version": EDITOR_VERSION,
                    "Editor-Plugin-Version": EDITOR_PLUGIN_VERSION,
                },
            )
        except httpx.HTTPError as e:
            logger.warning(f"Copilot token exchange failed: {e}")
            return TokenResult(TokenStatus.TRANSPORT_FAILURE)

        if not response.is_success:
            logger.info(f"Copilot token exchange rejected ({response.status_code})")
            return TokenResult(TokenStatus.EXPIRED)

        try:
            data = CopilotTokenResponse.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            logger.warning(f"Unexpected Copilot token response: {e}")
            return TokenResult(TokenStatus.PROTOCOL_MISMATCH)

        self.store.save(
            COPILOT_PROVIDER,
            CredentialRecord(
                kind="oauth",
                refresh=refresh,
                access=data.token,
                expires=data.expires_at * 1000,
                endpoint=data.api_base,
            ),
        )
        logger.debug(f"Stored new Copilot token, refresh in {data.refresh_in}s")

        return TokenResult(
            TokenStatus.OK,
            token=data.token,
            api_base=data.api_base or COPILOT_API_BASE,
        )

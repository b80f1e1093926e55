"""
th Authentication - GitHub device authorization.

Runs the OAuth device grant against GitHub:

1. ``authorize()`` asks GitHub for a device code and a short user code
2. the user enters the code at the verification URL in a browser
3. ``poll()`` is called every ``interval`` seconds until GitHub issues a token

The issued GitHub token is stored as the long-lived ``refresh`` credential
that the token exchange later trades for Copilot API tokens.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

import httpx
from pydantic import BaseModel, Field, ValidationError, field_validator

from th.client.errors import NetworkError, ProtocolError
from th.client.store import CredentialRecord, CredentialStore, FileCredentialStore
from th.core.config import (
    ACCESS_TOKEN_URL,
    COPILOT_PROVIDER,
    DEVICE_CODE_URL,
    DEVICE_GRANT_TYPE,
    GITHUB_CLIENT_ID,
    GITHUB_SCOPE,
    MAX_POLL_INTERVAL,
    USER_AGENT,
)

logger = logging.getLogger(__name__)


class AuthState(str, Enum):
    """Lifecycle of a device authorization session."""
    NOT_STARTED = "not_started"
    REQUESTED = "requested"
    POLLING = "polling"
    COMPLETE = "complete"
    FAILED = "failed"
    EXPIRED = "expired"


class PollStatus(str, Enum):
    """Outcome of a single poll."""
    PENDING = "pending"
    SLOW_DOWN = "slow_down"
    COMPLETE = "complete"
    FAILED = "failed"
    EXPIRED = "expired"


@dataclass(frozen=True)
class PollResult:
    """Classified token endpoint response."""
    status: PollStatus
    error: Optional[str] = None
    description: Optional[str] = None

    @property
    def terminal(self) -> bool:
        return self.status in (PollStatus.COMPLETE, PollStatus.FAILED, PollStatus.EXPIRED)

    @property
    def reason(self) -> str:
        """Provider error code, with its description when one was sent."""
        if not self.error:
            return ""
        if self.description:
            return f"{self.error}: {self.description}"
        return self.error


class DeviceSession(BaseModel):
    """A pending device authorization. Lives only for one login attempt."""

    device_code: str
    user_code: str
    verification_uri: str
    interval: int
    expires_in: int
    started_at: float = Field(default_factory=time.monotonic)
    state: AuthState = AuthState.REQUESTED

    @field_validator("interval")
    @classmethod
    def _cap_interval(cls, value: int) -> int:
        return min(value, MAX_POLL_INTERVAL)

    @property
    def remaining(self) -> float:
        """Seconds left before GitHub discards the device code."""
        return self.expires_in - (time.monotonic() - self.started_at)

    @property
    def expired(self) -> bool:
        return self.remaining <= 0

    def slow_down(self, requested: Optional[int] = None) -> int:
        """Back off after a ``slow_down`` response.

        The interval at least doubles and never exceeds MAX_POLL_INTERVAL.
        """
        interval = max(self.interval, 1) * 2
        if requested:
            interval = max(interval, requested)
        self.interval = max(self.interval, min(interval, MAX_POLL_INTERVAL))
        return self.interval


class GitHubDeviceAuth:
    """
    GitHub device flow client.

    Network calls go through a fresh ``httpx.AsyncClient`` per request; pass
    ``transport`` to route them elsewhere (tests use ``httpx.MockTransport``).
    """

    def __init__(
        self,
        store: Optional[CredentialStore] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 30.0,
    ):
        self.store = store or FileCredentialStore()
        self.transport = transport
        self.timeout = timeout

    def _headers(self) -> Dict[str, str]:
        return {
            "Accept": "application/json",
            "Content-Type": "application/json",
            "User-Agent": USER_AGENT,
        }

    async def _post(self, url: str, payload: Dict[str, Any]) -> httpx.Response:
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            try:
                return await client.post(url, json=payload, headers=self._headers())
            except httpx.HTTPError as e:
                raise NetworkError(f"Cannot reach GitHub: {e}") from e

    async def authorize(self) -> DeviceSession:
        """
        Request a device code and user code from GitHub.

        Returns:
            The new DeviceSession

        Raises:
            NetworkError: GitHub could not be reached
            ProtocolError: GitHub answered with an unexpected status or body
        """
        response = await self._post(
            DEVICE_CODE_URL,
            {"client_id": GITHUB_CLIENT_ID, "scope": GITHUB_SCOPE},
        )
        if not response.is_success:
            raise ProtocolError(f"Device code request failed: {response.status_code}")

        try:
            session = DeviceSession.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise ProtocolError(f"Unexpected device code response: {e}") from e

        logger.info(f"Device code issued, polling every {session.interval}s for {session.expires_in}s")
        return session

    async def poll(self, session: DeviceSession) -> PollResult:
        """
        Ask GitHub once whether the user has approved the device code.

        On success the GitHub token is stored before returning. A slow-down
        response widens ``session.interval``.

        Raises:
            NetworkError: GitHub could not be reached
            ProtocolError: the response was not a JSON object
        """
        session.state = AuthState.POLLING
        response = await self._post(
            ACCESS_TOKEN_URL,
            {
                "client_id": GITHUB_CLIENT_ID,
                "device_code": session.device_code,
                "grant_type": DEVICE_GRANT_TYPE,
            },
        )

        try:
            data = response.json()
        except ValueError as e:
            raise ProtocolError(f"Token endpoint returned non-JSON ({response.status_code})") from e
        if not isinstance(data, dict):
            raise ProtocolError("Token endpoint returned an unexpected body")

        result = self._classify(session, data)
        logger.debug(f"Poll result: {result.status.value}")

        if result.status == PollStatus.COMPLETE:
            session.state = AuthState.COMPLETE
        elif result.status == PollStatus.EXPIRED:
            session.state = AuthState.EXPIRED
        elif result.status == PollStatus.FAILED:
            session.state = AuthState.FAILED
        return result

    def _classify(self, session: DeviceSession, data: Dict[str, Any]) -> PollResult:
        token = data.get("access_token")
        if isinstance(token, str) and token:
            self.store.save(COPILOT_PROVIDER, CredentialRecord(kind="oauth", refresh=token))
            return PollResult(PollStatus.COMPLETE)

        error = data.get("error")
        if error == "authorization_pending":
            return PollResult(PollStatus.PENDING)
        if error == "slow_down":
            requested = data.get("interval")
            session.slow_down(requested if isinstance(requested, int) else None)
            logger.info(f"GitHub asked to slow down, polling every {session.interval}s")
            return PollResult(PollStatus.SLOW_DOWN)
        if error == "expired_token":
            return PollResult(PollStatus.EXPIRED, error=error, description=data.get("error_description"))

        return PollResult(
            PollStatus.FAILED,
            error=error or "unknown error",
            description=data.get("error_description"),
        )

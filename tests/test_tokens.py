"""Tests for the Copilot token exchange."""

import httpx
import pytest

from th.client.store import CredentialRecord, MemoryCredentialStore
from th.client.tokens import TokenExchange, TokenStatus
from th.core.config import COPILOT_API_BASE, EDITOR_VERSION

NOW = 1_700_000_000_000

COPILOT_BODY = {
    "token": "tid=new;exp=1700001800",
    "expires_at": 1_700_001_800,
    "refresh_in": 1500,
    "endpoints": {"api": "https://api.individual.githubcopilot.com"},
}


def stored(**fields) -> MemoryCredentialStore:
    return MemoryCredentialStore({"github-copilot": {"type": "oauth", **fields}})


def github(user_status: int = 200, token_status: int = 200, token_body=None):
    """Router for the GitHub user and Copilot token endpoints."""
    calls = []

    def router(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        if request.url.path == "/user":
            return httpx.Response(user_status, json={"login": "octocat"})
        if request.url.path == "/copilot_internal/v2/token":
            return httpx.Response(token_status, json=COPILOT_BODY if token_body is None else token_body)
        raise AssertionError(f"unexpected request {request.url}")

    router.calls = calls
    return router


def exchange(store, router) -> TokenExchange:
    return TokenExchange(store, transport=httpx.MockTransport(router), clock=lambda: NOW)


class TestTokenExchange:
    """Tests for TokenExchange.resolve() / access()."""

    @pytest.mark.asyncio
    async def test_no_record_is_unauthenticated_without_network(self) -> None:
        router = github()
        result = await exchange(MemoryCredentialStore(), router).resolve()

        assert result.status == TokenStatus.UNAUTHENTICATED
        assert result.token is None
        assert router.calls == []

    @pytest.mark.asyncio
    async def test_non_oauth_record_is_unauthenticated(self) -> None:
        store = MemoryCredentialStore({"github-copilot": {"type": "api", "key": "k"}})
        router = github()

        assert await exchange(store, router).access() is None
        assert router.calls == []

    @pytest.mark.asyncio
    async def test_missing_refresh_is_unauthenticated(self) -> None:
        result = await exchange(stored(), github()).resolve()
        assert result.status == TokenStatus.UNAUTHENTICATED

    @pytest.mark.asyncio
    async def test_cached_token_skips_exchange(self) -> None:
        router = github()
        store = stored(refresh="gho_1", access="tid=cached", expires=NOW + 60_000)

        result = await exchange(store, router).resolve()

        assert result.status == TokenStatus.CACHED
        assert result.token == "tid=cached"
        assert [r.url.path for r in router.calls] == ["/user"]
        assert router.calls[0].headers["Authorization"] == "Bearer gho_1"

    @pytest.mark.asyncio
    async def test_token_expiring_now_is_refreshed(self) -> None:
        router = github()
        store = stored(refresh="gho_1", access="tid=old", expires=NOW)

        result = await exchange(store, router).resolve()

        assert result.status == TokenStatus.OK
        assert result.token == COPILOT_BODY["token"]
        assert [r.url.path for r in router.calls] == ["/user", "/copilot_internal/v2/token"]

    @pytest.mark.asyncio
    async def test_exchange_persists_token_in_milliseconds(self) -> None:
        router = github()
        store = stored(refresh="gho_1")

        token = await exchange(store, router).access()

        assert token == COPILOT_BODY["token"]
        assert store.load("github-copilot") == CredentialRecord(
            kind="oauth",
            refresh="gho_1",
            access=COPILOT_BODY["token"],
            expires=COPILOT_BODY["expires_at"] * 1000,
            endpoint="https://api.individual.githubcopilot.com",
        )

        request = router.calls[1]
        assert request.headers["Authorization"] == "Bearer gho_1"
        assert request.headers["Editor-Version"] == EDITOR_VERSION
        assert "Editor-Plugin-Version" in request.headers

    @pytest.mark.asyncio
    async def test_exchange_exposes_api_endpoint(self) -> None:
        result = await exchange(stored(refresh="gho_1"), github()).resolve()
        assert result.api_base == "https://api.individual.githubcopilot.com"

    @pytest.mark.asyncio
    async def test_exchange_without_endpoints_uses_default_api(self) -> None:
        body = {"token": "t", "expires_at": 1}
        result = await exchange(stored(refresh="gho_1"), github(token_body=body)).resolve()
        assert result.api_base == COPILOT_API_BASE

    @pytest.mark.asyncio
    async def test_cached_token_keeps_issued_endpoint(self) -> None:
        body = {**COPILOT_BODY, "endpoints": {"api": "https://api.business.githubcopilot.com"}}
        router = github(token_body=body)
        tokens = exchange(stored(refresh="gho_1"), router)

        first = await tokens.resolve()
        second = await tokens.resolve()

        assert first.status == TokenStatus.OK
        assert second.status == TokenStatus.CACHED
        assert second.token == first.token
        assert second.api_base == first.api_base == "https://api.business.githubcopilot.com"

    @pytest.mark.asyncio
    async def test_cached_token_without_endpoint_uses_default_api(self) -> None:
        store = stored(refresh="gho_1", access="tid=cached", expires=NOW + 60_000)
        result = await exchange(store, github()).resolve()
        assert result.api_base == COPILOT_API_BASE

    @pytest.mark.asyncio
    @pytest.mark.parametrize("endpoints", [None, [], "api", {"api": 42}, {"api": ""}])
    async def test_unusable_endpoints_fall_back_to_default_api(self, endpoints) -> None:
        body = {"token": "t", "expires_at": 1_700_001_800, "endpoints": endpoints}
        store = stored(refresh="gho_1")

        result = await exchange(store, github(token_body=body)).resolve()

        assert result.status == TokenStatus.OK
        assert result.api_base == COPILOT_API_BASE
        assert store.load("github-copilot").endpoint is None

    @pytest.mark.asyncio
    async def test_rejected_refresh_ignores_cached_token(self) -> None:
        router = github(user_status=401)
        store = stored(refresh="gho_revoked", access="tid=cached", expires=NOW + 3_600_000)

        result = await exchange(store, router).resolve()

        assert result.status == TokenStatus.EXPIRED
        assert result.token is None
        assert [r.url.path for r in router.calls] == ["/user"]

    @pytest.mark.asyncio
    async def test_validation_network_failure_is_no_token(self) -> None:
        def offline(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("offline", request=request)

        store = stored(refresh="gho_1", access="tid=cached", expires=NOW + 60_000)
        result = await exchange(store, offline).resolve()

        assert result.status == TokenStatus.TRANSPORT_FAILURE
        assert result.token is None

    @pytest.mark.asyncio
    async def test_exchange_rejection_is_no_token_and_keeps_store(self) -> None:
        store = stored(refresh="gho_1")
        before = store.all()

        result = await exchange(store, github(token_status=403)).resolve()

        assert result.status == TokenStatus.EXPIRED
        assert store.all() == before

    @pytest.mark.asyncio
    async def test_malformed_exchange_body_is_protocol_mismatch(self) -> None:
        result = await exchange(stored(refresh="gho_1"), github(token_body={"nope": True})).resolve()
        assert result.status == TokenStatus.PROTOCOL_MISMATCH
        assert result.token is None

"""
Tests for the access token provider.
"""

from urllib.parse import parse_qs

import httpx
import jwt
import pytest

from storepublish.exceptions import AuthenticationError, TransportError
from storepublish.services.token_provider import TokenProvider

TOKEN_URL = "https://login.example.com/tenant/oauth2/token"
SIGNING_KEY = "test-signing-key-that-is-long-enough-for-hs256"


def signed_token(exp: float) -> str:
    return jwt.encode({"exp": int(exp), "aud": "api"}, SIGNING_KEY, algorithm="HS256")


def make_provider(handler, clock, **kwargs) -> tuple[TokenProvider, list[httpx.Request]]:
    requests: list[httpx.Request] = []

    def recording(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return handler(request)

    params = {
        "token_url": TOKEN_URL,
        "tenant_id": "tenant",
        "client_id": "client",
        "client_secret": "secret",
        "resource": "https://api.example.com",
    }
    params.update(kwargs)
    provider = TokenProvider(
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(recording)),
        clock=clock,
        **params,
    )
    return provider, requests


class TestGetToken:
    """Tests for acquiring and caching tokens."""

    @pytest.mark.asyncio
    async def test_client_credentials_grant(self, clock):
        """The form body carries the client-credentials grant."""
        provider, requests = make_provider(
            lambda r: httpx.Response(200, json={"access_token": "opaque", "expires_in": 3600}),
            clock,
        )

        token = await provider.get_token()

        assert token == "opaque"
        form = parse_qs(requests[0].content.decode())
        assert form["grant_type"] == ["client_credentials"]
        assert form["client_id"] == ["client"]
        assert form["client_secret"] == ["secret"]
        assert form["resource"] == ["https://api.example.com"]

    @pytest.mark.asyncio
    async def test_cached_token_reused(self, clock):
        """A valid token is served from the cache."""
        provider, requests = make_provider(
            lambda r: httpx.Response(200, json={"access_token": "opaque", "expires_in": 3600}),
            clock,
        )

        await provider.get_token()
        clock.advance(600)
        await provider.get_token()

        assert len(requests) == 1
        assert provider.acquired_at == 1_000_000.0

    @pytest.mark.asyncio
    async def test_force_refresh(self, clock):
        """force_refresh always requests a new token."""
        provider, requests = make_provider(
            lambda r: httpx.Response(200, json={"access_token": "opaque", "expires_in": 3600}),
            clock,
        )

        await provider.get_token()
        clock.advance(10)
        await provider.get_token(force_refresh=True)

        assert len(requests) == 2
        assert provider.acquired_at == 1_000_010.0

    @pytest.mark.asyncio
    async def test_refresh_near_expiry(self, clock):
        """A token close to its expiry is replaced."""
        provider, requests = make_provider(
            lambda r: httpx.Response(200, json={"access_token": "opaque", "expires_in": 3600}),
            clock,
        )

        await provider.get_token()
        clock.advance(3400)
        await provider.get_token()

        assert len(requests) == 2

    @pytest.mark.asyncio
    async def test_expiry_read_from_jwt(self, clock):
        """The exp claim wins over expires_in."""
        token = signed_token(clock.now + 400)
        provider, requests = make_provider(
            lambda r: httpx.Response(200, json={"access_token": token, "expires_in": 3600}),
            clock,
        )

        assert await provider.get_token() == token
        clock.advance(200)
        await provider.get_token()

        assert len(requests) == 2

    @pytest.mark.asyncio
    async def test_no_expiry_information(self, clock):
        """Without exp or expires_in the token is reused until forced."""
        provider, requests = make_provider(
            lambda r: httpx.Response(200, json={"access_token": "opaque"}), clock
        )

        await provider.get_token()
        clock.advance(100_000)
        await provider.get_token()

        assert len(requests) == 1

    def test_no_token_yet(self, clock):
        """Before the first request there is no acquisition time."""
        provider, _ = make_provider(lambda r: httpx.Response(500), clock)
        assert provider.acquired_at is None


class TestFailures:
    """Tests for token endpoint failures."""

    @pytest.mark.asyncio
    async def test_missing_credentials(self, clock):
        """No request is made without credentials."""
        provider, requests = make_provider(
            lambda r: httpx.Response(200, json={"access_token": "x"}), clock, client_secret=""
        )

        with pytest.raises(AuthenticationError):
            await provider.get_token()

        assert requests == []

    @pytest.mark.asyncio
    async def test_rejected_credentials(self, clock):
        """A 4xx from the token endpoint is an authentication failure."""
        provider, _ = make_provider(
            lambda r: httpx.Response(400, json={"error": "invalid_client"}), clock
        )

        with pytest.raises(AuthenticationError, match="400"):
            await provider.get_token()

    @pytest.mark.asyncio
    async def test_response_without_token(self, clock):
        """A success body without access_token is rejected."""
        provider, _ = make_provider(lambda r: httpx.Response(200, json={}), clock)

        with pytest.raises(AuthenticationError, match="no access_token"):
            await provider.get_token()

    @pytest.mark.asyncio
    async def test_unreachable(self, clock):
        """Network failures surface as TransportError."""

        def fail(request):
            raise httpx.ConnectTimeout("timed out", request=request)

        provider, _ = make_provider(fail, clock)

        with pytest.raises(TransportError):
            await provider.get_token()

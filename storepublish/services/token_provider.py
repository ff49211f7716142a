"""
Access Token Provider - Azure AD client-credentials grant for the submission API.
"""

import time
from collections.abc import Callable
from dataclasses import dataclass

import httpx
import jwt
from structlog import get_logger

from storepublish.config import Settings
from storepublish.exceptions import AuthenticationError, TransportError

logger = get_logger(__name__)

# Refresh this many seconds before the token's own expiry
_EXPIRY_BUFFER_SECONDS = 300


@dataclass(frozen=True)
class AccessToken:
    """A bearer token and when it was obtained."""

    value: str
    acquired_at: float
    expires_at: float | None = None


class TokenProvider:
    """
    Obtains and caches bearer tokens for the submission API.

    The acquisition time is recorded with the injected clock so that long
    running callers can tell whether a token has likely outlived its validity.
    """

    def __init__(
        self,
        token_url: str,
        tenant_id: str,
        client_id: str,
        client_secret: str,
        resource: str,
        http_client: httpx.AsyncClient | None = None,
        clock: Callable[[], float] = time.time,
        timeout: float = 30.0,
    ) -> None:
        self.token_url = token_url
        self.tenant_id = tenant_id
        self.client_id = client_id
        self.client_secret = client_secret
        self.resource = resource
        self.timeout = timeout
        self._clock = clock
        self._http_client = http_client
        self._token: AccessToken | None = None

    @classmethod
    def from_settings(
        cls, settings: Settings, http_client: httpx.AsyncClient | None = None
    ) -> "TokenProvider":
        """Build a provider from application settings."""
        return cls(
            token_url=settings.token_url,
            tenant_id=settings.tenant_id,
            client_id=settings.client_id,
            client_secret=settings.client_secret,
            resource=settings.token_resource,
            http_client=http_client,
            timeout=settings.request_timeout,
        )

    @property
    def http_client(self) -> httpx.AsyncClient:
        """Get HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient()
        return self._http_client

    @property
    def acquired_at(self) -> float | None:
        """Clock reading when the cached token was obtained (None if no token yet)."""
        return self._token.acquired_at if self._token else None

    async def get_token(self, force_refresh: bool = False) -> str:
        """
        Return a bearer token, requesting a new one when needed.

        Args:
            force_refresh: Ignore any cached token

        Raises:
            AuthenticationError: If credentials are missing or rejected
            TransportError: If the token endpoint cannot be reached
        """
        now = self._clock()
        if self._token is not None and not force_refresh:
            expires_at = self._token.expires_at
            if expires_at is None or now < expires_at - _EXPIRY_BUFFER_SECONDS:
                return self._token.value

        self._token = await self._request_token()
        return self._token.value

    async def _request_token(self) -> AccessToken:
        if not (self.tenant_id and self.client_id and self.client_secret):
            raise AuthenticationError(
                "tenant_id, client_id and client_secret must be configured"
            )

        data = {
            "grant_type": "client_credentials",
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "resource": self.resource,
        }

        logger.info("requesting_access_token", client_id=self.client_id)

        try:
            response = await self.http_client.post(self.token_url, data=data, timeout=self.timeout)
            response.raise_for_status()
            token_data = response.json()
        except httpx.HTTPStatusError as e:
            logger.error(
                "access_token_request_failed",
                status=e.response.status_code,
                text=e.response.text,
            )
            raise AuthenticationError(
                f"Token endpoint returned {e.response.status_code}"
            ) from e
        except httpx.TransportError as e:
            logger.error("access_token_transport_error", error=str(e))
            raise TransportError(f"Token endpoint unreachable: {e}") from e

        value = token_data.get("access_token")
        if not value:
            raise AuthenticationError("Token endpoint response has no access_token")

        acquired_at = self._clock()
        expires_at = self._read_expiry(value)
        if expires_at is None and token_data.get("expires_in"):
            expires_at = acquired_at + float(token_data["expires_in"])

        logger.info("access_token_acquired", expires_at=expires_at)
        return AccessToken(value=value, acquired_at=acquired_at, expires_at=expires_at)

    def _read_expiry(self, token: str) -> float | None:
        """Read the exp claim without verifying the signature."""
        try:
            claims: dict[str, object] = jwt.decode(token, options={"verify_signature": False})
        except jwt.exceptions.DecodeError:
            return None
        exp = claims.get("exp")
        return float(exp) if isinstance(exp, (int, float)) else None

    async def close(self) -> None:
        """Close HTTP client."""
        if self._http_client:
            await self._http_client.aclose()

"""
Dropbox OAuth access-token lifecycle.

Exchanges the long-lived refresh token for short-lived access tokens and
caches the current one until it expires.
"""
import asyncio
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable

import httpx

from app.errors import AuthConfigError, AuthRefreshError
from app.logging_config import get_logger

logger = get_logger(__name__)

TOKEN_URL = "https://api.dropbox.com/oauth2/token"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class AccessToken:
    value: str
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at


class TokenManager:
    """
    Owns the Dropbox access token for one process.

    `obtain()` returns the cached token while it is valid and performs a
    single refresh exchange otherwise. Refreshes are serialized so that
    concurrent callers holding an expired token trigger one exchange.
    """

    def __init__(
        self,
        app_key: str | None,
        app_secret: str | None,
        refresh_token: str | None,
        http_client: httpx.AsyncClient,
        token_url: str = TOKEN_URL,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.app_key = app_key
        self.app_secret = app_secret
        self._refresh_token = refresh_token
        self._http = http_client
        self.token_url = token_url
        self._clock = clock
        self._token: AccessToken | None = None
        self._lock = asyncio.Lock()

    @property
    def refresh_token(self) -> str | None:
        return self._refresh_token

    def _check_config(self) -> None:
        missing = [
            name
            for name, value in (
                ("DROPBOX_APP_KEY", self.app_key),
                ("DROPBOX_APP_SECRET", self.app_secret),
                ("DROPBOX_REFRESH_TOKEN", self._refresh_token),
            )
            if not value
        ]
        if missing:
            raise AuthConfigError(
                f"Missing Dropbox credentials: {', '.join(missing)}"
            )

    async def obtain(self) -> AccessToken:
        """Return a valid access token, refreshing it if absent or expired."""
        self._check_config()

        token = self._token
        if token is not None and not token.is_expired(self._clock()):
            return token

        async with self._lock:
            # Another caller may have refreshed while we waited
            token = self._token
            if token is not None and not token.is_expired(self._clock()):
                return token
            self._token = None
            self._token = await self._refresh()
            return self._token

    def invalidate(self) -> None:
        """Drop the cached token so the next `obtain()` refreshes."""
        self._token = None

    async def _refresh(self) -> AccessToken:
        exchanged_at = self._clock()
        try:
            response = await self._http.post(
                self.token_url,
                data={
                    "grant_type": "refresh_token",
                    "refresh_token": self._refresh_token,
                    "client_id": self.app_key,
                    "client_secret": self.app_secret,
                },
            )
        except httpx.HTTPError as e:
            logger.error(f"Error refreshing Dropbox token: {type(e).__name__}: {e}")
            raise AuthRefreshError(f"Token exchange failed: {e}") from e

        if not response.is_success:
            logger.error(
                f"Error refreshing Dropbox token: HTTP {response.status_code}"
            )
            raise AuthRefreshError(
                f"Failed to refresh token: {response.status_code} {response.reason_phrase}"
            )

        try:
            data = response.json()
            access_token = data["access_token"]
            expires_in = int(data["expires_in"])
        except (ValueError, KeyError, TypeError) as e:
            raise AuthRefreshError(f"Malformed token response: {e}") from e

        # Dropbox only returns a refresh token when it rotates it
        if data.get("refresh_token"):
            self._refresh_token = data["refresh_token"]

        logger.info("Successfully refreshed Dropbox access token")
        return AccessToken(
            value=access_token,
            expires_at=exchanged_at + timedelta(seconds=expires_in),
        )

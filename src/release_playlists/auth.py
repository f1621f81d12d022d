"""
OAuth token management for Spotify (primary) and Reddit (secondary)

Spotify access tokens only last an hour, so every run trades the stored
refresh token for a fresh access token before touching any playlist.
Spotify may hand back a new refresh token with it; when it does, that one
replaces the old one.

Reddit app-only tokens come from a client-credentials grant and are only
renewed during the SECONDARY_REFRESH_HOURS; other runs reuse the cached one.

All tokens are written back to the .env store, which the other components
read afterwards in the same run.
"""

import logging
from datetime import datetime
from typing import Optional

from . import config
from .env import EnvStore
from .http import HttpClient, Request, response_field

logger = logging.getLogger(__name__)


class CredentialManager:
    """Acquires and rotates the tokens for both integrations."""

    def __init__(self, env: EnvStore, http: HttpClient):
        self.env = env
        self.http = http

    # -------------------------
    # Spotify (primary)
    # -------------------------
    def refresh_primary_token(self) -> str:
        """Exchange the stored refresh token for a new access token."""
        url = f"{self.env.get(config.SPOTIFY_AUTH_URI).rstrip('/')}/token"
        request = (
            Request.post(url)
            .with_form("grant_type", "refresh_token")
            .with_form("refresh_token", self.env.get(config.SPOTIFY_REFRESH_TOKEN))
            .with_basic_auth(
                self.env.get(config.SPOTIFY_CLIENT_ID),
                self.env.get(config.SPOTIFY_CLIENT_SECRET),
            )
        )
        response = self.http.execute(request)

        access_token = response_field(response, "access_token", url=request.url)
        self.env.set(config.SPOTIFY_ACCESS_TOKEN, access_token)
        logger.info("Refreshed Spotify access token")

        if response.get("refresh_token"):
            self.env.set(config.SPOTIFY_REFRESH_TOKEN, response["refresh_token"])
            logger.info("Spotify rotated the refresh token")

        return access_token

    def primary_auth_header(self) -> str:
        return f"Bearer {self.env.get(config.SPOTIFY_ACCESS_TOKEN)}"

    # -------------------------
    # Reddit (secondary)
    # -------------------------
    def secondary_refresh_due(self, now: datetime) -> bool:
        """Whether this run falls in one of the twice-daily refresh windows."""
        return now.hour in config.SECONDARY_REFRESH_HOURS

    def get_or_refresh_secondary_token(self, now: datetime) -> str:
        """
        Return the Reddit token, fetching a new one during the refresh windows.

        Outside the windows the cached token is returned without any expiry
        check. A token is only fetched off-schedule when none was ever cached.
        """
        if not self.secondary_refresh_due(now) and self.env.has(config.REDDIT_ACCESS_TOKEN):
            return self.env.get(config.REDDIT_ACCESS_TOKEN)

        request = (
            Request.post(self.env.get(config.REDDIT_AUTH_URI))
            .with_form("grant_type", "client_credentials")
            .with_basic_auth(
                self.env.get(config.REDDIT_CLIENT_ID),
                self.env.get(config.REDDIT_CLIENT_SECRET),
            )
        )
        response = self.http.execute(request)

        access_token = response_field(response, "access_token", url=request.url)
        self.env.set(config.REDDIT_ACCESS_TOKEN, access_token)
        logger.info("Refreshed Reddit access token")
        return access_token

    def secondary_auth_header(self, now: datetime) -> str:
        return f"bearer {self.get_or_refresh_secondary_token(now)}"

    def cached_secondary_auth_header(self) -> Optional[str]:
        """Header from the stored Reddit token without contacting Reddit, or None."""
        if not self.env.has(config.REDDIT_ACCESS_TOKEN):
            return None
        return f"bearer {self.env.get(config.REDDIT_ACCESS_TOKEN)}"

    def secondary_configured(self) -> bool:
        """Reddit auth is optional; the wiki is read anonymously without it."""
        return self.env.has(config.REDDIT_CLIENT_ID)

"""
Tests for auth.py - Spotify and Reddit token management

Token endpoints are served by the fake HTTP client; tokens are written to
a temporary .env file.
"""

from datetime import datetime

import pytest

from release_playlists.auth import CredentialManager
from release_playlists.env import EnvStore
from release_playlists.errors import RemoteRejectionError, TransportError

from conftest import AUTH_URI, REDDIT_AUTH_URI


@pytest.fixture
def reddit_env(reddit_env_file, monkeypatch):
    monkeypatch.delenv("REDDIT_ACCESS_TOKEN", raising=False)
    return EnvStore(reddit_env_file, lock_timeout=1.0)


class TestPrimaryToken:
    """Tests for the Spotify refresh-token grant."""

    def test_refresh_sends_refresh_token_grant(self, env, http):
        """The request should use the stored refresh token and client credentials."""
        http.on("POST", f"{AUTH_URI}/token", {"access_token": "new_access"})
        credentials = CredentialManager(env, http)

        credentials.refresh_primary_token()

        request = http.calls("POST")[0]
        assert request.url == f"{AUTH_URI}/token"
        assert dict(request.form) == {
            "grant_type": "refresh_token",
            "refresh_token": "test_refresh_token",
        }
        assert request.basic_auth == ("test_client_id", "test_client_secret")

    def test_refresh_stores_access_token(self, env, env_file, http):
        """The new access token is persisted and used for the auth header."""
        http.on("POST", f"{AUTH_URI}/token", {"access_token": "new_access"})
        credentials = CredentialManager(env, http)

        assert credentials.refresh_primary_token() == "new_access"
        assert credentials.primary_auth_header() == "Bearer new_access"
        assert EnvStore(env_file).get("SPOTIFY_ACCESS_TOKEN") == "new_access"

    def test_refresh_keeps_refresh_token_when_not_rotated(self, env, env_file, http):
        http.on("POST", f"{AUTH_URI}/token", {"access_token": "new_access"})
        CredentialManager(env, http).refresh_primary_token()

        assert EnvStore(env_file).get("SPOTIFY_REFRESH_TOKEN") == "test_refresh_token"

    def test_refresh_stores_rotated_refresh_token(self, env, env_file, http):
        """When Spotify returns a new refresh token it replaces the old one."""
        http.on("POST", f"{AUTH_URI}/token", {
            "access_token": "new_access",
            "refresh_token": "rotated_refresh",
        })
        CredentialManager(env, http).refresh_primary_token()

        assert env.get("SPOTIFY_REFRESH_TOKEN") == "rotated_refresh"
        assert EnvStore(env_file).get("SPOTIFY_REFRESH_TOKEN") == "rotated_refresh"

    def test_rejected_refresh_leaves_tokens_untouched(self, env, http):
        http.on("POST", f"{AUTH_URI}/token", RemoteRejectionError(400, "invalid_grant"))
        credentials = CredentialManager(env, http)

        with pytest.raises(RemoteRejectionError):
            credentials.refresh_primary_token()
        assert env.get("SPOTIFY_ACCESS_TOKEN") == "old_access_token"


class TestSecondaryToken:
    """Tests for the Reddit client-credentials grant."""

    @pytest.mark.parametrize("hour,due", [(0, True), (12, True), (1, False), (11, False), (23, False)])
    def test_refresh_window(self, env, http, hour, due):
        credentials = CredentialManager(env, http)
        assert credentials.secondary_refresh_due(datetime(2020, 7, 10, hour, 30)) is due

    def test_refreshes_in_window(self, reddit_env, reddit_env_file, http):
        """At midnight a new token is fetched even if one is cached."""
        reddit_env.set("REDDIT_ACCESS_TOKEN", "cached")
        http.on("POST", REDDIT_AUTH_URI, {"access_token": "fresh_reddit"})
        credentials = CredentialManager(reddit_env, http)

        token = credentials.get_or_refresh_secondary_token(datetime(2020, 7, 10, 0, 5))

        assert token == "fresh_reddit"
        request = http.calls("POST", REDDIT_AUTH_URI)[0]
        assert dict(request.form) == {"grant_type": "client_credentials"}
        assert request.basic_auth == ("reddit_client", "reddit_secret")
        assert EnvStore(reddit_env_file).get("REDDIT_ACCESS_TOKEN") == "fresh_reddit"

    def test_reuses_cached_token_outside_window(self, reddit_env, http):
        """Between refresh hours the cached token is used without a request."""
        reddit_env.set("REDDIT_ACCESS_TOKEN", "cached")
        credentials = CredentialManager(reddit_env, http)

        token = credentials.get_or_refresh_secondary_token(datetime(2020, 7, 10, 15, 45))

        assert token == "cached"
        assert http.requests == []

    def test_bootstraps_when_never_cached(self, reddit_env, http):
        """With no cached token one is fetched regardless of the hour."""
        http.on("POST", REDDIT_AUTH_URI, {"access_token": "first_reddit"})
        credentials = CredentialManager(reddit_env, http)

        token = credentials.get_or_refresh_secondary_token(datetime(2020, 7, 10, 15, 45))

        assert token == "first_reddit"
        assert len(http.calls("POST", REDDIT_AUTH_URI)) == 1

    def test_secondary_configured(self, env, reddit_env, http):
        assert CredentialManager(env, http).secondary_configured() is False
        assert CredentialManager(reddit_env, http).secondary_configured() is True

    def test_secondary_auth_header(self, reddit_env, http):
        """The wiki header uses the lowercase bearer scheme Reddit expects."""
        http.on("POST", REDDIT_AUTH_URI, {"access_token": "fresh_reddit"})
        credentials = CredentialManager(reddit_env, http)

        assert credentials.secondary_auth_header(datetime(2020, 7, 10, 12, 0)) == "bearer fresh_reddit"

    def test_cached_secondary_auth_header_never_requests(self, reddit_env, http):
        """The cached header reads the stored token even during a refresh hour."""
        reddit_env.set("REDDIT_ACCESS_TOKEN", "cached")
        credentials = CredentialManager(reddit_env, http)

        assert credentials.cached_secondary_auth_header() == "bearer cached"
        assert http.requests == []

    def test_cached_secondary_auth_header_none_without_token(self, reddit_env, http):
        credentials = CredentialManager(reddit_env, http)

        assert credentials.cached_secondary_auth_header() is None
        assert http.requests == []


class TestMalformedTokenResponse:
    """Tests for 2xx token responses that lack the token."""

    def test_primary_response_without_access_token(self, env, http):
        http.on("POST", f"{AUTH_URI}/token", {"token_type": "Bearer"})
        credentials = CredentialManager(env, http)

        with pytest.raises(TransportError, match="access_token"):
            credentials.refresh_primary_token()
        assert env.get("SPOTIFY_ACCESS_TOKEN") == "old_access_token"

    def test_secondary_response_without_access_token(self, reddit_env, http):
        http.on("POST", REDDIT_AUTH_URI, {"error": "unsupported"})
        credentials = CredentialManager(reddit_env, http)

        with pytest.raises(TransportError, match="access_token"):
            credentials.get_or_refresh_secondary_token(datetime(2020, 7, 10, 0, 5))
        assert reddit_env.has("REDDIT_ACCESS_TOKEN") is False

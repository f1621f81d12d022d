"""
Playlist registry: which Spotify playlist belongs to which scope

A scope is a (label, year) pair. Month playlists use the month name,
year playlists the 'All' label and the rolling playlist ('Current', 0).
The first time a scope is needed a playlist is created on Spotify and its
ID saved, so every later run reuses it.

Lookup-then-create is not atomic: two concurrent runs could both create
the same playlist. Runs are expected to be sequential.
"""

import logging
from dataclasses import dataclass
from typing import Callable, NamedTuple, Optional

from .. import config
from ..auth import CredentialManager
from ..collection.wiki import wiki_page_url
from ..db import Store
from ..env import EnvStore
from ..errors import MissingStateError
from ..http import HttpClient, Request, response_field

logger = logging.getLogger(__name__)


class ScopeKey(NamedTuple):
    label: str
    year: int


CURRENT_SCOPE = ScopeKey(config.CURRENT_LABEL, config.CURRENT_YEAR)


@dataclass(frozen=True)
class CollectionRecord:
    scope: ScopeKey
    remote_id: str
    display_name: str


def month_scope(month: str, year: int) -> ScopeKey:
    return ScopeKey(month, year)


def year_scope(year: int) -> ScopeKey:
    return ScopeKey(config.YEAR_LABEL, year)


class CollectionRegistry:
    """Maps scopes to Spotify playlist IDs, creating playlists on first use."""

    def __init__(
        self,
        store: Store,
        env: EnvStore,
        http: HttpClient,
        credentials: CredentialManager,
    ):
        self.store = store
        self.env = env
        self.http = http
        self.credentials = credentials

    def lookup(self, scope: ScopeKey) -> Optional[CollectionRecord]:
        cursor = self.store.connection.cursor()
        cursor.execute(
            "SELECT spotify_id, name FROM playlists WHERE month = ? AND year = ?",
            (scope.label, scope.year),
        )
        row = cursor.fetchone()
        if row is None:
            return None
        return CollectionRecord(scope, row["spotify_id"], row["name"])

    def records(self) -> list[CollectionRecord]:
        """All registered playlists, oldest first."""
        cursor = self.store.connection.cursor()
        cursor.execute(
            "SELECT spotify_id, name, month, year FROM playlists ORDER BY created_at, rowid"
        )
        return [
            CollectionRecord(ScopeKey(row["month"], row["year"]), row["spotify_id"], row["name"])
            for row in cursor.fetchall()
        ]

    def create_or_fetch(
        self,
        scope: ScopeKey,
        describe: Callable[[ScopeKey], tuple[str, str]],
    ) -> str:
        """
        Return the playlist ID for a scope, creating the playlist if needed.

        Args:
            scope: (label, year) key
            describe: Builds (name, description) for a new playlist

        Returns:
            Spotify playlist ID
        """
        record = self.lookup(scope)
        if record is not None:
            return record.remote_id

        name, description = describe(scope)
        url = f"{self._api_uri()}/me/playlists"
        request = (
            Request.post(url)
            .with_header("Authorization", self.credentials.primary_auth_header())
            .with_json({
                "name": name,
                "public": config.PLAYLISTS_PUBLIC,
                "description": description,
            })
        )
        response = self.http.execute(request)
        spotify_id = response_field(response, "id", url=url)

        cursor = self.store.connection.cursor()
        cursor.execute(
            "INSERT INTO playlists (spotify_id, name, month, year) VALUES (?, ?, ?, ?)",
            (spotify_id, name, scope.label, scope.year),
        )
        self.store.connection.commit()

        logger.info("Created playlist '%s' (%s) for %s/%s", name, spotify_id, scope.label, scope.year)
        return spotify_id

    # -------------------------
    # Scope helpers
    # -------------------------
    def month_playlist(self, month: str, year: int) -> str:
        return self.create_or_fetch(month_scope(month, year), self._describe_month)

    def year_playlist(self, year: int) -> str:
        return self.create_or_fetch(year_scope(year), self._describe_year)

    def current_playlist(self) -> str:
        return self.create_or_fetch(CURRENT_SCOPE, self._describe_current)

    def clear_current(self):
        """
        Empty the "Current" playlist. The playlist itself is kept.

        Raises:
            MissingStateError: if the Current playlist was never created
        """
        record = self.lookup(CURRENT_SCOPE)
        if record is None:
            raise MissingStateError("Could not find Current playlist in database")

        url = f"{self._api_uri()}/playlists/{record.remote_id}/tracks"
        request = (
            Request.put(url)
            .with_header("Authorization", self.credentials.primary_auth_header())
            .with_header("Content-Type", "application/json")
            .with_json({"uris": []})
        )
        self.http.execute(request)
        logger.info("Cleared '%s' for the new month", record.display_name)

    # -------------------------
    # Names and descriptions
    # -------------------------
    def _describe_month(self, scope: ScopeKey) -> tuple[str, str]:
        wiki_url = wiki_page_url(self.env.get(config.RELEASES_LINK), scope.label, scope.year)
        name = config.MONTH_NAME_TEMPLATE.format(month=scope.label, year=scope.year)
        description = config.MONTH_DESCRIPTION_TEMPLATE.format(
            month=scope.label,
            year=scope.year,
            genre=config.RELEASES_GENRE,
            wiki_url=wiki_url,
        )
        return name, description

    def _describe_year(self, scope: ScopeKey) -> tuple[str, str]:
        name = config.YEAR_NAME_TEMPLATE.format(year=scope.year)
        description = config.YEAR_DESCRIPTION_TEMPLATE.format(
            year=scope.year, genre=config.RELEASES_GENRE
        )
        return name, description

    def _describe_current(self, scope: ScopeKey) -> tuple[str, str]:
        return config.CURRENT_NAME, config.CURRENT_DESCRIPTION_TEMPLATE.format(
            genre=config.RELEASES_GENRE
        )

    def _api_uri(self) -> str:
        return self.env.get(config.SPOTIFY_API_URI).rstrip("/")

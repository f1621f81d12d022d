"""
Release routing: add a wiki release to its target playlists

A release is a Spotify web URL for either a track or an album:

    https://open.spotify.com/track/1UyYXStg3u4KoZSZix3LGF
    https://open.spotify.com/album/4aawyAB9vmqN3uQ7FjRGTy

Tracks are added as a single URI, albums as all of their tracks in album
order. Every insert goes to position 0, so the newest release ends up on
top of the playlist while each album stays together and in order.

A release is marked processed only after every target playlist accepted
it. A failure part-way leaves it unmarked, so the next run retries all of
its playlists (some may receive it twice).
"""

import logging
import re
from dataclasses import dataclass
from typing import Sequence

from .. import config
from ..auth import CredentialManager
from ..db import ProcessedSet
from ..env import EnvStore
from ..errors import MalformedReleaseError
from ..http import HttpClient, Request, response_field

logger = logging.getLogger(__name__)

ALBUM_URL_PATTERN = re.compile(r"/album/([A-Za-z0-9]+)")
TRACK_URL_PATTERN = re.compile(r"/track/([A-Za-z0-9]+)")


@dataclass(frozen=True)
class Release:
    url: str
    kind: str          # "track" or "album"
    release_id: str


def classify_release(url: str) -> Release:
    """
    Work out whether a release URL points at an album or a track.

    Raises:
        MalformedReleaseError: if it is neither
    """
    match = ALBUM_URL_PATTERN.search(url)
    if match:
        return Release(url, "album", match.group(1))

    match = TRACK_URL_PATTERN.search(url)
    if match:
        return Release(url, "track", match.group(1))

    raise MalformedReleaseError(url)


class ReleaseRouter:
    """Adds releases to playlists, skipping ones that were already processed."""

    def __init__(
        self,
        processed: ProcessedSet,
        env: EnvStore,
        http: HttpClient,
        credentials: CredentialManager,
    ):
        self.processed = processed
        self.env = env
        self.http = http
        self.credentials = credentials

    def route(self, release_url: str, playlist_ids: Sequence[str]) -> bool:
        """
        Add a release to every playlist in playlist_ids, in order.

        Returns:
            True if the release was added, False if it was already processed

        Raises:
            MalformedReleaseError: if the URL is not a track or album link
        """
        if self.processed.is_processed(release_url):
            return False

        release = classify_release(release_url)
        track_uris = self.resolve_track_uris(release)

        if not track_uris:
            logger.warning("Album %s has no tracks; nothing to add", release_url)
        else:
            for playlist_id in playlist_ids:
                self.insert_at_head(playlist_id, track_uris)

        self.processed.mark_processed(release_url)
        logger.info(
            "Added %s %s (%d track%s) to %d playlist(s)",
            release.kind, release.release_id, len(track_uris),
            "" if len(track_uris) == 1 else "s", len(playlist_ids),
        )
        return True

    def resolve_track_uris(self, release: Release) -> list[str]:
        """Spotify track URIs for a release, in album order for albums."""
        if release.kind == "album":
            return self.get_album_track_uris(release.release_id)
        return [self.get_track_uri(release.release_id)]

    def get_track_uri(self, track_id: str) -> str:
        """
        Convert a track ID into its Spotify URI. e.g.
            1UyYXStg3u4KoZSZix3LGF -> spotify:track:1UyYXStg3u4KoZSZix3LGF
        """
        request = self._authorized(Request.get(f"{self._api_uri()}/tracks/{track_id}"))
        return response_field(self.http.execute(request), "uri", url=request.url)

    def get_album_track_uris(self, album_id: str) -> list[str]:
        """Track URIs of the album's first page; longer albums are cut off with a warning."""
        request = self._authorized(
            Request.get(f"{self._api_uri()}/albums/{album_id}/tracks")
            .with_query("limit", config.ALBUM_TRACKS_LIMIT)
        )
        response = self.http.execute(request)
        items = response_field(response, "items", url=request.url)

        if response.get("next"):
            logger.warning(
                "Album %s has more than %d tracks; only the first %d are added",
                album_id, config.ALBUM_TRACKS_LIMIT, len(items),
            )
        return [track["uri"] for track in items]

    def insert_at_head(self, playlist_id: str, track_uris: list[str]):
        """Insert a batch of tracks at the top of a playlist, keeping their order."""
        request = self._authorized(
            Request.post(f"{self._api_uri()}/playlists/{playlist_id}/tracks")
            .with_json({"uris": list(track_uris), "position": 0})
        )
        self.http.execute(request)

    def _authorized(self, request: Request) -> Request:
        return request.with_header("Authorization", self.credentials.primary_auth_header())

    def _api_uri(self) -> str:
        return self.env.get(config.SPOTIFY_API_URI).rstrip("/")

"""
Shared pytest fixtures for Release Playlists tests.

This module provides common fixtures used across test files:
- Temporary .env config and SQLite database
- A recording fake HTTP client
- An in-memory fake of the Spotify playlist endpoints
- Sample wiki markdown
"""

import logging
import sys
from pathlib import Path

import pytest

# Add src to path for package imports
PROJECT_ROOT = Path(__file__).parent.parent
SRC_ROOT = PROJECT_ROOT / "src"
sys.path.insert(0, str(SRC_ROOT))

from release_playlists.db import ProcessedSet, Store  # noqa: E402
from release_playlists.env import EnvStore  # noqa: E402
from release_playlists.logging_utils import LOGGER_NAME  # noqa: E402


API_URI = "https://api.spotify.test/v1"
AUTH_URI = "https://accounts.spotify.test/api"
RELEASES_LINK = "https://www.reddit.test/r/kpop/wiki/upcoming-releases"
REDDIT_AUTH_URI = "https://www.reddit.test/api/v1/access_token"


# =============================================================================
# FAKE HTTP
# =============================================================================

class FakeHttpClient:
    """
    Stands in for HttpClient. Routes are matched on method and a URL
    fragment; the most recently registered matching route wins.
    """

    def __init__(self):
        self.requests = []
        self._routes = []

    def on(self, method: str, url_fragment: str, response):
        """Register a response: a dict, an exception to raise, or callable(request)."""
        self._routes.append((method, url_fragment, response))
        return self

    def execute(self, request):
        self.requests.append(request)
        for method, fragment, response in reversed(self._routes):
            if request.method == method and fragment in request.url:
                if isinstance(response, Exception):
                    raise response
                if callable(response):
                    return response(request)
                return response
        raise AssertionError(f"Unexpected request: {request.method} {request.url}")

    def calls(self, method: str, url_fragment: str = "") -> list:
        return [
            r for r in self.requests
            if r.method == method and url_fragment in r.url
        ]


class FakeSpotify:
    """In-memory Spotify playlists wired onto a FakeHttpClient."""

    def __init__(self, http: FakeHttpClient):
        self.playlists = {}      # playlist id -> list of track URIs
        self.names = {}          # playlist id -> name
        self.descriptions = {}
        self.albums = {}         # album id -> list of track URIs
        self._created = 0

        http.on("POST", f"{AUTH_URI}/token", {"access_token": "fresh_access_token"})
        http.on("POST", "/me/playlists", self._create_playlist)
        http.on("PUT", "/playlists/", self._replace_tracks)
        http.on("POST", "/playlists/", self._insert_tracks)
        http.on("GET", "/albums/", self._album_tracks)
        http.on("GET", "/tracks/", self._track)

    def playlist_named(self, name: str) -> list:
        for playlist_id, playlist_name in self.names.items():
            if playlist_name == name:
                return self.playlists[playlist_id]
        raise KeyError(name)

    @staticmethod
    def _playlist_id(request) -> str:
        return request.url.split("/playlists/")[1].split("/")[0]

    def _create_playlist(self, request):
        self._created += 1
        playlist_id = f"pl{self._created}"
        self.playlists[playlist_id] = []
        self.names[playlist_id] = request.json_body["name"]
        self.descriptions[playlist_id] = request.json_body["description"]
        return {"id": playlist_id}

    def _replace_tracks(self, request):
        self.playlists[self._playlist_id(request)] = list(request.json_body["uris"])
        return {"snapshot_id": "snap"}

    def _insert_tracks(self, request):
        position = request.json_body["position"]
        tracks = self.playlists[self._playlist_id(request)]
        tracks[position:position] = request.json_body["uris"]
        return {"snapshot_id": "snap"}

    def _album_tracks(self, request):
        album_id = request.url.split("/albums/")[1].split("/")[0]
        return {"items": [{"uri": uri, "name": uri} for uri in self.albums[album_id]]}

    def _track(self, request):
        track_id = request.url.rsplit("/", 1)[1]
        return {"uri": f"spotify:track:{track_id}", "id": track_id}


# =============================================================================
# CONFIG & DATABASE FIXTURES
# =============================================================================

@pytest.fixture(autouse=True)
def reset_package_logger():
    """Drop handlers added by setup_logging so each test starts clean."""
    yield
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()


@pytest.fixture
def env_file(tmp_path):
    """A .env file with every required key filled in."""
    path = tmp_path / ".env"
    path.write_text(
        "SPOTIFY_CLIENT_ID=test_client_id\n"
        "SPOTIFY_CLIENT_SECRET=test_client_secret\n"
        "SPOTIFY_ACCESS_TOKEN=old_access_token\n"
        "SPOTIFY_REFRESH_TOKEN=test_refresh_token\n"
        f"SPOTIFY_AUTH_URI={AUTH_URI}\n"
        f"SPOTIFY_API_URI={API_URI}\n"
        f"RELEASES_LINK={RELEASES_LINK}\n"
        "USER_AGENT=release-playlists-tests/1.0\n"
    )
    return path


@pytest.fixture
def reddit_env_file(env_file):
    """The .env file plus Reddit app credentials."""
    with open(env_file, "a") as f:
        f.write(
            "REDDIT_CLIENT_ID=reddit_client\n"
            "REDDIT_CLIENT_SECRET=reddit_secret\n"
            f"REDDIT_AUTH_URI={REDDIT_AUTH_URI}\n"
        )
    return env_file


@pytest.fixture
def env(env_file, monkeypatch):
    """EnvStore over the temporary .env file, isolated from the real environment."""
    for key in ("REDDIT_CLIENT_ID", "REDDIT_CLIENT_SECRET", "REDDIT_ACCESS_TOKEN"):
        monkeypatch.delenv(key, raising=False)
    return EnvStore(env_file, lock_timeout=1.0)


@pytest.fixture
def store(tmp_path):
    """Initialized temporary SQLite store."""
    with Store(tmp_path / "data" / "test.db") as s:
        s.init_db()
        yield s


@pytest.fixture
def processed(store):
    return ProcessedSet(store)


@pytest.fixture
def http():
    return FakeHttpClient()


@pytest.fixture
def spotify(http):
    return FakeSpotify(http)


# =============================================================================
# SAMPLE DATA FIXTURES
# =============================================================================

@pytest.fixture
def sample_wiki_markdown():
    """A wiki page with a preamble, one table and trailing notes."""
    return (
        "# July 2020\r\n"
        "Preamble mentioning https://open.spotify.com/album/PREAMBLE1\r\n"
        "\r\n"
        "| Day | Time | Artist | Album Title | Album Type | Title Track | Streaming |\r\n"
        "|--|--|--|--|--|--|--|\r\n"
        "| 1 | 18:00 | Artist A | Song A | Single | Song A | [Spotify](https://open.spotify.com/track/AAA111) |\r\n"
        "| 2 | 18:00 | Artist B | Album B | Album | Song B | [Spotify](https://open.spotify.com/album/BBB222) |\r\n"
        "| 3 | ? | Artist C | TBA | EP | | |\r\n"
        "| 4 | 18:00 | Artist D | Song D | OST | Song D | [Spotify](https://play.spotify.com/track/DDD444) |\r\n"
        "\r\n"
        "Notes after the table https://open.spotify.com/track/AFTER1\r\n"
    )


@pytest.fixture
def wiki_response():
    """Builds the body of the wiki .json endpoint for some markdown."""
    def build(markdown: str) -> dict:
        return {"kind": "wikipage", "data": {"content_md": markdown}}
    return build

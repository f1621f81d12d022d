"""
Configuration for the Release Playlists sync

HOW TO USE THIS FILE:
--------------------
1. Credentials and API base URIs live in the .env file (see .env.example),
   NOT here. Tokens in that file are rewritten by the sync on every run.
2. Review the playlist names/descriptions below if you want different wording.
3. Paths can be overridden with environment variables for cron setups.

You generally don't need to change anything else.
"""

import os as _os


# =============================================================================
# FILE PATHS
# =============================================================================
# The .env file holds tokens and is rewritten in place during token refresh.
# The SQLite database remembers processed releases and created playlists.

ENV_PATH = _os.environ.get("RELEASES_ENV_PATH", ".env")
DB_PATH = _os.environ.get("RELEASES_DB_PATH", "data/releases.db")
LOG_DIR = _os.environ.get("RELEASES_LOG_DIR", "logs")


# =============================================================================
# SCHEDULING
# =============================================================================
# The sync is invoked by cron every RUN_INTERVAL_MINUTES. The first run of a
# month is the one that starts within that many minutes of midnight on day 1.
#
# Releases keep trickling into the previous month's wiki after the month
# changes, so for the first GRACE_WINDOW_DAYS days we also re-read last month.

RUN_INTERVAL_MINUTES = 15
GRACE_WINDOW_DAYS = 7

# Reddit app-only tokens last about a day; refresh twice daily at these hours
SECONDARY_REFRESH_HOURS = (0, 12)


# =============================================================================
# PLAYLIST SCOPES
# =============================================================================
# Every playlist is keyed by (label, year) in the database.
#   - month playlists:   ("July", 2020)
#   - year playlists:    ("All", 2020)
#   - current playlist:  ("Current", 0)

YEAR_LABEL = "All"
CURRENT_LABEL = "Current"
CURRENT_YEAR = 0

MONTH_NAMES = [
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
]


# =============================================================================
# PLAYLIST NAMES & DESCRIPTIONS
# =============================================================================
# {month} is the full month name, {year} the four-digit year and {wiki_url}
# the human-readable wiki page for that month.

RELEASES_GENRE = "K-Pop"
PLAYLISTS_PUBLIC = True

MONTH_NAME_TEMPLATE = "{month} {year} Releases"
MONTH_DESCRIPTION_TEMPLATE = (
    "Auto-updating playlist of the {month} {year} {genre} Releases Wiki: {wiki_url}"
)

YEAR_NAME_TEMPLATE = "{year} Releases"
YEAR_DESCRIPTION_TEMPLATE = (
    "Auto-updating playlist of {genre} Releases over the entire year of {year}"
)

CURRENT_NAME = "Current Month's Releases"
CURRENT_DESCRIPTION_TEMPLATE = (
    "Auto-updating playlist of the current month's {genre} Releases. "
    "At the end of the month, it will be emptied out so the next month's "
    "releases can start being added."
)


# =============================================================================
# CONFIG KEYS (.env)
# =============================================================================
# Spotify is the primary integration (user playlists, refresh-token grant).
# Reddit is the secondary integration (wiki reads, client-credentials grant).

SPOTIFY_CLIENT_ID = "SPOTIFY_CLIENT_ID"
SPOTIFY_CLIENT_SECRET = "SPOTIFY_CLIENT_SECRET"
SPOTIFY_ACCESS_TOKEN = "SPOTIFY_ACCESS_TOKEN"
SPOTIFY_REFRESH_TOKEN = "SPOTIFY_REFRESH_TOKEN"
SPOTIFY_AUTH_URI = "SPOTIFY_AUTH_URI"
SPOTIFY_API_URI = "SPOTIFY_API_URI"

REDDIT_CLIENT_ID = "REDDIT_CLIENT_ID"
REDDIT_CLIENT_SECRET = "REDDIT_CLIENT_SECRET"
REDDIT_ACCESS_TOKEN = "REDDIT_ACCESS_TOKEN"
REDDIT_AUTH_URI = "REDDIT_AUTH_URI"

RELEASES_LINK = "RELEASES_LINK"
USER_AGENT = "USER_AGENT"


# =============================================================================
# API SETTINGS (Advanced - usually don't need to change)
# =============================================================================

REQUEST_TIMEOUT = (5, 30)     # (connect, read) seconds
ALBUM_TRACKS_LIMIT = 50       # Spotify maximum for /albums/{id}/tracks


# =============================================================================
# CONFIG FILE LOCKING (Advanced)
# =============================================================================
# Token writes take an exclusive lock on "<env file>.lock". If another writer
# holds it longer than the timeout the write is dropped and the in-memory
# token is used for the rest of the run.

ENV_LOCK_TIMEOUT_SECONDS = 5.0
ENV_LOCK_BACKOFF_RANGE = (0.05, 0.25)

"""Spotify playlist management."""

from .playlists import CURRENT_SCOPE, CollectionRecord, CollectionRegistry, ScopeKey
from .router import Release, ReleaseRouter, classify_release

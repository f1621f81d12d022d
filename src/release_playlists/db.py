"""
Database module for the release sync

Handles all SQLite operations:
- Remembering which release URLs were already added (for resume)
- Remembering the Spotify ID of every playlist we created

One Store is opened at the start of a run and passed to every component
that needs it. Each write commits on its own.
"""

import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Union

from . import config


class Store:
    """Single long-lived SQLite handle for a run."""

    def __init__(self, path: Union[str, Path, None] = None):
        self.path = Path(path or config.DB_PATH)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.connection = sqlite3.connect(str(self.path))
        self.connection.row_factory = sqlite3.Row  # Enable dict-like access

    def init_db(self):
        """
        Create all tables if they don't exist.
        Safe to call multiple times.
        """
        cursor = self.connection.cursor()

        # Release URLs that have been added to all their playlists
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS processed (
                uri TEXT PRIMARY KEY,
                processed_at TEXT DEFAULT CURRENT_TIMESTAMP
            )
        """)

        # One row per (month, year) scope; month is also 'All' or 'Current'
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS playlists (
                spotify_id TEXT NOT NULL,
                name TEXT NOT NULL,
                month TEXT NOT NULL,
                year INTEGER NOT NULL,
                created_at TEXT DEFAULT CURRENT_TIMESTAMP,
                PRIMARY KEY (month, year)
            )
        """)

        self.connection.commit()

    def close(self):
        self.connection.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()


class ProcessedSet:
    """Durable set of release URLs that were already routed."""

    def __init__(self, store: Store):
        self.store = store

    def is_processed(self, url: str) -> bool:
        """Whether the release URL was already added to its playlists."""
        cursor = self.store.connection.cursor()
        cursor.execute("SELECT 1 FROM processed WHERE uri = ?", (url,))
        return cursor.fetchone() is not None

    def mark_processed(self, url: str):
        """
        Mark a release URL as processed.

        Raises:
            sqlite3.IntegrityError: if the URL was already marked
        """
        cursor = self.store.connection.cursor()
        cursor.execute(
            "INSERT INTO processed (uri, processed_at) VALUES (?, ?)",
            (url, datetime.now().isoformat()),
        )
        self.store.connection.commit()

    def count(self) -> int:
        cursor = self.store.connection.cursor()
        cursor.execute("SELECT COUNT(*) FROM processed")
        return cursor.fetchone()[0]

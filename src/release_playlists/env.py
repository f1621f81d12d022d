"""
Key/value config store backed by a .env file

Holds client credentials, API base URIs and the OAuth tokens. Token values
are rewritten in place (via python-dotenv's set_key) every time they are
refreshed, so writes go through an exclusive file lock with a bounded,
jittered retry loop.
"""

import fcntl
import logging
import os
import random
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional, Union

from dotenv import dotenv_values, set_key

from . import config
from .errors import MissingConfigError

logger = logging.getLogger(__name__)


class EnvStore:
    """
    Flat key/value config loaded once from a .env file.

    Values are read from the file first and then from the process
    environment. Writes update the in-memory copy immediately and are
    persisted to the file when the lock can be taken in time.
    """

    def __init__(
        self,
        path: Union[str, Path, None] = None,
        lock_timeout: Optional[float] = None,
    ):
        self.path = Path(path or config.ENV_PATH)
        self.lock_path = self.path.with_name(self.path.name + ".lock")
        self.lock_timeout = (
            config.ENV_LOCK_TIMEOUT_SECONDS if lock_timeout is None else lock_timeout
        )
        self._values: dict[str, str] = {}
        if self.path.exists():
            self._values = {
                key: value
                for key, value in dotenv_values(self.path).items()
                if value is not None
            }

    def get(self, key: str) -> str:
        """Return the value for key, raising MissingConfigError if absent or empty."""
        value = self._values.get(key)
        if value is None:
            value = os.environ.get(key)
        if not value:
            raise MissingConfigError(key)
        return value

    def has(self, key: str) -> bool:
        try:
            self.get(key)
        except MissingConfigError:
            return False
        return True

    def set(self, key: str, value: str) -> bool:
        """
        Store a value and try to persist it to the .env file.

        Returns:
            True if the file was updated, False if the write was dropped
            because the lock could not be acquired within the timeout.
        """
        self._values[key] = value

        with self._locked() as acquired:
            if not acquired:
                logger.warning(
                    "Could not lock %s within %.1fs; keeping %s in memory only",
                    self.lock_path, self.lock_timeout, key,
                )
                return False
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.touch(exist_ok=True)
            set_key(str(self.path), key, value)

        return True

    @contextmanager
    def _locked(self) -> Iterator[bool]:
        """Hold an exclusive lock on the sidecar lock file, yielding whether it was taken."""
        self.lock_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.lock_path, "a") as lock_file:
            deadline = time.monotonic() + self.lock_timeout
            while True:
                try:
                    fcntl.flock(lock_file.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
                    break
                except BlockingIOError:
                    if time.monotonic() >= deadline:
                        yield False
                        return
                    time.sleep(random.uniform(*config.ENV_LOCK_BACKOFF_RANGE))
            try:
                yield True
            finally:
                fcntl.flock(lock_file.fileno(), fcntl.LOCK_UN)

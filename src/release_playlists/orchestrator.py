"""
Run orchestration for the release sync

Every run is driven by the wall clock at start-up:

1. The first run of a month (day 1, within the first run interval after
   midnight) empties the "Current" playlist before anything else.
2. The current month's wiki is always processed, into the month, year and
   Current playlists.
3. During the first GRACE_WINDOW_DAYS of a month, last month's wiki is
   processed too, into last month's month and year playlists only.

decide_actions() turns a timestamp into that plan without side effects;
run_once() carries it out.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from functools import partial
from typing import Optional

from dateutil.relativedelta import relativedelta

from . import config
from .auth import CredentialManager
from .collection.wiki import WikiClient
from .db import ProcessedSet, Store
from .env import EnvStore
from .errors import MalformedReleaseError
from .http import HttpClient
from .spotify.playlists import CollectionRegistry
from .spotify.router import ReleaseRouter

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScopePass:
    month: str
    year: int
    include_current: bool


@dataclass(frozen=True)
class RunPlan:
    clear_current: bool
    passes: tuple


def month_name(moment: datetime) -> str:
    return config.MONTH_NAMES[moment.month - 1]


def is_month_rollover(now: datetime) -> bool:
    """True only for the first scheduled run of a month."""
    return now.day == 1 and now.hour == 0 and now.minute < config.RUN_INTERVAL_MINUTES


def in_grace_window(now: datetime) -> bool:
    return now.day <= config.GRACE_WINDOW_DAYS


def decide_actions(now: datetime) -> RunPlan:
    """Work out what a run starting at `now` should do."""
    passes = [ScopePass(month_name(now), now.year, include_current=True)]

    if in_grace_window(now):
        previous = now - relativedelta(months=1)
        # January rolls back into December of the previous year
        passes.append(ScopePass(month_name(previous), previous.year, include_current=False))

    return RunPlan(clear_current=is_month_rollover(now), passes=tuple(passes))


class Orchestrator:
    """Wires the components for one run around a single Store and EnvStore."""

    def __init__(self, env: EnvStore, store: Store, http: Optional[HttpClient] = None):
        self.env = env
        self.store = store
        self.http = http or HttpClient(user_agent=env.get(config.USER_AGENT))
        self.credentials = CredentialManager(env, self.http)
        self.processed = ProcessedSet(store)
        self.registry = CollectionRegistry(store, env, self.http, self.credentials)
        self.router = ReleaseRouter(self.processed, env, self.http, self.credentials)
        self._wiki_auth_header: Optional[str] = None

    def wiki_client(self, now: datetime, refresh_tokens: bool = True) -> WikiClient:
        """
        Wiki reader for this run. With refresh_tokens=False only an already
        cached Reddit token is used, and the page is read anonymously if
        there is none.
        """
        auth_header = None
        if self.credentials.secondary_configured():
            if refresh_tokens:
                auth_header = partial(self._secondary_auth_header, now)
            else:
                auth_header = self.credentials.cached_secondary_auth_header
        return WikiClient(self.env, self.http, auth_header=auth_header)

    def _secondary_auth_header(self, now: datetime) -> str:
        # One Reddit token per run, even when several wiki pages are read
        if self._wiki_auth_header is None:
            self._wiki_auth_header = self.credentials.secondary_auth_header(now)
        return self._wiki_auth_header

    def target_playlists(self, scope_pass: ScopePass) -> list[str]:
        """Playlist IDs for a pass, in insertion order: month, year, Current."""
        targets = [
            self.registry.month_playlist(scope_pass.month, scope_pass.year),
            self.registry.year_playlist(scope_pass.year),
        ]
        if scope_pass.include_current:
            targets.append(self.registry.current_playlist())
        return targets

    def process_scope(self, scope_pass: ScopePass, wiki: WikiClient) -> dict:
        """
        Route every unseen release on a month's wiki page.

        Malformed release URLs are logged and reported but do not stop the
        pass; any other error propagates.
        """
        targets = self.target_playlists(scope_pass)

        result = {
            "month": scope_pass.month,
            "year": scope_pass.year,
            "include_current": scope_pass.include_current,
            "releases": 0,
            "added": 0,
            "skipped": 0,
            "malformed": [],
        }

        for release_url in wiki.get_releases(scope_pass.month, scope_pass.year):
            result["releases"] += 1
            try:
                added = self.router.route(release_url, targets)
            except MalformedReleaseError as e:
                logger.error("%s", e)
                result["malformed"].append(release_url)
                continue

            if added:
                result["added"] += 1
            else:
                result["skipped"] += 1

        logger.info(
            "%s %d: %d releases, %d added, %d already processed, %d malformed",
            scope_pass.month, scope_pass.year, result["releases"],
            result["added"], result["skipped"], len(result["malformed"]),
        )
        return result

    def run_once(self, now: datetime) -> dict:
        """
        Execute one scheduled run.

        Returns:
            Summary dict with the plan and per-scope results
        """
        self.credentials.refresh_primary_token()

        plan = decide_actions(now)
        if plan.clear_current:
            logger.info("New month: clearing the Current playlist")
            self.registry.clear_current()

        wiki = self.wiki_client(now)
        scopes = [self.process_scope(scope_pass, wiki) for scope_pass in plan.passes]

        return {
            "started_at": now.isoformat(),
            "cleared_current": plan.clear_current,
            "scopes": scopes,
            "malformed": [url for scope in scopes for url in scope["malformed"]],
        }

    def preview(self, now: datetime) -> dict:
        """
        Dry run: list the unseen releases each pass would add.

        Creates no playlists, inserts nothing, marks nothing and refreshes
        no tokens.
        """
        plan = decide_actions(now)
        wiki = self.wiki_client(now, refresh_tokens=False)

        scopes = []
        for scope_pass in plan.passes:
            pending = [
                url for url in wiki.get_releases(scope_pass.month, scope_pass.year)
                if not self.processed.is_processed(url)
            ]
            scopes.append({
                "month": scope_pass.month,
                "year": scope_pass.year,
                "include_current": scope_pass.include_current,
                "pending": pending,
            })

        return {
            "started_at": now.isoformat(),
            "would_clear_current": plan.clear_current,
            "scopes": scopes,
        }

    def status(self) -> dict:
        """Summary of local state for display."""
        return {
            "processed_releases": self.processed.count(),
            "playlists": [
                {
                    "label": record.scope.label,
                    "year": record.scope.year,
                    "name": record.display_name,
                    "spotify_id": record.remote_id,
                }
                for record in self.registry.records()
            ],
        }


def run_once(
    now: datetime,
    env: EnvStore,
    store: Store,
    http: Optional[HttpClient] = None,
) -> dict:
    """Convenience wrapper: build an Orchestrator and run it once."""
    return Orchestrator(env, store, http).run_once(now)


def preview(
    now: datetime,
    env: EnvStore,
    store: Store,
    http: Optional[HttpClient] = None,
) -> dict:
    return Orchestrator(env, store, http).preview(now)

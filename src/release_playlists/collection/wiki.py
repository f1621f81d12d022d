"""
Release wiki client and table parser

The community wiki publishes one page per month. Each page has some
preamble text followed by a markdown table, one release per row:

    | Day | Time | Artist | Album Title | Album Type | Title Track | Streaming |
    |--|--|--|--|--|--|--|
    | 1 | 18:00 | Artist | Title | Single | Song | [Spotify](https://open.spotify.com/album/...) |

Only Spotify album/track links inside the table rows are extracted.
"""

import logging
import re
from typing import Callable, Iterator, Optional

from .. import config
from ..env import EnvStore
from ..http import HttpClient, Request, response_field

logger = logging.getLogger(__name__)

TABLE_SEPARATOR_PREFIX = "|--"
TABLE_ROW_PREFIX = "|"

# Greedy prefix: when a row links several releases the last link wins
RELEASE_URL_PATTERN = re.compile(
    r".*(https://(?:open|play)\.spotify\.com/(?:album|track)/[A-Za-z0-9]+)"
)


def parse_release_urls(markdown: str) -> Iterator[str]:
    """
    Yield Spotify release URLs from the wiki table, in document order.

    Everything up to and including the header separator row is skipped,
    rows are read until the first line that is not a table row, and rows
    without a Spotify link are ignored.

    If the page has no separator row at all, nothing is yielded.
    """
    lines = iter(markdown.replace("\r\n", "\n").split("\n"))

    for line in lines:
        if line.startswith(TABLE_SEPARATOR_PREFIX):
            break
    else:
        logger.warning("No table separator row found in wiki page; no releases read")
        return

    for row in lines:
        if not row.startswith(TABLE_ROW_PREFIX):
            break

        match = RELEASE_URL_PATTERN.match(row)
        if match is None:
            logger.debug("Skipping row without a Spotify link: %s", row[:80])
            continue
        yield match.group(1)


def wiki_page_url(releases_link: str, month: str, year: int, suffix: str = "") -> str:
    """Build the wiki URL for a month, e.g. .../2020/July.json"""
    return f"{releases_link.rstrip('/')}/{year}/{month}{suffix}"


class WikiClient:
    """Fetches the markdown for a month's release wiki page."""

    def __init__(
        self,
        env: EnvStore,
        http: HttpClient,
        auth_header: Optional[Callable[[], Optional[str]]] = None,
    ):
        """
        Args:
            env: Config store (RELEASES_LINK)
            http: Transport used for the request
            auth_header: Optional callable returning the Authorization
                header value; when it returns None the page is read
                anonymously
        """
        self.env = env
        self.http = http
        self.auth_header = auth_header

    def fetch_markdown(self, month: str, year: int) -> str:
        url = wiki_page_url(self.env.get(config.RELEASES_LINK), month, year, ".json")
        request = Request.get(url)
        if self.auth_header is not None:
            header = self.auth_header()
            if header:
                request = request.with_header("Authorization", header)

        logger.info("Fetching release wiki for %s %d", month, year)
        response = self.http.execute(request)
        return response_field(response, "data", "content_md", url=url)

    def get_releases(self, month: str, year: int) -> Iterator[str]:
        """Fetch a month's page and yield its release URLs."""
        return parse_release_urls(self.fetch_markdown(month, year))

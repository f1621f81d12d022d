"""
HTTP transport for the Spotify and Reddit APIs

Requests are described by an immutable Request value built fluently:

    request = (
        Request.post(f"{api_uri}/me/playlists")
        .with_header("Authorization", bearer)
        .with_json({"name": "July 2020 Releases"})
    )
    body = client.execute(request)

HttpClient.execute is the only place that talks to the network.
"""

from dataclasses import dataclass, field, replace
from typing import Any, Optional

import requests
from requests.auth import HTTPBasicAuth

from . import config
from .errors import RemoteRejectionError, TransportError


@dataclass(frozen=True)
class Request:
    """Description of one HTTP call. Every with_* method returns a new Request."""

    method: str
    url: str
    headers: tuple = ()
    params: tuple = ()
    form: tuple = ()
    json_body: Any = None
    basic_auth: Optional[tuple] = None

    @classmethod
    def get(cls, url: str) -> "Request":
        return cls("GET", url)

    @classmethod
    def post(cls, url: str) -> "Request":
        return cls("POST", url)

    @classmethod
    def put(cls, url: str) -> "Request":
        return cls("PUT", url)

    def with_header(self, name: str, value) -> "Request":
        return replace(self, headers=self.headers + ((name, str(value)),))

    def with_query(self, name: str, value) -> "Request":
        return replace(self, params=self.params + ((name, value),))

    def with_form(self, name: str, value) -> "Request":
        return replace(self, form=self.form + ((name, value),))

    def with_json(self, body) -> "Request":
        return replace(self, json_body=body)

    def with_basic_auth(self, username: str, password: str) -> "Request":
        return replace(self, basic_auth=(username, password))

    def header(self, name: str) -> Optional[str]:
        """Return the last value set for a header (case-insensitive)."""
        for key, value in reversed(self.headers):
            if key.lower() == name.lower():
                return value
        return None


@dataclass
class HttpClient:
    """Executes Requests with a shared session, User-Agent and timeout."""

    user_agent: Optional[str] = None
    timeout: tuple = config.REQUEST_TIMEOUT
    session: requests.Session = field(default_factory=requests.Session)

    def execute(self, request: Request) -> dict:
        """
        Send the request and return the decoded JSON body.

        Raises:
            TransportError: the request could not be completed
            RemoteRejectionError: the response status was not 2xx
        """
        headers = dict(request.headers)
        if self.user_agent and request.header("User-Agent") is None:
            headers["User-Agent"] = self.user_agent

        auth = HTTPBasicAuth(*request.basic_auth) if request.basic_auth else None

        try:
            response = self.session.request(
                request.method,
                request.url,
                params=list(request.params) or None,
                data=dict(request.form) or None,
                json=request.json_body,
                headers=headers,
                auth=auth,
                timeout=self.timeout,
                allow_redirects=True,
            )
        except requests.RequestException as e:
            raise TransportError(f"Unable to make request to {request.url}: {e}") from e

        if response.status_code // 100 != 2:
            raise RemoteRejectionError(response.status_code, response.text, url=request.url)

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as e:
            raise TransportError(f"Invalid JSON from {request.url}: {e}") from e


def response_field(body: dict, *path: str, url: Optional[str] = None):
    """
    Read a nested field from a decoded response body, e.g.
        response_field(body, "data", "content_md")

    Raises:
        TransportError: a 2xx response did not carry the field
    """
    value = body
    for key in path:
        if not isinstance(value, dict) or key not in value:
            raise TransportError(
                f"Response from {url or 'API'} is missing '{'.'.join(path)}': {body}"
            )
        value = value[key]
    return value

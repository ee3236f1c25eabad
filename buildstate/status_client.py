"""
status_client.py

Responsibility: Isolate all interaction with the remote build-status REST API.

This module must be the only place that:
- Constructs build-status endpoints
- Sends HTTP requests to the Stash / Bitbucket Server instance
- Interprets build-status responses and error payloads

Decoding is two-stage: the body is first decoded as the expected payload; if
that fails it is decoded as the service's `{"errors": [...]}` shape and raised
as a `RemoteError`; if that also fails a `DecodeError` is raised.
Nothing here retries.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Mapping, TypeVar

import requests

from buildstate.auth import Authenticator
from buildstate.models import (
    CommitID,
    CommitStat,
    SchemaError,
    StatusPage,
    abbrev_commit,
    commit_stats_from_json,
)

T = TypeVar("T")

STATS_PATH = "/rest/build-status/1.0/commits/stats"
COMMIT_PATH = "/rest/build-status/1.0/commits/{commit}"

_MASKED_HEADERS = {"authorization", "x-auth-token"}


class StatusClientError(RuntimeError):
    pass


class TransportError(StatusClientError):
    pass


class DecodeError(StatusClientError):
    pass


@dataclass(frozen=True)
class RemoteErrorEntry:
    message: str
    exception_name: str = ""


class RemoteError(StatusClientError):
    """Well-formed error payload returned by the service."""

    def __init__(self, errors: Iterable[RemoteErrorEntry]) -> None:
        self.errors = tuple(errors)
        super().__init__("\n".join(e.message for e in self.errors))

    @property
    def messages(self) -> list[str]:
        return [e.message for e in self.errors]


class StatusNotFoundError(RemoteError):
    def __init__(self, commit: CommitID) -> None:
        self.commit = commit
        super().__init__([RemoteErrorEntry(f"No build status found for commit {abbrev_commit(commit)}")])


def remote_error_from_json(data: Any) -> RemoteError:
    """
    Decode `{"errors": [{"message": ..., "exceptionName": ...}, ...]}`.

    Raises SchemaError if `data` is not that shape (an empty list does not count).
    """
    if not isinstance(data, Mapping):
        raise SchemaError("error payload must be a JSON object")
    raw = data.get("errors")
    if not isinstance(raw, list) or not raw:
        raise SchemaError("error payload must hold a non-empty `errors` array")
    entries = []
    for item in raw:
        if not isinstance(item, Mapping) or not isinstance(item.get("message"), str):
            raise SchemaError("every error entry needs a string `message`")
        exception_name = item.get("exceptionName") or ""
        entries.append(RemoteErrorEntry(message=item["message"], exception_name=str(exception_name)))
    return RemoteError(entries)


def _load_json(response: requests.Response) -> Any:
    try:
        return json.loads(response.content)
    except ValueError as e:
        raise DecodeError(f"Response {response.status_code} is not valid JSON: {response.content[:200]!r}") from e


def _error_or_decode_failure(data: Any, reason: str) -> StatusClientError:
    try:
        return remote_error_from_json(data)
    except SchemaError:
        return DecodeError(reason)


def decode_response(response: requests.Response, decode: Callable[[Any], T]) -> T:
    """
    Decode a response body with `decode`, falling back to the error shape.

    Non-2xx responses are only ever decoded as the error shape.
    """
    data = _load_json(response)
    if not response.ok:
        raise _error_or_decode_failure(data, f"Unexpected response {response.status_code}: {response.content[:200]!r}")
    try:
        return decode(data)
    except SchemaError as e:
        raise _error_or_decode_failure(data, f"Unexpected response body: {e}") from e


class StatusClient:
    """
    Client for the build-status API of a single Stash / Bitbucket Server instance.

    The endpoint and authenticator are fixed at construction.
    """

    def __init__(
        self,
        base_url: str,
        authenticator: Authenticator,
        *,
        timeout: float | None = None,
        logger: logging.Logger | None = None,
        session: requests.Session | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._auth = authenticator
        self._timeout = timeout
        self._log = logger or logging.getLogger(__name__)
        self._session = session or requests.Session()

    @property
    def base_url(self) -> str:
        return self._base_url

    def _dump_request(self, prepared: requests.PreparedRequest | None) -> None:
        if prepared is None or not self._log.isEnabledFor(logging.DEBUG):
            return
        headers = {
            k: ("**********" if k.lower() in _MASKED_HEADERS else v) for k, v in prepared.headers.items()
        }
        self._log.debug("Request: %s %s headers=%s body=%r", prepared.method, prepared.url, headers, prepared.body)

    def _send(self, method: str, path: str, *, headers: dict[str, str], body: bytes | None = None) -> requests.Response:
        url = f"{self._base_url}{path}"
        self._log.debug("Sending %s %s", method, url)
        try:
            # requests calls the authenticator on the prepared request.
            response = self._session.request(
                method, url, headers=headers, data=body, auth=self._auth, timeout=self._timeout
            )
        except requests.RequestException as e:
            raise TransportError(f"{method} {url} failed: {e}") from e
        self._dump_request(response.request)
        self._log.debug("Response: %s %s", response.status_code, response.reason)
        return response

    def batch_status(self, commits: Iterable[CommitID]) -> dict[CommitID, CommitStat]:
        """
        Look up aggregate build counts for many commits in one round trip.

        Commits the service does not know are absent from the result; absence
        means "no status", not zero counts.
        """
        commit_list = list(commits)
        if not commit_list:
            return {}

        body = json.dumps(commit_list).encode("utf-8")
        response = self._send(
            "POST",
            STATS_PATH,
            headers={"X-Atlassian-Token": "no-check", "Content-Type": "application/json"},
            body=body,
        )
        stats = decode_response(response, commit_stats_from_json)

        requested = set(commit_list)
        unknown = [c for c in stats if c not in requested]
        if unknown:
            self._log.debug("Dropping %d commit(s) not in the request: %s", len(unknown), unknown)
        return {c: s for c, s in stats.items() if c in requested}

    def commit_status(self, commit: CommitID) -> StatusPage:
        """Fetch detailed build statuses for one commit; no status at all is an error."""
        response = self._send(
            "GET",
            COMMIT_PATH.format(commit=commit),
            headers={"X-Atlassian-Token": "no-check"},
        )

        def decode(data: Any) -> StatusPage:
            size = data.get("size") if isinstance(data, Mapping) else None
            # bool is an int subclass; only a real integer zero means "not found".
            if type(size) is int and size == 0:
                try:
                    error = remote_error_from_json(data)
                except SchemaError:
                    error = StatusNotFoundError(commit)
                raise error
            return StatusPage.from_json(data)

        return decode_response(response, decode)

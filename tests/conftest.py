from __future__ import annotations

import json
from typing import Any

import pytest
import requests

from buildstate.auth import BasicAuth
from buildstate.status_client import StatusClient

BASE_URL = "https://stash.example.com:8443"


class FakeResponse:
    def __init__(self, body: Any, status_code: int = 200, request: requests.PreparedRequest | None = None) -> None:
        if isinstance(body, (bytes, str)):
            self.content = body.encode("utf-8") if isinstance(body, str) else body
        else:
            self.content = json.dumps(body).encode("utf-8")
        self.status_code = status_code
        self.reason = "OK" if status_code < 400 else "Error"
        self.request = request

    @property
    def ok(self) -> bool:
        return self.status_code < 400


class FakeSession:
    """Stands in for `requests.Session`; prepares requests for real so auth is applied."""

    def __init__(self, body: Any = None, status_code: int = 200, exc: Exception | None = None) -> None:
        self.body = body
        self.status_code = status_code
        self.exc = exc
        self.sent: list[requests.PreparedRequest] = []
        self.timeouts: list[float | None] = []

    def request(self, method, url, headers=None, data=None, auth=None, timeout=None):
        prepared = requests.Request(method, url, headers=headers, data=data, auth=auth).prepare()
        self.sent.append(prepared)
        self.timeouts.append(timeout)
        if self.exc is not None:
            raise self.exc
        return FakeResponse(self.body, self.status_code, prepared)


@pytest.fixture
def auth() -> BasicAuth:
    return BasicAuth.from_password("jdoe", "s3cret")


@pytest.fixture
def make_client(auth: BasicAuth):
    def _make(body: Any = None, status_code: int = 200, exc: Exception | None = None) -> tuple[StatusClient, FakeSession]:
        session = FakeSession(body, status_code, exc)
        return StatusClient(BASE_URL, auth, session=session), session  # type: ignore[arg-type]

    return _make

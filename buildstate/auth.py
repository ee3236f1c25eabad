"""
auth.py

Responsibility: Produce request credentials and attach them to outgoing requests.

Two schemes share one contract, `apply_auth(request) -> request`:
- `BasicAuth`: `Authorization: Basic <base64 user:password>`
- `TokenAuth`: separate `X-Auth-User` / `X-Auth-Token` headers

Both are `requests` auth objects, so they can be handed to a session directly.
Applying auth never fails; empty credentials still produce headers and the
remote service rejects them.
"""

from __future__ import annotations

import base64
from typing import Protocol, TypeVar

from requests.auth import AuthBase

R = TypeVar("R")


class Authenticator(Protocol):
    user: str

    def apply_auth(self, request: R) -> R: ...

    def __call__(self, request: R) -> R: ...


def encode_credentials(user: str, password: str) -> str:
    return base64.b64encode(f"{user}:{password}".encode("utf-8")).decode("ascii")


class BasicAuth(AuthBase):
    """Username plus the pre-encoded `user:password` token."""

    def __init__(self, user: str, b64credentials: str) -> None:
        self.user = user
        self.b64credentials = b64credentials

    @classmethod
    def from_password(cls, user: str, password: str) -> BasicAuth:
        return cls(user, encode_credentials(user, password))

    @classmethod
    def from_credentials(cls, user: str, b64credentials: str) -> BasicAuth:
        # Stored configuration only ever holds the encoded form.
        return cls(user, b64credentials)

    def apply_auth(self, request: R) -> R:
        request.headers["Authorization"] = f"Basic {self.b64credentials}"  # type: ignore[attr-defined]
        return request

    __call__ = apply_auth


class TokenAuth(AuthBase):
    def __init__(self, user: str, token: str) -> None:
        self.user = user
        self.token = token

    def apply_auth(self, request: R) -> R:
        request.headers["X-Auth-User"] = self.user  # type: ignore[attr-defined]
        request.headers["X-Auth-Token"] = self.token  # type: ignore[attr-defined]
        return request

    __call__ = apply_auth

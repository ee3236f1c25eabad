"""
config.py

Responsibility: Resolve the settings the CLI runs with.

Sources, highest precedence first:
- `git config` keys under `build-state.*`
- an optional YAML settings file (`GIT_BUILD_STATE_CONFIG` or
  `~/.config/git-build-state.yaml`), handy for multi-line templates

Credentials are only ever read from git config, in their base64 form.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable
from urllib.parse import urlsplit

import yaml

from buildstate import git

KEY_ENDPOINT = "build-state.endpoint"
KEY_PORT = "build-state.port"
KEY_AUTH_USER = "build-state.auth.user"
KEY_AUTH_CREDENTIALS = "build-state.auth.credentials"
KEY_FORMAT_LOG = "build-state.format.log"
KEY_FORMAT_STATE = "build-state.format.state"

CONFIG_ENV_VAR = "GIT_BUILD_STATE_CONFIG"
DEFAULT_CONFIG_PATH = Path("~/.config/git-build-state.yaml")
DEFAULT_PROTO = "https"


class ConfigError(ValueError):
    pass


@dataclass(frozen=True)
class FileSettings:
    """Values read from the YAML settings file; empty strings mean unset."""

    endpoint: str = ""
    port: str = ""
    proto: str = ""
    format_log: str = ""
    format_state: str = ""


@dataclass(frozen=True)
class Settings:
    endpoint: str
    port: str
    proto: str
    format_log: str
    format_state: str


@dataclass(frozen=True)
class Credentials:
    user: str
    b64credentials: str


def _as_str(data: dict[str, Any], key: str) -> str:
    value = data.get(key)
    if value is None:
        return ""
    if isinstance(value, (dict, list)):
        raise ConfigError(f"`{key}` must be a scalar value in the settings file.")
    return str(value)


def settings_file_path() -> Path:
    return Path(os.environ.get(CONFIG_ENV_VAR) or DEFAULT_CONFIG_PATH).expanduser()


def load_file_settings(path: str | Path | None = None) -> FileSettings:
    """
    Parse the YAML settings file. A missing file yields empty settings.

    Expected keys: endpoint, port, proto, format.log, format.state
    """
    p = Path(path) if path is not None else settings_file_path()
    if not p.exists():
        return FileSettings()
    try:
        data = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Settings file is not valid YAML: {p}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"Settings file must hold a mapping at the top level: {p}")

    fmt = data.get("format") or {}
    if not isinstance(fmt, dict):
        raise ConfigError("`format` must be an object/mapping when provided.")

    return FileSettings(
        endpoint=_as_str(data, "endpoint"),
        port=_as_str(data, "port"),
        proto=_as_str(data, "proto"),
        format_log=_as_str(fmt, "log"),
        format_state=_as_str(fmt, "state"),
    )


def load_settings(
    file_settings: FileSettings | None = None,
    lookup: Callable[[str], str] = git.default_config,
) -> Settings:
    fs = file_settings if file_settings is not None else load_file_settings()
    return Settings(
        endpoint=lookup(KEY_ENDPOINT) or fs.endpoint,
        port=lookup(KEY_PORT) or fs.port,
        proto=fs.proto,
        format_log=lookup(KEY_FORMAT_LOG) or fs.format_log,
        format_state=lookup(KEY_FORMAT_STATE) or fs.format_state,
    )


def load_credentials(lookup: Callable[[str], str] = git.default_config) -> Credentials:
    user = lookup(KEY_AUTH_USER)
    b64credentials = lookup(KEY_AUTH_CREDENTIALS)
    if not user or not b64credentials:
        raise ConfigError(
            f"Missing credentials: set {KEY_AUTH_USER} and {KEY_AUTH_CREDENTIALS} "
            "(run `git build-state --configure`)"
        )
    return Credentials(user=user, b64credentials=b64credentials)


def remote_host(remote_url: str) -> str:
    """
    Extract the bare host (no user, no port) from a git remote URL.

    Handles `scheme://[user@]host[:port]/path` and scp-like `[user@]host:path`.
    """
    if "://" in remote_url:
        host = urlsplit(remote_url).hostname or ""
    else:
        host = remote_url.split(":", 1)[0] if ":" in remote_url else ""
        host = host.rsplit("@", 1)[-1]
    if not host:
        raise ConfigError(f"Unable to determine host from git remote: {remote_url!r}")
    return host


def api_base_url(
    settings: Settings,
    *,
    proto: str = "",
    remote_url: Callable[[], str] = git.first_remote_url,
) -> str:
    """
    Base URL of the build-status API.

    An explicit endpoint wins; otherwise the first remote's host is used with
    the configured port and `proto` (default https).
    """
    if settings.endpoint:
        return settings.endpoint.rstrip("/")

    host = remote_host(remote_url())
    if settings.port:
        host = f"{host}:{settings.port}"
    scheme = proto or settings.proto or DEFAULT_PROTO
    return f"{scheme}://{host}"

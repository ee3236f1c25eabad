"""
cli.py

Responsibility: CLI entrypoint for git-build-state.

High-level flow:
1) Resolve settings and credentials -> `StatusClient`
2) Resolve the commit (or branch log) through git
3) Query the build-status API
4) Render through the selected template or as JSON, then print

This module should orchestrate behavior but keep concerns isolated:
- Settings: `config.py`
- git: `git.py`
- Build-status API: `status_client.py`
- Rendering: `formatter.py`
"""

from __future__ import annotations

import argparse
import getpass
import logging
import sys
from typing import TextIO

from buildstate import __version__, config, git
from buildstate.auth import BasicAuth
from buildstate.config import ConfigError, Settings
from buildstate.formatter import (
    LOG_DEFAULT_TEMPLATE,
    STATE_DEFAULT_TEMPLATE,
    TemplateError,
    format_log,
    format_log_json,
    format_status_page,
    format_status_page_json,
)
from buildstate.git import GitError
from buildstate.status_client import StatusClient, StatusClientError

LOGGER_NAME = "buildstate"


class CLIError(RuntimeError):
    pass


def _configure_logger(debug: bool) -> logging.Logger:
    logger = logging.getLogger(LOGGER_NAME)
    if debug and not logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter("==> %(message)s"))
        logger.addHandler(handler)
    if debug:
        logger.setLevel(logging.DEBUG)
    return logger


def _pick_template(flag: str, configured: str, default: str) -> str:
    return flag or configured or default


def _build_client(settings: Settings, args: argparse.Namespace, logger: logging.Logger) -> StatusClient:
    creds = config.load_credentials()
    auth = BasicAuth.from_credentials(creds.user, creds.b64credentials)
    base_url = config.api_base_url(settings, proto=args.proto)
    logger.debug("Build-status endpoint: %s", base_url)
    return StatusClient(base_url, auth, logger=logger.getChild("client"))


def _read_user_and_password(stdin: TextIO) -> tuple[str, str]:
    print("Username: ", end="", flush=True)
    user = stdin.readline().strip()
    password = getpass.getpass("Password: ").strip()
    return user, password


def generate_creds_cmd(args: argparse.Namespace, out: TextIO) -> int:
    user, password = _read_user_and_password(sys.stdin)
    auth = BasicAuth.from_password(user, password)
    out.write(f"git config --global {config.KEY_AUTH_CREDENTIALS} {auth.b64credentials}\n")
    return 0


def configure_cmd(args: argparse.Namespace, out: TextIO) -> int:
    out.write("Configuring Stash/Bitbucket credentials (abort with ctrl-c)\n")
    out.write("Base64 encoded password will be saved in global git config\n")
    user, password = _read_user_and_password(sys.stdin)
    if not user:
        raise CLIError("Username must not be empty")
    auth = BasicAuth.from_password(user, password)

    out.write(f"Setting: {config.KEY_AUTH_USER}={user}\n")
    git.set_global_config(config.KEY_AUTH_USER, user)
    out.write(f"Setting: {config.KEY_AUTH_CREDENTIALS}=**********\n")
    git.set_global_config(config.KEY_AUTH_CREDENTIALS, auth.b64credentials)
    return 0


def log_cmd(args: argparse.Namespace, out: TextIO, logger: logging.Logger) -> int:
    settings = config.load_settings()
    client = _build_client(settings, args, logger)

    entries = git.log_short(args.ref)
    logger.debug("Log entries: %d", len(entries))
    stats = client.batch_status(e.id for e in entries)

    if args.json:
        rendered = format_log_json(entries, stats)
    else:
        template = _pick_template(args.format, settings.format_log, LOG_DEFAULT_TEMPLATE)
        logger.debug("Format: %r", template)
        rendered = format_log(entries, stats, template)
    out.write(rendered)
    return 0


def state_cmd(args: argparse.Namespace, out: TextIO, logger: logging.Logger) -> int:
    settings = config.load_settings()
    template = _pick_template(args.format, settings.format_state, STATE_DEFAULT_TEMPLATE)
    logger.debug("Format: %r", template)
    logger.debug("Git ref: %s", args.ref)

    client = _build_client(settings, args, logger)
    try:
        commit = git.commit_id_from_ref(args.ref)
    except GitError as e:
        raise CLIError(f"Not a valid git reference: {args.ref or 'HEAD'}\n{e.stderr.strip()}") from e
    logger.debug("Git commit: %s", commit)

    page = client.commit_status(commit)
    rendered = format_status_page_json(page) if args.json else format_status_page(page, template)
    out.write(rendered)
    return 0


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="git-build-state",
        description="Show Stash/Bitbucket build status for a commit or a branch log",
    )
    p.add_argument("ref", nargs="?", default="", help="Git ref (default: HEAD, or the current branch with --log)")
    p.add_argument("--log", action="store_true", help="Display git log with build statistics")
    p.add_argument("--format", default="", help="Jinja2 output template (overrides configured templates)")
    p.add_argument("--json", action="store_true", help="Format output as JSON")
    p.add_argument("--proto", default="", help="Protocol for the derived endpoint (default: https)")
    p.add_argument("--debug", action="store_true", help="Enable debug output on stderr")
    p.add_argument("--generate-creds", action="store_true", help="Print a git config command with encoded credentials")
    p.add_argument("--configure", action="store_true", help="Store credentials in global git config")
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return p


def main(argv: list[str] | None = None, out: TextIO | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    out = out or sys.stdout
    logger = _configure_logger(args.debug)

    try:
        if args.generate_creds:
            return generate_creds_cmd(args, out)
        if args.configure:
            return configure_cmd(args, out)
        if args.log:
            return log_cmd(args, out, logger)
        return state_cmd(args, out, logger)
    except (StatusClientError, TemplateError, ConfigError, GitError, CLIError) as e:
        print(f"git-build-state: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())

"""
buildstate package

This package implements git-build-state, a CLI that reports Stash/Bitbucket
build status for a commit or for every commit of a branch log.

Key responsibilities are split across modules:
- `auth.py`: request credentials (basic or token headers)
- `status_client.py`: isolated build-status REST API interactions
- `formatter.py`: Jinja2 template and JSON rendering of results
- `git.py`: the git queries the CLI needs
- `config.py`: settings from git config and an optional YAML file
- `cli.py`: CLI entrypoint and orchestration (git -> API -> render)
"""

from __future__ import annotations

__all__ = ["__version__"]

__version__ = "0.1.0"

"""
formatter.py

Responsibility: Render build-status results as text or as indented JSON.

Rules:
- Template mode renders each record through a Jinja2 template with strict
  undefined handling; an unknown placeholder is an error, never blank output.
- Structured mode serializes the same field names into one JSON document.
- Everything is rendered into a string before anything is written, so a
  template failure leaves no partial output.

This module intentionally does NOT know about HTTP, git, or CLI parsing.
"""

from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Iterable, Mapping

from jinja2 import Environment, StrictUndefined, Template
from jinja2 import TemplateError as JinjaTemplateError

from buildstate.models import CommitID, CommitStat, LogEntry, StatusPage

JSON_INDENT = 3

STATE_DEFAULT_TEMPLATE = """\
Name:  {{ name }}     Key: {{ key }}
State: {{ state }}
URL:   {{ url }}
Date:  {{ dateAdded }}

   {{ description }}
"""

LOG_DEFAULT_TEMPLATE = """\
{{ id }} {{ message }}
{% if status %}   Successful: {{ status.successful }}, In Progress: {{ status.inProgress }}, Failed: {{ status.failed }}
{% else %}   No build status
{% endif %}"""


class TemplateError(RuntimeError):
    pass


_env = Environment(
    autoescape=False,
    undefined=StrictUndefined,
    keep_trailing_newline=True,
)


def compile_template(source: str) -> Template:
    try:
        return _env.from_string(source)
    except JinjaTemplateError as e:
        raise TemplateError(f"Invalid output template: {e}") from e


def _render(template: Template, context: Mapping[str, Any]) -> str:
    try:
        return template.render(**context)
    except JinjaTemplateError as e:
        raise TemplateError(f"Failed rendering output template: {e}") from e


def _json_default(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def to_json(data: Any) -> str:
    return json.dumps(data, indent=JSON_INDENT, default=_json_default) + "\n"


def log_line_context(entry: LogEntry, stat: CommitStat | None) -> dict[str, Any]:
    return {
        "id": entry.id,
        "short_id": entry.short_id,
        "message": entry.message,
        "status": stat.to_dict() if stat is not None else None,
    }


def format_status_page(page: StatusPage, template: str = STATE_DEFAULT_TEMPLATE) -> str:
    """Render every record of `page`, one block per record with a blank line after each."""
    compiled = compile_template(template)
    return "".join(_render(compiled, record.to_dict()) + "\n" for record in page.values)


def format_status_page_json(page: StatusPage) -> str:
    return to_json([record.to_dict() for record in page.values])


def format_log(
    entries: Iterable[LogEntry],
    stats: Mapping[CommitID, CommitStat],
    template: str = LOG_DEFAULT_TEMPLATE,
) -> str:
    """
    Render one line block per log entry.

    Entries whose commit is missing from `stats` get `status = None`.
    """
    compiled = compile_template(template)
    return "".join(_render(compiled, log_line_context(e, stats.get(e.id))) for e in entries)


def format_log_json(entries: Iterable[LogEntry], stats: Mapping[CommitID, CommitStat]) -> str:
    return to_json([log_line_context(e, stats.get(e.id)) for e in entries])

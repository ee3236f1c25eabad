"""
models.py

Responsibility: Typed, immutable views of the build-status API payloads.

Every `from_json` here is strict: a payload that does not match the expected
shape raises `SchemaError`, which the client turns into its error-shape
fallback. Nothing in this module performs I/O.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Mapping

CommitID = str

ABBREV_LENGTH = 7


class SchemaError(ValueError):
    pass


def abbrev_commit(commit: CommitID) -> str:
    return commit[:ABBREV_LENGTH]


def _require_mapping(data: Any, what: str) -> Mapping[str, Any]:
    if not isinstance(data, Mapping):
        raise SchemaError(f"{what} must be a JSON object, got {type(data).__name__}")
    return data


def _int_field(data: Mapping[str, Any], name: str, *, default: int | None = None) -> int:
    value = data.get(name, default)
    # bool is an int subclass; JSON true/false is never a count.
    if isinstance(value, bool) or not isinstance(value, int):
        raise SchemaError(f"`{name}` must be an integer, got {value!r}")
    return value


def _str_field(data: Mapping[str, Any], name: str) -> str:
    value = data.get(name, "")
    if value is None:
        return ""
    if not isinstance(value, str):
        raise SchemaError(f"`{name}` must be a string, got {value!r}")
    return value


def datetime_from_millis(millis: int) -> datetime:
    try:
        return datetime.fromtimestamp(millis / 1000, tz=timezone.utc)
    except (OverflowError, OSError, ValueError) as e:
        raise SchemaError(f"timestamp {millis} is out of range") from e


@dataclass(frozen=True)
class CommitStat:
    """Aggregate build counts for one commit."""

    successful: int = 0
    in_progress: int = 0
    failed: int = 0

    def __post_init__(self) -> None:
        for name in ("successful", "in_progress", "failed"):
            if getattr(self, name) < 0:
                raise SchemaError(f"`{name}` must not be negative")

    @classmethod
    def from_json(cls, data: Any) -> CommitStat:
        obj = _require_mapping(data, "commit stat")
        return cls(
            successful=_int_field(obj, "successful", default=0),
            in_progress=_int_field(obj, "inProgress", default=0),
            failed=_int_field(obj, "failed", default=0),
        )

    def to_dict(self) -> dict[str, int]:
        return {"successful": self.successful, "inProgress": self.in_progress, "failed": self.failed}

    def __str__(self) -> str:
        return f"Successful: {self.successful}, In Progress: {self.in_progress}, Failed: {self.failed}"


def commit_stats_from_json(data: Any) -> dict[CommitID, CommitStat]:
    obj = _require_mapping(data, "commit stats")
    return {str(commit): CommitStat.from_json(stat) for commit, stat in obj.items()}


@dataclass(frozen=True)
class StatusRecord:
    """One detailed build status entry. `state` is kept as the raw tag (SUCCESSFUL, FAILED, ...)."""

    state: str
    key: str
    name: str
    url: str
    description: str
    date_added: datetime | None

    @classmethod
    def from_json(cls, data: Any) -> StatusRecord:
        obj = _require_mapping(data, "status record")
        date_added = None
        if obj.get("dateAdded") is not None:
            date_added = datetime_from_millis(_int_field(obj, "dateAdded"))
        return cls(
            state=_str_field(obj, "state"),
            key=_str_field(obj, "key"),
            name=_str_field(obj, "name"),
            url=_str_field(obj, "url"),
            description=_str_field(obj, "description"),
            date_added=date_added,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "state": self.state,
            "key": self.key,
            "name": self.name,
            "url": self.url,
            "description": self.description,
            "dateAdded": self.date_added,
        }


@dataclass(frozen=True)
class StatusPage:
    size: int
    limit: int
    is_last_page: bool
    start: int
    values: tuple[StatusRecord, ...]

    @classmethod
    def from_json(cls, data: Any) -> StatusPage:
        obj = _require_mapping(data, "status page")
        if "size" not in obj:
            raise SchemaError("status page is missing `size`")
        raw_values = obj.get("values") or []
        if not isinstance(raw_values, list):
            raise SchemaError("`values` must be a JSON array")
        is_last_page = obj.get("isLastPage", True)
        if not isinstance(is_last_page, bool):
            raise SchemaError(f"`isLastPage` must be a boolean, got {is_last_page!r}")
        page = cls(
            size=_int_field(obj, "size"),
            limit=_int_field(obj, "limit", default=0),
            is_last_page=is_last_page,
            start=_int_field(obj, "start", default=0),
            values=tuple(StatusRecord.from_json(v) for v in raw_values),
        )
        if page.size < 0:
            raise SchemaError("`size` must not be negative")
        if len(page.values) > page.size:
            raise SchemaError(f"status page holds {len(page.values)} values but reports size {page.size}")
        return page


@dataclass(frozen=True)
class LogEntry:
    """One `git log --pretty=oneline` line."""

    id: CommitID
    message: str

    @property
    def short_id(self) -> str:
        return abbrev_commit(self.id)

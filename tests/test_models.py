from datetime import datetime, timezone

import pytest

from buildstate.models import (
    CommitStat,
    LogEntry,
    SchemaError,
    StatusPage,
    StatusRecord,
    abbrev_commit,
    commit_stats_from_json,
)


def test_commit_stat_decodes_counts() -> None:
    stat = CommitStat.from_json({"successful": 2, "inProgress": 3, "failed": 1})
    assert (stat.successful, stat.in_progress, stat.failed) == (2, 3, 1)
    assert stat.to_dict() == {"successful": 2, "inProgress": 3, "failed": 1}


def test_commit_stat_missing_fields_default_to_zero() -> None:
    assert CommitStat.from_json({"failed": 4}) == CommitStat(failed=4)


@pytest.mark.parametrize(
    "payload",
    [
        {"successful": -1},
        {"successful": "2"},
        {"failed": True},
        [1, 2, 3],
    ],
)
def test_commit_stat_rejects_bad_payloads(payload) -> None:
    with pytest.raises(SchemaError):
        CommitStat.from_json(payload)


def test_commit_stat_str() -> None:
    assert str(CommitStat(1, 0, 2)) == "Successful: 1, In Progress: 0, Failed: 2"


def test_commit_stats_reject_error_shape() -> None:
    with pytest.raises(SchemaError):
        commit_stats_from_json({"errors": [{"message": "Unauthorized"}]})


def test_status_record_decodes_epoch_millis() -> None:
    record = StatusRecord.from_json(
        {
            "state": "SUCCESSFUL",
            "key": "K1",
            "name": "Build",
            "url": "http://x",
            "description": "ok",
            "dateAdded": 1700000000000,
        }
    )
    assert record.date_added == datetime(2023, 11, 14, 22, 13, 20, tzinfo=timezone.utc)
    assert record.to_dict()["dateAdded"] == record.date_added


def test_status_record_keeps_unknown_state() -> None:
    record = StatusRecord.from_json({"state": "CANCELLED"})
    assert record.state == "CANCELLED"
    assert record.date_added is None


def test_status_page_optional_paging_fields() -> None:
    page = StatusPage.from_json({"size": 1, "values": [{"state": "FAILED"}]})
    assert page.size == 1
    assert page.limit == 0
    assert page.is_last_page is True
    assert page.values[0].state == "FAILED"


def test_status_page_rejects_more_values_than_size() -> None:
    with pytest.raises(SchemaError):
        StatusPage.from_json({"size": 1, "values": [{}, {}]})


def test_status_page_requires_size() -> None:
    with pytest.raises(SchemaError):
        StatusPage.from_json({"values": []})


def test_abbrev_commit() -> None:
    assert abbrev_commit("0123456789abcdef") == "0123456"
    assert LogEntry("0123456789abcdef", "msg").short_id == "0123456"


@pytest.mark.parametrize("millis", [10**20, -(10**20), 10**400])
def test_out_of_range_date_added_is_schema_error(millis: int) -> None:
    with pytest.raises(SchemaError):
        StatusRecord.from_json({"state": "SUCCESSFUL", "dateAdded": millis})

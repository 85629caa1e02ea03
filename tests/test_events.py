"""Tests for parsing push payloads into list events."""

import pytest

from issueboard.models import IssueStatus
from issueboard.sync.events import Deleted, Inserted, Updated, parse_change_payload

ROW = {
    "id": "a1",
    "title": "Fix bug",
    "description": "",
    "status": "Open",
    "user_id": "u1",
    "created_at": "2024-01-15T10:00:00Z",
}


def test_realtime_insert() -> None:
    event = parse_change_payload({"eventType": "INSERT", "new": ROW, "old": {}})
    assert isinstance(event, Inserted)
    assert event.issue.id == "a1"


def test_webhook_update_uses_old_record_id() -> None:
    payload = {
        "type": "UPDATE",
        "table": "issues",
        "record": {**ROW, "status": "In Progress"},
        "old_record": {"id": "a1"},
    }
    event = parse_change_payload(payload)
    assert isinstance(event, Updated)
    assert event.old_id == "a1"
    assert event.issue.status is IssueStatus.IN_PROGRESS


def test_update_without_old_falls_back_to_new_id() -> None:
    event = parse_change_payload({"eventType": "UPDATE", "new": ROW, "old": {}})
    assert isinstance(event, Updated)
    assert event.old_id == "a1"


def test_delete() -> None:
    event = parse_change_payload({"eventType": "DELETE", "new": {}, "old": {"id": 5}})
    assert event == Deleted(old_id="5")


@pytest.mark.parametrize(
    "payload",
    [
        "not a dict",
        {"eventType": "TRUNCATE"},
        {"eventType": "INSERT", "new": {**ROW, "status": "Done"}},
        {"eventType": "INSERT", "new": {**ROW, "title": ""}},
        {"eventType": "INSERT", "new": {"id": "a1"}},
        {"eventType": "DELETE", "old": {}},
        {"type": "INSERT", "table": "comments", "record": ROW},
    ],
)
def test_malformed_payloads_are_dropped(payload) -> None:
    assert parse_change_payload(payload) is None

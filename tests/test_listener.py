"""Tests for ChangeListener (owner filter, teardown, re-subscription)."""

import logging

import pytest

from issueboard.feed import ChangeFeed
from issueboard.sync.issue_list import IssueList
from issueboard.sync.listener import ChangeListener


def _row(issue_id: str, user_id: str = "alice", **extra) -> dict:
    row = {
        "id": issue_id,
        "title": "T",
        "description": "",
        "status": "Open",
        "user_id": user_id,
        "created_at": "2024-01-15T10:00:00+00:00",
    }
    row.update(extra)
    return row


@pytest.fixture
def issue_list() -> IssueList:
    return IssueList()


@pytest.fixture
def listener(feed: ChangeFeed, issue_list: IssueList) -> ChangeListener:
    listener = ChangeListener(feed, issue_list)
    listener.subscribe("alice")
    return listener


def test_insert_update_delete_flow(feed: ChangeFeed, issue_list: IssueList, listener: ChangeListener) -> None:
    feed.publish({"eventType": "INSERT", "new": _row("1")})
    feed.publish({"eventType": "INSERT", "new": _row("1")})
    assert [i.id for i in issue_list.issues] == ["1"]
    feed.publish({"eventType": "UPDATE", "new": _row("1", status="Closed"), "old": {"id": "1"}})
    assert issue_list.get("1").status.value == "Closed"
    feed.publish({"eventType": "DELETE", "old": {"id": "1"}})
    assert issue_list.issues == ()


def test_other_users_rows_never_reach_the_list(feed: ChangeFeed, issue_list: IssueList, listener: ChangeListener) -> None:
    feed.publish({"eventType": "INSERT", "new": _row("1", user_id="bob")})
    assert issue_list.issues == ()
    # filter bypassed (payload delivered directly) is still dropped
    assert not listener.handle_payload({"eventType": "INSERT", "new": _row("2", user_id="bob")})
    assert issue_list.issues == ()


def test_malformed_payload_is_logged_and_dropped(
    feed: ChangeFeed, issue_list: IssueList, listener: ChangeListener, caplog: pytest.LogCaptureFixture
) -> None:
    with caplog.at_level(logging.WARNING, logger="issueboard.sync.events"):
        feed.publish({"eventType": "INSERT", "new": _row("1", status="Blocked")})
    assert issue_list.issues == ()
    assert "Dropping malformed INSERT" in caplog.text


def test_teardown_stops_updates(feed: ChangeFeed, issue_list: IssueList, listener: ChangeListener) -> None:
    listener.teardown()
    assert not listener.active
    assert feed.subscriber_count == 0
    feed.publish({"eventType": "INSERT", "new": _row("1")})
    assert issue_list.issues == ()


def test_subscribe_same_owner_is_noop(feed: ChangeFeed, listener: ChangeListener) -> None:
    listener.subscribe("alice")
    assert feed.subscriber_count == 1


def test_identity_change_resubscribes_with_new_filter(
    feed: ChangeFeed, issue_list: IssueList, listener: ChangeListener
) -> None:
    listener.subscribe("bob")
    assert listener.owner == "bob"
    assert feed.subscriber_count == 1
    feed.publish({"eventType": "INSERT", "new": _row("a", user_id="alice")})
    feed.publish({"eventType": "INSERT", "new": _row("b", user_id="bob")})
    assert [i.id for i in issue_list.issues] == ["b"]

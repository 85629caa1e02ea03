"""Tests for ChangeFeed (owner-filtered fan-out)."""

from issueboard.feed import ChangeFeed, payload_owner


def test_payload_owner_from_new_or_old() -> None:
    assert payload_owner({"new": {"user_id": "u1"}}) == "u1"
    assert payload_owner({"type": "UPDATE", "record": {"user_id": "u2"}, "old_record": {"id": "1"}}) == "u2"
    assert payload_owner({"old": {"id": "1", "user_id": "u3"}}) == "u3"
    assert payload_owner({"old": {"id": "1"}}) is None


def test_publish_filters_by_owner() -> None:
    feed = ChangeFeed()
    alice, bob = [], []
    feed.subscribe("alice", alice.append)
    feed.subscribe("bob", bob.append)
    delivered = feed.publish({"eventType": "INSERT", "new": {"id": "1", "user_id": "alice"}})
    assert delivered == 1
    assert len(alice) == 1 and bob == []


def test_payload_without_owner_goes_to_everyone() -> None:
    feed = ChangeFeed()
    alice, bob = [], []
    feed.subscribe("alice", alice.append)
    feed.subscribe("bob", bob.append)
    assert feed.publish({"eventType": "DELETE", "old": {"id": "1"}}) == 2


def test_unsubscribe_stops_delivery() -> None:
    feed = ChangeFeed()
    received = []
    sub = feed.subscribe("alice", received.append)
    sub.unsubscribe()
    sub.unsubscribe()
    feed.publish({"new": {"user_id": "alice"}})
    assert received == []
    assert feed.subscriber_count == 0

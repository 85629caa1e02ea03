"""Shared fixtures: issue factory and an in-memory backend."""

from datetime import UTC, datetime, timedelta
from typing import Callable

import pytest

from issueboard.adapters.memory import InMemoryIdentity, InMemoryIssueStore, InMemoryTable
from issueboard.app import IssueBoardPage
from issueboard.feed import ChangeFeed
from issueboard.models import Issue, User

BASE_TIME = datetime(2024, 1, 15, 10, 0, tzinfo=UTC)


@pytest.fixture
def make_issue() -> Callable[..., Issue]:
    """Build an Issue; minutes orders created_at (larger = newer)."""

    def _make(
        issue_id: str = "1",
        title: str = "Issue",
        description: str = "",
        status: str = "Open",
        user_id: str = "u1",
        minutes: int = 0,
    ) -> Issue:
        return Issue(
            id=issue_id,
            title=title,
            description=description,
            status=status,
            user_id=user_id,
            created_at=BASE_TIME + timedelta(minutes=minutes),
        )

    return _make


@pytest.fixture
def feed() -> ChangeFeed:
    return ChangeFeed()


@pytest.fixture
def users() -> dict[str, tuple[str, User]]:
    return {
        "alice@example.com": ("pw-a", User(id="alice", email="alice@example.com")),
        "bob@example.com": ("pw-b", User(id="bob", email="bob@example.com")),
    }


@pytest.fixture
def table(feed: ChangeFeed) -> InMemoryTable:
    return InMemoryTable(feed)


@pytest.fixture
def make_page(
    feed: ChangeFeed, table: InMemoryTable, users: dict[str, tuple[str, User]]
) -> Callable[..., IssueBoardPage]:
    """Page over the shared in-memory backend; signs in when email is given."""

    def _make(email: str | None = None, **kwargs) -> IssueBoardPage:
        identity = InMemoryIdentity(users)
        store = InMemoryIssueStore(table, identity.acting_user_id)
        page = IssueBoardPage(identity, store, feed, **kwargs)
        if email:
            identity.sign_in(email, users[email][0])
        return page

    return _make

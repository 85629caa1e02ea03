"""
In-memory backend: authoritative issues table, per-session store view and
identity. Changes are published to a ChangeFeed in the realtime payload shape.

Use for development (serve --demo) and tests.
"""

import logging
import threading
import uuid
from datetime import UTC, datetime, timedelta
from typing import Any, Callable, Dict, List

from pydantic import ValidationError

from issueboard.adapters.base import AuthRequired, IdentityAdapter, IssueStoreAdapter, StoreError
from issueboard.feed import ChangeFeed
from issueboard.models import AuthEvent, AuthSession, Issue, IssueDraft, User


class InMemoryTable:
    """Rows of all users plus the feed their changes are published to.

    Changes are published while the table lock is held, so subscribers see
    them in write order.
    """

    def __init__(self, feed: ChangeFeed | None = None, table: str = "issues") -> None:
        self.feed = feed
        self.table = table
        self._lock = threading.Lock()
        self._rows: Dict[str, Issue] = {}
        self._last_created: datetime | None = None
        self.write_count = 0

    def snapshot(self, owner: str | None = None) -> List[Issue]:
        """Rows (of owner, if given), newest first."""
        with self._lock:
            rows = [r for r in self._rows.values() if owner is None or r.user_id == owner]
        return sorted(rows, key=lambda r: (r.created_at, r.id), reverse=True)

    def get(self, issue_id: str) -> Issue | None:
        with self._lock:
            return self._rows.get(issue_id)

    def _publish(self, event_type: str, new: Dict[str, Any], old: Dict[str, Any]) -> None:
        if self.feed is None:
            return
        self.feed.publish(
            {
                "eventType": event_type,
                "schema": "public",
                "table": self.table,
                "new": new,
                "old": old,
            }
        )

    def _next_created_at(self) -> datetime:
        # strictly increasing, so newest-first order is total
        now = datetime.now(UTC)
        if self._last_created is not None and now <= self._last_created:
            now = self._last_created + timedelta(microseconds=1)
        self._last_created = now
        return now

    def insert(self, row: Dict[str, Any]) -> Issue:
        with self._lock:
            issue = Issue(id=uuid.uuid4().hex, created_at=self._next_created_at(), **row)
            self._rows[issue.id] = issue
            self.write_count += 1
            self._publish("INSERT", issue.model_dump(mode="json"), {})
        return issue

    def update(self, issue_id: str, owner: str, fields: Dict[str, Any]) -> bool:
        with self._lock:
            current = self._rows.get(issue_id)
            if current is None or current.user_id != owner:
                return False
            updated = Issue.model_validate({**current.model_dump(), **fields})
            self._rows[issue_id] = updated
            self.write_count += 1
            self._publish("UPDATE", updated.model_dump(mode="json"), {"id": issue_id})
        return True

    def delete(self, issue_id: str, owner: str) -> bool:
        with self._lock:
            current = self._rows.get(issue_id)
            if current is None or current.user_id != owner:
                return False
            del self._rows[issue_id]
            self.write_count += 1
            self._publish("DELETE", {}, {"id": issue_id})
        return True


class InMemoryIssueStore(IssueStoreAdapter):
    """Store view acting as one user; rows of other users are invisible (as with row level security)."""

    def __init__(self, table: InMemoryTable, acting_user: Callable[[], str | None]) -> None:
        self._table = table
        self._acting_user = acting_user

    def _caller(self) -> str:
        user_id = self._acting_user()
        if not user_id:
            raise StoreError("401: JWT required")
        return user_id

    def list_issues(self, owner: str) -> List[Issue]:
        if owner != self._caller():
            raise StoreError("403: permission denied for table issues")
        return self._table.snapshot(owner)

    def insert_issue(self, draft: IssueDraft, owner: str) -> Issue:
        if owner != self._caller():
            raise StoreError("403: new row violates row-level security policy")
        row = draft.to_row(owner)
        if not row["title"].strip():
            raise StoreError("Title must not be empty")
        try:
            return self._table.insert(row)
        except ValidationError as e:
            raise StoreError(str(e)) from e

    def update_issue(self, issue_id: str, draft: IssueDraft) -> None:
        row = draft.to_row()
        if "title" in row and not row["title"].strip():
            raise StoreError("Title must not be empty")
        try:
            self._table.update(issue_id, self._caller(), row)
        except ValidationError as e:
            raise StoreError(str(e)) from e

    def delete_issue(self, issue_id: str) -> None:
        self._table.delete(issue_id, self._caller())


class InMemoryIdentity(IdentityAdapter):
    """Identity with a fixed user directory; one instance per browser session."""

    def __init__(self, users: Dict[str, tuple[str, User]] | None = None) -> None:
        super().__init__()
        self._users = users if users is not None else {}
        self._auth: AuthSession | None = None

    @property
    def access_token(self) -> str | None:
        return self._auth.access_token if self._auth else None

    def get_current_user(self) -> User | None:
        return self._auth.user if self._auth else None

    def sign_in(self, email: str, password: str) -> AuthSession:
        entry = self._users.get(email)
        if entry is None or entry[0] != password:
            raise AuthRequired("Invalid login credentials")
        self._auth = AuthSession(access_token=uuid.uuid4().hex, user=entry[1])
        logging.getLogger("issueboard.adapters.memory").info("Signed in as %s", email)
        self._emit(AuthEvent.SIGNED_IN, self._auth)
        return self._auth

    def sign_out(self) -> None:
        self._auth = None
        self._emit(AuthEvent.SIGNED_OUT, None)

    def acting_user_id(self) -> str | None:
        user = self.get_current_user()
        return user.id if user else None

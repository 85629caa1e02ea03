"""Change notification listener: feed payloads -> IssueList events."""

import logging
import threading
from typing import Any, Dict

from issueboard.adapters.base import Subscription
from issueboard.feed import ChangeFeed
from issueboard.sync.events import parse_change_payload
from issueboard.sync.issue_list import IssueList

LOG = logging.getLogger("issueboard.sync.listener")


class ChangeListener:
    """One owner-filtered subscription per session, re-established on identity change."""

    def __init__(self, feed: ChangeFeed, issue_list: IssueList, table: str = "issues") -> None:
        self._feed = feed
        self._list = issue_list
        self._table = table
        self._lock = threading.Lock()
        self._subscription: Subscription | None = None
        self._owner: str | None = None

    @property
    def owner(self) -> str | None:
        return self._owner

    @property
    def active(self) -> bool:
        return self._subscription is not None and self._subscription.active

    def subscribe(self, owner: str) -> None:
        """Subscribe for owner. No-op if already subscribed for the same owner."""
        with self._lock:
            if self.active and self._owner == owner:
                return
            self._teardown_locked()
            self._owner = owner
            subscription: Subscription | None = None

            def _handle(payload: Dict[str, Any]) -> None:
                # a subscription replaced by a newer one must not apply late payloads
                if subscription is None or not subscription.active:
                    return
                self.handle_payload(payload)

            subscription = self._feed.subscribe(owner, _handle)
            self._subscription = subscription
        LOG.info("Listening for issue changes of user %s", owner)

    def handle_payload(self, payload: Dict[str, Any]) -> bool:
        """Parse and apply one payload. Returns True if it reached the list."""
        event = parse_change_payload(payload, table=self._table)
        if event is None:
            return False
        if event.kind != "deleted" and event.issue.user_id != self._owner:
            LOG.warning("Dropping %s for issue %s of another user", event.kind, event.issue.id)
            return False
        LOG.debug("Change received: %s", event.kind)
        return self._list.dispatch(event)

    def _teardown_locked(self) -> None:
        if self._subscription is not None:
            self._subscription.unsubscribe()
            LOG.info("Stopped listening for user %s", self._owner)
        self._subscription = None
        self._owner = None

    def teardown(self) -> None:
        with self._lock:
            self._teardown_locked()

"""Local in-memory list of the signed-in user's issues.

All mutation goes through dispatch() (notifications) or apply_fetched()
(full fetch), both serialized by one lock and applied in arrival order.

Stale-response guard: begin_fetch() hands out a token bound to the current
generation; clear() and close() bump the generation so late fetch results
are dropped. Notifications that arrive while a fetch is in flight are kept
and replayed on top of its snapshot, so a snapshot taken before a change
cannot erase it.
"""

import logging
import threading
from typing import Callable, Dict, List, Tuple

from issueboard.models import Issue
from issueboard.sync.events import Fetched, ListEvent
from issueboard.sync.reducer import IssueTuple, reduce

LOG = logging.getLogger("issueboard.sync.issue_list")

ListObserver = Callable[[IssueTuple], None]


class IssueList:
    """Thread-safe holder of the local issue tuple with change observers."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._issues: IssueTuple = ()
        self._generation = 0
        self._closed = False
        self._observers: List[ListObserver] = []
        # token -> (generation, index into _buffered when the fetch began)
        self._fetches: Dict[int, Tuple[int, int]] = {}
        self._next_token = 0
        self._buffered: List[ListEvent] = []

    @property
    def issues(self) -> IssueTuple:
        with self._lock:
            return self._issues

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def fetching(self) -> bool:
        with self._lock:
            return bool(self._fetches)

    def get(self, issue_id: str) -> Issue | None:
        for issue in self.issues:
            if issue.id == issue_id:
                return issue
        return None

    def add_observer(self, observer: ListObserver) -> None:
        self._observers.append(observer)

    def _set(self, issues: IssueTuple) -> None:
        changed = issues != self._issues
        self._issues = issues
        if changed:
            for observer in list(self._observers):
                observer(issues)

    def dispatch(self, event: ListEvent) -> bool:
        """Apply one notification event. Returns False once closed."""
        with self._lock:
            if self._closed:
                LOG.debug("Dropping %s after teardown", event.kind)
                return False
            if self._fetches:
                self._buffered.append(event)
            self._set(reduce(self._issues, event))
            return True

    def begin_fetch(self) -> int:
        """Mark a full fetch as started; pass the token to apply_fetched or abort_fetch."""
        with self._lock:
            self._next_token += 1
            token = self._next_token
            self._fetches[token] = (self._generation, len(self._buffered))
            return token

    def _finish(self, token: int) -> Tuple[int | None, List[ListEvent]]:
        generation, start = self._fetches.pop(token, (None, 0))
        replay = self._buffered[start:]
        if not self._fetches:
            self._buffered = []
        return generation, replay

    def apply_fetched(self, token: int, issues: List[Issue]) -> bool:
        """Replace the list with a fetch result unless it is stale."""
        with self._lock:
            generation, replay = self._finish(token)
            if self._closed or generation != self._generation:
                LOG.debug("Dropping stale fetch result (token %s)", token)
                return False
            state = reduce((), Fetched(issues=issues))
            for event in replay:
                state = reduce(state, event)
            self._set(state)
            return True

    def abort_fetch(self, token: int) -> None:
        """Forget a fetch that failed; the list stays at last-known-good."""
        with self._lock:
            self._finish(token)

    def clear(self) -> None:
        """Empty the list and invalidate in-flight fetches (e.g. on sign-out)."""
        with self._lock:
            self._generation += 1
            self._fetches.clear()
            self._buffered = []
            self._set(())

    def close(self) -> None:
        """Teardown: no event or fetch result mutates state afterwards."""
        with self._lock:
            self._closed = True
            self._generation += 1
            self._fetches.clear()
            self._buffered = []
            self._observers.clear()

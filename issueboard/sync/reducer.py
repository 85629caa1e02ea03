"""Reconciliation of list events into the local issue list.

reduce() is pure: it takes the current tuple of issues and one event and
returns the next tuple. Every rule is keyed by id, so the result never holds
two entries with the same id regardless of whether a record's notification
arrives before or after the fetch that also contains it.
"""

import logging
from typing import Tuple

from issueboard.models import Issue
from issueboard.sync.events import Deleted, Fetched, Inserted, ListEvent, Updated

LOG = logging.getLogger("issueboard.sync.reducer")

IssueTuple = Tuple[Issue, ...]


class ReconciliationMiss(Exception):
    """Notification references an id that is not in local state."""

    def __init__(self, issue_id: str) -> None:
        super().__init__(f"Issue {issue_id} not in local state")
        self.issue_id = issue_id


def _index_of(issues: IssueTuple, issue_id: str) -> int:
    for i, issue in enumerate(issues):
        if issue.id == issue_id:
            return i
    raise ReconciliationMiss(issue_id)


def _dedupe(issues) -> IssueTuple:
    seen: set[str] = set()
    out = []
    for issue in issues:
        if issue.id in seen:
            continue
        seen.add(issue.id)
        out.append(issue)
    return tuple(out)


def _upsert(issues: IssueTuple, target_id: str, issue: Issue) -> IssueTuple:
    """Replace the entry with target_id (or issue.id) in place, else prepend."""
    ids = [x.id for x in issues]
    if target_id in ids:
        i = ids.index(target_id)
    elif issue.id in ids:
        i = ids.index(issue.id)
    else:
        return (issue,) + issues
    replaced = issues[:i] + (issue,) + issues[i + 1 :]
    # drop any other copy of the new id
    return tuple(x for j, x in enumerate(replaced) if j == i or x.id != issue.id)


def reduce(issues: IssueTuple, event: ListEvent) -> IssueTuple:
    """Apply one event to the list."""
    if isinstance(event, Fetched):
        return _dedupe(event.issues)
    if isinstance(event, Inserted):
        return _upsert(issues, event.issue.id, event.issue)
    if isinstance(event, Updated):
        try:
            _index_of(issues, event.old_id)
        except ReconciliationMiss as miss:
            LOG.debug("Update for %s: %s, inserting", event.issue.id, miss)
        return _upsert(issues, event.old_id, event.issue)
    if isinstance(event, Deleted):
        try:
            i = _index_of(issues, event.old_id)
        except ReconciliationMiss as miss:
            LOG.debug("Delete ignored: %s", miss)
            return issues
        return issues[:i] + issues[i + 1 :]
    raise TypeError(f"Unknown list event: {event!r}")

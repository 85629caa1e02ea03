"""Client-side synchronization of the issue list (events, reducer, listener)."""

from issueboard.sync.events import Deleted, Fetched, Inserted, ListEvent, Updated, parse_change_payload
from issueboard.sync.issue_list import IssueList
from issueboard.sync.listener import ChangeListener
from issueboard.sync.reducer import ReconciliationMiss, reduce

__all__ = [
    "ChangeListener",
    "Deleted",
    "Fetched",
    "Inserted",
    "IssueList",
    "ListEvent",
    "ReconciliationMiss",
    "Updated",
    "parse_change_payload",
    "reduce",
]

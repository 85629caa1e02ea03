"""In-process push channel for row change notifications.

The webhook endpoint and the in-memory store publish raw payloads here;
each open page subscribes with its owner's user_id as filter.
"""

import logging
import threading
from typing import Any, Callable, Dict, List, Tuple

from issueboard.adapters.base import Subscription

LOG = logging.getLogger("issueboard.feed")

PayloadHandler = Callable[[Dict[str, Any]], None]


def payload_owner(payload: Dict[str, Any]) -> str | None:
    """user_id of the affected row, from the new or the old representation."""
    for key in ("record", "new", "old_record", "old"):
        row = payload.get(key)
        if isinstance(row, dict) and row.get("user_id") is not None:
            return str(row["user_id"])
    return None


class ChangeFeed:
    """Fan-out of change payloads to owner-filtered subscribers."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._subscribers: List[Tuple[str, PayloadHandler]] = []

    def subscribe(self, owner: str, handler: PayloadHandler) -> Subscription:
        entry = (owner, handler)
        with self._lock:
            self._subscribers.append(entry)
        LOG.debug("Subscribed to changes for user %s", owner)

        def _remove() -> None:
            with self._lock:
                if entry in self._subscribers:
                    self._subscribers.remove(entry)
            LOG.debug("Unsubscribed from changes for user %s", owner)

        return Subscription(_remove)

    def publish(self, payload: Dict[str, Any]) -> int:
        """Deliver payload to matching subscribers; returns how many got it.

        Payloads without a known owner (e.g. DELETE with only the primary key
        in old_record) go to every subscriber; unknown ids are no-ops there.
        """
        owner = payload_owner(payload)
        with self._lock:
            targets = [h for o, h in self._subscribers if owner is None or o == owner]
        for handler in targets:
            handler(payload)
        return len(targets)

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

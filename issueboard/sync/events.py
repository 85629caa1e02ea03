"""List events folded into local issue state.

Fetched comes from a full list call; Inserted, Updated and Deleted come from
change notifications. parse_change_payload turns a raw push payload into one
of them and returns None for anything malformed.
"""

import logging
from typing import Any, Dict, List, Literal, Union

from pydantic import BaseModel, Field, ValidationError

from issueboard.models import Issue

LOG = logging.getLogger("issueboard.sync.events")


class Fetched(BaseModel):
    """Full snapshot from list_issues."""

    kind: Literal["fetched"] = "fetched"
    issues: List[Issue] = Field(default_factory=list)


class Inserted(BaseModel):
    """Row created (INSERT notification)."""

    kind: Literal["inserted"] = "inserted"
    issue: Issue


class Updated(BaseModel):
    """Row changed (UPDATE notification). old_id is the id of the old record."""

    kind: Literal["updated"] = "updated"
    old_id: str
    issue: Issue


class Deleted(BaseModel):
    """Row removed (DELETE notification)."""

    kind: Literal["deleted"] = "deleted"
    old_id: str


ListEvent = Union[Fetched, Inserted, Updated, Deleted]


def _row(payload: Dict[str, Any], *keys: str) -> Dict[str, Any]:
    for key in keys:
        value = payload.get(key)
        if isinstance(value, dict) and value:
            return value
    return {}


def _event_type(payload: Dict[str, Any]) -> str:
    # realtime channel uses eventType, database webhooks use type
    return str(payload.get("eventType") or payload.get("type") or "").upper()


def parse_change_payload(payload: Any, table: str = "issues") -> Inserted | Updated | Deleted | None:
    """Validate a push payload into a strict event. Malformed payloads are logged and dropped."""
    if not isinstance(payload, dict):
        LOG.warning("Dropping change payload: not an object (%s)", type(payload).__name__)
        return None
    payload_table = payload.get("table")
    if payload_table and payload_table != table:
        LOG.debug("Ignoring change for table %s", payload_table)
        return None
    event_type = _event_type(payload)
    new = _row(payload, "new", "record")
    old = _row(payload, "old", "old_record")
    try:
        if event_type == "INSERT":
            return Inserted(issue=Issue.model_validate(new))
        if event_type == "UPDATE":
            issue = Issue.model_validate(new)
            old_id = old.get("id", issue.id)
            return Updated(old_id=str(old_id), issue=issue)
        if event_type == "DELETE":
            if old.get("id") is None:
                LOG.warning("Dropping DELETE notification without old id")
                return None
            return Deleted(old_id=str(old["id"]))
    except ValidationError as e:
        LOG.warning("Dropping malformed %s notification: %s", event_type, e.errors()[0].get("msg", e))
        return None
    LOG.warning("Dropping change payload with unknown type %r", event_type)
    return None

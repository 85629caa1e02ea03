"""Data models for issues, drafts, users and auth sessions."""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator


class IssueStatus(str, Enum):
    """The only valid issue statuses, in display order."""

    OPEN = "Open"
    IN_PROGRESS = "In Progress"
    CLOSED = "Closed"


class Issue(BaseModel):
    """Issue row as stored in the issues table."""

    id: str = Field(min_length=1, description="Assigned by the store, immutable")
    title: str = Field(min_length=1)
    description: str = ""
    status: IssueStatus = IssueStatus.OPEN
    user_id: str = Field(min_length=1, description="Owner; set from the session at creation")
    created_at: datetime

    model_config = {"frozen": True, "extra": "ignore"}

    @field_validator("id", "user_id", mode="before")
    @classmethod
    def _coerce_identifier(cls, value: Any) -> Any:
        # bigint primary keys arrive as numbers
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value

    @field_validator("description", mode="before")
    @classmethod
    def _null_description(cls, value: Any) -> Any:
        return "" if value is None else value


class IssueDraft(BaseModel):
    """In-progress field values a form is editing (not yet persisted)."""

    title: str = ""
    description: str = ""
    status: IssueStatus = IssueStatus.OPEN

    @classmethod
    def from_issue(cls, issue: Issue) -> "IssueDraft":
        """Copy the editable fields of an existing issue."""
        return cls(title=issue.title, description=issue.description, status=issue.status)

    def to_row(self, owner: str | None = None) -> dict[str, Any]:
        """Row payload for the store. Only explicitly set fields unless owner is given (insert)."""
        if owner is None:
            row = self.model_dump(mode="json", exclude_unset=True)
        else:
            row = self.model_dump(mode="json")
            row["user_id"] = owner
        return row


class User(BaseModel):
    """Authenticated user."""

    id: str
    email: str = ""

    model_config = {"extra": "ignore"}


class AuthSession(BaseModel):
    """Tokens and user returned by sign-in."""

    access_token: str
    refresh_token: str = ""
    user: User

    model_config = {"extra": "ignore"}


class AuthEvent(str, Enum):
    """Auth state transitions delivered to on_auth_state_change handlers."""

    SIGNED_IN = "SIGNED_IN"
    SIGNED_OUT = "SIGNED_OUT"

"""Issue form: draft state and submission lifecycle.

Mode is fixed at construction: create (no issue given, submit inserts) or
edit (draft copied from the issue, submit updates it). States:

    IDLE -> SUBMITTING -> IDLE

Only one submission may be in flight per form instance; a second submit
while SUBMITTING is refused without any remote call. Validation runs before
any I/O. On success on_saved then on_closed fire and the form is closed; on
StoreError neither fires, the error is logged and passed to alert, and the
form stays open and editable.
"""

import logging
import threading
from enum import Enum
from typing import Callable

from issueboard.adapters.base import AuthRequired, IssueStoreAdapter, StoreError
from issueboard.models import Issue, IssueDraft, IssueStatus

LOG = logging.getLogger("issueboard.form")


class FormValidationError(ValueError):
    """Draft rejected before submission."""

    def __init__(self, field: str, message: str) -> None:
        super().__init__(message)
        self.field = field


class FormState(str, Enum):
    IDLE = "idle"
    SUBMITTING = "submitting"


def _noop() -> None:
    return None


class IssueFormController:
    """Create/edit form for one issue."""

    def __init__(
        self,
        store: IssueStoreAdapter,
        owner: Callable[[], str | None],
        issue: Issue | None = None,
        *,
        require_description: bool = False,
        on_saved: Callable[[], None] | None = None,
        on_closed: Callable[[], None] | None = None,
        alert: Callable[[str], None] | None = None,
    ) -> None:
        """
        Args:
            store: Issues store the submission goes to.
            owner: Returns the current user's id at submit time (None when signed out).
            issue: Existing issue to edit; None opens the form in create mode.
            require_description: Reject blank descriptions as well as blank titles.
            on_saved: Called after a successful write (parent refreshes the list).
            on_closed: Called when the form should be removed from view.
            alert: Blocking user-visible error message.
        """
        self._store = store
        self._owner = owner
        self.issue = issue
        self.require_description = require_description
        self._on_saved = on_saved or _noop
        self._on_closed = on_closed or _noop
        self._alert = alert or (lambda message: None)
        self.draft = IssueDraft.from_issue(issue) if issue is not None else IssueDraft()
        self.state = FormState.IDLE
        self.closed = False
        self.error: str | None = None
        self.saved: Issue | None = None
        self._lock = threading.Lock()

    @property
    def editing(self) -> bool:
        return self.issue is not None

    @property
    def heading(self) -> str:
        return "Edit Issue" if self.editing else "Create New Issue"

    @property
    def submit_enabled(self) -> bool:
        return self.state is FormState.IDLE and not self.closed

    @property
    def submit_label(self) -> str:
        return "Saving..." if self.state is FormState.SUBMITTING else "Save Issue"

    def set_title(self, title: str) -> None:
        self.draft = self.draft.model_copy(update={"title": title})

    def set_description(self, description: str) -> None:
        self.draft = self.draft.model_copy(update={"description": description})

    def set_status(self, status: IssueStatus | str) -> None:
        """Select a status. Values outside the enumeration raise ValueError."""
        self.draft = self.draft.model_copy(update={"status": IssueStatus(status)})

    def validate(self) -> None:
        """Raise FormValidationError for a draft that must not be submitted."""
        if not self.draft.title.strip():
            raise FormValidationError("title", "Title is required")
        if self.require_description and not self.draft.description.strip():
            raise FormValidationError("description", "Description is required")

    def submit(self) -> bool:
        """Validate and write the draft. Returns True when saved.

        Raises FormValidationError (invalid draft) or AuthRequired (no
        session) before any remote call.
        """
        with self._lock:
            if not self.submit_enabled:
                LOG.debug("Submit ignored: form is %s", "closed" if self.closed else self.state.value)
                return False
            self.validate()
            owner = self._owner()
            if not owner:
                raise AuthRequired("You must be logged in to create or edit issues")
            self.state = FormState.SUBMITTING
            self.error = None
        draft = self.draft
        try:
            if self.issue is not None:
                self._store.update_issue(self.issue.id, draft)
            else:
                self.saved = self._store.insert_issue(draft, owner)
        except StoreError as e:
            self.error = f"Error saving issue: {e}"
            LOG.error("Error saving issue: %s", e)
            with self._lock:
                self.state = FormState.IDLE
            self._alert(self.error)
            return False
        except Exception:
            with self._lock:
                self.state = FormState.IDLE
            raise
        with self._lock:
            self.state = FormState.IDLE
            self.closed = True
        self._on_saved()
        self._on_closed()
        return True

    def cancel(self) -> None:
        """Close without saving."""
        if self.closed:
            return
        self.closed = True
        self._on_closed()

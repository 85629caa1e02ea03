"""Issue page for one browser session.

Wires identity, store, change feed, local list, session gate and form
controller together. Every StoreError is logged, reported through alert and
leaves the local list at its last-known-good state; nothing is retried.
"""

import logging
from typing import Callable, List

from issueboard.adapters.base import IdentityAdapter, IssueStoreAdapter, StoreError
from issueboard.feed import ChangeFeed
from issueboard.form import IssueFormController
from issueboard.models import User
from issueboard.projection import ListView, project
from issueboard.session import SessionGate
from issueboard.sync.events import Deleted
from issueboard.sync.issue_list import IssueList
from issueboard.sync.listener import ChangeListener
from issueboard.sync.reducer import IssueTuple

LOG = logging.getLogger("issueboard.app")


class IssueBoardPage:
    """The authenticated issue page: list, add/edit form, delete, sign out."""

    def __init__(
        self,
        identity: IdentityAdapter,
        store: IssueStoreAdapter,
        feed: ChangeFeed,
        *,
        require_description: bool = False,
        table: str = "issues",
        auth_path: str = "/auth",
        alert: Callable[[str], None] | None = None,
        redirect: Callable[[str], None] | None = None,
    ) -> None:
        self.identity = identity
        self.store = store
        self.require_description = require_description
        self.alerts: List[str] = []
        self.redirect_to: str | None = None
        self._alert = alert or self.alerts.append
        self._redirect = redirect or self._remember_redirect
        self.issue_list = IssueList()
        self._view = project(())
        self.issue_list.add_observer(self._render)
        self.listener = ChangeListener(feed, self.issue_list, table=table)
        self.gate = SessionGate(
            identity,
            self.issue_list,
            self.listener,
            refresh=self.refresh,
            redirect=self._redirect,
            auth_path=auth_path,
        )
        self.form: IssueFormController | None = None

    def _render(self, issues: IssueTuple) -> None:
        self._view = project(issues)

    def _remember_redirect(self, path: str) -> None:
        self.redirect_to = path

    def _report(self, message: str) -> None:
        self._alert(message)

    @property
    def user(self) -> User | None:
        return self.gate.user

    @property
    def loading(self) -> bool:
        return self.issue_list.fetching

    def open(self) -> bool:
        """Resolve the session and load issues. False when redirected to auth."""
        self.redirect_to = None
        try:
            return self.gate.open() is not None
        except StoreError as e:
            LOG.error("Error resolving session: %s", e)
            self._report(f"Error loading session: {e}")
            return False

    def refresh(self) -> bool:
        """Full fetch of the user's issues into the local list."""
        owner = self.gate.owner_id
        if owner is None:
            return False
        token = self.issue_list.begin_fetch()
        try:
            issues = self.store.list_issues(owner)
        except StoreError as e:
            self.issue_list.abort_fetch(token)
            LOG.error("Error fetching issues: %s", e)
            self._report(f"Error fetching issues: {e}")
            return False
        except Exception:
            self.issue_list.abort_fetch(token)
            raise
        return self.issue_list.apply_fetched(token, issues)

    def _make_form(self, issue_id: str | None) -> IssueFormController:
        self.gate.require_user()
        issue = None
        if issue_id is not None:
            issue = self.issue_list.get(issue_id)
            if issue is None:
                raise KeyError(issue_id)
        self.form = IssueFormController(
            self.store,
            lambda: self.gate.owner_id,
            issue,
            require_description=self.require_description,
            on_saved=self.refresh,
            on_closed=self._form_closed,
            alert=self._report,
        )
        return self.form

    def open_create_form(self) -> IssueFormController:
        return self._make_form(None)

    def open_edit_form(self, issue_id: str) -> IssueFormController:
        """Form in edit mode for a listed issue. KeyError if it is not listed."""
        return self._make_form(issue_id)

    def _form_closed(self) -> None:
        self.form = None

    def delete(self, issue_id: str, confirmed: bool) -> bool:
        """Delete after explicit confirmation. Deleting a missing id is a no-op."""
        if not confirmed:
            return False
        self.gate.require_user()
        try:
            self.store.delete_issue(issue_id)
        except StoreError as e:
            LOG.error("Error deleting issue: %s", e)
            self._report(f"Error deleting issue: {e}")
            return False
        # same event the DELETE notification produces; applying both is harmless
        self.issue_list.dispatch(Deleted(old_id=issue_id))
        return True

    def sign_out(self) -> None:
        self.form = None
        self.gate.sign_out()

    def view(self) -> ListView:
        """Projection of the list as of its last change."""
        return self._view

    def close(self) -> None:
        """Teardown: release subscriptions; late responses no longer touch state."""
        self.form = None
        self.gate.close()

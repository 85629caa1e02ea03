"""Session gate: nothing is fetched, subscribed or written without a user.

open() resolves the current user. Without one it redirects to the auth
entry point and stops. With one it subscribes the change listener for that
user and runs the initial fetch. A later SIGNED_OUT clears the local list,
tears down the subscription and redirects; a SIGNED_IN for a different user
re-subscribes with the new filter before refetching.
"""

import logging
from typing import Callable

from issueboard.adapters.base import AuthRequired, IdentityAdapter, Subscription
from issueboard.models import AuthEvent, AuthSession, User
from issueboard.sync.issue_list import IssueList
from issueboard.sync.listener import ChangeListener

LOG = logging.getLogger("issueboard.session")


class SessionGate:
    """Ties identity to the issue list and its change subscription."""

    def __init__(
        self,
        identity: IdentityAdapter,
        issue_list: IssueList,
        listener: ChangeListener,
        refresh: Callable[[], None],
        redirect: Callable[[str], None],
        auth_path: str = "/auth",
    ) -> None:
        self._identity = identity
        self._list = issue_list
        self._listener = listener
        self._refresh = refresh
        self._redirect = redirect
        self.auth_path = auth_path
        self.user: User | None = None
        self._auth_subscription: Subscription | None = None

    @property
    def owner_id(self) -> str | None:
        return self.user.id if self.user else None

    def require_user(self) -> User:
        if self.user is None:
            raise AuthRequired("Not signed in")
        return self.user

    def open(self) -> User | None:
        """Resolve identity; redirect (and return None) when there is none."""
        if self._auth_subscription is None:
            self._auth_subscription = self._identity.on_auth_state_change(self._on_auth_state_change)
        user = self._identity.get_current_user()
        if user is None:
            LOG.info("No session, redirecting to %s", self.auth_path)
            if self.user is not None or self._listener.active:
                # session lost without a SIGNED_OUT (e.g. expired token)
                self._drop_local_state()
            self.user = None
            self._redirect(self.auth_path)
            return None
        self._start(user)
        return user

    def _drop_local_state(self) -> None:
        self._list.clear()
        self._listener.teardown()

    def _start(self, user: User) -> None:
        previous = self._listener.owner or self.owner_id
        if previous is not None and previous != user.id:
            LOG.info("Identity changed from %s to %s", previous, user.id)
            self._list.clear()
        self.user = user
        self._listener.subscribe(user.id)
        self._refresh()

    def _end(self) -> None:
        LOG.info("Signed out, clearing %s local issues", len(self._list.issues))
        self.user = None
        self._drop_local_state()
        self._redirect(self.auth_path)

    def _on_auth_state_change(self, event: AuthEvent, session: AuthSession | None) -> None:
        if event is AuthEvent.SIGNED_OUT:
            self._end()
        elif session is not None:
            self._start(session.user)

    def sign_out(self) -> None:
        """Sign out through the identity service; its SIGNED_OUT event ends the session."""
        self._identity.sign_out()
        if self.user is not None:
            self._end()

    def close(self) -> None:
        """Release the auth and change subscriptions (page teardown)."""
        if self._auth_subscription is not None:
            self._auth_subscription.unsubscribe()
            self._auth_subscription = None
        self._listener.teardown()
        self._list.close()

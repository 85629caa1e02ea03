"""Abstract base for backend adapters (identity and issues table)."""

from abc import ABC, abstractmethod
from typing import Callable, List

from issueboard.models import AuthEvent, AuthSession, Issue, IssueDraft, User


class StoreError(Exception):
    """Raised when a call to the issues store fails (transport, validation, authorization)."""

    pass


class AuthRequired(Exception):
    """Raised when an operation needs a signed-in user and there is none."""

    pass


AuthHandler = Callable[[AuthEvent, AuthSession | None], None]


class Subscription:
    """Handle returned by subscribe calls; unsubscribe() is idempotent."""

    def __init__(self, on_unsubscribe: Callable[[], None]) -> None:
        self._on_unsubscribe = on_unsubscribe
        self.active = True

    def unsubscribe(self) -> None:
        if not self.active:
            return
        self.active = False
        self._on_unsubscribe()


class IdentityAdapter(ABC):
    """Hosted authentication service."""

    def __init__(self) -> None:
        self._auth_handlers: List[AuthHandler] = []

    @abstractmethod
    def get_current_user(self) -> User | None:
        """Return the signed-in user, or None without a valid session."""
        ...

    @abstractmethod
    def sign_in(self, email: str, password: str) -> AuthSession:
        """Password sign-in. Emits SIGNED_IN. Raises AuthRequired on bad credentials."""
        ...

    @abstractmethod
    def sign_out(self) -> None:
        """Drop the session. Emits SIGNED_OUT."""
        ...

    @property
    def access_token(self) -> str | None:
        """Bearer token for store calls. Override if the adapter has one."""
        return None

    def on_auth_state_change(self, handler: AuthHandler) -> Subscription:
        """Register handler for SIGNED_IN / SIGNED_OUT events."""
        self._auth_handlers.append(handler)
        return Subscription(lambda: self._auth_handlers.remove(handler))

    def _emit(self, event: AuthEvent, session: AuthSession | None) -> None:
        for handler in list(self._auth_handlers):
            handler(event, session)


class IssueStoreAdapter(ABC):
    """Authoritative issues table. Row ownership is enforced by the store."""

    @abstractmethod
    def list_issues(self, owner: str) -> List[Issue]:
        """All issues of owner, newest first."""
        ...

    @abstractmethod
    def insert_issue(self, draft: IssueDraft, owner: str) -> Issue:
        """Create an issue; the store assigns id and created_at."""
        ...

    @abstractmethod
    def update_issue(self, issue_id: str, draft: IssueDraft) -> None:
        """Apply the fields set on draft; others stay unchanged."""
        ...

    @abstractmethod
    def delete_issue(self, issue_id: str) -> None:
        """Delete permanently. Deleting a missing id is not an error."""
        ...

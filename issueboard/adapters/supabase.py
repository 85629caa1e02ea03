"""Supabase adapters: GoTrue (auth) and PostgREST (issues table)."""

import logging
from typing import Any, Callable, Dict, List

import requests

from issueboard.adapters.base import AuthRequired, IdentityAdapter, IssueStoreAdapter, StoreError
from issueboard.models import AuthEvent, AuthSession, Issue, IssueDraft, User

LOG = logging.getLogger("issueboard.adapters.supabase")


def _error_message(resp: requests.Response) -> str:
    msg = resp.text or resp.reason or str(resp.status_code)
    try:
        data = resp.json()
    except ValueError:
        return msg
    if isinstance(data, dict):
        for key in ("message", "msg", "error_description", "error"):
            if data.get(key):
                return str(data[key])
    return msg


class SupabaseAuth(IdentityAdapter):
    """Password auth against /auth/v1. Holds the session of one browser."""

    def __init__(self, url: str, anon_key: str, timeout: int = 30) -> None:
        super().__init__()
        self._url = url.rstrip("/")
        self._timeout = timeout
        self._session = requests.Session()
        self._session.headers["apikey"] = anon_key
        self._auth: AuthSession | None = None

    @property
    def access_token(self) -> str | None:
        return self._auth.access_token if self._auth else None

    def _request(self, method: str, path: str, **kwargs: Any) -> requests.Response:
        url = f"{self._url}/auth/v1{path}"
        try:
            return self._session.request(method, url, timeout=self._timeout, **kwargs)
        except requests.RequestException as e:
            raise StoreError(f"Auth request failed: {e}") from e

    def _bearer(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.access_token}"}

    def get_current_user(self) -> User | None:
        if not self._auth:
            return None
        resp = self._request("GET", "/user", headers=self._bearer())
        if resp.status_code in (401, 403):
            LOG.info("Session for %s expired", self._auth.user.email)
            self._auth = None
            return None
        if resp.status_code >= 400:
            raise StoreError(f"{resp.status_code}: {_error_message(resp)}")
        return User.model_validate(resp.json())

    def sign_in(self, email: str, password: str) -> AuthSession:
        resp = self._request(
            "POST",
            "/token",
            params={"grant_type": "password"},
            json={"email": email, "password": password},
        )
        if resp.status_code in (400, 401, 422):
            raise AuthRequired(_error_message(resp))
        if resp.status_code >= 400:
            raise StoreError(f"{resp.status_code}: {_error_message(resp)}")
        self._auth = AuthSession.model_validate(resp.json())
        LOG.info("Signed in as %s", self._auth.user.email)
        self._emit(AuthEvent.SIGNED_IN, self._auth)
        return self._auth

    def sign_out(self) -> None:
        if self._auth:
            resp = self._request("POST", "/logout", headers=self._bearer())
            if resp.status_code >= 400 and resp.status_code not in (401, 403, 404):
                LOG.warning("Logout returned %s: %s", resp.status_code, _error_message(resp))
            LOG.info("Signed out %s", self._auth.user.email)
        self._auth = None
        self._emit(AuthEvent.SIGNED_OUT, None)


class SupabaseIssueStore(IssueStoreAdapter):
    """Issues table over PostgREST (/rest/v1/<table>). Row level security scopes rows to the token's user."""

    def __init__(
        self,
        url: str,
        anon_key: str,
        token_provider: Callable[[], str | None] | None = None,
        table: str = "issues",
        timeout: int = 30,
    ) -> None:
        self._base = f"{url.rstrip('/')}/rest/v1/{table}"
        self._anon_key = anon_key
        self._token_provider = token_provider
        self._timeout = timeout
        self._session = requests.Session()
        self._session.headers["apikey"] = anon_key
        self._session.headers["Content-Type"] = "application/json"

    def _request(
        self,
        method: str,
        params: Dict[str, Any] | None = None,
        json: Any = None,
        prefer: str | None = None,
    ) -> requests.Response:
        token = (self._token_provider() if self._token_provider else None) or self._anon_key
        headers = {"Authorization": f"Bearer {token}"}
        if prefer:
            headers["Prefer"] = prefer
        try:
            resp = self._session.request(
                method, self._base, params=params, json=json, headers=headers, timeout=self._timeout
            )
        except requests.RequestException as e:
            raise StoreError(f"Request failed: {e}") from e
        return resp

    def _check(self, resp: requests.Response) -> None:
        if resp.status_code >= 400:
            raise StoreError(f"{resp.status_code}: {_error_message(resp)}")

    def list_issues(self, owner: str) -> List[Issue]:
        resp = self._request(
            "GET",
            params={"select": "*", "user_id": f"eq.{owner}", "order": "created_at.desc"},
        )
        self._check(resp)
        try:
            return [Issue.model_validate(row) for row in resp.json() or []]
        except ValueError as e:
            raise StoreError(f"Malformed issue row: {e}") from e

    def insert_issue(self, draft: IssueDraft, owner: str) -> Issue:
        if not draft.title.strip():
            raise StoreError("Title must not be empty")
        resp = self._request("POST", json=[draft.to_row(owner)], prefer="return=representation")
        self._check(resp)
        try:
            rows = resp.json() or []
            if not isinstance(rows, list):
                raise ValueError(f"expected a list of rows, got {type(rows).__name__}")
            if not rows:
                raise StoreError("Insert returned no row")
            issue = Issue.model_validate(rows[0])
        except ValueError as e:
            raise StoreError(f"Malformed issue row: {e}") from e
        LOG.info("Inserted issue %s", issue.id)
        return issue

    def update_issue(self, issue_id: str, draft: IssueDraft) -> None:
        row = draft.to_row()
        if "title" in row and not row["title"].strip():
            raise StoreError("Title must not be empty")
        resp = self._request("PATCH", params={"id": f"eq.{issue_id}"}, json=row, prefer="return=minimal")
        self._check(resp)
        LOG.info("Updated issue %s (%s)", issue_id, ", ".join(sorted(row)))

    def delete_issue(self, issue_id: str) -> None:
        resp = self._request("DELETE", params={"id": f"eq.{issue_id}"}, prefer="return=minimal")
        if resp.status_code == 404:
            LOG.debug("Issue %s already deleted", issue_id)
            return
        self._check(resp)
        LOG.info("Deleted issue %s", issue_id)

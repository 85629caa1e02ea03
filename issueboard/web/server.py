"""HTTP server for the issue page and change notification webhooks.

One IssueBoardPage per browser (cookie) session. Change notifications
(database webhooks) are POSTed to server.webhook_path and fanned out to
every open page through the shared ChangeFeed.
"""

import hmac
import json
import logging
import re
import secrets
import threading
from collections import OrderedDict
from http.cookies import SimpleCookie
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any, Callable, Dict
from urllib.parse import parse_qs, urlsplit

from issueboard.adapters.base import AuthRequired, StoreError
from issueboard.adapters.memory import InMemoryIdentity, InMemoryIssueStore, InMemoryTable
from issueboard.adapters.supabase import SupabaseAuth, SupabaseIssueStore
from issueboard.app import IssueBoardPage
from issueboard.config import AppConfig
from issueboard.feed import ChangeFeed
from issueboard.form import FormValidationError, IssueFormController
from issueboard.models import User
from issueboard.web import pages

LOG = logging.getLogger("issueboard.web")

PageFactory = Callable[[], IssueBoardPage]

_ISSUE_PATH = re.compile(r"^/issues/(?P<id>[^/]+)(?P<action>/edit|/delete)?$")


def supabase_page_factory(config: AppConfig, feed: ChangeFeed) -> PageFactory:
    """Pages backed by the configured Supabase project."""
    anon_key = config.anon_key_resolved
    if not anon_key:
        raise ValueError("Supabase anon key is not configured (SUPABASE_ANON_KEY)")

    def _factory() -> IssueBoardPage:
        auth = SupabaseAuth(config.supabase.url, anon_key, timeout=config.supabase.timeout)
        store = SupabaseIssueStore(
            config.supabase.url,
            anon_key,
            token_provider=lambda: auth.access_token,
            table=config.supabase.table,
            timeout=config.supabase.timeout,
        )
        return IssueBoardPage(
            auth,
            store,
            feed,
            require_description=config.form.require_description,
            table=config.supabase.table,
            auth_path=config.server.auth_path,
        )

    return _factory


def demo_page_factory(
    config: AppConfig,
    feed: ChangeFeed,
    users: Dict[str, tuple[str, User]],
) -> PageFactory:
    """Pages backed by one shared in-memory table; changes go straight to the feed."""
    table = InMemoryTable(feed, table=config.supabase.table)

    def _factory() -> IssueBoardPage:
        identity = InMemoryIdentity(users)
        store = InMemoryIssueStore(table, identity.acting_user_id)
        return IssueBoardPage(
            identity,
            store,
            feed,
            require_description=config.form.require_description,
            table=config.supabase.table,
            auth_path=config.server.auth_path,
        )

    return _factory


def _take_alerts(page: IssueBoardPage) -> list[str]:
    alerts = list(page.alerts)
    page.alerts.clear()
    return alerts


class SessionRegistry:
    """Pages by session cookie value, least recently used first.

    Past max_pages the oldest page is closed and forgotten; its browser
    starts over at the auth page.
    """

    def __init__(self, factory: PageFactory, max_pages: int = 1000) -> None:
        self._factory = factory
        self.max_pages = max_pages
        self._pages: "OrderedDict[str, IssueBoardPage]" = OrderedDict()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._pages)

    def get_or_create(self, token: str | None) -> tuple[str, IssueBoardPage]:
        with self._lock:
            if token and token in self._pages:
                self._pages.move_to_end(token)
                return token, self._pages[token]
            token = secrets.token_urlsafe(24)
            page = self._factory()
            self._pages[token] = page
            evicted = []
            while len(self._pages) > self.max_pages:
                evicted.append(self._pages.popitem(last=False)[1])
        for old in evicted:
            LOG.info("Closing least recently used session (%s open)", self.max_pages)
            old.close()
        return token, page

    def discard(self, token: str) -> None:
        """Close and forget the page of token, if any."""
        with self._lock:
            page = self._pages.pop(token, None)
        if page is not None:
            page.close()

    def close_all(self) -> None:
        with self._lock:
            for page in self._pages.values():
                page.close()
            self._pages.clear()


class IssueBoardHandler(BaseHTTPRequestHandler):
    """Routes: /health, /, /auth, /signout, /issues..., webhook path."""

    config: AppConfig
    feed: ChangeFeed
    sessions: SessionRegistry

    # -- plumbing --

    def _session(self) -> tuple[str, IssueBoardPage]:
        cookie = SimpleCookie(self.headers.get("Cookie", ""))
        name = self.config.server.cookie_name
        token = cookie[name].value if name in cookie else None
        return self.sessions.get_or_create(token)

    def _set_cookie(self, token: str | None, forget: bool) -> None:
        name = self.config.server.cookie_name
        if forget:
            self.send_header("Set-Cookie", f"{name}=; HttpOnly; Path=/; SameSite=Lax; Max-Age=0")
        elif token:
            self.send_header("Set-Cookie", f"{name}={token}; HttpOnly; Path=/; SameSite=Lax")

    def _send(
        self,
        status: int,
        body: str,
        content_type: str = "text/html; charset=utf-8",
        token: str | None = None,
        forget: bool = False,
    ) -> None:
        data = body.encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", content_type)
        self.send_header("Content-Length", str(len(data)))
        self._set_cookie(token, forget)
        self.end_headers()
        self.wfile.write(data)

    def _send_json(self, status: int, payload: Dict[str, Any]) -> None:
        self._send(status, json.dumps(payload), content_type="application/json")

    def _redirect(self, location: str, token: str | None = None, forget: bool = False) -> None:
        self.send_response(303)
        self.send_header("Location", location)
        self._set_cookie(token, forget)
        self.end_headers()

    def _drop_session(self, token: str, location: str) -> None:
        """Redirect to location without keeping a page or a cookie for this browser."""
        self.sessions.discard(token)
        self._redirect(location, forget=True)

    def _internal_error(self, token: str) -> None:
        LOG.exception("Error handling %s %s", self.command, self.path)
        self._send(500, "Internal server error", content_type="text/plain", token=token)

    def _read_body(self) -> bytes:
        length = int(self.headers.get("Content-Length", 0))
        return self.rfile.read(length) if length else b""

    def _read_form(self) -> Dict[str, str]:
        parsed = parse_qs(self._read_body().decode("utf-8", errors="replace"), keep_blank_values=True)
        return {k: v[0] for k, v in parsed.items()}

    # -- dispatch --

    def do_GET(self) -> None:
        path = urlsplit(self.path).path
        if path == "/health":
            self._send_json(200, {"status": "ok", "service": "issueboard"})
            return
        if path == self.config.server.auth_path:
            self._send(200, pages.render_sign_in(self.config.server.auth_path))
            return
        token, page = self._session()
        try:
            self._get_page(path, token, page)
        except Exception:
            self._internal_error(token)

    def _get_page(self, path: str, token: str, page: IssueBoardPage) -> None:
        if not page.open():
            location = page.redirect_to or self.config.server.auth_path
            if page.user is None:
                self._drop_session(token, location)
            else:
                # session lookup failed, keep the signed-in page
                self._redirect(location, token=token)
            return
        if path == "/":
            if page.loading:
                # another request of this session is still fetching
                self._send(200, pages.render_loading(), token=token)
                return
            alerts = _take_alerts(page)
            self._send(200, pages.render_issue_page(page.user, page.view(), alerts), token=token)
            return
        if path == "/issues/new":
            form = page.open_create_form()
            self._send(200, pages.render_form(form, []), token=token)
            return
        match = _ISSUE_PATH.match(path)
        if match and match.group("action") in ("/edit", "/delete"):
            issue = page.issue_list.get(match.group("id"))
            if issue is None:
                self._send(404, "Issue not found", content_type="text/plain", token=token)
                return
            if match.group("action") == "/edit":
                form = page.open_edit_form(issue.id)
                self._send(200, pages.render_form(form, []), token=token)
            else:
                self._send(200, pages.render_delete_confirm(issue.id, issue.title), token=token)
            return
        self._send(404, "Not found", content_type="text/plain", token=token)

    def do_POST(self) -> None:
        path = urlsplit(self.path).path
        if path == self.config.server.webhook_path:
            self._handle_change_webhook()
            return
        token, page = self._session()
        try:
            self._post_page(path, token, page)
        except AuthRequired:
            self._drop_session(token, self.config.server.auth_path)
        except Exception:
            self._internal_error(token)

    def _post_page(self, path: str, token: str, page: IssueBoardPage) -> None:
        if path == self.config.server.auth_path:
            fields = self._read_form()
            try:
                page.identity.sign_in(fields.get("email", ""), fields.get("password", ""))
            except AuthRequired as e:
                self._sign_in_failed(401, token, page, str(e))
                return
            except StoreError as e:
                LOG.error("Sign in failed: %s", e)
                self._sign_in_failed(502, token, page, str(e))
                return
            self._redirect("/", token=token)
            return
        if path == "/signout":
            page.sign_out()
            self._drop_session(token, page.redirect_to or self.config.server.auth_path)
            return
        if page.user is None and not page.open():
            raise AuthRequired("Not signed in")
        if path == "/issues":
            self._submit(token, page, None)
            return
        match = _ISSUE_PATH.match(path)
        if match and match.group("action") is None:
            self._submit(token, page, match.group("id"))
            return
        if match and match.group("action") == "/delete":
            fields = self._read_form()
            page.delete(match.group("id"), confirmed=fields.get("confirm") == "yes")
            self._redirect("/", token=token)
            return
        self._send(404, "Not found", content_type="text/plain", token=token)

    def _sign_in_failed(self, status: int, token: str, page: IssueBoardPage, error: str) -> None:
        body = pages.render_sign_in(self.config.server.auth_path, error=error)
        if page.user is None:
            self.sessions.discard(token)
            self._send(status, body, forget=True)
        else:
            self._send(status, body, token=token)

    def _submit(self, token: str, page: IssueBoardPage, issue_id: str | None) -> None:
        """Submit the open form. Without a matching open form (already saved or never opened) nothing is written."""
        fields = self._read_form()
        form: IssueFormController | None = page.form
        form_id = form.issue.id if form is not None and form.issue is not None else None
        if form is None or form_id != issue_id:
            LOG.info("Ignoring submission without an open form (issue %s)", issue_id or "new")
            self._redirect("/", token=token)
            return
        try:
            form.set_title(fields.get("title", ""))
            form.set_description(fields.get("description", ""))
            form.set_status(fields.get("status", form.draft.status.value))
        except ValueError as e:
            self._send(400, pages.render_form(form, [], error=f"Invalid value: {e}"), token=token)
            return
        try:
            saved = form.submit()
        except FormValidationError as e:
            self._send(400, pages.render_form(form, [], error=str(e)), token=token)
            return
        if saved or form.closed:
            self._redirect("/", token=token)
            return
        alerts = _take_alerts(page)
        status = 409 if not form.submit_enabled else 502
        self._send(status, pages.render_form(form, alerts), token=token)

    def _handle_change_webhook(self) -> None:
        secret = self.config.webhook_secret_resolved
        if secret:
            given = self.headers.get("X-Webhook-Secret", "")
            if not hmac.compare_digest(given.encode(), secret.encode()):
                LOG.warning("Rejected change webhook with bad secret")
                self._send_json(401, {"received": False})
                return
        body = self._read_body()
        try:
            payload = json.loads(body.decode("utf-8")) if body else {}
        except (json.JSONDecodeError, UnicodeDecodeError):
            LOG.warning("Invalid change webhook JSON: %s", body[:200].decode("utf-8", errors="replace"))
            self._send_json(400, {"received": False})
            return
        if not isinstance(payload, dict):
            self._send_json(400, {"received": False})
            return
        delivered = self.feed.publish(payload)
        LOG.info("Change webhook: %s on %s, delivered to %s", payload.get("type"), payload.get("table"), delivered)
        self._send_json(200, {"received": True, "delivered": delivered})

    def log_message(self, format: str, *args: Any) -> None:
        LOG.debug(format, *args)


def make_server(config: AppConfig, factory: PageFactory, feed: ChangeFeed) -> ThreadingHTTPServer:
    """Build the HTTP server without starting it."""
    handler = type(
        "BoundIssueBoardHandler",
        (IssueBoardHandler,),
        {"config": config, "feed": feed, "sessions": SessionRegistry(factory, config.server.max_sessions)},
    )
    return ThreadingHTTPServer((config.server.host, config.server.port), handler)


def run_server(config: AppConfig, factory: PageFactory | None = None, feed: ChangeFeed | None = None) -> None:
    """Serve the issue page and webhook endpoint until interrupted."""
    feed = feed or ChangeFeed()
    factory = factory or supabase_page_factory(config, feed)
    server = make_server(config, factory, feed)
    LOG.info("Issue board listening on %s:%s", config.server.host, config.server.port)
    try:
        server.serve_forever()
    finally:
        server.RequestHandlerClass.sessions.close_all()
        server.server_close()

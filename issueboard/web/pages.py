"""HTML for the issue page, the issue form, delete confirmation and sign-in."""

from html import escape
from typing import List

from issueboard.form import IssueFormController
from issueboard.models import IssueStatus, User
from issueboard.projection import ListView, badge_class

STYLE = """
body { font-family: sans-serif; background: #f3f4f6; margin: 0; padding: 1rem; }
.header, .card, form.panel { background: #fff; border-radius: 8px; padding: 1rem; margin-bottom: 1rem; }
.grid { display: grid; grid-template-columns: repeat(auto-fill, minmax(18rem, 1fr)); gap: 1rem; }
.badge-open { background: #bfdbfe; } .badge-in-progress { background: #fef08a; } .badge-closed { background: #bbf7d0; }
.alert { background: #fee2e2; padding: .5rem; border-radius: 4px; }
"""


def _layout(title: str, body: str) -> str:
    return (
        "<!doctype html><html><head><meta charset='utf-8'>"
        f"<title>{escape(title)}</title><style>{STYLE}</style></head>"
        f"<body>{body}</body></html>"
    )


def _alerts(alerts: List[str]) -> str:
    return "".join(f"<p class='alert' role='alert'>{escape(a)}</p>" for a in alerts)


def render_loading() -> str:
    return _layout("Issues", "<p>Loading your issues...</p><a href='/'>Reload</a>")


def render_issue_page(user: User, view: ListView, alerts: List[str]) -> str:
    """Issue count, Add and Sign Out actions, one card per issue with Edit/Delete."""
    parts = [
        "<div class='header'>",
        f"<h1>{escape(view.title)}</h1>",
        "<a href='/issues/new'>Add New Issue</a> ",
        "<form method='post' action='/signout' style='display:inline'>",
        f"<button type='submit'>Sign Out ({escape(user.email)})</button></form>",
        "</div>",
        _alerts(alerts),
    ]
    if view.is_empty:
        parts.append(f"<p>{escape(view.empty_message or '')}</p>")
    else:
        parts.append("<div class='grid'>")
        for issue in view.issues:
            issue_id = escape(issue.id)
            parts.append(
                "<div class='card'>"
                f"<h3>{escape(issue.title)}</h3>"
                f"<p>{escape(issue.description)}</p>"
                f"<span class='{badge_class(issue.status)}'>{escape(issue.status.value)}</span>"
                f"<p><a href='/issues/{issue_id}/edit'>Edit</a> "
                f"<a href='/issues/{issue_id}/delete'>Delete</a></p>"
                "</div>"
            )
        parts.append("</div>")
    return _layout(view.title, "".join(parts))


def render_form(form: IssueFormController, alerts: List[str], error: str | None = None) -> str:
    """Create/edit form. Status is a select over the enumeration; the submit button is disabled while saving."""
    action = f"/issues/{escape(form.issue.id)}" if form.issue is not None else "/issues"
    options = "".join(
        f"<option value='{escape(s.value)}'{' selected' if s is form.draft.status else ''}>{escape(s.value)}</option>"
        for s in IssueStatus
    )
    required_desc = " required" if form.require_description else ""
    disabled = "" if form.submit_enabled else " disabled"
    body = (
        f"<form class='panel' method='post' action='{action}'>"
        f"<h3>{escape(form.heading)}</h3>"
        f"{_alerts(alerts)}"
        f"{_alerts([error]) if error else ''}"
        "<label for='title'>Title</label><br>"
        f"<input type='text' id='title' name='title' value='{escape(form.draft.title)}' required><br>"
        "<label for='description'>Description</label><br>"
        f"<textarea id='description' name='description' rows='3'{required_desc}>"
        f"{escape(form.draft.description)}</textarea><br>"
        "<label for='status'>Status</label><br>"
        f"<select id='status' name='status'>{options}</select><br>"
        f"<button type='submit'{disabled}>{escape(form.submit_label)}</button> "
        "<a href='/'>Cancel</a>"
        "</form>"
    )
    return _layout(form.heading, body)


def render_delete_confirm(issue_id: str, title: str) -> str:
    body = (
        "<form class='panel' method='post' "
        f"action='/issues/{escape(issue_id)}/delete'>"
        f"<p>Are you sure you want to delete this issue? <strong>{escape(title)}</strong></p>"
        "<input type='hidden' name='confirm' value='yes'>"
        "<button type='submit'>Delete</button> <a href='/'>Cancel</a></form>"
    )
    return _layout("Delete issue", body)


def render_sign_in(auth_path: str, error: str | None = None) -> str:
    body = (
        f"<form class='panel' method='post' action='{escape(auth_path)}'>"
        "<h3>Sign In</h3>"
        f"{_alerts([error]) if error else ''}"
        "<label for='email'>Email</label><br>"
        "<input type='email' id='email' name='email' required><br>"
        "<label for='password'>Password</label><br>"
        "<input type='password' id='password' name='password' required><br>"
        "<button type='submit'>Sign In</button></form>"
    )
    return _layout("Sign In", body)

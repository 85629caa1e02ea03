"""List view projection: what the issue page renders from local state."""

from typing import Dict, Iterable, List

from pydantic import BaseModel, Field

from issueboard.models import Issue, IssueStatus

EMPTY_MESSAGE = "No issues found. Start by adding a new one!"

STATUS_BADGES = {
    IssueStatus.OPEN: "badge-open",
    IssueStatus.IN_PROGRESS: "badge-in-progress",
    IssueStatus.CLOSED: "badge-closed",
}


def badge_class(status: IssueStatus) -> str:
    return STATUS_BADGES[status]


class ListView(BaseModel):
    """Rendered collection: count, newest-first order and grouping by status."""

    count: int
    issues: List[Issue] = Field(default_factory=list)
    by_status: Dict[IssueStatus, List[Issue]] = Field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return self.count == 0

    @property
    def empty_message(self) -> str | None:
        return EMPTY_MESSAGE if self.is_empty else None

    @property
    def title(self) -> str:
        return f"My Issues ({self.count})"


def project(issues: Iterable[Issue]) -> ListView:
    """Derive the view. Order is created_at descending, id as tie-breaker."""
    ordered = sorted(issues, key=lambda issue: (issue.created_at, issue.id), reverse=True)
    groups: Dict[IssueStatus, List[Issue]] = {status: [] for status in IssueStatus}
    for issue in ordered:
        groups[issue.status].append(issue)
    return ListView(count=len(ordered), issues=ordered, by_status=groups)

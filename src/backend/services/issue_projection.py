"""
Derived issue views.

Pure functions over an issue list: nothing here touches storage. Filters keep
input order; apply filters before sorting.
"""

from typing import Iterable, Sequence

from models.cosmos_documents import CATEGORY_LABELS, IssueDocument, IssueStatus
from schemas.issue import ALL, IssueSort, IssueStats, UserActivityStats


def category_label(category_id: str) -> str:
    """Human label for a category id; unknown ids read as "Other"."""
    return CATEGORY_LABELS.get(category_id, "Other")


def filter_by_category(issues: Sequence[IssueDocument], category_id: str = ALL) -> list[IssueDocument]:
    if category_id == ALL:
        return list(issues)
    return [issue for issue in issues if issue.category_id == category_id]


def filter_by_status(issues: Sequence[IssueDocument], status: str = ALL) -> list[IssueDocument]:
    if status == ALL:
        return list(issues)
    return [issue for issue in issues if issue.status == status]


def sort_recent(issues: Iterable[IssueDocument]) -> list[IssueDocument]:
    """Newest first."""
    return sorted(issues, key=lambda issue: issue.created_at, reverse=True)


def sort_by_votes(issues: Iterable[IssueDocument]) -> list[IssueDocument]:
    """Most votes first; equal counts keep their input order."""
    return sorted(issues, key=lambda issue: len(issue.votes), reverse=True)


def issues_authored_by(issues: Iterable[IssueDocument], uid: str) -> list[IssueDocument]:
    return [issue for issue in issues if issue.author_id == uid]


def issues_voted_by(issues: Iterable[IssueDocument], uid: str) -> list[IssueDocument]:
    return [issue for issue in issues if uid in issue.votes]


def aggregate_stats(issues: Sequence[IssueDocument]) -> IssueStats:
    """Counters for the dashboard and admin overview."""
    return IssueStats(
        total=len(issues),
        pending=sum(1 for issue in issues if issue.status == IssueStatus.PENDING),
        solved=sum(1 for issue in issues if issue.status == IssueStatus.SOLVED),
        total_votes=sum(len(issue.votes) for issue in issues),
    )


def user_activity_stats(issues: Sequence[IssueDocument], uid: str) -> UserActivityStats:
    """Counters for a user's settings page."""
    authored = issues_authored_by(issues, uid)
    return UserActivityStats(
        issues_posted=len(authored),
        votes_received=sum(len(issue.votes) for issue in authored),
        voted_on=len(issues_voted_by(issues, uid)),
    )


def apply_view(
    issues: Sequence[IssueDocument],
    category_id: str = ALL,
    status: str = ALL,
    sort: IssueSort = IssueSort.RECENT,
) -> list[IssueDocument]:
    """Category and status filters, then the requested ordering."""
    result = filter_by_status(filter_by_category(issues, category_id), status)
    if IssueSort(sort) == IssueSort.VOTES:
        return sort_by_votes(result)
    return sort_recent(result)

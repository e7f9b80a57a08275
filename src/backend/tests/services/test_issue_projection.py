"""
Tests for derived issue views.
"""

import pytest

from schemas.issue import ALL, IssueSort
from services.issue_projection import (
    aggregate_stats,
    apply_view,
    category_label,
    filter_by_category,
    filter_by_status,
    issues_authored_by,
    issues_voted_by,
    sort_by_votes,
    sort_recent,
    user_activity_stats,
)


@pytest.fixture
def issues(make_issue):
    return [
        make_issue(minutes=0, votes=["u1"], category_id="facility"),
        make_issue(minutes=5, votes=["u1", "u2", "u3"], category_id="academic", status="solved"),
        make_issue(minutes=10, votes=[], category_id="facility", author_id="student-b"),
        make_issue(minutes=15, votes=["u2"], category_id="bug-report", author_id="student-b"),
        make_issue(minutes=20, votes=["u1", "u2", "u3"], category_id="facility", status="solved"),
    ]


@pytest.mark.unit
class TestFilters:
    """Category and status filters."""

    def test_all_is_identity(self, issues) -> None:
        assert filter_by_category(issues, ALL) == issues
        assert filter_by_status(issues, ALL) == issues

    def test_filter_by_category_keeps_order(self, issues) -> None:
        result = filter_by_category(issues, "facility")
        assert [i.id for i in result] == [issues[0].id, issues[2].id, issues[4].id]

    def test_filter_by_status(self, issues) -> None:
        solved = filter_by_status(issues, "solved")
        assert {i.id for i in solved} == {issues[1].id, issues[4].id}

    def test_unknown_category_matches_nothing(self, issues) -> None:
        assert filter_by_category(issues, "cafeteria") == []


@pytest.mark.unit
class TestSorting:
    """Recent and vote orderings."""

    def test_sort_recent_newest_first(self, issues) -> None:
        result = sort_recent(issues)
        assert [i.created_at for i in result] == sorted((i.created_at for i in issues), reverse=True)

    def test_sort_by_votes_non_increasing(self, issues) -> None:
        counts = [len(i.votes) for i in sort_by_votes(issues)]
        assert counts == sorted(counts, reverse=True)

    def test_sort_by_votes_is_stable(self, issues) -> None:
        result = sort_by_votes(issues)
        # issues[1] and issues[4] both have three votes; input order wins
        assert result[0].id == issues[1].id
        assert result[1].id == issues[4].id
        # issues[0] and issues[3] both have one vote
        assert [i.id for i in result[2:4]] == [issues[0].id, issues[3].id]

    def test_sort_does_not_mutate_input(self, issues) -> None:
        before = [i.id for i in issues]
        sort_by_votes(issues)
        sort_recent(issues)
        assert [i.id for i in issues] == before


@pytest.mark.unit
class TestPerUserViews:
    """Authored and voted views."""

    def test_issues_authored_by(self, issues) -> None:
        result = issues_authored_by(issues, "student-b")
        assert [i.id for i in result] == [issues[2].id, issues[3].id]

    def test_issues_voted_by(self, issues) -> None:
        result = issues_voted_by(issues, "u3")
        assert [i.id for i in result] == [issues[1].id, issues[4].id]

    def test_user_activity_stats(self, issues) -> None:
        stats = user_activity_stats(issues, "student-a")
        assert stats.issues_posted == 3
        assert stats.votes_received == 7
        assert stats.voted_on == 0

    def test_user_activity_stats_for_voter(self, issues) -> None:
        stats = user_activity_stats(issues, "u2")
        assert stats.issues_posted == 0
        assert stats.voted_on == 3


@pytest.mark.unit
class TestAggregateStats:
    """Dashboard counters."""

    def test_totals(self, issues) -> None:
        stats = aggregate_stats(issues)
        assert stats.total == len(issues)
        assert stats.pending + stats.solved == stats.total
        assert stats.solved == 2
        assert stats.total_votes == 8

    def test_empty(self) -> None:
        stats = aggregate_stats([])
        assert stats.total == 0
        assert stats.pending == 0
        assert stats.solved == 0
        assert stats.total_votes == 0


@pytest.mark.unit
class TestApplyView:
    """Filter then sort."""

    def test_filters_before_sorting(self, issues) -> None:
        result = apply_view(issues, category_id="facility", status=ALL, sort=IssueSort.VOTES)
        assert [i.id for i in result] == [issues[4].id, issues[0].id, issues[2].id]

    def test_default_is_recent(self, issues) -> None:
        result = apply_view(issues)
        assert result[0].id == issues[4].id
        assert result[-1].id == issues[0].id

    def test_accepts_sort_as_string(self, issues) -> None:
        result = apply_view(issues, status="solved", sort="votes")
        assert {i.id for i in result} == {issues[1].id, issues[4].id}


@pytest.mark.unit
def test_category_label() -> None:
    assert category_label("bug-report") == "Bug Report"
    assert category_label("facility") == "Facility"
    assert category_label("unknown") == "Other"

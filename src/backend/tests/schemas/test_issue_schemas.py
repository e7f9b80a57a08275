"""
Tests for issue request and response schemas.
"""

import pytest
from pydantic import ValidationError

from schemas.issue import IssueCreate, IssueResponse, IssueUpdate


@pytest.mark.unit
class TestIssueCreate:
    """Submission validation."""

    def test_strips_whitespace(self) -> None:
        data = IssueCreate(title="  Broken AC ", description="\tHot\n", category_id="facility")

        assert data.title == "Broken AC"
        assert data.description == "Hot"

    @pytest.mark.parametrize("field", ["title", "description"])
    def test_blank_rejected(self, field: str) -> None:
        values = {"title": "Broken AC", "description": "Hot", "category_id": "facility", field: "   "}

        with pytest.raises(ValidationError):
            IssueCreate(**values)

    def test_length_limits(self) -> None:
        IssueCreate(title="x" * 100, description="y" * 2000, category_id="other")

        with pytest.raises(ValidationError):
            IssueCreate(title="x" * 101, description="y", category_id="other")
        with pytest.raises(ValidationError):
            IssueCreate(title="x", description="y" * 2001, category_id="other")


@pytest.mark.unit
class TestIssueUpdate:
    """Partial edits."""

    def test_only_sent_fields(self) -> None:
        update = IssueUpdate(title=" New title ")

        assert update.to_fields() == {"title": "New title"}

    def test_category_serialized_as_value(self) -> None:
        assert IssueUpdate(category_id="academic").to_fields() == {"category_id": "academic"}

    @pytest.mark.parametrize("field", ["title", "description", "category_id"])
    def test_explicit_null_rejected(self, field: str) -> None:
        with pytest.raises(ValidationError):
            IssueUpdate.model_validate({field: None})

    def test_image_may_be_cleared(self) -> None:
        assert IssueUpdate.model_validate({"image_url": None}).to_fields() == {"image_url": None}


@pytest.mark.unit
class TestIssueResponse:
    """Derived response fields."""

    def test_viewer_vote_flag(self, make_issue) -> None:
        issue = make_issue(votes=["u1", "u2"], category_id="feature-request")

        mine = IssueResponse.from_document(issue, "u2")
        anonymous = IssueResponse.from_document(issue)

        assert mine.has_voted is True
        assert mine.vote_count == 2
        assert mine.category_label == "Feature Request"
        assert anonymous.has_voted is False

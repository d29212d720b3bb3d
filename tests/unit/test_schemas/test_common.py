"""Tests for the shared paging and error schemas."""

import pytest
from pydantic import ValidationError

from pet_adoption_api.schemas.common import ErrorResponse, PaginationMeta, PaginationParams


class TestPaginationParams:
    def test_first_page_by_default(self) -> None:
        params = PaginationParams()
        assert (params.page, params.page_size, params.offset) == (1, 20, 0)

    def test_offset_skips_earlier_pages(self) -> None:
        assert PaginationParams(page=3, page_size=50).offset == 100

    @pytest.mark.parametrize("kwargs", [{"page": 0}, {"page_size": 0}, {"page_size": 101}])
    def test_out_of_range(self, kwargs: dict) -> None:
        with pytest.raises(ValidationError):
            PaginationParams(**kwargs)


class TestPaginationMeta:
    @pytest.mark.parametrize(("total", "pages"), [(0, 0), (1, 1), (20, 1), (41, 3)])
    def test_page_count(self, total: int, pages: int) -> None:
        assert PaginationMeta.build(total=total, page=1, page_size=20).total_pages == pages


class TestErrorResponse:
    def test_only_detail_required(self) -> None:
        body = ErrorResponse(detail="Not found")
        assert body.code is None
        assert body.errors is None
        assert body.retry_after_seconds is None

    def test_invalid_transition_body(self) -> None:
        body = ErrorResponse(
            detail="Cannot change status", code="invalid_transition", current_status="approved", allowed=["completed"]
        )
        assert body.model_dump(exclude_none=True) == {
            "detail": "Cannot change status",
            "code": "invalid_transition",
            "current_status": "approved",
            "allowed": ["completed"],
        }

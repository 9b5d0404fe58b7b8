"""Unit tests for the response envelope schemas."""

import pytest
from pydantic import ValidationError

from authz.schemas.common import (
    ErrorDetail,
    ErrorResponse,
    PaginationMeta,
    StandardListResponse,
    StandardResponse,
)

pytestmark = pytest.mark.unit


class TestPaginationMeta:
    """Tests for PaginationMeta schema."""

    def test_build_rounds_pages_up(self) -> None:
        """Test total_pages is the ceiling of total / page_size."""
        meta = PaginationMeta.build(total=41, page=3, page_size=20)
        assert meta.total_pages == 3

    def test_build_with_zero_total(self) -> None:
        """Test an empty result has zero pages."""
        meta = PaginationMeta.build(total=0, page=1, page_size=20)
        assert meta.total_pages == 0

    def test_invalid_page(self) -> None:
        """Test page numbers start at 1."""
        with pytest.raises(ValidationError):
            PaginationMeta(total=10, page=0, page_size=20, total_pages=1)


class TestEnvelopes:
    """Tests for the success and error envelopes."""

    def test_standard_response_defaults(self) -> None:
        """Test a success envelope carries no error."""
        response = StandardResponse[dict](data={"key": "expenses"})
        assert response.model_dump() == {
            "success": True,
            "data": {"key": "expenses"},
            "message": None,
            "error": None,
        }

    def test_list_response(self) -> None:
        """Test list envelopes carry pagination."""
        response = StandardListResponse[str](
            data=["a", "b"], meta=PaginationMeta.build(total=2, page=1, page_size=50)
        )
        assert response.meta.total == 2
        assert response.success is True

    def test_error_response(self) -> None:
        """Test the error envelope shape."""
        response = ErrorResponse(
            error=ErrorDetail(code="ROLE_NOT_FOUND", message="Role not found")
        )
        assert response.model_dump() == {
            "success": False,
            "data": None,
            "message": None,
            "error": {"code": "ROLE_NOT_FOUND", "message": "Role not found", "details": None},
        }

"""Common schemas for the standard response envelope."""

from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")


class PaginationMeta(BaseModel):
    """Pagination metadata schema."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {"total": 100, "page": 1, "page_size": 20, "total_pages": 5}
        }
    )

    total: int = Field(..., description="Total number of items", ge=0)
    page: int = Field(..., description="Current page number", ge=1)
    page_size: int = Field(..., description="Number of items per page", ge=1)
    total_pages: int = Field(..., description="Total number of pages", ge=0)

    @classmethod
    def build(cls, total: int, page: int, page_size: int) -> "PaginationMeta":
        total_pages = (total + page_size - 1) // page_size if total > 0 else 0
        return cls(total=total, page=page, page_size=page_size, total_pages=total_pages)


class StandardResponse(BaseModel, Generic[T]):
    """Standard envelope for single resources."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {"success": True, "data": {}, "message": None, "error": None}
        }
    )

    success: bool = Field(True, description="Whether the request succeeded")
    data: T = Field(..., description="Response data")
    message: str | None = Field(None, description="Optional human-readable message")
    error: None = Field(None, description="Error object (null on success)")


class StandardListResponse(BaseModel, Generic[T]):
    """Standard envelope for collections with pagination."""

    success: bool = Field(True, description="Whether the request succeeded")
    data: list[T] = Field(..., description="List of items")
    meta: PaginationMeta = Field(..., description="Pagination metadata")
    message: str | None = Field(None, description="Optional human-readable message")
    error: None = Field(None, description="Error object (null on success)")


class ErrorDetail(BaseModel):
    """Error detail schema."""

    code: str = Field(..., description="Error code (e.g., 'MODULE_NOT_FOUND')")
    message: str = Field(..., description="Human-readable error message")
    details: dict | None = Field(None, description="Additional error details")


class ErrorResponse(BaseModel):
    """Error envelope."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "success": False,
                "data": None,
                "message": None,
                "error": {
                    "code": "AUTH_INVALID_TOKEN",
                    "message": "Invalid token",
                    "details": None,
                },
            }
        }
    )

    success: bool = Field(False, description="Always false for errors")
    data: None = Field(None, description="Data object (null on error)")
    message: str | None = Field(None)
    error: ErrorDetail = Field(..., description="Error information")

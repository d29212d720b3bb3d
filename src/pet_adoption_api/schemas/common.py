"""Schemas shared by every router: paging and the error body."""

import math

from pydantic import BaseModel, Field


class PaginationParams(BaseModel):
    """`?page=&page_size=` query parameters."""

    page: int = Field(default=1, ge=1, description="Page number (1-based)")
    page_size: int = Field(default=20, ge=1, le=100, description="Items per page")

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size


class PaginationMeta(BaseModel):
    """Paging block returned next to `items`."""

    total: int = Field(description="Items matching the query across all pages")
    page: int = Field(description="Page returned (1-based)")
    page_size: int = Field(description="Items per page")
    total_pages: int = Field(description="Number of pages, 0 when nothing matched")

    @classmethod
    def build(cls, total: int, page: int, page_size: int) -> "PaginationMeta":
        total_pages = math.ceil(total / page_size) if total else 0
        return cls(total=total, page=page, page_size=page_size, total_pages=total_pages)


class ErrorResponse(BaseModel):
    """Body of every error response: `detail` and `code`, plus fields specific to the error."""

    detail: str = Field(description="Human-readable error message")
    code: str | None = Field(default=None, description="Machine-readable error code")
    errors: list[dict] | None = Field(default=None, description="Detailed validation errors")
    current_status: str | None = Field(default=None, description="Stored status on a rejected transition")
    allowed: list[str] | None = Field(default=None, description="Statuses reachable from current_status")
    retry_after_seconds: int | None = Field(default=None, description="Seconds until the action may be retried")

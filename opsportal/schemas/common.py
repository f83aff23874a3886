"""
Common/shared Pydantic schemas.
"""

from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field


class BaseSchema(BaseModel):
    """
    Base schema with common configuration.

    All schemas should inherit from this.
    """

    model_config = ConfigDict(
        from_attributes=True,  # Allow ORM mode (SQLAlchemy objects)
        populate_by_name=True,
        str_strip_whitespace=True,
        validate_assignment=True,
    )


T = TypeVar('T')


class PaginatedResponse(BaseModel, Generic[T]):
    """
    Generic paginated response wrapper.

    Usage:
        PaginatedResponse[TenantDomainRead](items=domains, total=12, skip=0, limit=10)
    """

    items: list[T]
    total: int = Field(..., description="Total number of items")
    skip: int = Field(..., description="Number of items skipped")
    limit: int = Field(..., description="Maximum items per page")

    @property
    def has_next(self) -> bool:
        return self.skip + self.limit < self.total


class MessageResponse(BaseModel):
    """Simple message response."""
    message: str


class ErrorResponse(BaseModel):
    """Standardized error response."""
    detail: str
    details: dict | None = None

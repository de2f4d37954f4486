"""
Shared Pydantic schemas: camelCase base model, response envelope and pagination.
"""
from typing import Generic, List, Optional, TypeVar
from pydantic import BaseModel
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class CamelModel(BaseModel):
    """Base schema exposing camelCase field names on the wire."""

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


class ApiResponse(CamelModel, Generic[T]):
    """Success envelope wrapping a payload."""
    status: str = "success"
    data: Optional[T] = None
    message: Optional[str] = None


class MessageResponse(CamelModel):
    """Success envelope carrying only a message."""
    status: str = "success"
    message: str


class PaginationMeta(CamelModel):
    total: int
    page: int
    limit: int
    total_pages: int


class Page(CamelModel, Generic[T]):
    """One page of results plus pagination metadata."""
    data: List[T]
    meta: PaginationMeta

"""Shared base model and the success envelope used by every endpoint."""

from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class ApiModel(BaseModel):
    """camelCase on the wire, snake_case in Python; accepts either on input."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class Envelope(ApiModel, Generic[T]):
    """Success envelope: {success, message?, data?}."""

    success: bool = Field(default=True, description="Always true for 2xx responses")
    message: str | None = Field(default=None, description="Human-readable outcome")
    data: T | None = Field(default=None, description="Endpoint payload")


class Pagination(ApiModel):
    current_page: int
    total_pages: int
    total_items: int
    items_per_page: int


def paginate(page: int, limit: int, total: int) -> Pagination:
    return Pagination(
        current_page=page,
        total_pages=(total + limit - 1) // limit if limit else 0,
        total_items=total,
        items_per_page=limit,
    )

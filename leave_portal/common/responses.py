"""Uniform ``{"success": true, "data": ...}`` envelope and camelCase base schema."""

from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class CamelModel(BaseModel):
    """Snake_case in Python, camelCase on the wire."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class Envelope(CamelModel, Generic[T]):
    """Standard success envelope: ``{"success": true, "data": ...}``."""

    success: bool = True
    data: T


class SuccessResponse(CamelModel):
    """Envelope for commands that return no payload."""

    success: bool = True
    message: str = ""


def ok(data: T) -> Envelope[T]:
    return Envelope(data=data)

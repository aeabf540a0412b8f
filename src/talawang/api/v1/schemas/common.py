from __future__ import annotations

from typing import Any, Generic, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    """Success envelope shared by every endpoint."""

    success: bool = True
    message: str | None = None
    data: T | None = None


class ListResponse(BaseModel, Generic[T]):
    success: bool = True
    message: str | None = None
    data: list[T]  # type: ignore[type-var]
    count: int


class ErrorResponse(BaseModel):
    success: bool = False
    message: str
    error: dict[str, Any] | None = None

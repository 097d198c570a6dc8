"""Response envelope shared by every API route.

Shape: { success: bool, data: T | None, error: str | None, meta: dict | None }.
Error envelopes are produced by the exception handlers in
``provider_health.middleware.error_handler``.
"""

from __future__ import annotations

from typing import Any, Generic, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    success: bool
    data: T | None = None
    error: str | None = None
    meta: dict | None = None


def ok(data: Any = None, **meta: Any) -> dict:
    """Successful envelope with camelCase-serialized *data*."""
    return ApiResponse[Any](
        success=True,
        data=_jsonable(data),
        meta=meta or None,
    ).model_dump(mode="json")


def _jsonable(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", by_alias=True)
    if isinstance(value, list):
        return [_jsonable(item) for item in value]
    if isinstance(value, dict):
        return {key: _jsonable(item) for key, item in value.items()}
    return value

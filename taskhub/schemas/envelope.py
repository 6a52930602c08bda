from __future__ import annotations

from typing import Annotated, Any, Generic, TypeVar

from pydantic import BaseModel, Field

from taskhub.db.base import MAX_ROW_ID

T = TypeVar("T")

# Ids accepted in request bodies; anything larger cannot name a row.
RowId = Annotated[int, Field(ge=1, le=MAX_ROW_ID)]


class Envelope(BaseModel, Generic[T]):
    """Uniform response body: every endpoint answers with this shape."""

    success: bool = True
    message: str | None = None
    data: T | None = None
    errors: list[Any] | None = None


def failure(message: str, errors: list[Any] | None = None) -> dict[str, Any]:
    body: dict[str, Any] = {"success": False, "message": message}
    if errors:
        body["errors"] = errors
    return body

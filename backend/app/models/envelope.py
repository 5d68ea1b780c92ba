"""Response envelope shared by every route."""

from typing import Any

from pydantic import BaseModel


class ApiError(BaseModel):
    """Structured error detail."""

    code: str
    message: str
    field: str | None = None


def success_response(data: object, **meta: object) -> dict:
    """Build a success envelope dict."""
    return {
        "status": "success",
        "data": data,
        "errors": [],
        "meta": meta,
    }


def error_response(errors: list[ApiError], data: Any = None) -> dict:
    """Build an error envelope dict.

    *data* carries context a client can act on, such as the plan that
    blocked a create.
    """
    return {
        "status": "error",
        "data": data,
        "errors": [e.model_dump() for e in errors],
        "meta": {},
    }

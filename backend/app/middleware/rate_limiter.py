"""Rate limiting for the LLM-backed study plan routes (slowapi).

Authenticated callers are bucketed by user id so a shared campus IP does
not starve a whole class; anonymous calls fall back to the client address.
"""

import logging

from fastapi import HTTPException
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.requests import Request
from starlette.responses import JSONResponse

from app.config import settings
from app.models.envelope import ApiError, error_response

logger = logging.getLogger(__name__)

# Generate, replan and review-schedule each cost one LLM round trip
LLM_LIMIT = f"{settings.rate_limit_llm}/minute"


def rate_limit_key(request: Request) -> str:
    header = request.headers.get("authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() == "bearer" and token:
        from app.api.dependencies import verify_token

        try:
            return f"user:{verify_token(token)['sub']}"
        except HTTPException:
            pass
    return f"ip:{get_remote_address(request)}"


limiter = Limiter(key_func=rate_limit_key)


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    logger.warning(f"Rate limit hit on {request.url.path} for {rate_limit_key(request)}")
    return JSONResponse(
        status_code=429,
        content=error_response([ApiError(code="RATE_LIMITED", message=f"Rate limit exceeded: {exc.detail}")]),
    )

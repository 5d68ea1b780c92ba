"""Request dependencies: the DB session and the caller's identity.

Tokens are issued by the shared auth service; this API only verifies them.
The ``sub`` claim must be the user's UUID.
"""

import uuid
from collections.abc import AsyncGenerator
from datetime import UTC, datetime, timedelta
from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.db.database import get_session


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async for session in get_session():
        yield session


DbSession = Annotated[AsyncSession, Depends(get_db)]


_bearer = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def create_access_token(user_id: str, email: str, expires_in: timedelta | None = None) -> str:
    """Sign a token with the claims the auth service issues (used by tests and tooling)."""
    lifetime = expires_in or timedelta(minutes=settings.jwt_expiration_minutes)
    claims = {"sub": user_id, "email": email, "exp": datetime.now(UTC) + lifetime}
    return jwt.encode(claims, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def verify_token(token: str) -> dict:
    """Decode *token* and return its claims.

    Raises:
        HTTPException: 401 when the signature, expiry or subject is invalid.
    """
    try:
        claims = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError as exc:
        raise _unauthorized("Invalid or expired token") from exc

    try:
        claims["sub"] = str(uuid.UUID(str(claims.get("sub"))))
    except ValueError as exc:
        raise _unauthorized("Token subject is not a user id") from exc
    return claims


async def get_current_user_id(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(_bearer)] = None,
) -> str:
    if credentials is None:
        raise _unauthorized("Authentication required")
    return verify_token(credentials.credentials)["sub"]


CurrentUserId = Annotated[str, Depends(get_current_user_id)]

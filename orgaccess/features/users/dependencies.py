"""
FastAPI dependencies for authentication.

This is the first stage of the request gate: it turns a bearer credential
into a local user, or stops the request with 401.
"""
from typing import Annotated
from datetime import datetime, timezone
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from orgaccess.core.database.engine import get_db
from orgaccess.core.errors import AuthenticationRequired
from orgaccess.features.users.models import User
from orgaccess.features.users.auth import verify_jwt_token


# auto_error=False so a missing header is reported through our own 401 body
security = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    db: Annotated[AsyncSession, Depends(get_db)]
) -> User:
    """
    Get the current authenticated user from the bearer token.

    This dependency:
    1. Extracts the JWT from the Authorization header
    2. Verifies signature and expiry
    3. Looks up or provisions the user in the local database
    4. Updates the last_login_at timestamp

    Usage:
        @router.get("/me")
        async def get_me(user: User = Depends(get_current_user)):
            return user
    """
    if credentials is None or not credentials.credentials:
        raise AuthenticationRequired()

    payload = verify_jwt_token(credentials.credentials)
    subject = payload["sub"]

    result = await db.execute(select(User).where(User.subject == subject))
    user = result.scalar_one_or_none()

    if user is None:
        user = User(
            subject=subject,
            handle=payload.get("handle") or subject,
            email=payload.get("email"),
        )
        db.add(user)

    user.last_login_at = datetime.now(timezone.utc)
    await db.commit()
    await db.refresh(user)

    if not user.is_active:
        raise AuthenticationRequired("User account is deactivated")

    return user


async def get_current_user_id(
    user: Annotated[User, Depends(get_current_user)]
) -> str:
    """Authenticated user id, for stages that only need the identifier."""
    return user.id


def get_authorization_header(request) -> str:
    """
    Extract authorization header for rate limiting.
    Used with slowapi Limiter.
    """
    auth = request.headers.get("Authorization", "")
    return auth or "anonymous"

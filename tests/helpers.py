"""
Helper utilities for authenticating test requests.
"""
from datetime import datetime, timedelta, timezone
from typing import Any, Dict

import jwt

from orgaccess.features.users.models import User


TEST_JWT_SECRET = "test-secret-key-for-testing-only-32-chars"


def make_token(
    subject: str,
    secret: str = TEST_JWT_SECRET,
    expires_in: timedelta = timedelta(hours=1),
    **claims: Any
) -> str:
    """Sign a session token the way the session service does."""
    payload: Dict[str, Any] = {"sub": subject, "exp": datetime.now(timezone.utc) + expires_in, **claims}
    return jwt.encode(payload, secret, algorithm="HS256")


def auth_headers(user: User) -> Dict[str, str]:
    return {"Authorization": f"Bearer {make_token(user.subject)}"}

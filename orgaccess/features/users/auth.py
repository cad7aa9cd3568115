"""
Bearer token verification.
"""
import jwt

from orgaccess.core import config
from orgaccess.core.errors import AuthenticationRequired
from orgaccess.utils import get_logger


log = get_logger(__name__)


def verify_jwt_token(token: str) -> dict:
    """
    Verify a session JWT and return its payload.

    Args:
        token: JWT token from Authorization header

    Returns:
        Decoded JWT payload; ``sub`` identifies the user

    Raises:
        AuthenticationRequired: If the token is invalid, expired or has no subject
    """
    if not config.JWT_SECRET:
        log.error("JWT_SECRET is not configured; rejecting bearer token")
        raise AuthenticationRequired()

    try:
        payload = jwt.decode(
            token,
            config.JWT_SECRET,
            algorithms=[config.JWT_ALGORITHM],
            options={"require": ["sub"]},
        )
    except jwt.ExpiredSignatureError:
        raise AuthenticationRequired("Token has expired")
    except jwt.InvalidTokenError as e:
        log.debug(f"Rejected bearer token: {e}")
        raise AuthenticationRequired()

    if not payload.get("sub"):
        raise AuthenticationRequired()

    return payload

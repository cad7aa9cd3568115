"""
Error taxonomy for the access-control core.

Services and gate dependencies raise these; ``register_exception_handlers``
is the only place they are turned into HTTP responses.
"""
from fastapi import FastAPI, status
from sqlalchemy.exc import SQLAlchemyError
from starlette.requests import Request
from starlette.responses import JSONResponse

from orgaccess.utils import get_logger


log = get_logger(__name__)


class AccessControlError(Exception):
    """Base class for errors with a public message and an HTTP status."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    message: str = "Internal server error"

    def __init__(self, message: str | None = None) -> None:
        if message is not None:
            self.message = message
        super().__init__(self.message)


class AuthenticationRequired(AccessControlError):
    status_code = status.HTTP_401_UNAUTHORIZED
    message = "Authentication required"


class InvalidRequest(AccessControlError):
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Invalid request"


class OrganizationNotFound(AccessControlError):
    status_code = status.HTTP_404_NOT_FOUND
    message = "Organization not found"


class ResourceNotFound(AccessControlError):
    status_code = status.HTTP_404_NOT_FOUND
    message = "Resource not found"


class PermissionDenied(AccessControlError):
    # Never names the missing permission
    status_code = status.HTTP_403_FORBIDDEN
    message = "Insufficient permissions"


class RoleNameConflict(AccessControlError):
    status_code = status.HTTP_409_CONFLICT
    message = "A role with this name already exists in the organization"


class RoleNotFound(AccessControlError):
    status_code = status.HTTP_404_NOT_FOUND
    message = "Role not found"


class RoleProtected(AccessControlError):
    status_code = status.HTTP_409_CONFLICT
    message = "System roles cannot be deleted"


class MembershipConflict(AccessControlError):
    status_code = status.HTTP_409_CONFLICT
    message = "Membership change not allowed"


class ReviewConflict(AccessControlError):
    status_code = status.HTTP_409_CONFLICT
    message = "You have already reviewed this event"


class InfrastructureError(AccessControlError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    message = "Service temporarily unavailable"


def _error_response(exc: AccessControlError) -> JSONResponse:
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthenticationRequired) else None
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": exc.message},
        headers=headers,
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Install the handlers translating internal error kinds to responses."""

    @app.exception_handler(AccessControlError)
    async def access_control_error_handler(request: Request, exc: AccessControlError):
        log.info("%s %s -> %s %s", request.method, request.url.path, exc.status_code, type(exc).__name__)
        return _error_response(exc)

    @app.exception_handler(SQLAlchemyError)
    async def database_error_handler(request: Request, exc: SQLAlchemyError):
        # Database failures are never reported as a denial
        log.error("Database failure on %s %s: %s", request.method, request.url.path, exc)
        return _error_response(InfrastructureError())

from dataclasses import dataclass, field
from fastapi import APIRouter, FastAPI
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from timing_asgi import TimingMiddleware, TimingClient  # type: ignore
from timing_asgi.integrations import StarletteScopeToName  # type: ignore

from orgaccess.core import config
from orgaccess.core.database.engine import AsyncSessionLocal, init_db
from orgaccess.core.errors import register_exception_handlers
from orgaccess.features.events.routes import (
    router as event_router,
    organization_router as organization_event_router,
    comment_router,
    review_router,
)
from orgaccess.features.organizations.routes import router as organization_router
from orgaccess.features.permissions.roles import verify_stored_permissions
from orgaccess.features.permissions.routes import router as role_router, catalog_router
from orgaccess.features.users.dependencies import get_authorization_header
from orgaccess.features.users.routes import router as user_router
from orgaccess.utils import get_logger


log = get_logger(__name__)


@dataclass(frozen=True)
class RouteModule:
    """One router mounted on the application."""
    router: APIRouter
    prefix: str
    tags: list[str] = field(default_factory=list)


ROUTE_MODULES: list[RouteModule] = [
    RouteModule(catalog_router, "/permissions", ["permissions"]),
    RouteModule(user_router, "/users", ["users"]),
    RouteModule(organization_router, "/organizations", ["organizations"]),
    RouteModule(role_router, "/organizations", ["roles"]),
    RouteModule(organization_event_router, "/organizations", ["events"]),
    RouteModule(event_router, "/events", ["events"]),
    RouteModule(comment_router, "/comments", ["comments"]),
    RouteModule(review_router, "/reviews", ["reviews"]),
]


class LogTimings(TimingClient):
    def timing(self, metric_name, timing, tags):
        log.debug(dict(route=metric_name.removeprefix("main.orgaccess.features."), timing=timing, tags=tags))


async def validation_exception_handler(_request: Request, exc: RequestValidationError):
    errors = dict()
    for error in exc.errors():
        if "loc" not in error or "msg" not in error:
            continue
        key = error["loc"][-1]
        if key == "__root__":
            key = "root"
        errors[key] = error["msg"]
    log.info("Request validation error %s", errors)
    return JSONResponse(status_code=400, content=jsonable_encoder(errors))


def rate_limit_exceeded_handler(_request: Request, _exc: RateLimitExceeded) -> Response:
    return JSONResponse({"success": False, "error": "You are going too fast"}, status_code=429)


def create_app(route_modules: list[RouteModule] | None = None) -> FastAPI:
    """
    Build the application from route descriptors.

    Args:
        route_modules: Routers to mount; defaults to ROUTE_MODULES

    Returns:
        Configured FastAPI application
    """
    log.info("Initializing server")
    app = FastAPI(
        title="Organization Access Backend",
        description="Organizations, roles, memberships and organization-scoped events",
        version="0.1.0",
        docs_url="/docs" if config.ENABLE_DOCS else None,
        redoc_url="/redoc" if config.ENABLE_DOCS else None,
        openapi_url="/openapi.json" if config.ENABLE_DOCS else None
    )

    app.state.limiter = Limiter(key_func=get_authorization_header, default_limits=[config.RATE_LIMIT])
    app.add_middleware(SlowAPIMiddleware)
    app.add_middleware(TimingMiddleware, client=LogTimings(), metric_namer=StarletteScopeToName("main", app))

    if config.ENABLE_DOCS:
        log.warning("Docs enabled")
    if config.ALLOW_ORIGIN:
        log.warning("Setting allow origin to %s", config.ALLOW_ORIGIN)
        app.add_middleware(
            CORSMiddleware,
            allow_origins=[config.ALLOW_ORIGIN],
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    register_exception_handlers(app)

    @app.on_event("startup")
    async def startup():
        """Initialize database on application startup."""
        log.info("Initializing database...")
        await init_db()
        async with AsyncSessionLocal() as session:
            await verify_stored_permissions(session)
        log.info("Database initialized successfully")

    @app.get("/health")
    async def health():
        """Health check endpoint."""
        return {"status": "healthy"}

    for module in route_modules if route_modules is not None else ROUTE_MODULES:
        app.include_router(module.router, prefix=module.prefix, tags=module.tags)

    return app


app = create_app()

"""FastAPI application entry point."""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from filmnight.config import Settings, settings as default_settings
from filmnight.database import Database
from filmnight.routers import users, films, events, invitations, rsvp, feature_requests
from filmnight.services.exceptions import (
    ServiceError, ValidationError, NotFoundError, ConflictError, ReferentialConstraintError,
)

# Import all models so Base.metadata knows about them
import filmnight.models  # noqa: F401

logger = logging.getLogger(__name__)

_STATUS_BY_ERROR = (
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (ConflictError, status.HTTP_409_CONFLICT),
    (ReferentialConstraintError, status.HTTP_409_CONFLICT),
)


async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    """Translate service-layer errors into HTTP responses."""
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            break
    else:
        status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    log = logger.error if status_code >= 500 else logger.info
    log("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc.message)
    body = {"detail": exc.message, "error": type(exc).__name__}
    field = getattr(exc, "field", None)
    if field:
        body["field"] = field
    return JSONResponse(status_code=status_code, content=body)


def create_app(app_settings: Optional[Settings] = None) -> FastAPI:
    app_settings = app_settings or default_settings
    logging.basicConfig(
        level=app_settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        database = Database(app_settings.DATABASE_URL, busy_timeout=app_settings.SQLITE_BUSY_TIMEOUT_SECONDS)
        if app_settings.DATABASE_URL.startswith("sqlite"):
            # Dev mode; other databases are migrated with alembic
            database.create_all()
        app.state.database = database
        logger.info("Database ready")
        try:
            yield
        finally:
            database.dispose()
            logger.info("Database disposed")

    app = FastAPI(
        title="Film Night",
        description="Screening events, film lineups, guest RSVPs and film suggestions",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.settings = app_settings

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.CORS_ORIGINS.split(","),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(ServiceError, service_error_handler)

    # Register routers
    app.include_router(users.router, prefix="/api/users", tags=["Users"])
    app.include_router(films.router, prefix="/api/films", tags=["Films"])
    app.include_router(events.router, prefix="/api/events", tags=["Events"])
    app.include_router(invitations.router, prefix="/api/invitations", tags=["Invitations"])
    app.include_router(rsvp.router, prefix="/api/rsvp", tags=["RSVP"])
    app.include_router(feature_requests.router, prefix="/api/feature-requests", tags=["FeatureRequests"])

    @app.get("/api/health")
    def health_check():
        return {"status": "ok"}

    return app


app = create_app()

from contextlib import asynccontextmanager
import logging

from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from transit_insights.api.metrics import router as metrics_router
from transit_insights.api.v1.routes import router as api_router
from transit_insights.api.v1.shared.errors import install_exception_handlers
from transit_insights.core.config import get_settings
from transit_insights.persistence.dependencies import get_record_store

logger = logging.getLogger(__name__)
REQUEST_ID_HEADER = "X-Request-Id"
LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def _configure_logging(level: str) -> None:
    """
    Apply the configured level to the root logger.

    uvicorn installs its own handlers; basicConfig only adds one when the
    process has none yet, e.g. under a plain ASGI runner or in scripts.
    """
    logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger().setLevel(level)


def _install_request_id_middleware(app: FastAPI) -> None:
    """Ensure each response includes a stable X-Request-Id header."""

    @app.middleware("http")
    async def add_request_id(request: Request, call_next):
        request_id = request.headers.get(REQUEST_ID_HEADER, str(uuid4()))
        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifespan events."""
    settings = get_settings()
    logger.info(
        "Starting Transit Insights (environment=%s, store=%s)",
        settings.environment,
        settings.data_store_path,
    )
    if not await get_record_store().ping():
        logger.warning(
            "Record store at %s is not readable; requests will fail until it is",
            settings.data_store_path,
        )
    yield


def create_app() -> FastAPI:
    """Application factory for FastAPI."""
    settings = get_settings()
    _configure_logging(settings.log_level)

    app = FastAPI(
        title="Transit Insights API",
        description="Analytics and fleet maintenance prioritization for transit operations.",
        version="0.1.0",
        lifespan=lifespan,
    )

    _install_request_id_middleware(app)
    install_exception_handlers(app)

    allow_origins = settings.cors_allow_origins
    allow_origin_regex = settings.cors_allow_origin_regex
    if allow_origins or allow_origin_regex:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=allow_origins,
            allow_origin_regex=allow_origin_regex,
            allow_credentials=bool(allow_origins),
            allow_methods=["*"],
            allow_headers=["*"],
            expose_headers=[REQUEST_ID_HEADER, "ETag"],
        )

    app.include_router(metrics_router)
    app.include_router(api_router, prefix="/api/v1")

    return app


app = create_app()

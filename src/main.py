"""FastAPI application entry point."""

import uuid
from collections.abc import AsyncGenerator, Awaitable, Callable
from contextlib import AsyncExitStack, asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from src.api import mismatches_router, results_router
from src.core.config import settings
from src.core.exceptions import MismatchFinderError
from src.core.logging import bind_context, clear_context, get_logger, setup_logging
from src.db import dispose_engine
from src.schemas import ErrorDetail, ErrorResponse, HealthResponse
from src.services.metrics import MetricsRecorder, NullMetricsRecorder, StatsvMetricsRecorder
from src.services.wikibase import WikibaseClient

VERSION = "0.1.0"

REQUEST_ID_HEADER = "X-Request-ID"

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager for startup/shutdown events."""
    # Startup
    setup_logging()

    async with AsyncExitStack() as stack:
        app.state.reference_source = await stack.enter_async_context(WikibaseClient())

        metrics: MetricsRecorder = NullMetricsRecorder()
        if settings.metrics_enabled:
            metrics = await stack.enter_async_context(StatsvMetricsRecorder())
        app.state.metrics = metrics

        logger.info(
            "Service started",
            environment=settings.environment,
            wikibase_api_url=settings.wikibase_api_url,
            metrics_enabled=settings.metrics_enabled,
        )
        yield

    # Shutdown
    await dispose_engine()


async def bind_request_context(
    request: Request,
    call_next: Callable[[Request], Awaitable[Response]],
) -> Response:
    """Bind a request id to every log line of the request and echo it back."""
    clear_context()
    request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
    request.state.request_id = request_id
    bind_context(request_id=request_id, path=request.url.path)

    response = await call_next(request)
    response.headers[REQUEST_ID_HEADER] = request_id
    return response


async def handle_domain_error(request: Request, exc: MismatchFinderError) -> JSONResponse:
    """Render domain errors as ErrorResponse with their own status code."""
    logger.info("Request failed", error=exc.code, status_code=exc.status_code)
    body = ErrorResponse(
        error=exc.code,
        message=exc.message,
        details=[ErrorDetail.from_exception(exc)],
        request_id=getattr(request.state, "request_id", None),
    )
    return JSONResponse(status_code=exc.status_code, content=body.model_dump(mode="json"))


def create_app() -> FastAPI:
    """Application factory for creating the FastAPI instance."""
    app = FastAPI(
        title="Mismatch Finder API",
        description=(
            "Backend service for reviewing mismatches between Wikidata and "
            "external reference datasets.\n\n"
            "## Features\n"
            "- **Mismatches**: List and review mismatches for Wikidata items\n"
            "- **Results**: Enriched, grouped mismatches and bulk review\n"
        ),
        version=VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.middleware("http")(bind_request_context)
    app.add_exception_handler(MismatchFinderError, handle_domain_error)

    # Register routers
    app.include_router(
        mismatches_router,
        prefix="/api/v1/mismatches",
        tags=["Mismatches"],
    )
    app.include_router(
        results_router,
        prefix="/api/v1/results",
        tags=["Results"],
    )

    @app.get("/health", tags=["Health"], response_model=HealthResponse)
    async def health_check() -> HealthResponse:
        """Health check endpoint for container orchestration."""
        return HealthResponse(status="healthy", version=VERSION)

    @app.get("/", tags=["Root"])
    async def root() -> dict[str, str]:
        """Root endpoint with API information."""
        return {
            "service": "Mismatch Finder API",
            "version": VERSION,
            "docs": "/docs",
            "health": "/health",
        }

    return app


# Create the app instance
app = create_app()

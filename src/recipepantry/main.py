"""FastAPI application entry point."""

import uuid
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from recipepantry.config import get_settings
from recipepantry.database import AsyncSessionLocal, Base, async_engine
from recipepantry.errors import (
    NotFoundError,
    RecipePantryError,
    TextExtractionEmptyError,
    UpstreamServiceError,
    ValidationError,
)
from recipepantry.logging_config import LoggingContext, configure_logging, get_logger
from recipepantry.pantry import PantryReconciler, SqlPantryStore
from recipepantry.routers import pantry_router, recipes_router
from recipepantry.services import (
    GeminiFeasibilityScorer,
    RecipeAnalyzer,
    TesseractTextExtractor,
)

settings = get_settings()

# Configure logging on module load
configure_logging(settings.log_level)
logger = get_logger(__name__)

ERROR_STATUS: dict[type[RecipePantryError], int] = {
    ValidationError: 400,
    NotFoundError: 404,
    TextExtractionEmptyError: 422,
    UpstreamServiceError: 503,
}


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan handler for startup and shutdown events."""
    # Startup
    logger.info("Starting Recipe Pantry API")

    # Create database tables if they don't exist
    async with async_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables initialized")

    reconciler = PantryReconciler(SqlPantryStore(AsyncSessionLocal))
    extractor = TesseractTextExtractor()
    scorer = GeminiFeasibilityScorer()

    # Services that fail here are retried lazily on first use
    for service in (extractor, scorer):
        try:
            await service.initialize()
            logger.info(f"{service.name} service initialized")
        except UpstreamServiceError as e:
            logger.warning(f"{service.name} initialization failed (may not be available): {e}")

    app.state.reconciler = reconciler
    app.state.analyzer = RecipeAnalyzer(reconciler, extractor, scorer)

    yield

    # Shutdown
    logger.info("Shutting down Recipe Pantry API")

    for service in (extractor, scorer):
        try:
            await service.close()
        except Exception as e:
            logger.warning(f"Error closing {service.name} service: {e}")

    await async_engine.dispose()


app = FastAPI(
    title="Recipe Pantry API",
    description="Pantry inventory and recipe feasibility analysis from photos",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=[origin.strip() for origin in settings.allowed_origins.split(",")],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def request_context(
    request: Request, call_next: Callable[[Request], Awaitable[Response]]
) -> Response:
    """Tag every log line of a request with a request id."""
    request_id = request.headers.get("X-Request-Id") or uuid.uuid4().hex[:12]
    with LoggingContext(request_id=request_id):
        response = await call_next(request)
    response.headers["X-Request-Id"] = request_id
    return response


@app.exception_handler(RecipePantryError)
async def handle_app_error(request: Request, exc: RecipePantryError) -> JSONResponse:
    """Map expected failures to their HTTP status with a descriptive body."""
    status_code = next(
        (code for error_type, code in ERROR_STATUS.items() if isinstance(exc, error_type)),
        status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    else:
        logger.info(f"{request.method} {request.url.path} rejected: {exc.message}")
    return JSONResponse(status_code=status_code, content=exc.to_dict())


@app.exception_handler(Exception)
async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    content = {"success": False, "message": "Internal server error"}
    if settings.is_development:
        content["error"] = str(exc)
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=content)


# Include routers
app.include_router(pantry_router)
app.include_router(recipes_router)


@app.get("/health")
async def health_check() -> dict:
    """Basic health check endpoint."""
    return {"status": "ok", "service": "recipepantry-api"}


@app.get("/")
async def root() -> dict:
    """Root endpoint with API information."""
    return {
        "name": "Recipe Pantry API",
        "version": "0.1.0",
        "docs": "/docs",
        "health": "/health",
    }

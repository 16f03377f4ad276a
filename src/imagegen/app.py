"""FastAPI application factory."""

from contextlib import asynccontextmanager

import httpx
import structlog
from fastapi import FastAPI, Request, Response, status
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

from imagegen.api.errors import register_error_handlers
from imagegen.api.routes import images
from imagegen.core import timezone  # noqa: F401
from imagegen.core.config import Settings, configure_logging
from imagegen.core.database import create_engine, create_schema, create_session_factory
from imagegen.services.image_generation.gemini_client import GeminiClient
from imagegen.services.image_generation.job_handler import ImageJobHandler
from imagegen.uow import create_uow_factory

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan context manager.

    - Startup: configure logging, create engine and schema, build the job handler
    - Shutdown: close the shared HTTP client and dispose of the engine
    """
    settings = Settings()  # type: ignore[call-arg]
    configure_logging(settings)

    engine = create_engine(
        settings.resolved_database_url,
        pool_size=settings.db_pool_size,
        timeout_seconds=settings.db_timeout_seconds,
    )
    await create_schema(engine)

    session_factory = create_session_factory(engine)
    uow_factory = create_uow_factory(session_factory)

    http_client = httpx.AsyncClient(timeout=settings.gemini_timeout_seconds)
    client = GeminiClient.from_settings(settings, http_client=http_client)

    if not client.is_configured:
        logger.warning("application.gemini_not_configured", env_var="GEMINI_API_KEY")

    # Store in app.state for access in routes
    app.state.session_factory = session_factory
    app.state.job_handler = ImageJobHandler(
        uow_factory, client, max_prompt_length=settings.max_prompt_length
    )

    logger.info("application.startup", db_url=settings.safe_database_url)

    yield

    logger.info("application.shutdown")
    await http_client.aclose()
    await engine.dispose()


def create_app() -> FastAPI:
    """Create and configure FastAPI application.

    Returns:
        Configured FastAPI application instance
    """
    settings = Settings()  # type: ignore[call-arg]

    app = FastAPI(
        title="Gemini Image Generator API",
        description="Prompt-to-image generation backed by Gemini",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_error_handlers(app)
    app.include_router(images.router)  # Images router has prefix="/api/images" in definition

    # Health check endpoint with database validation
    @app.get("/health")
    async def health_check(request: Request, response: Response):
        """Health check endpoint with database connectivity test.

        Returns:
            200: {"status": "healthy"} if database connection succeeds
            503: {"status": "unhealthy", "error": {...}} if database connection fails
        """
        try:
            async with request.app.state.session_factory() as session:
                result = await session.execute(text("SELECT 1"))
                result.scalar()

            logger.debug("health_check.success")
            return {"status": "healthy"}

        except Exception as e:
            logger.error(
                "health_check.failed",
                error=str(e),
                error_type=type(e).__name__,
            )
            response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
            return {
                "status": "unhealthy",
                "error": {
                    "type": type(e).__name__,
                    "message": str(e),
                },
            }

    return app


# Create app instance for uvicorn
app = create_app()

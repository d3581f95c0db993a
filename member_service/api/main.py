"""FastAPI application factory and lifespan.

Startup verifies the database, then builds the ``ServiceComponents``
holder (search, photo storage, event bus) onto ``app.state``; shutdown
closes the components and the database engine. Middleware run in reverse
order of registration, so request context wraps request logging.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Annotated, Any

from fastapi import Depends, FastAPI
from loguru import logger

from member_service.api.middleware.error_handler import register_exception_handlers
from member_service.api.middleware.request_context import RequestContextMiddleware
from member_service.api.middleware.request_logging import RequestLoggingMiddleware
from member_service.api.utils.responses import ORJSONResponse
from member_service.core.config import Settings, get_settings
from member_service.core.exceptions import MemberServiceError
from member_service.core.logging import setup_logging
from member_service.core.observability import instrument_app, setup_tracing
from member_service.infrastructure.components import Components, ServiceComponents
from member_service.infrastructure.database.session import (
    check_database_connection,
    close_database,
)


@asynccontextmanager
async def lifespan(app_instance: FastAPI) -> AsyncGenerator[None]:
    """Manage application startup and shutdown.

    Raises:
        RuntimeError: If the database is unreachable at startup.
    """
    is_healthy, error_msg = await check_database_connection()
    if not is_healthy:
        logger.error("Database connection failed during startup: {}", error_msg)
        msg = f"Database connection failed: {error_msg}"
        raise RuntimeError(msg)
    logger.info("Database connection successful")

    components = ServiceComponents.from_settings(get_settings())
    app_instance.state.components = components

    logger.info(
        "Application startup complete - {} v{}",
        app_instance.title,
        app_instance.version,
    )

    yield

    logger.info("Application shutdown initiated")
    await components.aclose()
    await close_database()
    logger.info("Application shutdown complete")


async def check_search_connection(components: ServiceComponents) -> bool:
    """Whether the search cluster answers, logging why when it does not."""
    try:
        return await components.search.ping()
    except MemberServiceError as exc:
        logger.warning("Search health check failed: {}", exc.message)
        return False


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Optional settings instance, ``get_settings()`` by default.

    Returns:
        FastAPI: Configured application.
    """
    if settings is None:
        settings = get_settings()

    setup_logging(settings)
    setup_tracing(settings)

    application = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        debug=settings.debug,
        docs_url=settings.docs_url,
        openapi_url=settings.openapi_url,
        default_response_class=ORJSONResponse,
        lifespan=lifespan,
    )

    register_exception_handlers(application)

    application.add_middleware(RequestLoggingMiddleware, log_config=settings.log_config)
    application.add_middleware(RequestContextMiddleware)

    @application.get("/health")
    async def health(components: Components) -> dict[str, object]:
        """Report database and search connectivity.

        A failing dependency degrades the status instead of failing the
        check, so orchestrators can tell "degraded" from "down".
        """
        database_ok, error_msg = await check_database_connection()
        if not database_ok:
            logger.warning("Database health check failed: {}", error_msg)
        search_ok = await check_search_connection(components)

        return {
            "status": "healthy" if database_ok and search_ok else "degraded",
            "database": database_ok,
            "search": search_ok,
        }

    @application.get("/info")
    async def info(
        app_settings: Annotated[Settings, Depends(get_settings)],
    ) -> dict[str, Any]:
        """Application name, version and environment."""
        return {
            "app_name": app_settings.app_name,
            "version": app_settings.app_version,
            "environment": app_settings.environment,
            "debug": app_settings.debug,
        }

    instrument_app(application, settings)

    return application


app = create_app()

"""HTTP request logging with timing.

Logs the start and completion of every request not in
``LogConfig.excluded_paths``, warns about requests slower than
``slow_request_threshold_ms`` and logs failures before re-raising them.
"""

import time
from collections.abc import Awaitable, Callable

from fastapi import Request, Response
from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from member_service.api.constants import (
    FORWARDED_FOR_HEADER,
    REAL_IP_HEADER,
    UNKNOWN_CLIENT,
    USER_AGENT_MAX_LENGTH,
)
from member_service.core.config import LogConfig, get_settings
from member_service.core.constants import MILLISECONDS_PER_SECOND


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs HTTP requests and their outcome.

    Args:
        app: The ASGI application.
        log_config: Logging configuration.
    """

    def __init__(self, app: ASGIApp, *, log_config: LogConfig) -> None:
        super().__init__(app)
        self.log_config = log_config
        self.excluded_paths = set(log_config.excluded_paths)
        self.trust_proxy_headers = get_settings().environment == "production"

    def _get_client_ip(self, request: Request) -> str:
        # Proxy headers are only trusted behind the production load balancer
        if self.trust_proxy_headers:
            if forwarded_for := request.headers.get(FORWARDED_FOR_HEADER):
                return forwarded_for.split(",")[0].strip()
            if real_ip := request.headers.get(REAL_IP_HEADER):
                return real_ip.strip()
        if request.client:
            return request.client.host
        return UNKNOWN_CLIENT

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        """Process the request and log its outcome.

        Raises:
            Exception: Any exception raised by the application, after logging.
        """
        if request.url.path in self.excluded_paths:
            return await call_next(request)

        user_agent = request.headers.get("user-agent", "")[:USER_AGENT_MAX_LENGTH]
        with logger.contextualize(
            method=request.method,
            path=request.url.path,
            client_host=self._get_client_ip(request),
            user_agent=user_agent or UNKNOWN_CLIENT,
        ):
            logger.info(
                "Request started",
                query_params=str(request.query_params) or None,
            )
            start_time = time.perf_counter()

            try:
                response = await call_next(request)
            except Exception as exc:
                duration_ms = (time.perf_counter() - start_time) * MILLISECONDS_PER_SECOND
                logger.error(
                    "Request failed",
                    duration_ms=round(duration_ms, 2),
                    error_type=type(exc).__name__,
                )
                raise

            duration_ms = (time.perf_counter() - start_time) * MILLISECONDS_PER_SECOND
            logger.info(
                "Request completed",
                status_code=response.status_code,
                duration_ms=round(duration_ms, 2),
            )
            if duration_ms > self.log_config.slow_request_threshold_ms:
                logger.warning(
                    "Slow request detected",
                    duration_ms=round(duration_ms, 2),
                    threshold_ms=self.log_config.slow_request_threshold_ms,
                )
            return response

"""Request context middleware.

Takes the correlation id from the ``X-Correlation-ID`` header (or generates
one) and a fresh request id, stores both in ``RequestContext`` and binds
them to every log record emitted while the request is processed. Both ids
are echoed in the response headers.
"""

from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from member_service.api.constants import CORRELATION_ID_HEADER, REQUEST_ID_HEADER
from member_service.core.context import (
    RequestContext,
    generate_correlation_id,
    generate_request_id,
)


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Sets up the correlation and request ids of each request."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        """Process the request with its ids bound to the logging context.

        Args:
            request: The incoming request.
            call_next: The next middleware/endpoint.

        Returns:
            Response: Response carrying the correlation and request ids.
        """
        correlation_id = (
            request.headers.get(CORRELATION_ID_HEADER) or generate_correlation_id()
        )
        request_id = generate_request_id()

        RequestContext.set_correlation_id(correlation_id)
        RequestContext.set_request_id(request_id)

        with logger.contextualize(correlation_id=correlation_id, request_id=request_id):
            response = await call_next(request)
            response.headers[CORRELATION_ID_HEADER] = correlation_id
            response.headers[REQUEST_ID_HEADER] = request_id
            return response

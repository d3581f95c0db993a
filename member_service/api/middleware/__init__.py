"""FastAPI middleware for cross-cutting request/response concerns.

- **RequestContextMiddleware**: Correlation and request ids for every request
- **RequestLoggingMiddleware**: Request logging with timing and slow request warnings
- **error_handler**: Translation of exceptions into ``ErrorResponse`` bodies

Middleware order: request context wraps request logging, so every log line
of a request carries its correlation id.
"""

"""Error response schema shared by every exception handler.

Every failed request answers with an ``ErrorResponse``: a machine-readable
error code, a message, the correlation and request ids of the request,
the severity, the service that answered and, in development only, debug
information.
"""

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ServiceInfo(BaseModel):
    """Identifies the service instance that produced an error."""

    name: str = Field(
        ...,
        description="Name of the service",
        examples=["Member Service"],
    )
    version: str = Field(
        ...,
        description="Version of the service",
        examples=["0.1.0"],
    )
    environment: str = Field(
        ...,
        description="Environment where the service is running",
        examples=["development", "staging", "production"],
    )


class ErrorResponse(BaseModel):
    """Body of every error response."""

    model_config = ConfigDict(
        json_schema_extra={
            "examples": [
                {
                    "error_code": "NOT_FOUND",
                    "message": 'Member with handle: "jdoe" doesn\'t exist',
                    "details": {"handle": "jdoe"},
                    "correlation_id": "550e8400-e29b-41d4-a716-446655440001",
                    "request_id": "req-660e8400-e29b-41d4-a716-446655440001",
                    "timestamp": "2026-06-14T12:00:01+00:00",
                    "severity": "LOW",
                    "service_info": {
                        "name": "Member Service",
                        "version": "0.1.0",
                        "environment": "production",
                    },
                },
                {
                    "error_code": "FORBIDDEN",
                    "message": "You are not allowed to perform this action.",
                    "timestamp": "2026-06-14T12:00:02+00:00",
                    "severity": "MEDIUM",
                },
                {
                    "error_code": "EXTERNAL_SERVICE_ERROR",
                    "message": "Failed to post event to topic member.action.profile.update",
                    "details": {"service": "bus"},
                    "correlation_id": "550e8400-e29b-41d4-a716-446655440002",
                    "request_id": "req-660e8400-e29b-41d4-a716-446655440002",
                    "timestamp": "2026-06-14T12:00:03+00:00",
                    "severity": "HIGH",
                },
            ]
        }
    )

    error_code: str = Field(
        ...,
        description="Machine-readable error code",
        examples=["BAD_REQUEST", "NOT_FOUND", "FORBIDDEN"],
    )
    message: str = Field(
        ...,
        description="Human-readable error message",
        examples=["Invalid value: foo", "No token provided."],
    )
    details: dict[str, Any] | None = Field(
        default=None,
        description="Additional error details, e.g. validation errors per field",
        examples=[{"validation_errors": {"page": ["Input should be greater than 0"]}}],
    )
    correlation_id: str | None = Field(
        default=None,
        description="Correlation id shared by every service handling the request",
        examples=["550e8400-e29b-41d4-a716-446655440000"],
    )
    request_id: str | None = Field(
        default=None,
        description="Identifier of this request within this service",
        examples=["req-550e8400-e29b-41d4-a716-446655440000"],
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        description="When the error occurred (timezone aware)",
    )
    severity: str | None = Field(
        default=None,
        description="Error severity (LOW, MEDIUM, HIGH, CRITICAL)",
        examples=["LOW", "HIGH"],
    )
    service_info: ServiceInfo | None = Field(
        default=None,
        description="The service that produced the error",
    )
    debug_info: dict[str, Any] | None = Field(
        default=None,
        description="Stack trace and context, only in development",
    )

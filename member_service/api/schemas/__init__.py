"""Pydantic schemas of the API responses."""

from member_service.api.schemas.errors import ErrorResponse, ServiceInfo

__all__ = ["ErrorResponse", "ServiceInfo"]

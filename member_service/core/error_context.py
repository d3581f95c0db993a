"""Redaction of credentials in logged error context.

Member payloads, bus configuration and token claims all pass through error
logs. Before they are logged, values stored under credential-like keys are
replaced with ``REDACTED``: keys matching ``CREDENTIAL_KEY_PATTERN`` or
containing one of the configured ``log_config.sensitive_fields``. Only the
logged copy is redacted, never the caller's data.
"""

from __future__ import annotations

import re
from functools import lru_cache
from typing import Any, Final

from member_service.core.config import get_settings
from member_service.core.constants import REDACTED

CREDENTIAL_KEY_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"password|passwd|secret|token|bearer|jwt|api[_-]?key|authorization|"
    r"credential|private[_-]?key|access[_-]?key|session|connection[_-]?string",
    re.IGNORECASE,
)

# Deeper structures are redacted whole
MAX_DEPTH: Final[int] = 10

# Exception attributes never copied into the context
_SKIPPED_ERROR_ATTRIBUTES: Final[frozenset[str]] = frozenset({"stack_trace", "cause"})


@lru_cache(maxsize=1)
def _get_sensitive_fields() -> tuple[str, ...]:
    return tuple(
        field.lower() for field in get_settings().log_config.sensitive_fields
    )


def is_sensitive_field(field_name: str) -> bool:
    """Whether values stored under ``field_name`` must not be logged."""
    if CREDENTIAL_KEY_PATTERN.search(field_name):
        return True
    lowered = field_name.lower()
    return any(field in lowered for field in _get_sensitive_fields())


def _redact(value: Any, depth: int) -> Any:  # noqa: ANN401 - any JSON-like value
    if depth > MAX_DEPTH:
        return REDACTED
    if isinstance(value, dict):
        return {
            key: REDACTED if is_sensitive_field(str(key)) else _redact(item, depth + 1)
            for key, item in value.items()
        }
    if isinstance(value, list | tuple):
        return type(value)(_redact(item, depth + 1) for item in value)
    return value


def sanitize_dict(data: dict[str, Any]) -> dict[str, Any]:
    """Copy of ``data`` with credential values redacted at any depth."""
    redacted: dict[str, Any] = _redact(data, 0)
    return redacted


def sanitize_error_context(
    error: Exception, context: dict[str, Any] | None = None
) -> dict[str, Any]:
    """Build the redacted log context of ``error``.

    Args:
        error: The exception being logged.
        context: Request details to merge in.

    Returns:
        dict[str, Any]: Error type and message, the redacted ``context``, and
            the public attributes of ``error`` (service, error code,
            severity...) under ``error_attributes``.
    """
    error_context: dict[str, Any] = {
        "error_type": type(error).__name__,
        "error_message": str(error),
        **sanitize_dict(context or {}),
    }

    attributes = {
        name: value
        for name, value in vars(error).items()
        if not name.startswith("_") and name not in _SKIPPED_ERROR_ATTRIBUTES
    }
    if attributes:
        error_context["error_attributes"] = sanitize_dict(attributes)

    return error_context

"""JSON responses rendered with orjson.

``ORJSONResponse`` is the default response class of the application. It
serializes datetimes, UUIDs and pydantic models natively and sorts keys
so payloads are stable across runs.
"""

from typing import Any

import orjson
from fastapi.responses import JSONResponse
from pydantic import BaseModel


class ORJSONResponse(JSONResponse):
    """JSON response serialized with orjson."""

    media_type = "application/json"

    def render(self, content: Any) -> bytes:  # noqa: ANN401 - any JSON-serializable content
        """Serialize ``content``, dumping pydantic models first."""
        if isinstance(content, BaseModel):
            content = content.model_dump(mode="json", by_alias=True)
        return orjson.dumps(content, option=orjson.OPT_SORT_KEYS)

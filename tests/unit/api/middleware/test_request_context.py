"""Unit tests for RequestContextMiddleware."""

import pytest
import pytest_check
from fastapi import FastAPI
from fastapi.testclient import TestClient

from member_service.api.constants import CORRELATION_ID_HEADER, REQUEST_ID_HEADER
from member_service.api.middleware.request_context import RequestContextMiddleware
from member_service.core.context import RequestContext


@pytest.fixture
def client() -> TestClient:
    """App echoing the ids seen inside the request."""
    app = FastAPI()
    app.add_middleware(RequestContextMiddleware)

    @app.get("/ids")
    async def ids() -> dict[str, str | None]:
        return {
            "correlation_id": RequestContext.get_correlation_id(),
            "request_id": RequestContext.get_request_id(),
        }

    return TestClient(app)


@pytest.mark.unit
class TestRequestContextMiddleware:
    """Test suite for RequestContextMiddleware."""

    def test_correlation_id_from_header(self, client: TestClient) -> None:
        """An incoming correlation id is kept and echoed."""
        response = client.get("/ids", headers={CORRELATION_ID_HEADER: "corr-123"})

        with pytest_check.check:
            assert response.json()["correlation_id"] == "corr-123"
        with pytest_check.check:
            assert response.headers[CORRELATION_ID_HEADER] == "corr-123"

    def test_ids_generated(self, client: TestClient) -> None:
        """Missing ids are generated and match the response headers."""
        response = client.get("/ids")
        body = response.json()

        with pytest_check.check:
            assert body["correlation_id"]
        with pytest_check.check:
            assert response.headers[CORRELATION_ID_HEADER] == body["correlation_id"]
        with pytest_check.check:
            assert body["request_id"].startswith("req-")
        with pytest_check.check:
            assert response.headers[REQUEST_ID_HEADER] == body["request_id"]

    def test_request_ids_differ(self, client: TestClient) -> None:
        """Each request gets its own request id."""
        first = client.get("/ids").headers[REQUEST_ID_HEADER]
        second = client.get("/ids").headers[REQUEST_ID_HEADER]
        assert first != second

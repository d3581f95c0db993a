"""Unit tests for the global exception handlers."""

import pytest
import pytest_check
from fastapi import FastAPI, Query
from fastapi.testclient import TestClient
from pytest_mock import MockerFixture

from member_service.api.constants import CORRELATION_ID_HEADER
from member_service.api.middleware.error_handler import (
    member_service_error_handler,
    register_exception_handlers,
    status_code_for,
)
from member_service.api.middleware.request_context import RequestContextMiddleware
from member_service.core.config import Settings
from member_service.core.exceptions import (
    BadRequestError,
    ExternalServiceError,
    ForbiddenError,
    MemberServiceError,
    NotFoundError,
    StoreReadError,
    StoreWriteError,
    UnauthorizedError,
)

SETTINGS_PATH = "member_service.api.middleware.error_handler.get_settings"


@pytest.fixture
def app() -> FastAPI:
    """App raising each kind of failure."""
    application = FastAPI()
    register_exception_handlers(application)
    application.add_middleware(RequestContextMiddleware)

    @application.get("/missing")
    async def missing() -> None:
        raise NotFoundError(
            'Member with handle: "ghost" doesn\'t exist', context={"handle": "ghost"}
        )

    @application.get("/bus")
    async def bus() -> None:
        raise ExternalServiceError(
            "Failed to post event", service="bus", cause=ConnectionError("refused")
        )

    @application.get("/members")
    async def members(page: int = Query(ge=1)) -> dict[str, int]:
        return {"page": page}

    @application.get("/crash")
    async def crash() -> None:
        raise RuntimeError("database password is hunter2")

    return application


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    """Client returning 500 responses instead of raising."""
    return TestClient(app, raise_server_exceptions=False)


@pytest.mark.unit
class TestStatusCodes:
    """Test cases for the error code to status mapping."""

    @pytest.mark.parametrize(
        ("exc", "expected"),
        [
            (BadRequestError("bad"), 400),
            (UnauthorizedError("no token"), 401),
            (ForbiddenError("nope"), 403),
            (NotFoundError("missing"), 404),
            (StoreReadError("read"), 500),
            (StoreWriteError("write"), 500),
            (ExternalServiceError("down", service="s3"), 502),
            (MemberServiceError("UNMAPPED", "generic"), 500),
        ],
    )
    def test_status_code_for(self, exc: MemberServiceError, expected: int) -> None:
        """Each error class answers with its status."""
        assert status_code_for(exc) == expected


@pytest.mark.unit
class TestMemberServiceErrorHandler:
    """Test cases for member service errors."""

    def test_not_found(self, client: TestClient) -> None:
        """Known errors keep their code, message and context."""
        response = client.get("/missing", headers={CORRELATION_ID_HEADER: "corr-1"})
        body = response.json()

        with pytest_check.check:
            assert response.status_code == 404
        with pytest_check.check:
            assert body["error_code"] == "NOT_FOUND"
        with pytest_check.check:
            assert body["message"] == 'Member with handle: "ghost" doesn\'t exist'
        with pytest_check.check:
            assert body["details"] == {"handle": "ghost"}
        with pytest_check.check:
            assert body["correlation_id"] == "corr-1"
        with pytest_check.check:
            assert body["request_id"].startswith("req-")

    def test_debug_info_in_development(self, client: TestClient) -> None:
        """Development responses carry the cause."""
        body = client.get("/bus").json()

        with pytest_check.check:
            assert body["error_code"] == "EXTERNAL_SERVICE_ERROR"
        with pytest_check.check:
            assert body["debug_info"]["cause"] == {
                "type": "ConnectionError",
                "message": "refused",
            }

    def test_no_debug_info_in_production(
        self, client: TestClient, mocker: MockerFixture
    ) -> None:
        """Production responses hide debug information."""
        mocker.patch(SETTINGS_PATH, return_value=Settings(environment="production"))

        response = client.get("/bus")

        with pytest_check.check:
            assert response.status_code == 502
        with pytest_check.check:
            assert response.json()["debug_info"] is None

    async def test_rejects_other_exceptions(self, mocker: MockerFixture) -> None:
        """The handler refuses exceptions it is not registered for."""
        with pytest.raises(TypeError, match="Expected MemberServiceError"):
            await member_service_error_handler(mocker.Mock(), ValueError("x"))


@pytest.mark.unit
class TestFrameworkErrors:
    """Test cases for validation and HTTP exceptions."""

    def test_validation_error_is_bad_request(self, client: TestClient) -> None:
        """Invalid query parameters answer 400 with per-field messages."""
        response = client.get("/members", params={"page": "0"})
        body = response.json()

        with pytest_check.check:
            assert response.status_code == 400
        with pytest_check.check:
            assert body["error_code"] == "BAD_REQUEST"
        with pytest_check.check:
            assert "page" in body["details"]["validation_errors"]

    def test_unknown_route(self, client: TestClient) -> None:
        """Unknown routes answer 404 in the error envelope."""
        response = client.get("/nowhere")

        with pytest_check.check:
            assert response.status_code == 404
        with pytest_check.check:
            assert response.json()["error_code"] == "NOT_FOUND"


@pytest.mark.unit
class TestGenericExceptionHandler:
    """Test cases for unexpected exceptions."""

    def test_details_in_development(self, client: TestClient) -> None:
        """Development responses name the exception."""
        response = client.get("/crash")
        body = response.json()

        with pytest_check.check:
            assert response.status_code == 500
        with pytest_check.check:
            assert body["error_code"] == "INTERNAL_ERROR"
        with pytest_check.check:
            assert body["severity"] == "CRITICAL"
        with pytest_check.check:
            assert body["details"]["type"] == "RuntimeError"

    def test_details_hidden_in_production(
        self, client: TestClient, mocker: MockerFixture
    ) -> None:
        """Production responses say nothing about the failure."""
        mocker.patch(SETTINGS_PATH, return_value=Settings(environment="production"))

        body = client.get("/crash").json()

        with pytest_check.check:
            assert body["message"] == "An internal server error occurred"
        with pytest_check.check:
            assert body["details"] is None
        with pytest_check.check:
            assert "hunter2" not in str(body)

"""Unit tests for RequestLoggingMiddleware."""

import pytest
import pytest_check
from fastapi import FastAPI
from fastapi.testclient import TestClient
from pytest_mock import MockerFixture, MockType

from member_service.api.middleware.request_logging import RequestLoggingMiddleware
from member_service.core.config import LogConfig

LOGGER = "member_service.api.middleware.request_logging.logger"


def build_client(log_config: LogConfig) -> TestClient:
    """App with a fast route, a failing route and the health probe."""
    app = FastAPI()
    app.add_middleware(RequestLoggingMiddleware, log_config=log_config)

    @app.get("/members")
    async def members() -> list[str]:
        return ["jdoe"]

    @app.get("/boom")
    async def boom() -> None:
        raise RuntimeError("boom")

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "healthy"}

    return TestClient(app, raise_server_exceptions=False)


def messages(mock_logger: MockType, level: str) -> list[str]:
    """First positional argument of every call at ``level``."""
    return [call.args[0] for call in getattr(mock_logger, level).call_args_list]


@pytest.mark.unit
class TestRequestLoggingMiddleware:
    """Test suite for RequestLoggingMiddleware."""

    def test_request_logged(self, mocker: MockerFixture) -> None:
        """Start and completion are logged with the status code."""
        mock_logger = mocker.patch(LOGGER)
        client = build_client(LogConfig())

        client.get("/members", params={"page": "2"})

        with pytest_check.check:
            assert messages(mock_logger, "info") == [
                "Request started",
                "Request completed",
            ]
        completed = mock_logger.info.call_args_list[1]
        with pytest_check.check:
            assert completed.kwargs["status_code"] == 200

    def test_excluded_paths_skipped(self, mocker: MockerFixture) -> None:
        """Excluded paths are not logged."""
        mock_logger = mocker.patch(LOGGER)
        client = build_client(LogConfig(excluded_paths=["/health"]))

        response = client.get("/health")

        with pytest_check.check:
            assert response.status_code == 200
        with pytest_check.check:
            mock_logger.info.assert_not_called()

    def test_failure_logged(self, mocker: MockerFixture) -> None:
        """Exceptions are logged with their type before propagating."""
        mock_logger = mocker.patch(LOGGER)
        client = build_client(LogConfig())

        response = client.get("/boom")

        with pytest_check.check:
            assert response.status_code == 500
        mock_logger.error.assert_called_once()
        assert mock_logger.error.call_args.kwargs["error_type"] == "RuntimeError"

    def test_slow_request_warning(self, mocker: MockerFixture) -> None:
        """Requests over the threshold are reported as slow."""
        mock_logger = mocker.patch(LOGGER)
        mock_time = mocker.patch("member_service.api.middleware.request_logging.time")
        mock_time.perf_counter.side_effect = [1.0, 3.0]
        client = build_client(LogConfig(slow_request_threshold_ms=1000))

        client.get("/members")

        assert messages(mock_logger, "warning") == ["Slow request detected"]

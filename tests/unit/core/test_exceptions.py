"""Unit tests for the exception hierarchy."""

import pytest
import pytest_check

from member_service.core.exceptions import (
    BadRequestError,
    ErrorCode,
    ExternalServiceError,
    ForbiddenError,
    MemberServiceError,
    NotFoundError,
    Severity,
    StoreReadError,
    StoreWriteError,
    UnauthorizedError,
)


@pytest.mark.unit
class TestErrorClasses:
    """Test the specialized exception classes."""

    @pytest.mark.parametrize(
        ("exception_class", "error_code", "severity"),
        [
            (BadRequestError, ErrorCode.BAD_REQUEST, Severity.LOW),
            (NotFoundError, ErrorCode.NOT_FOUND, Severity.LOW),
            (UnauthorizedError, ErrorCode.UNAUTHORIZED, Severity.HIGH),
            (ForbiddenError, ErrorCode.FORBIDDEN, Severity.MEDIUM),
            (StoreReadError, ErrorCode.STORE_READ_ERROR, Severity.HIGH),
            (StoreWriteError, ErrorCode.STORE_WRITE_ERROR, Severity.HIGH),
        ],
    )
    def test_defaults(
        self,
        exception_class: type[MemberServiceError],
        error_code: ErrorCode,
        severity: Severity,
    ) -> None:
        """Each class carries its own error code and severity."""
        exc = exception_class("Something went wrong")

        with pytest_check.check:
            assert exc.error_code == error_code.value
        with pytest_check.check:
            assert exc.severity == severity
        with pytest_check.check:
            assert exc.message == "Something went wrong"
        with pytest_check.check:
            assert isinstance(exc, MemberServiceError)

    def test_str_and_repr(self) -> None:
        """String forms show the code, the message and the context."""
        exc = NotFoundError("Can not find Member with user_id: 1", context={"key": "user_id"})

        with pytest_check.check:
            assert str(exc) == "[NOT_FOUND] Can not find Member with user_id: 1"
        with pytest_check.check:
            assert "severity=LOW" in repr(exc)
        with pytest_check.check:
            assert "context={'key': 'user_id'}" in repr(exc)

    def test_cause_is_chained(self) -> None:
        """The originating exception becomes __cause__."""
        original = ConnectionError("connection reset")
        exc = StoreReadError("Failed to scan Member", cause=original)

        with pytest_check.check:
            assert exc.cause is original
        with pytest_check.check:
            assert exc.__cause__ is original

    def test_expected_and_alert_flags(self) -> None:
        """LOW/MEDIUM errors are expected, HIGH errors alert."""
        with pytest_check.check:
            assert BadRequestError("bad").is_expected
        with pytest_check.check:
            assert ForbiddenError("no").is_expected
        with pytest_check.check:
            assert StoreWriteError("boom").should_alert
        with pytest_check.check:
            assert not StoreWriteError("boom").is_expected

    def test_external_service_error_records_service(self) -> None:
        """The failing collaborator is kept on the error and in its context."""
        exc = ExternalServiceError(
            "Failed to upload photo", service="s3", context={"bucket": "photos"}
        )

        with pytest_check.check:
            assert exc.service == "s3"
        with pytest_check.check:
            assert exc.context == {"service": "s3", "bucket": "photos"}
        with pytest_check.check:
            assert exc.error_code == ErrorCode.EXTERNAL_SERVICE_ERROR.value
        with pytest_check.check:
            assert exc.severity == Severity.HIGH

    def test_fingerprint_is_stable_for_same_site(self) -> None:
        """Errors raised from the same place share a fingerprint."""

        def raise_error() -> NotFoundError:
            return NotFoundError("missing")

        first = raise_error()
        second = raise_error()

        with pytest_check.check:
            assert len(first.fingerprint) == 16
        with pytest_check.check:
            assert first.fingerprint == second.fingerprint

    def test_custom_error_code(self) -> None:
        """The error code can be overridden with a plain string."""
        exc = BadRequestError("Unknown collection: Foo", error_code="UNKNOWN_COLLECTION")
        assert exc.error_code == "UNKNOWN_COLLECTION"

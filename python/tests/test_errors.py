"""Tests for error definitions.

Verifies:
- Every error code maps to an HTTP status
- Error subclasses carry the right default code and status
- Collaborator failures are UpstreamErrors
"""

import pytest

from quill.errors import (
    ERROR_CODE_TO_STATUS,
    ApiError,
    ApiErrorCode,
    BackupError,
    ConflictError,
    ForbiddenError,
    InvalidRequestError,
    NotFoundError,
    NotificationError,
    TokenGenerationError,
    UpstreamError,
)


class TestErrorCodeMapping:
    """Tests for error code to HTTP status mapping."""

    def test_every_code_has_a_status(self):
        """No error code falls through to the 500 default by omission."""
        for code in ApiErrorCode:
            assert code in ERROR_CODE_TO_STATUS

    @pytest.mark.parametrize(
        "code,status",
        [
            (ApiErrorCode.E_OWNER_UNDELETABLE, 403),
            (ApiErrorCode.E_USER_NOT_FOUND, 404),
            (ApiErrorCode.E_API_KEY_NOT_FOUND, 404),
            (ApiErrorCode.E_TAG_SLUG_CONFLICT, 409),
            (ApiErrorCode.E_RESET_TOKEN_EXPIRED, 400),
            (ApiErrorCode.E_BACKUP_FAILED, 502),
            (ApiErrorCode.E_INTERNAL, 500),
        ],
    )
    def test_status(self, code, status):
        assert ApiError(code, "x").status_code == status


class TestErrorClasses:
    """Tests for the ApiError subclasses."""

    def test_not_found_default(self):
        err = NotFoundError()
        assert err.code is ApiErrorCode.E_NOT_FOUND
        assert err.status_code == 404

    def test_not_found_specific_code(self):
        """Callers can tell a missing API key from a missing account by code."""
        err = NotFoundError(ApiErrorCode.E_API_KEY_NOT_FOUND, "No keys")
        assert err.code is ApiErrorCode.E_API_KEY_NOT_FOUND
        assert err.message == "No keys"
        assert str(err) == "No keys"

    def test_forbidden_default(self):
        assert ForbiddenError().status_code == 403

    def test_conflict_default(self):
        assert ConflictError().status_code == 409

    def test_invalid_request_default(self):
        assert InvalidRequestError().code is ApiErrorCode.E_INVALID_REQUEST

    @pytest.mark.parametrize(
        "cls,code",
        [
            (BackupError, ApiErrorCode.E_BACKUP_FAILED),
            (TokenGenerationError, ApiErrorCode.E_TOKEN_GENERATION_FAILED),
            (NotificationError, ApiErrorCode.E_NOTIFICATION_FAILED),
        ],
    )
    def test_upstream_errors(self, cls, code):
        err = cls("boom")
        assert isinstance(err, UpstreamError)
        assert isinstance(err, ApiError)
        assert err.code is code
        assert err.status_code == 502
        assert err.message == "boom"

"""Error definitions.

All domain errors are defined here with the HTTP status a calling API layer
should map them to.
"""

from enum import Enum


class ApiErrorCode(str, Enum):
    """Standardized error codes.

    Format: E_CATEGORY_NAME
    """

    # Authorization errors (403)
    E_FORBIDDEN = "E_FORBIDDEN"
    E_OWNER_UNDELETABLE = "E_OWNER_UNDELETABLE"

    # Not found errors (404)
    E_NOT_FOUND = "E_NOT_FOUND"
    E_USER_NOT_FOUND = "E_USER_NOT_FOUND"
    E_POST_NOT_FOUND = "E_POST_NOT_FOUND"
    E_TAG_NOT_FOUND = "E_TAG_NOT_FOUND"
    E_API_KEY_NOT_FOUND = "E_API_KEY_NOT_FOUND"

    # Conflict errors (409)
    E_CONFLICT = "E_CONFLICT"
    E_TAG_SLUG_CONFLICT = "E_TAG_SLUG_CONFLICT"

    # Validation errors (400)
    E_INVALID_REQUEST = "E_INVALID_REQUEST"
    E_RESET_TOKEN_INVALID = "E_RESET_TOKEN_INVALID"
    E_RESET_TOKEN_EXPIRED = "E_RESET_TOKEN_EXPIRED"

    # Upstream collaborator failures
    E_BACKUP_FAILED = "E_BACKUP_FAILED"  # 502
    E_NOTIFICATION_FAILED = "E_NOTIFICATION_FAILED"  # 502
    E_TOKEN_GENERATION_FAILED = "E_TOKEN_GENERATION_FAILED"  # 502

    # Server errors
    E_INTERNAL = "E_INTERNAL"  # 500


# Error code to HTTP status mapping
ERROR_CODE_TO_STATUS: dict[ApiErrorCode, int] = {
    ApiErrorCode.E_FORBIDDEN: 403,
    ApiErrorCode.E_OWNER_UNDELETABLE: 403,
    ApiErrorCode.E_NOT_FOUND: 404,
    ApiErrorCode.E_USER_NOT_FOUND: 404,
    ApiErrorCode.E_POST_NOT_FOUND: 404,
    ApiErrorCode.E_TAG_NOT_FOUND: 404,
    ApiErrorCode.E_API_KEY_NOT_FOUND: 404,
    ApiErrorCode.E_CONFLICT: 409,
    ApiErrorCode.E_TAG_SLUG_CONFLICT: 409,
    ApiErrorCode.E_INVALID_REQUEST: 400,
    ApiErrorCode.E_RESET_TOKEN_INVALID: 400,
    ApiErrorCode.E_RESET_TOKEN_EXPIRED: 400,
    ApiErrorCode.E_BACKUP_FAILED: 502,
    ApiErrorCode.E_NOTIFICATION_FAILED: 502,
    ApiErrorCode.E_TOKEN_GENERATION_FAILED: 502,
    ApiErrorCode.E_INTERNAL: 500,
}


class ApiError(Exception):
    """Base exception for domain errors.

    Attributes:
        code: The error code enum value
        message: Human-readable error message
        status_code: HTTP status code (derived from code)
    """

    def __init__(self, code: ApiErrorCode, message: str):
        self.code = code
        self.message = message
        self.status_code = ERROR_CODE_TO_STATUS.get(code, 500)
        super().__init__(message)


class NotFoundError(ApiError):
    """Resource not found error."""

    def __init__(self, code: ApiErrorCode = ApiErrorCode.E_NOT_FOUND, message: str = "Not found"):
        super().__init__(code, message)


class ForbiddenError(ApiError):
    """Authorization failure error."""

    def __init__(self, code: ApiErrorCode = ApiErrorCode.E_FORBIDDEN, message: str = "Forbidden"):
        super().__init__(code, message)


class ConflictError(ApiError):
    """Constraint violation that re-reading cannot resolve."""

    def __init__(self, code: ApiErrorCode = ApiErrorCode.E_CONFLICT, message: str = "Conflict"):
        super().__init__(code, message)


class InvalidRequestError(ApiError):
    """Invalid request error."""

    def __init__(
        self, code: ApiErrorCode = ApiErrorCode.E_INVALID_REQUEST, message: str = "Invalid request"
    ):
        super().__init__(code, message)


class UpstreamError(ApiError):
    """An external collaborator (backup, token generation, mail) failed."""


class BackupError(UpstreamError):
    """The backup gateway could not produce a snapshot."""

    def __init__(self, message: str = "Database backup failed"):
        super().__init__(ApiErrorCode.E_BACKUP_FAILED, message)


class TokenGenerationError(UpstreamError):
    """A password reset token could not be generated."""

    def __init__(self, message: str = "Reset token generation failed"):
        super().__init__(ApiErrorCode.E_TOKEN_GENERATION_FAILED, message)


class NotificationError(UpstreamError):
    """A reset notification could not be dispatched."""

    def __init__(self, message: str = "Reset notification failed"):
        super().__init__(ApiErrorCode.E_NOTIFICATION_FAILED, message)

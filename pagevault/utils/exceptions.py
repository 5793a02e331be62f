from typing import Any, Optional


class AppException(Exception):
    """Base exception for all application-specific errors."""

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 400,
        details: Optional[Any] = None,
    ):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details
        super().__init__(self.message)


class NotFoundException(AppException):
    """Exception raised when a resource is not found."""

    def __init__(self, message: str = "Resource not found", details: Optional[Any] = None):
        super().__init__(
            code="NOT_FOUND",
            message=message,
            status_code=404,
            details=details,
        )


class ValidationException(AppException):
    """Exception raised when validation fails."""

    def __init__(self, message: str = "Validation failed", details: Optional[Any] = None):
        super().__init__(
            code="VALIDATION_ERROR",
            message=message,
            status_code=400,
            details=details,
        )


class ConflictException(AppException):
    """Exception raised when a write collides with existing state (duplicates, unique constraints)."""

    def __init__(self, message: str = "Conflicting state", details: Optional[Any] = None, code: str = "CONFLICT"):
        super().__init__(
            code=code,
            message=message,
            status_code=409,
            details=details,
        )


class AlreadyEntitledException(ConflictException):
    """Exception raised when a user tries to buy a document they already hold a license for."""

    def __init__(self, message: str = "You already own this document", details: Optional[Any] = None):
        super().__init__(message=message, details=details, code="ALREADY_ENTITLED")


class ForbiddenException(AppException):
    """Exception raised on a role or ownership mismatch."""

    def __init__(self, message: str = "Access denied", details: Optional[Any] = None):
        super().__init__(
            code="FORBIDDEN",
            message=message,
            status_code=403,
            details=details,
        )


class InvariantViolationException(AppException):
    """Exception raised when the administrator invariant guard rejects a mutation."""

    def __init__(self, message: str = "Operation violates the administrator policy", details: Optional[Any] = None):
        super().__init__(
            code="INVARIANT_VIOLATION",
            message=message,
            status_code=403,
            details=details,
        )


class ProcessingException(AppException):
    """Exception raised when a stored document cannot be read or transformed."""

    def __init__(self, message: str = "Failed to process document", details: Optional[Any] = None):
        super().__init__(
            code="PROCESSING_ERROR",
            message=message,
            status_code=500,
            details=details,
        )


class DatabaseException(AppException):
    """Exception raised for database-related errors."""

    def __init__(
        self, message: str = "Database error occurred", details: Optional[Any] = None
    ):
        super().__init__(
            code="DATABASE_ERROR",
            message=message,
            status_code=500,
            details=details,
        )


class UnauthorizedException(AppException):
    """Exception raised when authentication is missing or invalid."""

    def __init__(self, message: str = "Authentication required", details: Optional[Any] = None):
        super().__init__(
            code="AUTHENTICATION_REQUIRED",
            message=message,
            status_code=401,
            details=details,
        )

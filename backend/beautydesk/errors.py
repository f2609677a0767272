"""Console error taxonomy.

Four families reach the operator:
  - FieldValidationError  client-side form checks, rendered inline per field
  - PlatformRejection     4xx from the platform; structured field errors are
                          folded into the same per-field map
  - PlatformUnavailable   transport failure, timeout or 5xx
  - PlanLimitError        subscription ceiling reached, short-circuited
                          before any network call
"""

from fastapi import status


class ConsoleError(Exception):
    """Base exception for console errors."""

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        error_code: str = "INTERNAL_ERROR",
    ):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        super().__init__(self.message)


class FieldValidationError(ConsoleError):
    """One or more form fields failed client-side validation."""

    def __init__(self, errors: dict[str, str], message: str = "Please check the form and fix the errors"):
        self.errors = dict(errors)
        super().__init__(
            message=message,
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            error_code="VALIDATION_ERROR",
        )


class PlanLimitError(ConsoleError):
    """The tenant's plan does not allow another record of this type."""

    upgrade_url = "/subscription/upgrade"

    def __init__(self, resource: str, limit: int):
        self.resource = resource
        self.limit = limit
        super().__init__(
            message=f"Your plan supports at most {limit} {resource}. Upgrade to add more.",
            status_code=status.HTTP_402_PAYMENT_REQUIRED,
            error_code="PLAN_LIMIT_REACHED",
        )


class PlatformRejection(ConsoleError):
    """The platform API rejected the request (4xx)."""

    def __init__(self, status_code: int, message: str, field_errors: dict[str, str] | None = None):
        self.field_errors = dict(field_errors or {})
        super().__init__(
            message=message,
            status_code=status_code,
            error_code=f"PLATFORM_{status_code}",
        )


class PlatformUnavailable(ConsoleError):
    """The platform API could not be reached or failed server-side."""

    def __init__(self, message: str = "Platform temporarily unavailable. Please try again."):
        super().__init__(
            message=message,
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            error_code="PLATFORM_UNAVAILABLE",
        )


class NavigationBlocked(ConsoleError):
    """A wizard transition was attempted while it is not allowed."""

    def __init__(self, message: str):
        super().__init__(
            message=message,
            status_code=status.HTTP_409_CONFLICT,
            error_code="NAVIGATION_BLOCKED",
        )


class SessionRequired(ConsoleError):
    def __init__(self, message: str = "Session expired. Please sign in again."):
        super().__init__(
            message=message,
            status_code=status.HTTP_401_UNAUTHORIZED,
            error_code="SESSION_REQUIRED",
        )


class StorageError(ConsoleError):
    """Durable storage write failed (quota, IO, connection)."""

    def __init__(self, message: str = "Failed to write to storage"):
        super().__init__(
            message=message,
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            error_code="STORAGE_ERROR",
        )


class UndoExpired(ConsoleError):
    """No undo window is open (expired, already undone, or never opened)."""

    def __init__(self, message: str = "Nothing to undo"):
        super().__init__(
            message=message,
            status_code=status.HTTP_410_GONE,
            error_code="UNDO_EXPIRED",
        )

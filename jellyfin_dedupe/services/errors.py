"""Error types and error handling for the duplicate finder.

This module provides:
- Exception classes for retrieval, remote action, configuration and validation errors
- User-friendly error message generation with suggested actions
- An error handling service that is created once per application context
"""

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any

import httpx
import structlog


class ErrorCategory(Enum):
    """Categories of errors for classification and handling."""
    RETRIEVAL = "retrieval"
    REMOTE_ACTION = "remote_action"
    VALIDATION = "validation"
    CONFIGURATION = "configuration"
    UNEXPECTED = "unexpected"


class ErrorSeverity(Enum):
    """Severity levels for errors."""
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


@dataclass(frozen=True)
class ErrorContext:
    """Context information for an error."""
    operation: str
    component: str
    details: dict[str, Any]


@dataclass(frozen=True)
class UserFriendlyError:
    """User-friendly error representation with suggested actions."""
    message: str
    category: ErrorCategory
    severity: ErrorSeverity
    suggested_actions: list[str]
    technical_details: str | None = None
    recoverable: bool = True


class AppError(Exception):
    """Base exception class for application errors."""

    def __init__(
        self,
        message: str,
        category: ErrorCategory = ErrorCategory.UNEXPECTED,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        suggested_actions: list[str] | None = None,
        technical_details: str | None = None,
        recoverable: bool = True,
        context: ErrorContext | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.category = category
        self.severity = severity
        self.suggested_actions = suggested_actions or []
        self.technical_details = technical_details
        self.recoverable = recoverable
        self.context = context

    def to_user_friendly(self) -> UserFriendlyError:
        """Convert to user-friendly error representation."""
        return UserFriendlyError(
            message=self.message,
            category=self.category,
            severity=self.severity,
            suggested_actions=self.suggested_actions,
            technical_details=self.technical_details,
            recoverable=self.recoverable,
        )


def _describe_http_failure(
    original_error: Exception | None,
    url: str | None,
    status_code: int | None,
) -> str | None:
    """Build the technical details block shared by remote errors."""
    technical_details = None
    if original_error:
        technical_details = f"{type(original_error).__name__}: {str(original_error)}"
    if url:
        technical_details = f"URL: {url}" + (f"\n{technical_details}" if technical_details else "")
    if status_code:
        technical_details = f"Status: {status_code}" + (f"\n{technical_details}" if technical_details else "")
    return technical_details


def _status_of(error: Exception | None) -> int | None:
    if isinstance(error, httpx.HTTPStatusError):
        return error.response.status_code
    if isinstance(error, RetrievalError | RemoteActionError):
        return error.status_code
    return None


def _url_of(error: Exception | None) -> str | None:
    if isinstance(error, httpx.HTTPStatusError):
        try:
            return str(error.request.url)
        except RuntimeError:
            return None
    if isinstance(error, RetrievalError | RemoteActionError):
        return error.url
    return None


class RetrievalError(AppError):
    """A remote fetch failed.

    Always fatal to the fetch or aggregation it happened in. ``target`` names
    what was being fetched (a library, a user, a movie) so an operator can
    retry or check server-side permissions.
    """

    def __init__(
        self,
        message: str,
        target: str | None = None,
        original_error: Exception | None = None,
        url: str | None = None,
        status_code: int | None = None,
    ) -> None:
        status_code = status_code if status_code is not None else _status_of(original_error)
        url = url or _url_of(original_error)

        suggested_actions = [
            "Check that the media server is reachable",
            "Verify the API key and admin user ID",
            "Run the analysis again",
        ]
        if status_code in (401, 403):
            suggested_actions = [
                "Check the API key permissions on the server",
                "Make sure the admin user can see every library",
            ]
        elif status_code and status_code >= 500:
            suggested_actions = [
                "The server is experiencing issues",
                "Try again later",
            ]

        technical_details = _describe_http_failure(original_error, url, status_code)
        if target:
            technical_details = f"Target: {target}" + (f"\n{technical_details}" if technical_details else "")

        super().__init__(
            message=message,
            category=ErrorCategory.RETRIEVAL,
            severity=ErrorSeverity.ERROR,
            suggested_actions=suggested_actions,
            technical_details=technical_details,
            recoverable=True,
        )
        self.target = target
        self.original_error = original_error
        self.url = url
        self.status_code = status_code


class RemoteActionError(AppError):
    """A side-effecting call (mark played, delete) did not succeed."""

    def __init__(
        self,
        message: str,
        action: str,
        original_error: Exception | None = None,
        url: str | None = None,
        status_code: int | None = None,
    ) -> None:
        status_code = status_code if status_code is not None else _status_of(original_error)
        url = url or _url_of(original_error)

        suggested_actions = [
            "Refresh the analysis to see the current state",
            "Check that the API key allows modifying items",
        ]
        if status_code == 404:
            suggested_actions = [
                "The item or user may no longer exist",
                "Refresh the analysis",
            ]

        super().__init__(
            message=message,
            category=ErrorCategory.REMOTE_ACTION,
            severity=ErrorSeverity.ERROR,
            suggested_actions=suggested_actions,
            technical_details=_describe_http_failure(original_error, url, status_code),
            recoverable=True,
        )
        self.action = action
        self.original_error = original_error
        self.url = url
        self.status_code = status_code


class ValidationError(AppError):
    """Exception for validation-related errors."""

    def __init__(
        self,
        message: str,
        field: str | None = None,
        value: Any = None,
        constraints: list[str] | None = None,
    ) -> None:
        suggested_actions = ["Review the input requirements"]
        if constraints:
            suggested_actions.extend([f"Ensure: {c}" for c in constraints])

        technical_details = None
        if field:
            technical_details = f"Field: {field}"
        if value is not None:
            value_str = str(value)[:100]
            technical_details = (technical_details or "") + f"\nValue: {value_str}"

        super().__init__(
            message=message,
            category=ErrorCategory.VALIDATION,
            severity=ErrorSeverity.WARNING,
            suggested_actions=suggested_actions,
            technical_details=technical_details,
            recoverable=True,
        )
        self.field = field
        self.value = value
        self.constraints = constraints or []


class ConfigurationError(AppError):
    """Exception for configuration-related errors."""

    def __init__(
        self,
        message: str,
        setting: str | None = None,
        current_value: Any = None,
        expected: str | None = None,
    ) -> None:
        suggested_actions = [
            "Check the configuration file and environment variables",
            "Set JELLYFIN_URL, JELLYFIN_API_KEY and JELLYFIN_ADMIN_USER_ID",
        ]
        if expected:
            suggested_actions.append(f"Expected: {expected}")

        technical_details = None
        if setting:
            technical_details = f"Setting: {setting}"
        if current_value is not None:
            technical_details = (technical_details or "") + f"\nCurrent: {current_value}"

        super().__init__(
            message=message,
            category=ErrorCategory.CONFIGURATION,
            severity=ErrorSeverity.CRITICAL,
            suggested_actions=suggested_actions,
            technical_details=technical_details,
            recoverable=False,
        )
        self.setting = setting
        self.current_value = current_value
        self.expected = expected


class ErrorHandlingService:
    """Converts exceptions into user-facing errors and logs them.

    One instance is created per application context and handed to the
    components that report errors to the operator.
    """

    def __init__(self, logger: structlog.stdlib.BoundLogger | None = None) -> None:
        """Initialize the error handling service.

        Args:
            logger: Logger to report errors to (defaults to this module's logger)
        """
        self._log = logger or structlog.stdlib.get_logger(__name__)
        self._error_history: list[AppError] = []
        self._max_history_size = 100

    def handle_error(
        self,
        error: Exception,
        operation: str,
        component: str,
        context: dict[str, Any] | None = None,
    ) -> UserFriendlyError:
        """Handle an error and return a user-friendly representation.

        Args:
            error: The exception that occurred
            operation: The operation being performed
            component: The component where the error occurred
            context: Additional context information

        Returns:
            User-friendly error representation
        """
        app_error = self.to_app_error(error, operation, component, context)
        self._log_error(app_error, operation, component, context)

        self._error_history.append(app_error)
        if len(self._error_history) > self._max_history_size:
            self._error_history.pop(0)

        return app_error.to_user_friendly()

    def to_app_error(
        self,
        error: Exception,
        operation: str,
        component: str,
        context: dict[str, Any] | None = None,
    ) -> AppError:
        """Convert a standard exception to an AppError."""
        if isinstance(error, AppError):
            return error

        url = context.get("url") if context else None
        if isinstance(error, httpx.ConnectError):
            return RetrievalError(
                message="Unable to connect to the media server.",
                original_error=error,
                url=url,
            )
        elif isinstance(error, httpx.TimeoutException):
            return RetrievalError(
                message="The media server did not answer in time.",
                original_error=error,
                url=url,
            )
        elif isinstance(error, httpx.HTTPStatusError):
            return RetrievalError(
                message=self._get_http_error_message(error.response.status_code),
                original_error=error,
            )
        elif isinstance(error, httpx.RequestError):
            return RetrievalError(
                message="A network error occurred while talking to the media server.",
                original_error=error,
                url=url,
            )
        elif isinstance(error, json.JSONDecodeError):
            return ValidationError(
                message="The server returned invalid JSON.",
                field="response_body",
            )
        elif isinstance(error, ValueError):
            return ValidationError(
                message=str(error),
                field=context.get("field") if context else None,
                value=context.get("value") if context else None,
            )

        return AppError(
            message="An unexpected error occurred. Please try again.",
            category=ErrorCategory.UNEXPECTED,
            severity=ErrorSeverity.ERROR,
            technical_details=f"{type(error).__name__}: {str(error)}",
            recoverable=True,
            context=ErrorContext(
                operation=operation,
                component=component,
                details=context or {},
            ),
        )

    @staticmethod
    def _get_http_error_message(status_code: int) -> str:
        """Get a user-friendly message for HTTP status codes."""
        messages = {
            400: "The media server rejected the request.",
            401: "Authentication failed. Please check the API key.",
            403: "Access denied. The API key lacks permission for this resource.",
            404: "The requested item was not found on the media server.",
            429: "Too many requests. Please wait before trying again.",
            500: "The media server encountered an error. Please try again later.",
            502: "The media server is temporarily unavailable. Please try again later.",
            503: "The media server is temporarily unavailable. Please try again later.",
            504: "The media server took too long to respond. Please try again.",
        }
        return messages.get(status_code, f"HTTP error {status_code} occurred.")

    def _log_error(
        self,
        error: AppError,
        operation: str,
        component: str,
        context: dict[str, Any] | None,
    ) -> None:
        """Log error with full technical details."""
        log_method = self._log.warning if error.severity == ErrorSeverity.WARNING else self._log.error

        log_method(
            "Error occurred",
            error_message=error.message,
            category=error.category.value,
            severity=error.severity.value,
            operation=operation,
            component=component,
            technical_details=error.technical_details,
            recoverable=error.recoverable,
            context=context,
        )

    def get_recent_errors(self, count: int = 10) -> list[AppError]:
        """Get the most recent handled errors, oldest first."""
        return self._error_history[-count:] if self._error_history else []

    def create_user_message(
        self,
        error: UserFriendlyError,
        include_suggestions: bool = True,
    ) -> str:
        """Create a formatted user message from an error.

        Args:
            error: The user-friendly error
            include_suggestions: Whether to include suggested actions

        Returns:
            Formatted message string
        """
        parts = [error.message]

        if include_suggestions and error.suggested_actions:
            parts.append("\nSuggested actions:")
            for action in error.suggested_actions[:3]:
                parts.append(f"  • {action}")

        return "\n".join(parts)

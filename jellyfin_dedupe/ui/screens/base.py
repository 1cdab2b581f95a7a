"""Base screen class with common functionality for all screens."""

from typing import TYPE_CHECKING, ClassVar

from textual.binding import Binding
from textual.screen import Screen
from textual.widgets import Static

import structlog

from jellyfin_dedupe.services.errors import ErrorSeverity, UserFriendlyError

if TYPE_CHECKING:
    from jellyfin_dedupe.ui.app import DedupeApp

log = structlog.stdlib.get_logger()


class BaseScreen(Screen[None]):
    """Base screen class providing common functionality for all application screens.

    This class provides:
    - Common key bindings (escape for back navigation)
    - Access to the parent application and its services
    - Error reporting through the application's error handler
    """

    BINDINGS: ClassVar[list[Binding]] = [
        Binding("escape", "go_back", "Back", show=True),
    ]

    SCREEN_TITLE: ClassVar[str] = "Screen"
    SCREEN_NAME: ClassVar[str] = "base"

    _is_active: bool

    def __init__(self, name: str | None = None) -> None:
        super().__init__(name=name or self.SCREEN_NAME)
        self._is_active = False

    @property
    def dedupe_app(self) -> "DedupeApp":
        """Get the parent DedupeApp instance.

        Raises:
            RuntimeError: If the screen is not attached to a DedupeApp
        """
        from jellyfin_dedupe.ui.app import DedupeApp

        if isinstance(self.app, DedupeApp):
            return self.app
        raise RuntimeError("Screen is not attached to a DedupeApp")

    @property
    def screen_is_active(self) -> bool:
        """Check if this screen is currently active."""
        return self._is_active

    async def on_mount(self) -> None:
        """Handle screen mount event."""
        log.info("Screen mounted", screen=self.SCREEN_NAME, title=self.SCREEN_TITLE)
        self._is_active = True

    async def on_unmount(self) -> None:
        """Handle screen unmount event."""
        log.info("Screen unmounted", screen=self.SCREEN_NAME)
        self._is_active = False

    def on_screen_resume(self) -> None:
        log.debug("Screen resumed", screen=self.SCREEN_NAME)
        self._is_active = True

    def on_screen_suspend(self) -> None:
        log.debug("Screen suspended", screen=self.SCREEN_NAME)
        self._is_active = False

    async def action_go_back(self) -> None:
        """Navigate back to the previous screen."""
        await self.dedupe_app.action_go_back()

    def create_title_widget(self, title: str | None = None) -> Static:
        """Create a styled title widget for the screen."""
        return Static(title or self.SCREEN_TITLE, classes="title")

    def notify_error(self, message: str) -> None:
        """Display an error notification to the user."""
        self.notify(message, severity="error")
        log.error("User notification", message=message, screen=self.SCREEN_NAME)

    def notify_success(self, message: str) -> None:
        """Display a success notification to the user."""
        self.notify(message, severity="information")
        log.info("User notification", message=message, screen=self.SCREEN_NAME)

    def notify_warning(self, message: str) -> None:
        """Display a warning notification to the user."""
        self.notify(message, severity="warning")
        log.warning("User notification", message=message, screen=self.SCREEN_NAME)

    def handle_exception(
        self,
        error: Exception,
        operation: str,
        context: dict[str, str | int | float | bool] | None = None,
    ) -> UserFriendlyError:
        """Handle an exception and display a user-friendly error message.

        Args:
            error: The exception that occurred
            operation: Description of the operation that failed
            context: Additional context information

        Returns:
            UserFriendlyError with message and suggested actions
        """
        error_service = self.dedupe_app.error_service
        user_error = error_service.handle_error(
            error=error,
            operation=operation,
            component=self.SCREEN_NAME,
            context=dict(context) if context else None,
        )

        message = error_service.create_user_message(user_error, include_suggestions=True)
        if user_error.severity == ErrorSeverity.WARNING:
            self.notify_warning(message)
        else:
            self.notify_error(message)

        return user_error

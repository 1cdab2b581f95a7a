"""Main Textual application with screen management and reactive state."""

from dataclasses import dataclass, replace
from typing import ClassVar, override

from textual.app import App, ComposeResult
from textual.binding import Binding, BindingType
from textual.reactive import reactive
from textual.widgets import Footer, Header

import structlog

from jellyfin_dedupe.models import AppConfig, DuplicateVerdict
from jellyfin_dedupe.services.analysis import AnalysisResult, AnalysisService
from jellyfin_dedupe.services.errors import ErrorHandlingService


log = structlog.stdlib.get_logger()


@dataclass(frozen=True)
class AppState:
    """Application state container for reactive state management."""

    result: AnalysisResult | None = None
    analysis_active: bool = False
    current_config: AppConfig | None = None


class DedupeApp(App[None]):
    """Main TUI application for reviewing duplicate movies.

    Services are injected by the caller; screens reach them through this
    app instead of through module-level instances.
    """

    CSS: ClassVar[str] = """
    Screen {
        background: $surface;
    }

    .title {
        text-align: center;
        text-style: bold;
        color: $primary;
        margin-bottom: 1;
    }
    """

    BINDINGS: ClassVar[list[BindingType]] = [
        Binding("q", "quit", "Quit", show=True, priority=True),
        Binding("escape", "go_back", "Back", show=True),
        Binding("?", "show_help", "Help", show=True),
    ]

    app_state: reactive[AppState] = reactive(AppState, init=False)

    _analysis_service: AnalysisService | None
    _error_service: ErrorHandlingService
    _navigation_stack: list[str]

    def __init__(
        self,
        analysis_service: AnalysisService | None = None,
        error_service: ErrorHandlingService | None = None,
        config: AppConfig | None = None,
    ) -> None:
        """Initialize the application with service injection.

        Args:
            analysis_service: Service running the analysis and applying actions
            error_service: Error handler used by screens to report failures
            config: Loaded configuration, shown on the main menu
        """
        super().__init__()
        self.title = "Jellyfin Dedupe"  # type: ignore[assignment]
        self.sub_title = "Duplicate movie finder"  # type: ignore[assignment]
        self._analysis_service = analysis_service
        self._error_service = error_service or ErrorHandlingService()
        self._navigation_stack = []
        self.app_state = AppState(current_config=config)

        log.info("DedupeApp initialized")

    @property
    def analysis_service(self) -> AnalysisService | None:
        """Get the analysis service."""
        return self._analysis_service

    @property
    def error_service(self) -> ErrorHandlingService:
        """Get the error handling service."""
        return self._error_service

    @property
    def navigation_stack(self) -> list[str]:
        """Get the current navigation stack."""
        return self._navigation_stack.copy()

    @override
    def compose(self) -> ComposeResult:
        """Compose the application layout."""
        yield Header()
        yield Footer()

    async def on_mount(self) -> None:
        """Handle application mount event."""
        await self.push_screen_with_tracking("main_menu")

    async def push_screen_with_tracking(self, screen_name: str) -> None:
        """Push a screen and track it in the navigation stack."""
        from jellyfin_dedupe.ui.screens import get_screen_by_name

        screen = get_screen_by_name(screen_name)
        if screen:
            self._navigation_stack.append(screen_name)
            await self.push_screen(screen)
            log.info("Screen pushed", screen=screen_name, stack_depth=len(self._navigation_stack))
        else:
            log.warning("Unknown screen requested", screen=screen_name)

    async def action_go_back(self) -> None:
        """Navigate back to the previous screen."""
        if len(self._navigation_stack) > 1:
            current = self._navigation_stack.pop()
            log.info("Navigating back", from_screen=current, stack_depth=len(self._navigation_stack))
            _ = self.pop_screen()
        else:
            log.debug("Already at root screen, cannot go back")

    async def action_show_help(self) -> None:
        """Show help information."""
        self.notify(
            "r: run analysis, c: exact play counts, s: sync play status, "
            "escape: back, q: quit"
        )

    def set_analysis_result(self, result: AnalysisResult) -> None:
        """Store the latest analysis result."""
        self.app_state = replace(self.app_state, result=result, analysis_active=False)
        log.info("Analysis result stored", verdicts=len(result.verdicts))

    def set_analysis_active(self, active: bool) -> None:
        """Set the analysis active state."""
        self.app_state = replace(self.app_state, analysis_active=active)

    def replace_verdict(self, verdict: DuplicateVerdict) -> None:
        """Swap in an updated verdict for the same pair of movies."""
        result = self.app_state.result
        if result is None:
            return
        verdicts = [verdict if v.pair_ids == verdict.pair_ids else v for v in result.verdicts]
        self.app_state = replace(self.app_state, result=replace(result, verdicts=verdicts))

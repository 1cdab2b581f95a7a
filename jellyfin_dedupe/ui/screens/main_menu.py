"""Main menu screen for the TUI application."""

from typing import ClassVar, override

from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Container, Vertical
from textual.widgets import Button, Static

import structlog

from .base import BaseScreen

log = structlog.stdlib.get_logger()


class MainMenuScreen(BaseScreen):
    """Main menu screen showing the connected server and navigation options."""

    SCREEN_TITLE: ClassVar[str] = "Main Menu"
    SCREEN_NAME: ClassVar[str] = "main_menu"

    CSS: ClassVar[str] = """
    MainMenuScreen {
        align: center middle;
    }

    #menu-container {
        width: 60;
        height: auto;
        padding: 2 4;
        border: solid $primary;
        background: $surface;
    }

    #menu-title {
        text-align: center;
        text-style: bold;
        color: $primary;
        margin-bottom: 1;
    }

    #menu-subtitle {
        text-align: center;
        color: $text-muted;
        margin-bottom: 2;
    }

    .menu-button {
        width: 100%;
        margin-bottom: 1;
    }
    """

    BINDINGS: ClassVar[list[Binding]] = [
        Binding("1", "navigate_analysis", "Analyze", show=False),
    ]

    # (option id, label, target screen)
    MENU_OPTIONS: ClassVar[list[tuple[str, str, str]]] = [
        ("analyze", "1. Find Duplicates", "analysis"),
    ]

    @override
    def compose(self) -> ComposeResult:
        """Compose the main menu layout."""
        with Container(id="menu-container"):
            yield Static("Jellyfin Dedupe", id="menu-title")
            yield Static(self._server_label(), id="menu-subtitle")

            with Vertical(id="menu-buttons"):
                for option_id, label, _ in self.MENU_OPTIONS:
                    yield Button(label, id=f"btn-{option_id}", classes="menu-button")
                yield Button("Quit", id="btn-quit", classes="menu-button")

    def _server_label(self) -> str:
        config = self.dedupe_app.app_state.current_config
        if config is None:
            return "No server configured"
        return f"Server: {config.server_url}"

    async def on_button_pressed(self, event: Button.Pressed) -> None:
        """Handle menu button presses."""
        button_id = event.button.id
        if not button_id:
            return
        if button_id == "btn-quit":
            self.dedupe_app.exit()
            return

        option = button_id.replace("btn-", "")
        for opt_id, _, target in self.MENU_OPTIONS:
            if opt_id == option:
                log.info("Menu option selected", option=option, target=target)
                await self.dedupe_app.push_screen_with_tracking(target)
                return

        log.warning("Unknown menu option", button_id=button_id)

    async def action_navigate_analysis(self) -> None:
        """Navigate to the analysis screen."""
        await self.dedupe_app.push_screen_with_tracking("analysis")

    @override
    async def action_go_back(self) -> None:
        """From the main menu, back quits the application."""
        log.info("Quit requested from main menu")
        self.dedupe_app.exit()

"""Tests for UI navigation and application state."""

import pytest
from hypothesis import given, settings, strategies as st

from jellyfin_dedupe.models import AppConfig
from jellyfin_dedupe.ui.app import AppState, DedupeApp
from jellyfin_dedupe.ui.screens import (
    AnalysisScreen,
    BaseScreen,
    MainMenuScreen,
    get_registered_screens,
    get_screen_by_name,
    register_screen,
)


class TestMenuNavigation:
    """Tests for menu navigation consistency."""

    def test_all_menu_options_have_targets(self) -> None:
        for opt_id, label, target in MainMenuScreen.MENU_OPTIONS:
            assert opt_id, "Option ID cannot be empty"
            assert label, "Option label cannot be empty"
            assert target in get_registered_screens()

    def test_menu_options_have_unique_ids(self) -> None:
        option_ids = [opt[0] for opt in MainMenuScreen.MENU_OPTIONS]
        assert len(option_ids) == len(set(option_ids)), "Menu option IDs must be unique"

    def test_analysis_is_reachable_from_menu(self) -> None:
        assert ("analyze", "1. Find Duplicates", "analysis") in MainMenuScreen.MENU_OPTIONS


class TestScreenRegistry:
    """Tests for screen registry functionality."""

    @pytest.mark.parametrize(
        ("name", "screen_class"),
        [("main_menu", MainMenuScreen), ("analysis", AnalysisScreen)],
    )
    def test_registered_screens(self, name: str, screen_class: type[BaseScreen]) -> None:
        screen = get_screen_by_name(name)
        assert isinstance(screen, screen_class)

    def test_each_lookup_returns_a_new_screen(self) -> None:
        assert get_screen_by_name("main_menu") is not get_screen_by_name("main_menu")

    def test_unknown_screen_returns_none(self) -> None:
        assert get_screen_by_name("nonexistent_screen") is None

    def test_register_screen(self) -> None:
        class ExtraScreen(BaseScreen):
            SCREEN_NAME = "extra"

        register_screen("extra", ExtraScreen)

        assert "extra" in get_registered_screens()
        assert isinstance(get_screen_by_name("extra"), ExtraScreen)


class TestAppState:
    """Tests for application state management."""

    def test_app_state_defaults(self) -> None:
        state = AppState()
        assert state.result is None
        assert state.analysis_active is False
        assert state.current_config is None

    def test_app_initializes_with_config(self) -> None:
        config = AppConfig(server_url="http://jellyfin:8096", api_key="k", admin_user_id="a" * 32)

        app = DedupeApp(config=config)

        assert app.app_state.current_config == config
        assert app.app_state.result is None
        assert app.analysis_service is None

    def test_set_analysis_active(self) -> None:
        app = DedupeApp()

        app.set_analysis_active(True)

        assert app.app_state.analysis_active is True


class TestNavigationStack:
    """Tests for navigation stack management."""

    def test_app_starts_with_empty_navigation_stack(self) -> None:
        assert DedupeApp().navigation_stack == []

    @given(st.lists(st.sampled_from(["main_menu", "analysis"]), max_size=10))
    @settings(max_examples=50)
    def test_navigation_stack_is_copy(self, screens: list[str]) -> None:
        app = DedupeApp()
        app._navigation_stack.extend(screens)

        stack = app.navigation_stack
        stack.append("test")

        assert app.navigation_stack == screens


class TestBaseScreen:
    """Tests for BaseScreen functionality."""

    def test_base_screen_has_correct_defaults(self) -> None:
        assert BaseScreen.SCREEN_TITLE == "Screen"
        assert BaseScreen.SCREEN_NAME == "base"

    def test_screen_metadata(self) -> None:
        assert MainMenuScreen.SCREEN_NAME == "main_menu"
        assert AnalysisScreen.SCREEN_NAME == "analysis"
        assert AnalysisScreen.SCREEN_TITLE == "Duplicate Analysis"

    def test_screen_starts_inactive(self) -> None:
        assert MainMenuScreen().screen_is_active is False


@pytest.mark.asyncio
async def test_navigate_to_analysis_and_back() -> None:
    """The menu opens the analysis screen and escape returns to the menu."""
    app = DedupeApp()

    async with app.run_test() as pilot:
        await pilot.pause()
        assert app.navigation_stack == ["main_menu"]
        assert isinstance(app.screen, MainMenuScreen)

        await pilot.press("1")
        await pilot.pause()
        assert app.navigation_stack == ["main_menu", "analysis"]
        assert isinstance(app.screen, AnalysisScreen)

        await pilot.press("escape")
        await pilot.pause()
        assert app.navigation_stack == ["main_menu"]
        assert isinstance(app.screen, MainMenuScreen)

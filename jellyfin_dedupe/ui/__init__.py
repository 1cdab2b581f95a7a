"""User interface components using Textual framework."""

from .app import AppState, DedupeApp
from .screens import (
    AnalysisScreen,
    BaseScreen,
    MainMenuScreen,
    get_registered_screens,
    get_screen_by_name,
    register_screen,
)

__all__ = [
    "AnalysisScreen",
    "AppState",
    "BaseScreen",
    "DedupeApp",
    "MainMenuScreen",
    "get_registered_screens",
    "get_screen_by_name",
    "register_screen",
]

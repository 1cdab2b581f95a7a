"""Data models for the Jellyfin duplicate finder."""

from .config import AppConfig
from .duplicate import DuplicateVerdict, PlayStatusDiscrepancy
from .media import ItemPage, Library, MovieRecord, PlayState, UserRecord

__all__ = [
    "AppConfig",
    "DuplicateVerdict",
    "ItemPage",
    "Library",
    "MovieRecord",
    "PlayState",
    "PlayStatusDiscrepancy",
    "UserRecord",
]

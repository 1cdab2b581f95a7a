"""Services for fetching the catalog and finding duplicates."""

from .analysis import AnalysisResult, AnalysisService, validate_item_id
from .catalog import CatalogFetcher
from .config import ConfigurationService
from .duplicates import DuplicateEngine, split_verdicts
from .errors import (
    AppError,
    ConfigurationError,
    ErrorHandlingService,
    RemoteActionError,
    RetrievalError,
    ValidationError,
)
from .http_client import HttpClientService
from .jellyfin import JellyfinClient
from .logging import LoggingService, setup_logging
from .play_state import PlayStateAggregator
from .reconciler import reconcile
from .similarity import path_similarity

__all__ = [
    "AnalysisResult",
    "AnalysisService",
    "AppError",
    "CatalogFetcher",
    "ConfigurationError",
    "ConfigurationService",
    "DuplicateEngine",
    "ErrorHandlingService",
    "HttpClientService",
    "JellyfinClient",
    "LoggingService",
    "PlayStateAggregator",
    "RemoteActionError",
    "RetrievalError",
    "ValidationError",
    "path_similarity",
    "reconcile",
    "setup_logging",
    "split_verdicts",
    "validate_item_id",
]

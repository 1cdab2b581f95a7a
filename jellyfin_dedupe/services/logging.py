"""Logging configuration service for the duplicate finder."""

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Any

import structlog


class LoggingService:
    """Service for configuring and managing application logging.

    All formatting decisions are made from the constructor arguments; the
    service never reads or writes process environment variables.
    """

    def __init__(
        self,
        log_level: str = "INFO",
        log_dir: Path | None = None,
        environment: str = "development",
        log_format: str = "console",
        tui_mode: bool = False,
    ) -> None:
        """Initialize the logging service.

        Args:
            log_level: The minimum log level to capture
            log_dir: Directory for log files (None for console only)
            environment: development or production
            log_format: console or json, applies to stdout output
            tui_mode: If True, disable console logging to avoid corrupting the TUI
        """
        self.log_level = log_level.upper()
        self.log_dir = log_dir
        self.environment = environment
        self.log_format = log_format
        self.tui_mode = tui_mode

    @property
    def is_development(self) -> bool:
        return self.environment == "development"

    @property
    def use_json(self) -> bool:
        """Whether rendered events are JSON rather than console text."""
        return self.log_format == "json" or not self.is_development or self.log_dir is not None

    def configure(self) -> None:
        """Configure structlog with appropriate processors and handlers."""
        self._configure_stdlib_logging()

        structlog.configure(
            processors=self._get_processors(),
            context_class=dict,
            logger_factory=structlog.stdlib.LoggerFactory(),
            wrapper_class=structlog.stdlib.BoundLogger,
            cache_logger_on_first_use=False,
        )

    def _configure_stdlib_logging(self) -> None:
        """Configure standard library logging handlers."""
        root_logger = logging.getLogger()
        for handler in list(root_logger.handlers):
            root_logger.removeHandler(handler)
            handler.close()

        numeric_level = getattr(logging, self.log_level, logging.INFO)
        root_logger.setLevel(numeric_level)

        # httpx logs every request at INFO
        logging.getLogger("httpx").setLevel(max(numeric_level, logging.WARNING))

        if not self.tui_mode:
            console_handler = logging.StreamHandler(sys.stdout)
            console_handler.setLevel(numeric_level)

            if self.use_json:
                console_formatter = logging.Formatter("%(message)s")
            else:
                console_formatter = logging.Formatter(
                    fmt="%(asctime)s [%(levelname)8s] %(name)s: %(message)s",
                    datefmt="%H:%M:%S"
                )

            console_handler.setFormatter(console_formatter)
            root_logger.addHandler(console_handler)

        if self.log_dir:
            self._setup_file_logging(root_logger, numeric_level)

    def _setup_file_logging(self, root_logger: logging.Logger, level: int) -> None:
        """Set up file-based logging with rotation."""
        if not self.log_dir:
            return

        self.log_dir.mkdir(parents=True, exist_ok=True)

        file_handler = logging.handlers.RotatingFileHandler(
            filename=self.log_dir / "app.log",
            maxBytes=10 * 1024 * 1024,  # 10MB
            backupCount=5,
            encoding="utf-8"
        )
        file_handler.setLevel(level)

        # File logs are always JSON
        file_formatter = logging.Formatter("%(message)s")
        file_handler.setFormatter(file_formatter)
        root_logger.addHandler(file_handler)

        error_handler = logging.handlers.RotatingFileHandler(
            filename=self.log_dir / "error.log",
            maxBytes=5 * 1024 * 1024,  # 5MB
            backupCount=3,
            encoding="utf-8"
        )
        error_handler.setLevel(logging.ERROR)
        error_handler.setFormatter(file_formatter)
        root_logger.addHandler(error_handler)

    def _get_processors(self) -> list[Any]:
        """Get the appropriate structlog processors for the environment."""
        common_processors = [
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
        ]

        if self.use_json:
            return common_processors + [
                structlog.processors.JSONRenderer()
            ]
        return common_processors + [
            structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())
        ]

    def get_logger(self, name: str | None = None) -> structlog.stdlib.BoundLogger:
        """Get a configured logger instance.

        Args:
            name: Logger name (defaults to calling module)

        Returns:
            Configured structlog logger
        """
        return structlog.stdlib.get_logger(name)


def setup_logging(
    log_level: str = "INFO",
    log_dir: Path | None = None,
    environment: str = "development",
    log_format: str = "console",
    tui_mode: bool = False,
) -> LoggingService:
    """Set up application logging with the specified configuration.

    Args:
        log_level: Minimum log level to capture
        log_dir: Directory for log files (None for console only)
        environment: Environment name (development/production)
        log_format: console or json
        tui_mode: If True, disable console logging to avoid corrupting the TUI

    Returns:
        Configured LoggingService instance
    """
    service = LoggingService(
        log_level=log_level,
        log_dir=log_dir,
        environment=environment,
        log_format=log_format,
        tui_mode=tui_mode,
    )
    service.configure()
    return service

"""Main entry point for the Jellyfin duplicate finder.

This module provides the application entry point with:
- Command-line argument parsing
- Application initialization and dependency injection
- Non-interactive JSON and summary output
- Graceful shutdown handling
"""

import argparse
import asyncio
import json
import signal
import sys
from pathlib import Path

import structlog

from jellyfin_dedupe import __version__
from jellyfin_dedupe.models import AppConfig
from jellyfin_dedupe.services.analysis import AnalysisResult, AnalysisService
from jellyfin_dedupe.services.config import ConfigurationService
from jellyfin_dedupe.services.errors import AppError, ErrorHandlingService
from jellyfin_dedupe.services.http_client import HttpClientService
from jellyfin_dedupe.services.jellyfin import JellyfinClient
from jellyfin_dedupe.services.logging import LoggingService, setup_logging


log = structlog.stdlib.get_logger()


class ApplicationContext:
    """Container for application services and state.

    Services are created lazily from the loaded configuration and shared by
    the CLI and the UI. Nothing here is process-global: every service gets
    its logger and settings from this context.
    """

    def __init__(
        self,
        config_path: Path | None = None,
        log_level: str | None = None,
        log_dir: Path | None = None,
        tui_mode: bool = False,
    ) -> None:
        """Initialize the application context.

        Args:
            config_path: Path to configuration file
            log_level: Logging level overriding the configured one
            log_dir: Directory for log files (None for console only)
            tui_mode: Whether the Textual UI owns the terminal
        """
        self._config_path: Path | None = config_path
        self._log_level: str | None = log_level
        self._log_dir: Path | None = log_dir
        self._tui_mode: bool = tui_mode

        # Services (initialized lazily)
        self._config_service: ConfigurationService | None = None
        self._logging: LoggingService | None = None
        self._error_service: ErrorHandlingService | None = None
        self._http_client: HttpClientService | None = None
        self._jellyfin: JellyfinClient | None = None
        self._analysis: AnalysisService | None = None

        self._config: AppConfig | None = None
        self._shutdown_requested: bool = False

    @property
    def config_service(self) -> ConfigurationService:
        """Get the configuration service (lazy initialization)."""
        if self._config_service is None:
            self._config_service = ConfigurationService(config_path=self._config_path)
        return self._config_service

    @property
    def config(self) -> AppConfig:
        """Get the current application configuration.

        Raises:
            ConfigurationError: If the configuration cannot be loaded
        """
        if self._config is None:
            self._config = self.config_service.load_config()
        return self._config

    @property
    def logging(self) -> LoggingService:
        """Configure logging from the loaded configuration (once)."""
        if self._logging is None:
            self._logging = setup_logging(
                log_level=self._log_level or self.config.log_level,
                log_dir=self._log_dir,
                environment=self.config.environment,
                log_format=self.config.log_format,
                tui_mode=self._tui_mode,
            )
        return self._logging

    @property
    def error_service(self) -> ErrorHandlingService:
        """Get the error handling service (lazy initialization)."""
        if self._error_service is None:
            self._error_service = ErrorHandlingService(logger=self.logging.get_logger("jellyfin_dedupe.errors"))
        return self._error_service

    @property
    def http_client(self) -> HttpClientService:
        """Get the HTTP client service (lazy initialization)."""
        if self._http_client is None:
            self._http_client = HttpClientService(
                base_url=self.config.server_url,
                api_key=self.config.api_key,
                timeout=self.config.request_timeout,
                max_retries=self.config.max_retries,
                verify_ssl=self.config.verify_ssl,
                logger=self.logging.get_logger("jellyfin_dedupe.http"),
            )
        return self._http_client

    @property
    def jellyfin(self) -> JellyfinClient:
        """Get the Jellyfin API client (lazy initialization)."""
        if self._jellyfin is None:
            self._jellyfin = JellyfinClient(
                http_client=self.http_client,
                admin_user_id=self.config.admin_user_id,
                logger=self.logging.get_logger("jellyfin_dedupe.jellyfin"),
            )
        return self._jellyfin

    @property
    def analysis(self) -> AnalysisService:
        """Get the analysis service (lazy initialization)."""
        if self._analysis is None:
            self._analysis = AnalysisService(
                client=self.jellyfin,
                logger=self.logging.get_logger("jellyfin_dedupe.analysis"),
            )
        return self._analysis

    def request_shutdown(self) -> None:
        """Request graceful shutdown of the application."""
        self._shutdown_requested = True
        log.info("Shutdown requested")

    @property
    def shutdown_requested(self) -> bool:
        """Check if shutdown has been requested."""
        return self._shutdown_requested

    async def cleanup(self) -> None:
        """Clean up resources and close connections."""
        log.info("Cleaning up application resources")
        if self._http_client is not None:
            await self._http_client.close()
            self._http_client = None
        log.info("Application cleanup complete")


class ParsedArgs:
    """Type-safe container for parsed command-line arguments."""

    def __init__(
        self,
        config: Path | None,
        log_level: str | None,
        log_dir: Path | None,
        json_output: bool,
        no_tui: bool,
        save_config: bool,
    ) -> None:
        self.config: Path | None = config
        self.log_level: str | None = log_level
        self.log_dir: Path | None = log_dir
        self.json_output: bool = json_output
        self.no_tui: bool = no_tui
        self.save_config: bool = save_config

    @property
    def interactive(self) -> bool:
        return not (self.json_output or self.no_tui or self.save_config)


def parse_arguments(argv: list[str] | None = None) -> ParsedArgs:
    """Parse command-line arguments.

    Args:
        argv: Arguments to parse (defaults to ``sys.argv[1:]``)

    Returns:
        Parsed arguments container
    """
    parser = argparse.ArgumentParser(
        prog="jellyfin-dedupe",
        description="Find duplicate movies on a Jellyfin server and check whether deleting one is safe",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  jellyfin-dedupe                         Start the TUI application
  jellyfin-dedupe --json > verdicts.json  Run one analysis and print JSON
  jellyfin-dedupe --no-tui                Run one analysis and print a summary
  jellyfin-dedupe --config ./config.json  Use a custom config file
        """
    )

    _ = parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}"
    )

    _ = parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to configuration file (default: ~/.config/jellyfin-dedupe/config.json)"
    )

    _ = parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=None,
        help="Set the logging level (default: from configuration, INFO)"
    )

    _ = parser.add_argument(
        "--log-dir",
        type=Path,
        default=None,
        help="Directory for log files (default: ./logs with the TUI, console only otherwise)"
    )

    output = parser.add_mutually_exclusive_group()
    _ = output.add_argument(
        "--json",
        dest="json_output",
        action="store_true",
        help="Run one analysis and print the verdicts as JSON"
    )
    _ = output.add_argument(
        "--no-tui",
        action="store_true",
        help="Run one analysis and print a human-readable summary"
    )

    _ = parser.add_argument(
        "--save-config",
        action="store_true",
        help="Write the effective configuration (file plus environment) to the config file and exit"
    )

    ns = parser.parse_args(argv)

    return ParsedArgs(
        config=ns.config,
        log_level=ns.log_level,
        log_dir=ns.log_dir,
        json_output=bool(ns.json_output),
        no_tui=bool(ns.no_tui),
        save_config=bool(ns.save_config),
    )


def setup_signal_handlers(context: ApplicationContext) -> None:
    """Set up a SIGTERM handler that shuts down like Ctrl+C.

    Args:
        context: Application context for shutdown coordination
    """
    def signal_handler(signum: int, frame: object) -> None:
        """Handle shutdown signals."""
        _ = frame
        log.info("Received signal", signal=signal.Signals(signum).name)
        context.request_shutdown()
        raise KeyboardInterrupt

    _ = signal.signal(signal.SIGTERM, signal_handler)
    log.debug("Signal handlers registered")


def format_json(result: AnalysisResult) -> str:
    """Render an analysis result as a JSON document."""
    return json.dumps(
        {
            "movies": len(result.movies),
            "users": len(result.users),
            "potential_duplicates": [v.to_dict() for v in result.potential_duplicates],
            "potential_mismatches": [v.to_dict() for v in result.potential_mismatches],
        },
        indent=2,
        ensure_ascii=False,
    )


def format_summary(result: AnalysisResult) -> str:
    """Render an analysis result as plain text for a terminal."""
    lines = [
        f"Movies: {len(result.movies)}  Users: {len(result.users)}",
        f"Potential duplicates: {len(result.potential_duplicates)}",
        f"Potential mismatches: {len(result.potential_mismatches)}",
    ]

    for verdict in result.potential_duplicates:
        a, b = verdict.movie_a, verdict.movie_b
        status = "safe to delete either copy" if verdict.has_identical_play_status else "play status differs"
        lines.append("")
        lines.append(f"{a.name} ({a.production_year}) - {verdict.similarity}% - {status}")
        lines.append(f"  {a.id}  {a.path}")
        lines.append(f"  {b.id}  {b.path}")
        for discrepancy in verdict.discrepancies:
            lines.append(
                f"  ! {discrepancy.user_name} has not played {discrepancy.movie_name} ({discrepancy.movie_to_update})"
            )

    if result.potential_mismatches:
        lines.append("")
        lines.append("Same name and year, different files:")
        for verdict in result.potential_mismatches:
            lines.append(
                f"  {verdict.movie_a.name} ({verdict.movie_a.production_year}) - {verdict.similarity}%: "
                f"{verdict.movie_a.path} | {verdict.movie_b.path}"
            )

    return "\n".join(lines)


async def run_once(context: ApplicationContext, json_output: bool) -> int:
    """Run one analysis and print the result.

    Returns:
        Exit code (0 for success, 1 for errors)
    """
    try:
        result = await context.analysis.run()
    except AppError as e:
        user_error = context.error_service.handle_error(e, operation="analysis", component="cli")
        print(context.error_service.create_user_message(user_error), file=sys.stderr)
        return 1
    finally:
        await context.cleanup()

    print(format_json(result) if json_output else format_summary(result))
    return 0


async def run_tui(context: ApplicationContext) -> int:
    """Run the TUI application.

    Args:
        context: Application context with initialized services

    Returns:
        Exit code (0 for success, non-zero for errors)
    """
    from jellyfin_dedupe.ui.app import DedupeApp

    log.info("Starting TUI application")

    try:
        app = DedupeApp(
            analysis_service=context.analysis,
            error_service=context.error_service,
            config=context.config,
        )
        await app.run_async()

        log.info("TUI application exited normally")
        return 0

    except Exception as e:
        log.error("TUI application error", error=str(e), exc_info=True)
        return 1
    finally:
        await context.cleanup()


def save_effective_config(context: ApplicationContext) -> int:
    """Persist the merged configuration and report where it went."""
    context.config_service.save_config(context.config)
    print(f"Configuration saved to {context.config_service.config_path}")
    return 0


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the application."""
    args = parse_arguments(argv)

    log_dir = args.log_dir
    if log_dir is None and args.interactive:
        log_dir = Path("logs")

    context = ApplicationContext(
        config_path=args.config,
        log_level=args.log_level,
        log_dir=log_dir,
        tui_mode=args.interactive,
    )

    setup_signal_handlers(context)

    try:
        _ = context.logging
        log.info(
            "Starting jellyfin-dedupe",
            version=__version__,
            config_path=str(context.config_service.config_path),
        )

        if args.save_config:
            exit_code = save_effective_config(context)
        elif args.interactive:
            exit_code = asyncio.run(run_tui(context))
        else:
            exit_code = asyncio.run(run_once(context, json_output=args.json_output))

    except KeyboardInterrupt:
        log.info("Application interrupted by user")
        exit_code = 130

    except AppError as e:
        error_service = ErrorHandlingService()
        user_error = error_service.handle_error(e, operation="startup", component="cli")
        print(error_service.create_user_message(user_error), file=sys.stderr)
        exit_code = 1

    except Exception as e:
        log.error("Unhandled exception", error=str(e), exc_info=True)
        print(f"Fatal error: {e}", file=sys.stderr)
        exit_code = 1

    log.info("Application exiting", exit_code=exit_code)
    sys.exit(exit_code)


if __name__ == "__main__":
    main()

"""Configuration service for managing application settings."""

import json
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

import structlog

from ..models import AppConfig
from .errors import ConfigurationError

log = structlog.stdlib.get_logger(__name__)

ENV_SERVER_URL = "JELLYFIN_URL"
ENV_API_KEY = "JELLYFIN_API_KEY"
ENV_ADMIN_USER_ID = "JELLYFIN_ADMIN_USER_ID"
ENV_ENVIRONMENT = "ENVIRONMENT"
ENV_LOG_LEVEL = "LOG_LEVEL"

VALID_ENVIRONMENTS = ("development", "production")
VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
VALID_LOG_FORMATS = ("console", "json")


class ValidationResult:
    """Result of configuration validation."""

    def __init__(self, is_valid: bool, errors: list[str] | None = None) -> None:
        self.is_valid: bool = is_valid
        self.errors: list[str] = errors or []


class ConfigurationService:
    """Loads settings from a JSON file with environment variable overrides.

    Environment variables win over the file, so credentials can stay out of
    the config file entirely.
    """

    def __init__(
        self,
        config_path: Path | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        self.config_path: Path = config_path or Path.home() / ".config" / "jellyfin-dedupe" / "config.json"
        self._environ: Mapping[str, str] = os.environ if environ is None else environ
        log.debug("Configuration service initialized", config_path=str(self.config_path))

    def load_config(self) -> AppConfig:
        """Load configuration from file and environment.

        Raises:
            ConfigurationError: If the file is malformed or the merged
                configuration is missing required settings
        """
        data: dict[str, Any] = {}
        if self.config_path.exists():
            try:
                with open(self.config_path, 'r', encoding='utf-8') as f:
                    loaded = json.load(f)
            except (json.JSONDecodeError, OSError) as e:
                log.error("Failed to read configuration file", path=str(self.config_path), error=str(e))
                raise ConfigurationError(
                    f"Could not read configuration file {self.config_path}",
                    setting="config_path",
                    current_value=str(e),
                ) from e
            if not isinstance(loaded, dict):
                raise ConfigurationError(
                    "Configuration file must contain a JSON object",
                    setting="config_path",
                    current_value=type(loaded).__name__,
                )
            data = loaded
            log.info("Configuration file loaded", path=str(self.config_path))
        else:
            log.info("Configuration file not found, using environment only", path=str(self.config_path))

        config = self._dict_to_config(self._apply_environment(data))
        validation_result = self.validate_config(config)
        if not validation_result.is_valid:
            log.error("Invalid configuration", errors=validation_result.errors)
            raise ConfigurationError(
                f"Invalid configuration: {'; '.join(validation_result.errors)}",
                expected="a reachable server URL, an API key and an admin user ID",
            )

        log.info("Configuration loaded successfully", environment=config.environment, server_url=config.server_url)
        return config

    def save_config(self, config: AppConfig) -> None:
        """Save configuration to file."""
        validation_result = self.validate_config(config)
        if not validation_result.is_valid:
            raise ValueError(f"Invalid configuration: {', '.join(validation_result.errors)}")

        self.config_path.parent.mkdir(parents=True, exist_ok=True)

        try:
            with open(self.config_path, 'w', encoding='utf-8') as f:
                json.dump(self._config_to_dict(config), f, indent=2, ensure_ascii=False)

            log.info("Configuration saved successfully", path=str(self.config_path))

        except OSError as e:
            log.error("Failed to save configuration", error=str(e))
            raise

    def validate_config(self, config: AppConfig) -> ValidationResult:
        """Validate configuration settings."""
        errors = []

        if not config.server_url:
            errors.append(f"server_url is required (or set {ENV_SERVER_URL})")
        else:
            parsed = urlparse(config.server_url)
            if parsed.scheme not in ("http", "https") or not parsed.netloc:
                errors.append("server_url must be an http(s) URL")

        if not config.api_key:
            errors.append(f"api_key is required (or set {ENV_API_KEY})")

        if not config.admin_user_id:
            errors.append(f"admin_user_id is required (or set {ENV_ADMIN_USER_ID})")

        if config.environment not in VALID_ENVIRONMENTS:
            errors.append(f"environment must be one of: {', '.join(VALID_ENVIRONMENTS)}")

        if config.log_level not in VALID_LOG_LEVELS:
            errors.append(f"log_level must be one of: {', '.join(VALID_LOG_LEVELS)}")

        if config.log_format not in VALID_LOG_FORMATS:
            errors.append(f"log_format must be one of: {', '.join(VALID_LOG_FORMATS)}")

        if not isinstance(config.request_timeout, (int, float)) or config.request_timeout <= 0:
            errors.append("request_timeout must be a positive number")
        elif config.request_timeout > 600:
            errors.append("request_timeout should not exceed 600 seconds")

        if not isinstance(config.max_retries, int) or config.max_retries < 0:
            errors.append("max_retries must be a non-negative integer")
        elif config.max_retries > 10:
            errors.append("max_retries should not exceed 10")

        return ValidationResult(len(errors) == 0, errors)

    def _apply_environment(self, data: dict[str, Any]) -> dict[str, Any]:
        """Overlay environment variables on file settings."""
        merged = dict(data)
        overrides = {
            "server_url": ENV_SERVER_URL,
            "api_key": ENV_API_KEY,
            "admin_user_id": ENV_ADMIN_USER_ID,
            "environment": ENV_ENVIRONMENT,
            "log_level": ENV_LOG_LEVEL,
        }
        for key, env_name in overrides.items():
            value = self._environ.get(env_name)
            if value:
                merged[key] = value
        return merged

    def _config_to_dict(self, config: AppConfig) -> dict[str, str | int | float | bool]:
        """Convert AppConfig to dictionary for JSON serialization."""
        return {
            "server_url": config.server_url,
            "api_key": config.api_key,
            "admin_user_id": config.admin_user_id,
            "environment": config.environment,
            "log_level": config.log_level,
            "log_format": config.log_format,
            "request_timeout": config.request_timeout,
            "max_retries": config.max_retries,
            "verify_ssl": config.verify_ssl,
        }

    def _dict_to_config(self, data: dict[str, Any]) -> AppConfig:
        """Convert dictionary to AppConfig."""
        timeout_raw = data.get("request_timeout", 30.0)
        retries_raw = data.get("max_retries", 3)
        verify_raw = data.get("verify_ssl", True)

        return AppConfig(
            server_url=str(data.get("server_url") or "").rstrip("/"),
            api_key=str(data.get("api_key") or ""),
            admin_user_id=str(data.get("admin_user_id") or ""),
            environment=str(data.get("environment") or "development").lower(),
            log_level=str(data.get("log_level") or "INFO").upper(),
            log_format=str(data.get("log_format") or "console").lower(),
            request_timeout=float(timeout_raw) if isinstance(timeout_raw, (int, float)) else 30.0,
            max_retries=int(retries_raw) if isinstance(retries_raw, int) else 3,
            verify_ssl=verify_raw if isinstance(verify_raw, bool) else True,
        )

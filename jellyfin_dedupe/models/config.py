"""Configuration data models."""

from dataclasses import dataclass


@dataclass(frozen=True)
class AppConfig:
    """Application configuration settings."""
    server_url: str
    api_key: str
    admin_user_id: str
    environment: str = "development"  # development | production
    log_level: str = "INFO"
    log_format: str = "console"  # console | json
    request_timeout: float = 30.0
    max_retries: int = 3
    verify_ssl: bool = True

"""Configuration management using pydantic-settings.

Configuration Sources (in order of precedence):
    1. Direct instantiation parameters
    2. Environment variables (prefixed with DEBTCHAT_)
    3. .env file in project root

Available Settings:
    - Model Configuration: model, api_key
    - Tool Execution: max_tool_iterations
    - Timeouts: request_timeout, max_request_timeout, treasury_timeout
    - Retry Behavior: retry_max_attempts, retry_min_wait, retry_max_wait, retry_multiplier
    - Treasury API: treasury_base_url
    - Logging: log_level, log_file_level, log_dir, log_file_name, log_json_format, log_max_bytes, log_backup_count
    - Tracing: enable_tracing, otel_exporter_endpoint, otel_service_name

The provider API key may also be supplied through the provider's own variable
(e.g. ANTHROPIC_API_KEY), which the LLM client library reads directly.

Example:
    >>> from debtchat.config import settings, reload_settings
    >>>
    >>> print(settings.model)
    'anthropic:claude-sonnet-4-5'
    >>>
    >>> # Reload after changing .env
    >>> settings = reload_settings()
"""

from pathlib import Path
from typing import Annotated

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Find the project root (where .env file is located)
_project_root = Path(__file__).parent.parent
_env_file = _project_root / ".env"


class DebtChatSettings(BaseSettings):
    """Global settings for DebtChat.

    Configuration values can be set via:
    1. Environment variables (e.g., DEBTCHAT_MODEL)
    2. .env file in the project root
    3. Direct instantiation with parameters
    """

    model_config = SettingsConfigDict(
        env_prefix="DEBTCHAT_",
        env_file=_env_file,
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Chat backend settings ("provider:model_name")
    model: str = "anthropic:claude-sonnet-4-5"
    api_key: str | None = None

    # Tool execution settings
    max_tool_iterations: Annotated[int, Field(gt=0)] = 10

    # Timeouts (seconds)
    request_timeout: Annotated[float, Field(gt=0)] = 60.0
    max_request_timeout: Annotated[float, Field(gt=0)] = 300.0
    treasury_timeout: Annotated[float, Field(gt=0)] = 30.0

    # Retry settings
    retry_max_attempts: Annotated[int, Field(gt=0)] = 3
    retry_min_wait: Annotated[int, Field(ge=0)] = 2
    retry_max_wait: Annotated[int, Field(ge=0)] = 30
    retry_multiplier: Annotated[int, Field(ge=0)] = 1

    # Treasury Fiscal Data API
    treasury_base_url: str = "https://api.fiscaldata.treasury.gov"

    # Logging settings
    log_level: str = "WARNING"
    log_file_level: str = "DEBUG"
    log_dir: Path | None = None  # None means use default 'logs' directory
    log_file_name: str = "debtchat.log"
    log_json_format: bool = False
    log_max_bytes: int = 10485760  # 10MB
    log_backup_count: int = 5

    # OpenTelemetry tracing settings
    enable_tracing: bool = False
    otel_exporter_endpoint: str | None = None
    otel_service_name: str = "debtchat"


# Global settings instance
settings = DebtChatSettings()


def get_settings() -> DebtChatSettings:
    """Get the global settings instance.

    Returns:
        DebtChatSettings: The global settings instance
    """
    return settings


def reload_settings() -> DebtChatSettings:
    """Reload settings from environment and .env file.

    Returns:
        DebtChatSettings: A new settings instance
    """
    global settings
    settings = DebtChatSettings()
    return settings

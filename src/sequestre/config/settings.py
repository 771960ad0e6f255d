"""
Application settings with environment-based configuration.

Priority (highest to lowest):
1. Environment variables (from .env or system)
2. Environment-specific YAML config file (development.yaml, production.yaml)
3. Default YAML config file (default.yaml)
4. Pydantic defaults
"""

import os
from pathlib import Path
from typing import List, Optional

import yaml
from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings with environment variable support.

    Private keys, RPC URLs and the admin token must come from environment
    variables, never from YAML files. Missing ledger settings do not fail
    startup: the affected network runs with unconfigured adapters.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="allow",
    )

    # Application
    APP_NAME: str = "Sequestre"
    APP_VERSION: str = "0.1.0"
    ENV: str = Field(default="development", description="Environment name")
    DEBUG: bool = Field(default=False, description="Debug mode")

    # API Server
    API_HOST: str = Field(default="0.0.0.0")
    API_PORT: int = Field(default=8000, ge=1024, le=65535)
    API_RELOAD: bool = Field(default=False)

    # CORS Configuration
    CORS_ORIGINS: List[str] = Field(
        default=["http://localhost:3000"],
        description="Allowed CORS origins",
    )

    # Database
    DATABASE_URL: str = Field(
        default="sqlite+aiosqlite:///./sequestre.db",
        description="Database connection URL",
    )
    DATABASE_ECHO: bool = Field(default=False)

    # Redis (idempotency cache)
    REDIS_ENABLED: bool = Field(default=False)
    REDIS_HOST: str = Field(default="localhost")
    REDIS_PORT: int = Field(default=6379, ge=1024, le=65535)
    REDIS_DB: int = Field(default=0, ge=0, le=15)
    REDIS_PASSWORD: Optional[str] = Field(default=None)

    # Ledger networks (from environment)
    ETH_RPC_URL: Optional[str] = Field(default=None, description="Ethereum RPC")
    POLYGON_RPC_URL: Optional[str] = Field(default=None, description="Polygon RPC")
    BSC_RPC_URL: Optional[str] = Field(default=None, description="BSC RPC")
    MILESTONE_ESCROW_ADDRESS_ETH: Optional[str] = Field(
        default=None,
        description="MilestoneEscrow contract on Ethereum",
    )
    MILESTONE_ESCROW_ADDRESS_POLYGON: Optional[str] = Field(
        default=None,
        description="MilestoneEscrow contract on Polygon",
    )

    # Signing keys (from environment)
    FUNDER_PRIVATE_KEY: Optional[str] = Field(
        default=None,
        description="Key funding escrows created through the API",
    )
    ADMIN_PRIVATE_KEY: Optional[str] = Field(
        default=None,
        description="Escrow admin key authorized to release milestones",
    )
    TREASURY_PRIVATE_KEY: Optional[str] = Field(
        default=None,
        description="Key sending stablecoin transfers and approvals",
    )

    # Admin API gate
    ADMIN_API_TOKEN: Optional[str] = Field(
        default=None,
        description="Static token required in X-Admin-Token for admin routes",
    )

    # Ledger transactions
    TX_RECEIPT_TIMEOUT: float = Field(
        default=120.0,
        gt=0,
        description="Seconds to wait for a transaction receipt",
    )
    RPC_REQUEST_TIMEOUT: float = Field(
        default=30.0,
        gt=0,
        description="JSON-RPC request timeout in seconds",
    )

    # Logging
    LOG_LEVEL: str = Field(default="INFO")
    LOG_JSON: bool = Field(default=True, description="Emit JSON log lines")

    # Resilience - Circuit Breaker
    CB_FAILURE_THRESHOLD: int = Field(
        default=5,
        description="Circuit breaker failure threshold",
    )
    CB_SUCCESS_THRESHOLD: int = Field(
        default=2,
        description="Circuit breaker success threshold for half-open",
    )
    CB_TIMEOUT_SECONDS: float = Field(
        default=60.0,
        description="Circuit breaker open state timeout",
    )

    # Resilience - Retry (ledger reads only)
    RETRY_MAX_ATTEMPTS: int = Field(
        default=3,
        ge=1,
        description="Maximum attempts for ledger reads",
    )
    RETRY_INITIAL_DELAY: float = Field(
        default=1.0,
        description="Initial retry delay in seconds",
    )
    RETRY_MAX_DELAY: float = Field(
        default=10.0,
        description="Maximum retry delay in seconds",
    )
    RETRY_EXPONENTIAL_BASE: float = Field(
        default=2.0,
        description="Exponential backoff base multiplier",
    )

    # Resilience - Idempotency
    IDEMPOTENCY_ENABLED: bool = Field(
        default=True,
        description="Cache escrow creation results by idempotency key",
    )
    IDEMPOTENCY_TTL_SECONDS: int = Field(
        default=86400,
        description="Idempotency key TTL (24 hours default)",
    )

    # Mirror sync worker
    MIRROR_SYNC_ENABLED: bool = Field(
        default=False,
        description="Periodically reconcile mirror rows from ledger state",
    )
    MIRROR_SYNC_INTERVAL_SECONDS: float = Field(
        default=300.0,
        gt=0,
        description="Seconds between mirror sync passes",
    )

    # Observability - Metrics
    METRICS_ENABLED: bool = Field(
        default=True,
        description="Expose Prometheus metrics on /api/metrics",
    )

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        allowed = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in allowed:
            raise ValueError(f"Invalid LOG_LEVEL. Must be one of: {allowed}")
        return v_upper

    @field_validator(
        "ETH_RPC_URL",
        "POLYGON_RPC_URL",
        "BSC_RPC_URL",
        "MILESTONE_ESCROW_ADDRESS_ETH",
        "MILESTONE_ESCROW_ADDRESS_POLYGON",
        "FUNDER_PRIVATE_KEY",
        "ADMIN_PRIVATE_KEY",
        "TREASURY_PRIVATE_KEY",
        "ADMIN_API_TOKEN",
    )
    @classmethod
    def blank_as_none(cls, v: Optional[str]) -> Optional[str]:
        """Treat empty strings from .env files as unset."""
        if v is None:
            return None
        v = v.strip()
        return v or None


def load_config(
    config_file: Optional[str] = None,
    env_file: Optional[str] = None,
    env: Optional[str] = None,
) -> Settings:
    """
    Load configuration from YAML files and environment variables.

    Priority: ENV vars > environment-specific YAML > default YAML > defaults

    Args:
        config_file: Optional YAML config filename override
        env_file: Optional .env filename (e.g., ".env.development")
        env: Optional environment name override (e.g., "development", "test")

    Returns:
        Settings instance

    Raises:
        ValidationError: If a field fails validation
    """
    current_file = Path(__file__).resolve()
    project_root = current_file.parent.parent.parent.parent
    config_dir = project_root / "config"

    environment = env or os.getenv("ENV", "production")

    env_map = {
        "production": (".env.production", "production.yaml"),
        "development": (".env.development", "development.yaml"),
        "test": (".env.test", "test.yaml"),
    }

    if env_file is None:
        default_env_file, default_config_file = env_map.get(
            environment, (".env.production", "production.yaml")
        )
        env_file = default_env_file
        if config_file is None:
            config_file = default_config_file

    env_file_path = project_root / env_file
    if env_file_path.exists():
        load_dotenv(env_file_path, override=True)

    default_config_path = config_dir / "default.yaml"
    merged_config = {}

    if default_config_path.exists():
        with open(default_config_path, "r") as f:
            loaded = yaml.safe_load(f)
            if loaded:
                merged_config = loaded

    if config_file:
        env_config_path = config_dir / config_file
        if env_config_path.exists():
            with open(env_config_path, "r") as f:
                loaded = yaml.safe_load(f)
                if loaded:
                    merged_config.update(loaded)

    # Environment variables win over YAML values
    for key in list(merged_config):
        if key in os.environ:
            merged_config.pop(key)

    return Settings(**merged_config)


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get or initialize global settings singleton."""
    global _settings
    if _settings is None:
        _settings = load_config()
    return _settings


def override_settings(new_settings: Settings) -> None:
    """Override global settings (for testing)."""
    global _settings
    _settings = new_settings


def reset_settings() -> None:
    """Reset settings to force re-initialization (for testing)."""
    global _settings
    _settings = None

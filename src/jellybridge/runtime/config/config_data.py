"""Pydantic models for parsing the config.yaml configuration file.

This module contains Pydantic models that correspond to the structure of config.yaml.
These models handle validation and type conversion of the YAML configuration data.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field, computed_field


class LoggingConfig(BaseModel):
    """Logging configuration model."""

    level: str = Field(default="INFO", description="Logging level")
    format: Literal["json", "plain"] = Field(default="plain", description="Log format")
    file: str | None = Field(default=None, description="Log file path (disabled when empty)")
    max_size_mb: int = Field(default=10, description="Maximum log file size in MB")
    backup_count: int = Field(
        default=5, description="Number of backup log files to keep"
    )


class DatabaseConfig(BaseModel):
    """Database configuration model."""

    url: str = Field(
        default="sqlite:///./jellybridge.db",
        description="Database connection URL",
    )
    pool_size: int = Field(default=5, description="Connection pool size")
    max_overflow: int = Field(default=10, description="Maximum pool overflow")
    pool_timeout: int = Field(default=30, description="Pool timeout in seconds")
    pool_recycle: int = Field(default=1800, description="Pool recycle time in seconds")
    echo: bool = Field(default=False, description="Echo SQL statements")

    @computed_field
    @property
    def is_sqlite(self) -> bool:
        return self.url.startswith("sqlite")


class RedisConfig(BaseModel):
    """Redis configuration model.

    Redis is only used to serialise concurrent first logins across processes.
    """

    enabled: bool = Field(default=False, description="Enable Redis service")
    url: str = Field(default="", description="Redis connection URL")
    password: str | None = Field(
        default=None, description="Password for Redis authentication"
    )
    socket_timeout: float = Field(default=5.0, description="Socket timeout in seconds")
    login_lock_timeout_s: float = Field(
        default=30.0, description="Lifetime of a per-email login lock"
    )
    login_lock_wait_s: float = Field(
        default=10.0, description="How long a login waits for the per-email lock"
    )

    @computed_field
    @property
    def connection_string(self) -> str:
        """Construct the Redis connection string with password if provided."""
        if self.password:
            if "@" in self.url:
                # URL already has auth info
                return self.url
            parts = self.url.split("://", 1)
            if len(parts) == 2:
                scheme, rest = parts
                return f"{scheme}://:{self.password}@{rest}"
        return self.url


class RetryConfig(BaseModel):
    """Temporal retry policy settings."""

    maximum_attempts: int = Field(default=3)
    initial_interval_seconds: float = Field(default=1.0)
    backoff_coefficient: float = Field(default=2.0)
    maximum_interval_seconds: float = Field(default=60.0)


class TemporalWorkflowsConfig(BaseModel):
    """Default timeouts applied when starting workflows."""

    execution_timeout_s: int = Field(default=3600)
    run_timeout_s: int = Field(default=1800)
    task_timeout_s: int = Field(default=10)
    retry: RetryConfig = Field(default_factory=lambda: RetryConfig(maximum_attempts=1))


class TemporalActivitiesConfig(BaseModel):
    """Default timeouts applied when executing activities."""

    start_to_close_timeout_s: int = Field(default=900)
    schedule_to_close_timeout_s: int = Field(default=1800)
    retry: RetryConfig = Field(default_factory=RetryConfig)


class TemporalConfig(BaseModel):
    """Temporal configuration model."""

    enabled: bool = Field(default=False, description="Enable temporal service")
    url: str = Field(default="temporal:7233", description="Temporal server url")
    namespace: str = Field(default="default", description="Temporal namespace")
    task_queue: str = Field(default="lifecycle", description="Temporal task queue name")
    tls: bool = Field(default=False, description="Connect using TLS")
    workflows: TemporalWorkflowsConfig = Field(default_factory=TemporalWorkflowsConfig)
    activities: TemporalActivitiesConfig = Field(default_factory=TemporalActivitiesConfig)


class DownstreamConfig(BaseModel):
    """Downstream media server (Jellyfin) connection settings."""

    url: str = Field(default="http://localhost:8096", description="Base URL of the media server")
    api_key: str = Field(default="", description="Privileged service API key")
    timeout_s: float = Field(default=10.0, description="Per-request timeout in seconds")
    client_name: str = Field(default="JellyBridge", description="Client name sent in auth headers")
    device_name: str = Field(default="JellyBridge Server", description="Device name sent in auth headers")
    device_id: str = Field(default="jellybridge-1", description="Device id sent in auth headers")
    client_version: str = Field(default="1.0.0", description="Client version sent in auth headers")
    username_max_length: int = Field(default=32, description="Downstream username length ceiling")
    default_authentication_provider_id: str = Field(
        default="Jellyfin.Server.Implementations.Users.DefaultAuthenticationProvider"
    )
    default_password_reset_provider_id: str = Field(
        default="Jellyfin.Server.Implementations.Users.DefaultPasswordResetProvider"
    )

    @computed_field
    @property
    def base_url(self) -> str:
        """Base URL with a scheme, defaulting to plain http."""
        url = self.url.rstrip("/")
        if not url.startswith(("http://", "https://")):
            return f"http://{url}"
        return url


class IdentityConfig(BaseModel):
    """How verified IdP claims are read and reconciled."""

    provider_name: str = Field(default="oidc", description="Name recorded for the external provider")
    group_claims: list[str] = Field(
        default_factory=lambda: ["groups", "roles", "realm_access.roles"],
        description="Candidate claim names for group membership, tried in order",
    )
    name_claims: list[str] = Field(
        default_factory=lambda: ["preferred_username", "name"],
        description="Candidate claim names for the preferred downstream username",
    )
    recreate_missing_accounts: bool = Field(
        default=True,
        description="Recreate a downstream account that disappeared since the last login",
    )


class VaultConfig(BaseModel):
    """Credential vault settings."""

    secret_length: int = Field(default=32, description="Length of generated shadow passwords")


class BridgeConfig(BaseModel):
    """Pairing-code approval settings."""

    allow_unattributed_approval: bool = Field(
        default=True,
        description="Allow the final bare privileged approval strategy",
    )


class LifecycleConfig(BaseModel):
    """Account expiry sweep settings."""

    enabled: bool = Field(default=True, description="Run the in-process expiry scheduler")
    interval_seconds: int = Field(default=3600, description="Seconds between sweeps")
    warn_window_days: int = Field(default=7, description="Days before expiry to warn")
    run_on_startup: bool = Field(default=True, description="Sweep immediately on start")


class AppConfig(BaseModel):
    """Application configuration model."""

    environment: Literal["development", "production", "test"] = Field(
        default="development", description="Application environment"
    )
    host: str = Field(default="localhost", description="Application host")
    port: int = Field(default=8000, description="Application port")
    internal_api_token: str | None = Field(
        default=None, description="Shared token required on internal routes"
    )


class ConfigData(BaseModel):
    """Root configuration model that matches the config.yaml structure."""

    app: AppConfig = Field(
        default_factory=AppConfig, description="Application configuration"
    )
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig, description="Logging configuration"
    )
    database: DatabaseConfig = Field(
        default_factory=DatabaseConfig, description="Database configuration"
    )
    redis: RedisConfig = Field(
        default_factory=RedisConfig, description="Redis configuration"
    )
    temporal: TemporalConfig = Field(
        default_factory=TemporalConfig, description="Temporal configuration"
    )
    downstream: DownstreamConfig = Field(
        default_factory=DownstreamConfig, description="Media server configuration"
    )
    identity: IdentityConfig = Field(
        default_factory=IdentityConfig, description="Identity reconciliation configuration"
    )
    vault: VaultConfig = Field(
        default_factory=VaultConfig, description="Credential vault configuration"
    )
    bridge: BridgeConfig = Field(
        default_factory=BridgeConfig, description="Pairing approval configuration"
    )
    lifecycle: LifecycleConfig = Field(
        default_factory=LifecycleConfig, description="Account lifecycle configuration"
    )

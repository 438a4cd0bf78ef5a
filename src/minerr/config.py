"""Minerr configuration using pydantic-settings.

Configuration hierarchy:
- DockerConfig: Container runtime connection settings
- RuntimeConfig: Game server image, port and environment defaults
- LogStreamConfig: Log tail polling behavior
- AuthConfig: Bearer token verification
- ServerConfig: HTTP server settings
- LoggingConfig: Logging behavior
- MinerrConfig: Main config aggregating all sub-configs

Environment variable prefix: MINERR_
Example: MINERR_DOCKER_HOST=tcp://127.0.0.1:2375
"""

from functools import lru_cache

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class DockerConfig(BaseSettings):
    """Docker runtime connection configuration."""

    model_config = SettingsConfigDict(env_prefix="MINERR_DOCKER_")

    host: str = Field(
        default="unix:///var/run/docker.sock",
        description="Docker daemon socket or TCP address",
    )

    # Timeouts
    api_timeout: float = Field(default=30.0, description="Docker API call timeout (seconds)")
    image_pull_timeout: float = Field(default=600.0, description="Image pull timeout (seconds)")
    exec_timeout: float = Field(
        default=120.0,
        description="Maximum time a console command may run (seconds)",
    )


class RuntimeConfig(BaseSettings):
    """Game server runtime configuration.

    Defines the image family, naming conventions and the fixed parts of
    the server environment.
    """

    model_config = SettingsConfigDict(env_prefix="MINERR_RUNTIME_")

    # Image
    image_repository: str = Field(
        default="itzg/minecraft-server",
        description="Image repository of the managed image family",
    )
    default_tag: str = Field(
        default="java21",
        description="Tag used for versions missing from the version table",
    )

    # Networking
    container_port: int = Field(default=25565, description="Game port inside the container")

    # Resource naming
    resource_prefix: str = Field(default="minerr-", description="Container name prefix")
    managed_label: str = Field(default="minerr.managed", description="Label set on managed containers")

    # Environment
    memory_unit: str = Field(default="M", description="Suffix appended to the memory limit")
    handshake_timeout: int = Field(
        default=120,
        description="Seconds a handshake-only connection keeps a paused server awake",
    )
    auto_pause: bool = Field(default=True, description="Suspend the server when idle")

    # Console
    console_command: str = Field(
        default="rcon-cli",
        description="Entry point used to run console commands inside the container",
    )
    command_history: int = Field(
        default=256,
        description="Number of dispatched commands kept for status queries",
    )


class LogStreamConfig(BaseSettings):
    """Log tail polling configuration."""

    model_config = SettingsConfigDict(env_prefix="MINERR_LOGS_")

    poll_interval: float = Field(default=0.1, description="Seconds between log fetches")
    tail_lines: int = Field(
        default=100,
        description="Lines fetched per poll once the subscriber has seen output",
    )


class AuthConfig(BaseSettings):
    """Bearer token verification configuration.

    The signing secret must be provided explicitly; there is no derived
    or generated fallback.
    """

    model_config = SettingsConfigDict(env_prefix="MINERR_AUTH_")

    jwt_secret: SecretStr = Field(default=SecretStr(""), description="HMAC secret for access tokens")
    jwt_algorithm: str = Field(default="HS256", description="JWT signing algorithm")


class LoggingConfig(BaseSettings):
    """Logging configuration.

    Supports both text and JSON formats for different environments:
    - text: Human-readable for local development
    - json: Structured logging for production (log aggregation)
    """

    model_config = SettingsConfigDict(env_prefix="MINERR_LOGGING_")

    level: str = Field(default="INFO", description="Log level (DEBUG, INFO, WARNING, ERROR)")
    format: str = Field(default="text", description="Log format (text, json)")
    service_name: str = Field(default="minerr", description="Service identifier in logs")
    rate_limit_seconds: float = Field(
        default=5.0, description="Window in which repeated warnings per event and server are dropped"
    )
    rate_limit_cache: int = Field(default=1000, description="Distinct keys tracked by the rate limiter")


class ServerConfig(BaseSettings):
    """HTTP server configuration."""

    model_config = SettingsConfigDict(env_prefix="MINERR_SERVER_")

    host: str = Field(default="0.0.0.0", description="Server bind address")
    port: int = Field(default=3000, description="Server port")
    cors_origins: list[str] = Field(
        default=["*"],
        description="Allowed CORS origins",
    )


class MinerrConfig(BaseSettings):
    """Main configuration aggregating all sub-configs.

    Environment variable prefix: MINERR_
    Sub-configs use their own prefixes (MINERR_DOCKER_, MINERR_RUNTIME_, etc.)
    """

    model_config = SettingsConfigDict(
        env_prefix="MINERR_",
        env_nested_delimiter="__",
    )

    docker: DockerConfig = Field(default_factory=DockerConfig)
    runtime: RuntimeConfig = Field(default_factory=RuntimeConfig)
    logs: LogStreamConfig = Field(default_factory=LogStreamConfig)
    auth: AuthConfig = Field(default_factory=AuthConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)


@lru_cache
def get_config() -> MinerrConfig:
    """Get cached configuration singleton."""
    return MinerrConfig()

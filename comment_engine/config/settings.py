"""Application settings using Pydantic Settings."""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Comment engine settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="comment-engine", description="Application name")
    app_version: str = Field(default="0.1.0", description="Application version")
    environment: Literal["development", "staging", "production", "testing"] = Field(
        default="development", description="Environment name"
    )
    debug: bool = Field(default=True, description="Debug mode")

    # API Server
    api_host: str = Field(default="0.0.0.0", description="API host")
    api_port: int = Field(default=8000, description="API port")
    api_prefix: str = Field(default="/api", description="Prefix for API routes")

    # Authentication (tokens are issued by the external session service)
    auth_secret_key: str = Field(
        default="dev-jwt-secret-key-change-in-production-32chars!",
        description="JWT signing key (min 32 chars)",
    )
    auth_algorithm: str = Field(default="HS256", description="JWT algorithm")
    auth_access_token_expire_minutes: int = Field(
        default=15, description="Access token expiration (minutes)"
    )

    # Storage
    storage_backend: Literal["cassandra", "memory"] = Field(
        default="cassandra", description="Repository backend"
    )

    # Cassandra
    cassandra_hosts: list[str] = Field(
        default=["localhost"], description="Cassandra hosts"
    )
    cassandra_port: int = Field(default=9042, description="Cassandra port")
    cassandra_keyspace: str = Field(
        default="comment_engine", description="Cassandra keyspace"
    )
    cassandra_username: str | None = Field(default=None, description="Cassandra user")
    cassandra_password: str | None = Field(
        default=None, description="Cassandra password"
    )
    cassandra_protocol_version: int = Field(default=4, description="Protocol version")
    cassandra_connect_timeout: float = Field(
        default=10.0, description="Connect timeout"
    )

    # Redis (optional; rate limiting and duplicate detection)
    redis_url: str | None = Field(
        default="redis://localhost:6379/0",
        description="Redis connection URL (empty to disable)",
    )
    redis_max_connections: int = Field(default=10, description="Max Redis connections")
    redis_socket_timeout: float = Field(default=5.0, description="Redis socket timeout")

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Log level"
    )
    log_format: Literal["json", "console"] = Field(
        default="console", description="Log format"
    )
    log_include_caller_info: bool = Field(
        default=False, description="Include caller info"
    )
    log_dir: str | None = Field(
        default=None, description="Directory for rotating log files (unset disables)"
    )
    log_file_max_bytes: int = Field(
        default=10 * 1024 * 1024, description="Max size per log file (10MB default)"
    )
    log_file_backup_count: int = Field(
        default=5, description="Number of backup log files to keep"
    )
    log_requests: bool = Field(
        default=True, description="Log HTTP request start/finish"
    )
    log_exclude_paths: list[str] = Field(
        default=["/health"],
        description="Path prefixes to exclude from request logging",
    )

    # CORS
    cors_origins: list[str] = Field(default=["*"], description="CORS origins")

    # Comment policy
    comment_max_length: int = Field(default=10000, description="Max comment length")
    comment_default_status: Literal["pending", "published"] = Field(
        default="published",
        description="Status of new comments ('pending' enables pre-moderation)",
    )
    comments_per_minute: int = Field(default=10, description="Comments per minute")
    comments_per_hour: int = Field(default=100, description="Comments per hour")

    # Moderation scoring
    moderation_report_weight: int = Field(
        default=20, description="Risk points per report"
    )
    moderation_flag_weight: int = Field(
        default=30, description="Risk points for an existing flag"
    )
    moderation_auto_threshold: int = Field(
        default=50, description="Auto-moderation flags scores above this value"
    )

    # Client
    client_base_url: str = Field(
        default="http://localhost:8000/api", description="Comment API base URL"
    )
    client_page_size: int = Field(default=20, description="Comments per load")
    client_timeout_seconds: float = Field(default=10.0, description="HTTP timeout")
    client_refresh_interval_seconds: float = Field(
        default=30.0, description="Interval of periodic count refresh"
    )

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment == "production"

    @property
    def redis_configured(self) -> bool:
        """Check if a Redis URL is set."""
        return bool(self.redis_url)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()

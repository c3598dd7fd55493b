"""
Application configuration using Pydantic Settings.
Loads configuration from environment variables with validation.
"""
from typing import List
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Environment
    environment: str = Field(default="development", description="Environment: development, staging, production")
    debug: bool = Field(default=False, description="Debug mode")

    # Database
    database_url: str = Field(
        default="sqlite+aiosqlite:///./offgrid.db",
        description="Async database connection URL (postgresql+asyncpg in production)"
    )
    database_url_sync: str = Field(
        default="sqlite:///./offgrid.db",
        description="Sync database connection URL for Alembic"
    )

    # Redis (optional Socket.IO fan-out across workers)
    redis_url: str = Field(default="", description="Redis connection URL for the Socket.IO manager")

    # Auth provider
    auth_jwt_secret: str = Field(
        default="change-me-in-production-change-me-in-production",
        min_length=32,
        description="Secret used by the auth provider to sign access tokens"
    )
    auth_jwt_algorithm: str = Field(default="HS256", description="JWT algorithm")
    auth_jwt_audience: str = Field(default="authenticated", description="Expected JWT audience")
    jwt_expiration_hours: int = Field(default=24, description="Lifetime of locally minted tokens (tests, tooling)")

    # CORS
    allowed_origins: str = Field(
        default="http://localhost:3000",
        description="Comma-separated list of allowed CORS origins"
    )

    # Alibaba Cloud OSS
    oss_access_key_id: str = Field(default="", description="Alibaba Cloud OSS Access Key ID")
    oss_access_key_secret: str = Field(default="", description="Alibaba Cloud OSS Access Key Secret")
    oss_bucket_name: str = Field(default="offgrid", description="OSS bucket name")
    oss_endpoint: str = Field(default="oss-cn-hangzhou.aliyuncs.com", description="OSS endpoint")

    # Uploads
    max_avatar_size: int = Field(default=5 * 1024 * 1024, description="Max avatar size in bytes (5MB)")
    max_chat_file_size: int = Field(default=10 * 1024 * 1024, description="Max chat attachment size in bytes (10MB)")
    avatar_types: str = Field(
        default="image/jpeg,image/jpg,image/png,image/webp,image/gif",
        description="Comma-separated list of allowed avatar MIME types"
    )

    # Messaging rules
    message_edit_window_seconds: int = Field(default=300, description="How long a text message stays editable")
    ephemeral_duration_minutes: int = Field(default=15, description="Default lifetime of ephemeral images")
    typing_timeout_seconds: float = Field(default=3.0, description="Inactivity before a typing signal is cleared")

    # Rate Limiting
    rate_limit_messages: str = Field(default="30/minute", description="Message send rate limit per client")
    rate_limit_friend_requests: str = Field(default="20/minute", description="Friend request rate limit per client")

    # WebSocket
    ws_heartbeat_interval: int = Field(default=30, description="WebSocket heartbeat interval in seconds")

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")

    def get_allowed_origins_list(self) -> List[str]:
        """Parse comma-separated CORS origins into a list."""
        return [origin.strip() for origin in self.allowed_origins.split(",") if origin.strip()]

    def get_avatar_types_list(self) -> List[str]:
        """Parse comma-separated avatar MIME types into a list."""
        return [mime.strip() for mime in self.avatar_types.split(",") if mime.strip()]


# Global settings instance
settings = Settings()

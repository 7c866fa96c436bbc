"""Configuration Settings for MultiAuth Service

Manages environment variables and application configuration.
"""

from functools import lru_cache
from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    """Application settings"""

    # Service info
    service_name: str = "multiauth-service"
    service_version: str = "1.0.0"
    environment: str = "development"

    # Server configuration
    host: str = "0.0.0.0"
    port: int = 8000
    debug: bool = False

    # Installation base path (cookie scope, module URLs)
    base_path: str = "/"
    language_default: str = "en"

    # Authentication sources (YAML, one top-level key per source id)
    authsources_path: str = "config/authsources.yml"

    # Storage backend for continuation state and sessions: redis or memory
    store_backend: str = "redis"

    # Redis configuration
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_db: int = 0
    redis_password: Optional[str] = None

    @property
    def redis_url(self) -> str:
        """Construct Redis URL from components"""
        if self.redis_password:
            return f"redis://:{self.redis_password}@{self.redis_host}:{self.redis_port}/{self.redis_db}"
        return f"redis://{self.redis_host}:{self.redis_port}/{self.redis_db}"

    # Continuation state (saved across the selection redirect)
    state_ttl_seconds: int = 900  # 15 minutes

    # Sessions
    session_cookie_name: str = "multiauth_session"
    session_duration_seconds: int = 8 * 60 * 60  # 8 hours
    cookie_secure: bool = False

    # Remembered source selection
    preference_cookie_lifetime_seconds: int = 60 * 60 * 24 * 90  # 90 days

    # CORS configuration
    cors_origins: list[str] = ["*"]
    cors_allow_credentials: bool = True
    cors_allow_methods: list[str] = ["*"]
    cors_allow_headers: list[str] = ["*"]

    # Logging
    log_level: str = "INFO"

    @property
    def module_url_prefix(self) -> str:
        """URL prefix of the multiauth endpoints under the base path"""
        return self.base_path.rstrip("/") + "/api/v1/multiauth"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance

    Returns:
        Settings instance
    """
    return Settings()

"""
Application configuration using Pydantic settings.
"""
from pydantic_settings import BaseSettings
from typing import Dict, List, Optional


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database settings
    database_url: Optional[str] = None  # full URL override, e.g. sqlite:///./noticeboard.db
    db_host: str = "localhost"
    db_port: str = "5432"
    db_user: str = "user"
    db_password: str = "password"
    db_name: str = "noticeboard"
    db_pool_size: int = 10
    db_max_overflow: int = 20

    # JWT settings
    jwt_secret_key: str = "change-this-in-production"
    jwt_algorithm: str = "HS256"
    jwt_access_token_expire_minutes: int = 60 * 24 * 7  # 7 days

    # OAuth settings
    frontend_url: str = "http://localhost:5173"
    google_client_id: Optional[str] = None
    google_client_secret: Optional[str] = None
    google_redirect_uri: str = "http://localhost:8000/api/auth/google/callback"
    apple_client_id: Optional[str] = None
    apple_team_id: Optional[str] = None
    apple_key_id: Optional[str] = None
    apple_private_key: Optional[str] = None
    apple_redirect_uri: str = "http://localhost:8000/api/auth/apple/callback"
    oauth_state_backend: str = "memory"  # memory or database
    oauth_state_ttl_seconds: int = 600
    oauth_username_max_attempts: int = 5
    oauth_default_location: str = "chandigarh"
    oauth_http_timeout_seconds: float = 10.0

    # Community defaults
    default_selected_categories: List[str] = ["announcement", "event", "news"]
    default_notification_preferences: Dict[str, bool] = {"all": True}
    default_page_size: int = 10
    max_page_size: int = 100

    # Application settings
    app_name: str = "Notice Board API"
    app_version: str = "0.1.0"
    environment: str = "development"
    debug: bool = False
    cors_origins: List[str] = ["*"]

    # Logging settings
    log_level: str = "INFO"
    log_format: str = "json"  # json or text
    log_directory: str = "logs"
    enable_file_logging: bool = True
    app_log_file: str = "app.log"
    error_log_file: str = "error.log"
    security_log_file: str = "security.log"
    database_log_file: str = "database.log"
    access_log_file: str = "access.log"
    log_file_max_size_mb: int = 10
    log_file_backup_count: int = 5
    log_rotation_when: str = "size"  # size, or a TimedRotatingFileHandler "when" value
    log_rotation_interval: int = 1
    log_compression: bool = True
    enable_request_logging: bool = True
    enable_sql_logging: bool = False

    # Security settings
    enable_security_headers: bool = True
    enable_request_size_limit: bool = True
    max_request_size_bytes: int = 5 * 1024 * 1024  # 5MB

    @property
    def sqlalchemy_database_url(self) -> str:
        """Return the configured URL, or construct a PostgreSQL one from its parts."""
        if self.database_url:
            return self.database_url
        return f"postgresql://{self.db_user}:{self.db_password}@{self.db_host}:{self.db_port}/{self.db_name}"

    class Config:
        env_file = ".env"
        case_sensitive = False


# Global settings instance
settings = Settings()

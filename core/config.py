"""
Application configuration using Pydantic settings.
"""
from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database settings
    db_host: str = "localhost"
    db_port: str = "5432"
    db_user: str = "user"
    db_password: str = "password"
    db_name: str = "scene_history"
    database_url_override: Optional[str] = None  # e.g. sqlite+aiosqlite:///./dev.db
    db_pool_size: int = 10
    db_max_overflow: int = 20

    # Application settings
    app_name: str = "Scene Version History API"
    app_version: str = "0.1.0"
    debug: bool = False
    auto_create_tables: bool = False  # create tables on startup instead of running migrations

    # Versioning settings
    diff_max_cells: int = 4_000_000  # LCS table cells allowed per comparison
    versions_page_size_max: int = 100
    restore_note_template: str = "Restored from version {version_number}"
    initial_version_note: str = "Initial version"

    # Logging settings
    log_level: str = "INFO"
    log_format: str = "json"  # json or text
    log_directory: str = "logs"
    enable_file_logging: bool = False
    app_log_file: str = "app.log"
    error_log_file: str = "error.log"
    versioning_log_file: str = "versioning.log"
    database_log_file: str = "database.log"
    access_log_file: str = "access.log"
    log_rotation_when: str = "size"  # "size" or a TimedRotatingFileHandler "when" value
    log_rotation_interval: int = 1
    log_file_max_size_mb: int = 10
    log_file_backup_count: int = 5
    log_compression: bool = True
    enable_request_logging: bool = True
    enable_sql_logging: bool = False

    # Security settings
    enable_security_headers: bool = True
    enable_request_size_limit: bool = True
    max_request_size_bytes: int = 10 * 1024 * 1024  # 10MB

    @property
    def database_url(self) -> str:
        """Async database URL, built from individual components unless overridden."""
        if self.database_url_override:
            return self.database_url_override
        return f"postgresql+asyncpg://{self.db_user}:{self.db_password}@{self.db_host}:{self.db_port}/{self.db_name}"

    class Config:
        env_file = ".env"
        case_sensitive = False


# Global settings instance
settings = Settings()

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False
    )

    # Database
    database_url: str = "sqlite+aiosqlite:///./correspondence.db"

    # Auth
    session_max_age_days: int = 30

    # Uploads (relative URLs are served from /uploads)
    upload_dir: str = "uploads"
    max_upload_mb: int = 10

    # Workflow
    delegation_sla_hours: int = 24
    inbox_limit: int = 50

    # App
    debug: bool = False
    allowed_origins: str = ""


settings = Settings()

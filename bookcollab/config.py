"""Configuration management using pydantic-settings."""

from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import make_url

# Sync DBAPI used by Alembic for each async backend
SYNC_DRIVERS = {
    "postgresql": "postgresql+psycopg2",
    "sqlite": "sqlite",
}


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database settings
    db_server: str = "localhost"
    db_name: str = "bookcollab"
    db_user: str = "bookcollab"
    db_password: str = ""
    db_port: int = 5432
    db_pool_size: int = 20
    db_max_overflow: int = 40
    sql_echo: bool = False
    # Full SQLAlchemy URL, overrides the db_* components when set
    db_url: Optional[str] = None

    # JWT settings
    jwt_secret: str = "change-me"
    jwt_algorithm: str = "HS256"
    jwt_expiration_minutes: int = 1440

    # Server settings
    host: str = "0.0.0.0"
    port: int = 8000

    # Invitation policy
    invite_ttl_seconds: int = 3 * 24 * 60 * 60
    resend_cooldown_seconds: int = 15 * 60
    max_pending_per_recipient: int = 200
    max_pending_per_book: int = 50
    max_coauthors_per_book: int = 5

    # Lazy sweep: max expired invites processed per sweep call
    sweep_batch_size: int = 100

    # Listing page sizes
    notifications_page_size: int = 20
    pending_invites_page_size: int = 25
    max_page_size: int = 50

    # Redis settings (arq worker only)
    redis_url: str = "redis://localhost:6379/0"

    # Periodic expiry sweep: runs at these minutes (comma-separated, 0-59)
    arq_sweep_minutes: str = "0,15,30,45"

    @property
    def database_url(self) -> str:
        """Build PostgreSQL async connection string."""
        if self.db_url:
            return self.db_url
        from urllib.parse import quote_plus
        return (
            f"postgresql+asyncpg://{self.db_user}:{quote_plus(self.db_password)}"
            f"@{self.db_server}:{self.db_port}/{self.db_name}"
        )

    @property
    def sync_database_url(self) -> str:
        """Build the sync connection string for Alembic, following db_url when set."""
        if self.db_url:
            url = make_url(self.db_url)
            url = url.set(drivername=SYNC_DRIVERS.get(url.get_backend_name(), url.drivername))
            return url.render_as_string(hide_password=False)
        from urllib.parse import quote_plus
        return (
            f"postgresql+psycopg2://{self.db_user}:{quote_plus(self.db_password)}"
            f"@{self.db_server}:{self.db_port}/{self.db_name}"
        )


# Global settings instance
settings = Settings()

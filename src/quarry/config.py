"""Global configuration for the quarry project."""

from typing import Any

from pydantic import Field, SkipValidation
from pydantic_settings import BaseSettings, SettingsConfigDict

from quarry.database import Database
from quarry.log import LogFormat, configure_logging

DEFAULT_DB_URL = "sqlite+aiosqlite:///quarry.db"


class AppContext(BaseSettings):
    """Global configuration for the quarry project."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    db_url: str = Field(default=DEFAULT_DB_URL)
    log_level: str = Field(default="INFO")
    log_format: SkipValidation[LogFormat] = Field(default=LogFormat.PRETTY)
    _db: Database | None = None

    def model_post_init(self, _: Any) -> None:
        """Post-initialization configuration."""
        if isinstance(self.log_format, str):
            self.log_format = LogFormat(self.log_format.lower())
        configure_logging(self)

    async def get_db(self) -> Database:
        """Get the database, creating it on first use."""
        if self._db is None:
            self._db = Database(self.db_url)
        return self._db

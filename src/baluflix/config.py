"""Configuration management for baluflix."""

from pathlib import Path
from typing import Literal

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings with environment variable overrides.

    All settings can be overridden via environment variables
    prefixed with BALUFLIX_ (e.g. BALUFLIX_DATA_DIR, BALUFLIX_PORT).
    """

    model_config = {"env_prefix": "BALUFLIX_"}

    # Storage
    data_dir: Path = Field(
        default_factory=lambda: Path.home() / ".baluflix",
        description="Root directory for catalog data and uploaded media",
    )
    storage_backend: Literal["sqlite", "json"] = "sqlite"

    # Server
    host: str = "127.0.0.1"
    port: int = 4000
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])
    log_level: str = "INFO"

    # Catalog policy: visibility of records created from an external URL
    default_published: bool = False

    # Admin auth
    admin_username: str = "admin"
    admin_password: SecretStr = SecretStr("admin")
    jwt_secret: SecretStr = SecretStr("change-me")
    jwt_algorithm: str = "HS256"
    token_ttl_hours: int = 12

    # Media
    media_type: str = "video/mp4"
    chunk_size: int = 64 * 1024
    max_upload_bytes: int = 5 * 1024 * 1024 * 1024

    @property
    def db_path(self) -> Path:
        """SQLite database path."""
        return self.data_dir / "baluflix.db"

    @property
    def catalog_path(self) -> Path:
        """Flat JSON catalog path (json storage backend)."""
        return self.data_dir / "videos.json"

    @property
    def uploads_dir(self) -> Path:
        """Directory holding uploaded media files."""
        return self.data_dir / "uploads"

    def ensure_dirs(self) -> None:
        """Create all required directories if they don't exist."""
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self.uploads_dir.mkdir(parents=True, exist_ok=True)


# Module-level singleton — import this throughout the app
settings = Settings()

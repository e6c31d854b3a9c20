"""Configuration management for the Petochania backend.

This module provides centralized configuration management using Pydantic Settings.
All configuration is loaded from environment variables with the PETOCHANIA_ prefix,
allowing easy customization without code changes.

Environment Variable Loading
-----------------------------
Configuration values are loaded in the following priority order:
1. Environment variables (PETOCHANIA_* prefix)
2. .env file in the project root
3. Default values defined in PetochaniaConfig

The three settings a deployment almost always overrides also accept the short
unprefixed names below, so plain ``.env`` files written for other deployments
keep working:

    PORT=3000                 (same as PETOCHANIA_SERVER_PORT)
    JWT_SECRET=...            (same as PETOCHANIA_JWT_SECRET)
    BASE_URL=https://...      (same as PETOCHANIA_BASE_URL)

Global Configuration Instance
------------------------------
A global `config` instance is created automatically at module import time.
The FastAPI app factory uses it unless a different instance is passed in,
which is how the test-suite points the app at temporary directories.

Usage Example
-------------
    from petochania.core.config import config

    print(config.database_path)
    print(config.public_base_url)
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_JWT_SECRET = "your-secret-key-change-in-production"

# Sub-directories of ``uploads_dir``; one per collection that accepts images.
UPLOAD_CATEGORIES: tuple[str, ...] = ("cats", "gallery", "reviews")


class PetochaniaConfig(BaseSettings):
    """Main configuration for the Petochania backend.

    Attributes
    ----------
    Server:
        server_host : str
            Bind address for uvicorn.
        server_port : int
            Listening port (``PORT`` is accepted as well).
        base_url : str | None
            Externally visible base URL.  Falls back to
            ``http://localhost:<port>`` when unset.
        cors_origins : list[str]
            Origins allowed by the CORS middleware.

    Authentication:
        jwt_secret : str
            Shared secret used to sign bearer tokens.
        jwt_algorithm : str
            Signing algorithm (HMAC family only).
        token_expire_hours : int
            Lifetime of issued tokens.
        bcrypt_rounds : int
            Cost factor for new password hashes.
        admin_username / admin_password : str
            Credentials of the account seeded on first boot.

    Storage:
        database_path : Path
            Location of the JSON document.
        uploads_dir : Path
            Root of uploaded images, partitioned by category.
        site_dir : Path | None
            Optional directory of static HTML served at ``/``.
        recover_corrupt_store : bool
            Move an unreadable database aside and start from defaults
            instead of refusing to start.

    Uploads:
        max_upload_size_mb : int
            Per-file size limit.
        max_cat_images : int
            Maximum number of files in a single cat create/update request.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="PETOCHANIA_",
        case_sensitive=False,
        populate_by_name=True,
        extra="ignore",
    )

    # Server settings
    server_host: str = Field(
        default="0.0.0.0",
        description="Server bind address",
    )
    server_port: int = Field(
        default=3000,
        description="Server port",
        ge=1,
        le=65535,
        validation_alias=AliasChoices("PETOCHANIA_SERVER_PORT", "PORT", "server_port"),
    )
    base_url: str | None = Field(
        default=None,
        description="Externally visible base URL",
        validation_alias=AliasChoices("PETOCHANIA_BASE_URL", "BASE_URL", "base_url"),
    )
    cors_origins: list[str] = Field(
        default_factory=lambda: ["*"],
        description="Origins allowed to call the API from a browser",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(default="INFO")

    # Authentication
    jwt_secret: str = Field(
        default=DEFAULT_JWT_SECRET,
        description="Secret used to sign bearer tokens",
        validation_alias=AliasChoices("PETOCHANIA_JWT_SECRET", "JWT_SECRET", "jwt_secret"),
    )
    jwt_algorithm: Literal["HS256", "HS384", "HS512"] = Field(default="HS256")
    token_expire_hours: int = Field(default=24, ge=1)
    bcrypt_rounds: int = Field(
        default=10,
        description="bcrypt cost factor for new password hashes",
        ge=4,
        le=31,
    )
    admin_username: str = Field(default="admin", min_length=1)
    admin_password: str = Field(default="admin", min_length=1)

    # Storage
    database_path: Path = Field(
        default=Path("database.json"),
        description="JSON document holding every collection and the settings",
    )
    uploads_dir: Path = Field(
        default=Path("uploads"),
        description="Root directory for uploaded images",
    )
    site_dir: Path | None = Field(
        default=None,
        description="Directory of static site files served at / (disabled when unset)",
    )
    recover_corrupt_store: bool = Field(
        default=False,
        description="Move a corrupt database aside and start from defaults",
    )

    # Uploads
    max_upload_size_mb: int = Field(default=10, ge=1)
    max_cat_images: int = Field(default=10, ge=1)

    @property
    def public_base_url(self) -> str:
        """Base URL advertised in logs, without a trailing slash."""
        if self.base_url:
            return self.base_url.rstrip("/")
        return f"http://localhost:{self.server_port}"

    @property
    def max_upload_size_bytes(self) -> int:
        return self.max_upload_size_mb * 1024 * 1024

    @property
    def uses_default_secret(self) -> bool:
        return self.jwt_secret == DEFAULT_JWT_SECRET

    def ensure_directories(self) -> None:
        """Create the uploads tree and the database's parent directory.

        Safe to call repeatedly; existing directories are left untouched.
        """
        for category in UPLOAD_CATEGORIES:
            (self.uploads_dir / category).mkdir(parents=True, exist_ok=True)
        self.database_path.parent.mkdir(parents=True, exist_ok=True)


# Global configuration instance loaded from PETOCHANIA_* variables and .env.
config = PetochaniaConfig()

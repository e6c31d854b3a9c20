"""Tests for petochania.core.config: configuration management.

Tests cover:
- Default values for the configuration fields.
- Environment variable overrides via the PETOCHANIA_ prefix.
- The short legacy variable names (PORT, JWT_SECRET, BASE_URL).
- Directory creation and derived properties.
"""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from petochania.core.config import DEFAULT_JWT_SECRET, UPLOAD_CATEGORIES, PetochaniaConfig

_ENV_VARS = (
    "PORT",
    "JWT_SECRET",
    "BASE_URL",
    "PETOCHANIA_SERVER_PORT",
    "PETOCHANIA_JWT_SECRET",
    "PETOCHANIA_BASE_URL",
    "PETOCHANIA_TOKEN_EXPIRE_HOURS",
)


@pytest.fixture
def clean_env(monkeypatch):
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestConfigDefaults:
    """Verify that PetochaniaConfig provides sensible defaults."""

    def test_default_port(self, clean_env):
        assert PetochaniaConfig(_env_file=None).server_port == 3000

    def test_default_secret_flagged(self, clean_env):
        cfg = PetochaniaConfig(_env_file=None)
        assert cfg.jwt_secret == DEFAULT_JWT_SECRET
        assert cfg.uses_default_secret is True

    def test_default_token_lifetime(self, clean_env):
        assert PetochaniaConfig(_env_file=None).token_expire_hours == 24

    def test_default_upload_limits(self, clean_env):
        cfg = PetochaniaConfig(_env_file=None)
        assert cfg.max_upload_size_bytes == 10 * 1024 * 1024
        assert cfg.max_cat_images == 10

    def test_default_base_url_uses_port(self, clean_env):
        cfg = PetochaniaConfig(_env_file=None, server_port=8080)
        assert cfg.public_base_url == "http://localhost:8080"

    def test_corrupt_store_recovery_off_by_default(self, clean_env):
        assert PetochaniaConfig(_env_file=None).recover_corrupt_store is False


class TestEnvironmentOverrides:
    """Verify environment variable loading."""

    def test_prefixed_variables(self, clean_env):
        clean_env.setenv("PETOCHANIA_SERVER_PORT", "4000")
        clean_env.setenv("PETOCHANIA_TOKEN_EXPIRE_HOURS", "12")
        cfg = PetochaniaConfig(_env_file=None)
        assert cfg.server_port == 4000
        assert cfg.token_expire_hours == 12

    def test_legacy_variables(self, clean_env):
        clean_env.setenv("PORT", "5000")
        clean_env.setenv("JWT_SECRET", "from-env")
        clean_env.setenv("BASE_URL", "https://petochania.ru/")
        cfg = PetochaniaConfig(_env_file=None)
        assert cfg.server_port == 5000
        assert cfg.jwt_secret == "from-env"
        assert cfg.uses_default_secret is False
        assert cfg.public_base_url == "https://petochania.ru"

    def test_invalid_port_rejected(self, clean_env):
        with pytest.raises(ValidationError):
            PetochaniaConfig(_env_file=None, server_port=70000)


class TestDirectories:
    """Verify directory creation."""

    def test_ensure_directories(self, temp_dir: Path):
        cfg = PetochaniaConfig(
            _env_file=None,
            uploads_dir=temp_dir / "uploads",
            database_path=temp_dir / "data" / "database.json",
        )
        cfg.ensure_directories()

        for category in UPLOAD_CATEGORIES:
            assert (temp_dir / "uploads" / category).is_dir()
        assert (temp_dir / "data").is_dir()

    def test_ensure_directories_idempotent(self, test_config: PetochaniaConfig):
        test_config.ensure_directories()
        test_config.ensure_directories()
        assert (test_config.uploads_dir / "cats").is_dir()

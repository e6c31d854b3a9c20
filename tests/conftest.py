"""Shared pytest fixtures for Petochania tests."""

from __future__ import annotations

import shutil
import tempfile
from collections.abc import Generator
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from petochania.api.main import create_app
from petochania.core.config import PetochaniaConfig
from petochania.core.security import PasswordHasher
from petochania.core.store import SiteStore, default_document

TEST_SECRET = "test-secret"
ADMIN_PASSWORD = "s3cret-pass"

# Smallest valid PNG header; content is never decoded server-side.
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files.

    Yields:
        Path to temporary directory

    Cleanup:
        Directory is removed after test completes
    """
    temp_path = Path(tempfile.mkdtemp())
    try:
        yield temp_path
    finally:
        shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def test_config(temp_dir: Path) -> PetochaniaConfig:
    """Create a test configuration rooted in a temporary directory.

    bcrypt rounds are kept at the minimum so hashing stays fast.
    """
    return PetochaniaConfig(
        _env_file=None,
        jwt_secret=TEST_SECRET,
        base_url="http://testserver",
        database_path=temp_dir / "database.json",
        uploads_dir=temp_dir / "uploads",
        admin_username="admin",
        admin_password=ADMIN_PASSWORD,
        bcrypt_rounds=4,
        max_upload_size_mb=1,
        max_cat_images=3,
    )


@pytest.fixture
def hasher() -> PasswordHasher:
    return PasswordHasher(rounds=4)


@pytest.fixture
def store(temp_dir: Path, hasher: PasswordHasher) -> SiteStore:
    """A loaded store backed by ``temp_dir/database.json``."""
    site_store = SiteStore(
        temp_dir / "database.json",
        default_factory=lambda: default_document("admin", hasher.hash(ADMIN_PASSWORD)),
    )
    site_store.load()
    return site_store


@pytest.fixture
def test_app(test_config: PetochaniaConfig):
    return create_app(test_config)


@pytest.fixture
def test_client(test_app) -> Generator[TestClient, None, None]:
    """TestClient with the lifespan running, so the store is loaded."""
    with TestClient(test_app) as client:
        yield client


@pytest.fixture
def auth_token(test_client: TestClient) -> str:
    resp = test_client.post(
        "/api/login",
        json={"username": "admin", "password": ADMIN_PASSWORD},
    )
    assert resp.status_code == 200
    return resp.json()["token"]


@pytest.fixture
def auth_headers(auth_token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {auth_token}"}


@pytest.fixture
def png_bytes() -> bytes:
    return PNG_BYTES

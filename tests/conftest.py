"""Pytest configuration and shared fixtures."""

import pytest
from pathlib import Path

from imgur_uploader.config import ImgurConfig

API_URL = "https://api.imgur.com/3/"
OAUTH_URL = "https://api.imgur.com/oauth2/authorize"


@pytest.fixture
def client_id() -> str:
    """Return a fake client ID for testing."""
    return "test_client_id_123"


@pytest.fixture
def config(client_id: str) -> ImgurConfig:
    """Return an anonymous client configuration."""
    return ImgurConfig(client_id=client_id)


@pytest.fixture
def password_config(client_id: str) -> ImgurConfig:
    """Return a configuration that logs in with username and password."""
    return ImgurConfig(client_id=client_id, username="alice", password="hunter2")


@pytest.fixture
def temp_images_dir(tmp_path: Path) -> Path:
    """Create a temporary directory with test images.

    Structure:
        temp_dir/
            photo1.jpg
            photo2.png
            notes.txt
            nested/
                photo3.gif
    """
    (tmp_path / "photo1.jpg").write_bytes(b"fake jpg content")
    (tmp_path / "photo2.png").write_bytes(b"fake png content")
    (tmp_path / "notes.txt").write_text("not an image")

    nested = tmp_path / "nested"
    nested.mkdir()
    (nested / "photo3.gif").write_bytes(b"fake gif content")

    return tmp_path


def api_body(data, status: int = 200, success: bool = True) -> dict:
    """Build an Imgur API response body."""
    return {"data": data, "success": success, "status": status}

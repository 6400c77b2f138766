"""Client configuration and client-id file persistence."""

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from imgur_uploader.errors import FileError, ValidationError

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.imgur.com/3/"
DEFAULT_OAUTH_URL = "https://api.imgur.com/oauth2/authorize"

# Optional location for a saved client id
DEFAULT_CLIENT_ID_PATH = Path.home() / ".imgur"


@dataclass(frozen=True)
class ImgurConfig:
    """Initial settings for an Imgur API client."""

    client_id: str
    api_url: str = DEFAULT_API_URL
    oauth_url: str = DEFAULT_OAUTH_URL
    mashape_key: str | None = None
    username: str | None = None
    password: str | None = None
    access_token: str | None = None
    timeout: float = 30.0

    def __post_init__(self) -> None:
        """Validate configuration."""
        if not isinstance(self.client_id, str) or not self.client_id:
            raise ValidationError("A client ID is required")
        if not isinstance(self.api_url, str) or not self.api_url:
            raise ValidationError("API URL cannot be empty")
        if not self.api_url.endswith("/"):
            object.__setattr__(self, "api_url", self.api_url + "/")

    @classmethod
    def from_env(
        cls,
        client_id: str | None = None,
        api_url: str | None = None,
        mashape_key: str | None = None,
        username: str | None = None,
        password: str | None = None,
        access_token: str | None = None,
        client_id_path: Path | None = None,
    ) -> "ImgurConfig":
        """Build a configuration from arguments, environment and the client-id file.

        Explicit arguments win over ``IMGUR_*`` environment variables. When no
        client id is given either way, a saved client-id file is used if present.

        Raises:
            ValidationError: If no client id can be found
        """
        client_id = client_id or os.environ.get("IMGUR_CLIENT_ID")
        if not client_id:
            path = client_id_path or DEFAULT_CLIENT_ID_PATH
            if path.is_file():
                try:
                    client_id = load_client_id(path)
                except FileError:
                    logger.debug(f"Ignoring empty client ID file: {path}")

        if not client_id:
            raise ValidationError(
                "A client ID is required. Provide one via --client-id, "
                "IMGUR_CLIENT_ID or a saved client ID file."
            )

        return cls(
            client_id=client_id,
            api_url=api_url or os.environ.get("IMGUR_API_URL") or DEFAULT_API_URL,
            mashape_key=mashape_key or os.environ.get("IMGUR_MASHAPE_KEY") or None,
            username=username or os.environ.get("IMGUR_USERNAME") or None,
            password=password or os.environ.get("IMGUR_PASSWORD") or None,
            access_token=access_token or os.environ.get("IMGUR_ACCESS_TOKEN") or None,
        )


def load_client_id(path: Path | None = None) -> str:
    """Load a saved client id.

    Args:
        path: File holding the client id (defaults to ``~/.imgur``)

    Returns:
        The client id with surrounding whitespace removed

    Raises:
        FileError: If the file does not exist, cannot be read or is empty
    """
    path = path or DEFAULT_CLIENT_ID_PATH
    try:
        client_id = path.read_text(encoding="utf-8").strip()
    except OSError as e:
        raise FileError(f"Cannot read client ID file {path}: {e}") from e

    if not client_id:
        raise FileError(f"Client ID file is empty: {path}")

    return client_id


def save_client_id(client_id: str, path: Path | None = None) -> Path:
    """Save a client id to disk.

    Args:
        client_id: Client id to store
        path: Destination file (defaults to ``~/.imgur``)

    Returns:
        The path written to

    Raises:
        FileError: If the file cannot be written
    """
    path = path or DEFAULT_CLIENT_ID_PATH
    try:
        path.write_text(client_id, encoding="utf-8")
    except OSError as e:
        raise FileError(f"Cannot write client ID file {path}: {e}") from e

    logger.info(f"Saved client ID to {path}")
    return path


def clear_client_id(path: Path | None = None) -> Path:
    """Empty a saved client id file. The file itself is kept."""
    return save_client_id("", path)

"""Data models for the Imgur client."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from imgur_uploader.errors import ValidationError


class AuthMode(Enum):
    """Authorization mode, in the order the resolver tries them."""

    TOKEN = "token"
    PASSWORD = "password"
    ANONYMOUS = "anonymous"


@dataclass
class Credentials:
    """Mutable credential store shared by a client and its resolver."""

    client_id: str
    username: str | None = None
    password: str | None = None
    access_token: str | None = None

    @property
    def auth_mode(self) -> AuthMode:
        """Return the authorization mode the current state selects."""
        if self.access_token:
            return AuthMode.TOKEN
        if self.username and self.password:
            return AuthMode.PASSWORD
        return AuthMode.ANONYMOUS


class Operation(Enum):
    """Logical API operations understood by the dispatcher."""

    UPLOAD = "upload"
    CREDITS = "credits"
    INFO = "info"
    ALBUM = "album"
    CREATE_ALBUM = "createAlbum"
    DELETE = "delete"
    SEARCH = "search"

    @classmethod
    def parse(cls, value: "Operation | str") -> "Operation":
        """Resolve an operation from a member or its string value.

        Raises:
            ValidationError: If the value names no known operation
        """
        if isinstance(value, cls):
            return value
        if not isinstance(value, str) or not value:
            raise ValidationError("Invalid argument: operation must be a non-empty string")
        try:
            return cls(value)
        except ValueError:
            raise ValidationError(f"Invalid operation: {value}") from None

    @property
    def method(self) -> str:
        return _OPERATION_TABLE[self][0]

    @property
    def path(self) -> str:
        return _OPERATION_TABLE[self][1]

    @property
    def requires_payload(self) -> bool:
        return self not in (Operation.CREDITS, Operation.SEARCH)


# operation -> (HTTP method, path relative to the API base URL)
_OPERATION_TABLE: dict[Operation, tuple[str, str]] = {
    Operation.UPLOAD: ("POST", "image"),
    Operation.CREDITS: ("GET", "credits"),
    Operation.INFO: ("GET", "image"),
    Operation.ALBUM: ("GET", "album"),
    Operation.CREATE_ALBUM: ("POST", "album"),
    Operation.DELETE: ("DELETE", "image"),
    Operation.SEARCH: ("GET", "gallery/search"),
}


class UploadType(Enum):
    """Kind of image reference passed to the bulk uploaders."""

    FILE = "file"
    URL = "url"
    BASE64 = "base64"

    @classmethod
    def parse(cls, value: "UploadType | str") -> "UploadType":
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.lower())
            except ValueError:
                pass
        raise ValidationError(f"Invalid upload type: {value!r}")


@dataclass(frozen=True)
class ImageFile:
    """A local image read into memory for a multipart upload."""

    name: str
    content: bytes
    mime_type: str = "application/octet-stream"


@dataclass(frozen=True)
class AlbumFields:
    """Optional form fields sent when creating an album."""

    title: str | None = None
    description: str | None = None
    privacy: str | None = None

    def to_form(self) -> dict[str, str]:
        form = {
            "title": self.title,
            "description": self.description,
            "privacy": self.privacy,
        }
        return {key: value for key, value in form.items() if value}


@dataclass(frozen=True)
class SearchParams:
    """Gallery search parameters and the path they compose to."""

    sort: str
    date_range: str
    page: str
    query_str: str

    def to_dict(self) -> dict[str, str]:
        """Return the caller-facing parameters without the query string.

        Keys are ``sort``, ``date_range`` and ``page``; the date range is
        keyed in snake_case, not as the API's ``dateRange``.
        """
        return {"sort": self.sort, "date_range": self.date_range, "page": self.page}


@dataclass(frozen=True)
class SearchResult:
    """Result of a gallery search."""

    data: Any
    params: dict[str, str]


@dataclass(frozen=True)
class AlbumUploadResult:
    """Result of creating an album and uploading images into it."""

    data: dict[str, Any] = field(default_factory=dict)
    images: list[Any] = field(default_factory=list)


def is_present(value: Any) -> bool:
    """Return True if a payload value counts as present.

    ``None`` is absent and a string must be non-empty; any other object is present.
    """
    if value is None:
        return False
    if isinstance(value, (str, bytes)):
        return len(value) > 0
    return True

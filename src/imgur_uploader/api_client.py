"""Imgur API client using httpx for async HTTP calls."""

import logging
from collections.abc import Mapping
from typing import Any

import httpx

from imgur_uploader.auth import AuthorizationResolver
from imgur_uploader.config import ImgurConfig
from imgur_uploader.errors import ApiError, TransportError, ValidationError
from imgur_uploader.models import (
    AlbumFields,
    Credentials,
    ImageFile,
    Operation,
    SearchResult,
    is_present,
)
from imgur_uploader.utils import check_query, init_search_params

logger = logging.getLogger(__name__)

# Operations whose payload is appended to the path as an id
_ID_OPERATIONS = (Operation.INFO, Operation.ALBUM, Operation.DELETE)


class ImgurAPIClient:
    """Client for interacting with the Imgur API using httpx."""

    def __init__(self, config: ImgurConfig) -> None:
        """Initialize Imgur API client.

        Args:
            config: Initial client id, credentials and endpoints
        """
        self.config = config
        self._credentials = Credentials(
            client_id=config.client_id,
            username=config.username,
            password=config.password,
            access_token=config.access_token,
        )
        self._api_url = config.api_url
        self._mashape_key = config.mashape_key
        self._resolver = AuthorizationResolver(self._credentials, config.oauth_url)
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "ImgurAPIClient":
        """Async context manager entry."""
        self._client = httpx.AsyncClient(timeout=self.config.timeout)
        return self

    async def __aexit__(self, *args: Any) -> None:
        """Async context manager exit."""
        if self._client:
            await self._client.aclose()
        self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Get the httpx AsyncClient instance.

        Raises:
            RuntimeError: If client is used outside of async context manager
        """
        if self._client is None:
            raise RuntimeError("Client must be used within async context manager")
        return self._client

    # Credential store. Values that are not non-empty strings are ignored.

    @property
    def credentials(self) -> Credentials:
        return self._credentials

    @property
    def client_id(self) -> str:
        return self._credentials.client_id

    @property
    def api_url(self) -> str:
        return self._api_url

    @property
    def mashape_key(self) -> str | None:
        return self._mashape_key

    def set_credentials(
        self,
        username: str | None = None,
        password: str | None = None,
        client_id: str | None = None,
    ) -> None:
        """Set the client id and the username/password used to log in.

        A cached access token is dropped when the username or password changes.
        """
        if _is_text(client_id):
            self._credentials.client_id = client_id
        if _is_text(username) and username != self._credentials.username:
            self._credentials.username = username
            self._credentials.access_token = None
        if _is_text(password) and password != self._credentials.password:
            self._credentials.password = password
            self._credentials.access_token = None

    def set_client_id(self, client_id: str) -> None:
        if _is_text(client_id):
            self._credentials.client_id = client_id

    def set_access_token(self, access_token: str) -> None:
        if _is_text(access_token):
            self._credentials.access_token = access_token

    def set_api_url(self, api_url: str) -> None:
        if _is_text(api_url):
            self._api_url = api_url if api_url.endswith("/") else api_url + "/"

    def set_mashape_key(self, mashape_key: str) -> None:
        if _is_text(mashape_key):
            self._mashape_key = mashape_key

    # Dispatcher

    async def dispatch(
        self,
        operation: Operation | str,
        payload: Any = None,
        extra_fields: Mapping[str, str] | None = None,
    ) -> Any:
        """Send one API operation and return the ``data`` of a successful response.

        Args:
            operation: Operation to perform
            payload: Image id, delete hash, search path, ``AlbumFields``, or the
                image to upload (an ``ImageFile``, a URL or a base64 string)
            extra_fields: Additional form fields for uploads (album, title, description)

        Returns:
            The ``data`` member of the response body

        Raises:
            ValidationError: If the operation is unknown or its payload is missing
            AuthError: If the login handshake fails
            TransportError: If the request cannot be sent
            ApiError: If the API reports a failure or the body is empty or malformed
        """
        operation = Operation.parse(operation)
        if operation.requires_payload and not is_present(payload):
            raise ValidationError(f"Invalid argument: {operation.value} requires a payload")

        url = self._api_url + operation.path
        if operation in _ID_OPERATIONS:
            url += f"/{payload}"
        elif operation is Operation.SEARCH and payload:
            url += payload

        request_kwargs: dict[str, Any] = {}
        if operation is Operation.UPLOAD:
            request_kwargs["files"] = self._build_upload_form(payload, extra_fields)
        elif operation is Operation.CREATE_ALBUM and isinstance(payload, AlbumFields):
            form = payload.to_form()
            if form:
                request_kwargs["data"] = form

        headers = {"Authorization": await self._resolver.resolve(self.client)}
        if self._mashape_key:
            headers["X-Mashape-Key"] = self._mashape_key

        logger.debug(f"{operation.method} {url}")
        try:
            response = await self.client.request(
                operation.method, url, headers=headers, **request_kwargs
            )
        except httpx.RequestError as e:
            logger.warning(f"Network error during {operation.value}: {e}")
            raise TransportError(f"Network error: {e}") from e

        body = self._parse_json_response(response, operation.value)
        if body.get("success") is not True:
            self._handle_error_response(response.status_code, body, operation.value)

        return body.get("data")

    def _build_upload_form(
        self, payload: Any, extra_fields: Mapping[str, str] | None
    ) -> list[tuple[str, Any]]:
        """Build the multipart parts for an upload: ``image`` plus extra fields."""
        if isinstance(payload, ImageFile):
            image_part = (payload.name, payload.content, payload.mime_type)
        elif isinstance(payload, str):
            image_part = (None, payload.encode("utf-8"))
        else:
            raise ValidationError(
                f"Invalid upload payload of type {type(payload).__name__}"
            )

        parts: list[tuple[str, Any]] = [("image", image_part)]
        for name, value in (extra_fields or {}).items():
            if _is_text(value):
                parts.append((name, (None, value.encode("utf-8"))))
        return parts

    def _parse_json_response(
        self, response: httpx.Response, context: str
    ) -> dict[str, Any]:
        """Parse a JSON object body.

        Raises:
            ApiError: If the body is empty, not JSON, or not a JSON object
        """
        if not response.content:
            logger.warning(f"Empty response body during {context}")
            raise ApiError("Bad response", status=response.status_code)

        try:
            body = response.json()
        except ValueError:
            logger.warning(f"Non-JSON response during {context}")
            raise ApiError(
                f"Invalid API response: {response.text[:200]}",
                status=response.status_code,
            ) from None

        if not isinstance(body, dict):
            raise ApiError(
                f"Invalid API response: {response.text[:200]}",
                status=response.status_code,
            )
        return body

    def _handle_error_response(
        self, status_code: int, body: dict[str, Any], context: str
    ) -> None:
        """Raise an ApiError for a body whose success flag is not true.

        Raises:
            ApiError: Always, with the status and message the body reports
        """
        data = body.get("data")
        error = data.get("error") if isinstance(data, dict) else None
        if isinstance(error, dict):
            error = error.get("message", str(error))
        message = str(error) if error else "No body data response"

        status = body.get("status", status_code)
        logger.warning(f"Imgur API error during {context}: {message} (status {status})")
        raise ApiError(message, status=status)

    # Operations

    async def get_info(self, image_id: str) -> dict[str, Any]:
        """Get image metadata.

        Raises:
            ValidationError: If the image id is empty
        """
        if not _is_text(image_id):
            raise ValidationError("Invalid image ID")
        return await self.dispatch(Operation.INFO, image_id)

    async def get_album_info(self, album_id: str) -> dict[str, Any]:
        """Get album metadata, including its images."""
        if not _is_text(album_id):
            raise ValidationError("Invalid album ID")
        return await self.dispatch(Operation.ALBUM, album_id)

    async def create_album(
        self,
        title: str | None = None,
        description: str | None = None,
        privacy: str | None = None,
    ) -> dict[str, Any]:
        """Create an album.

        Returns:
            Album data, with at least ``id`` and ``deletehash``
        """
        album = await self.dispatch(
            Operation.CREATE_ALBUM,
            AlbumFields(title=title, description=description, privacy=privacy),
        )
        album_id = album.get("id") if isinstance(album, dict) else None
        logger.info(f"Created album {album_id}")
        return album

    async def delete_image(self, delete_hash: str) -> Any:
        """Delete an image by the delete hash returned when it was uploaded."""
        if not _is_text(delete_hash):
            raise ValidationError("Missing deletehash")
        return await self.dispatch(Operation.DELETE, delete_hash)

    async def get_credits(self) -> dict[str, Any]:
        """Get the current rate limit credits."""
        return await self.dispatch(Operation.CREDITS)

    async def search(
        self, query: str, options: Mapping[str, Any] | None = None
    ) -> SearchResult:
        """Search the gallery.

        Args:
            query: Search term
            options: Optional ``sort``, ``date_range`` and ``page``

        Returns:
            The matching gallery items and the parameters used
        """
        check_query(query)
        params = init_search_params(query, options)
        data = await self.dispatch(Operation.SEARCH, params.query_str)
        return SearchResult(data=data, params=params.to_dict())


def _is_text(value: Any) -> bool:
    return isinstance(value, str) and len(value) > 0

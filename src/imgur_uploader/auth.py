"""Authorization header resolution, including the username/password login handshake."""

import logging
from collections.abc import Iterable
from urllib.parse import unquote

import httpx

from imgur_uploader.errors import AuthError, ParseError, TransportError
from imgur_uploader.models import AuthMode, Credentials

logger = logging.getLogger(__name__)

AUTHORIZE_COOKIE = "authorize_token"


def parse_authorize_token(set_cookie_headers: Iterable[str]) -> str:
    """Extract the short-lived authorize token from ``Set-Cookie`` headers.

    Args:
        set_cookie_headers: Raw ``Set-Cookie`` header values

    Returns:
        The ``authorize_token`` cookie value

    Raises:
        ParseError: If no header carries a non-empty ``authorize_token``
    """
    headers = list(set_cookie_headers)
    if not headers:
        raise ParseError("Response did not set any cookies")

    for header in headers:
        for attribute in header.split(";"):
            name, sep, value = attribute.strip().partition("=")
            if name != AUTHORIZE_COOKIE:
                continue
            if not sep:
                raise ParseError(f"Malformed {AUTHORIZE_COOKIE} cookie: missing '='")
            if not value:
                raise ParseError(f"Empty {AUTHORIZE_COOKIE} cookie")
            return value

    raise ParseError(f"No {AUTHORIZE_COOKIE} cookie in response")


def parse_fragment(location: str) -> dict[str, str]:
    """Parse the ``key=value&...`` pairs of a redirect URL fragment.

    Args:
        location: Redirect URL, e.g. ``https://imgur.com/#access_token=abc&expires_in=3600``

    Returns:
        Decoded fragment pairs

    Raises:
        ParseError: If there is no fragment, it is empty, or a pair lacks ``=``
    """
    _, sep, fragment = location.partition("#")
    if not sep:
        raise ParseError("Redirect location has no fragment")
    if not fragment:
        raise ParseError("Redirect location has an empty fragment")

    pairs: dict[str, str] = {}
    for pair in fragment.split("&"):
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise ParseError(f"Malformed fragment pair: {pair!r}")
        pairs[unquote(key)] = unquote(value)

    return pairs


class AuthorizationResolver:
    """Produces the ``Authorization`` header value for a request.

    The resolver reads and updates the ``Credentials`` it is given, so a token
    obtained here is seen by every later request of the owning client.
    """

    def __init__(self, credentials: Credentials, oauth_url: str) -> None:
        """Initialize authorization resolver.

        Args:
            credentials: Credential store shared with the owning client
            oauth_url: URL of the OAuth2 authorize endpoint
        """
        self.credentials = credentials
        self.oauth_url = oauth_url

    async def resolve(self, http: httpx.AsyncClient) -> str:
        """Return the header value for the active authorization mode.

        Args:
            http: Client used for the login handshake, if one is needed

        Returns:
            ``Bearer <token>`` or ``Client-ID <client id>``

        Raises:
            AuthError: If the login handshake returns something unparseable
            TransportError: If the handshake cannot reach the server
        """
        mode = self.credentials.auth_mode

        if mode is AuthMode.TOKEN:
            logger.debug("Using cached access token")
            return f"Bearer {self.credentials.access_token}"

        if mode is AuthMode.PASSWORD:
            token = await self._login(http)
            # Concurrent first logins may both get here; the last one wins
            self.credentials.access_token = token
            return f"Bearer {token}"

        logger.debug("Using anonymous Client-ID authorization")
        return f"Client-ID {self.credentials.client_id}"

    async def _login(self, http: httpx.AsyncClient) -> str:
        """Exchange username and password for an access token."""
        params = {"client_id": self.credentials.client_id, "response_type": "token"}
        logger.debug(f"Logging in as {self.credentials.username}")

        try:
            response = await http.get(self.oauth_url, params=params)
            try:
                authorize_token = parse_authorize_token(
                    response.headers.get_list("set-cookie")
                )
            except ParseError as e:
                raise AuthError(f"Login failed: {e}") from e

            response = await http.post(
                self.oauth_url,
                params=params,
                data={
                    "username": self.credentials.username,
                    "password": self.credentials.password,
                    "allow": authorize_token,
                },
                headers={"Cookie": f"{AUTHORIZE_COOKIE}={authorize_token}"},
                follow_redirects=False,
            )
        except httpx.RequestError as e:
            logger.warning(f"Network error during login: {e}")
            raise TransportError(f"Network error: {e}") from e

        location = response.headers.get("location")
        if not location:
            raise AuthError(
                f"Login failed: no redirect received (HTTP {response.status_code})"
            )

        try:
            access_token = parse_fragment(location).get("access_token")
        except ParseError as e:
            raise AuthError(f"Login failed: {e}") from e

        if not access_token:
            raise AuthError("Login failed: redirect did not include an access token")

        logger.info(f"Logged in as {self.credentials.username}")
        return access_token

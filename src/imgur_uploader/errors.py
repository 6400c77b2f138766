"""Exceptions raised by the Imgur client."""


class ImgurError(Exception):
    """Base exception for all Imgur client errors."""

    pass


class ValidationError(ImgurError, ValueError):
    """Exception raised for invalid caller input, before any network call."""

    pass


class ParseError(ImgurError, ValueError):
    """Exception raised when a cookie header or redirect fragment is malformed."""

    pass


class AuthError(ImgurError):
    """Exception raised when the username/password login handshake fails."""

    pass


class TransportError(ImgurError):
    """Exception raised for connection, DNS or timeout failures."""

    pass


class FileError(ImgurError):
    """Exception raised when no file matches a path or glob."""

    pass


class ApiError(ImgurError):
    """Exception raised when the API reports a failure or returns a bad body."""

    def __init__(self, message: str, status: int | None = None) -> None:
        """Initialize API error.

        Args:
            message: Error message reported by the API (or a local description)
            status: Status code reported in the response body, if any
        """
        super().__init__(message)
        self.message = message
        self.status = status

    def __str__(self) -> str:
        if self.status is None:
            return self.message
        return f"{self.message} (status {self.status})"

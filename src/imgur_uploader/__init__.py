"""Imgur Uploader - Async client for uploading images to Imgur and managing albums."""

__version__ = "0.1.0"

from imgur_uploader.api_client import ImgurAPIClient
from imgur_uploader.config import ImgurConfig
from imgur_uploader.errors import (
    ApiError,
    AuthError,
    FileError,
    ImgurError,
    ParseError,
    TransportError,
    ValidationError,
)
from imgur_uploader.models import AlbumUploadResult, Operation, SearchResult, UploadType
from imgur_uploader.uploader import ImageUploader

__all__ = [
    "ImgurAPIClient",
    "ImgurConfig",
    "ImageUploader",
    "AlbumUploadResult",
    "Operation",
    "SearchResult",
    "UploadType",
    "ImgurError",
    "ValidationError",
    "ParseError",
    "AuthError",
    "TransportError",
    "ApiError",
    "FileError",
]

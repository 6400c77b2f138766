"""Image uploader with concurrency control."""

import asyncio
import logging
import mimetypes
from collections.abc import Awaitable, Callable, Sequence
from pathlib import Path
from typing import Any

from imgur_uploader.api_client import ImgurAPIClient
from imgur_uploader.errors import FileError, ValidationError
from imgur_uploader.models import AlbumUploadResult, ImageFile, Operation, UploadType
from imgur_uploader.utils import expand_file_pattern, extra_form_fields, is_valid_url

logger = logging.getLogger(__name__)


class ImageUploader:
    """Uploads images from files, URLs or base64 data, singly or into albums."""

    def __init__(
        self,
        api_client: ImgurAPIClient,
        max_concurrent_uploads: int = 10,
    ) -> None:
        """Initialize image uploader.

        Args:
            api_client: Imgur API client instance
            max_concurrent_uploads: Maximum number of uploads in flight at once
        """
        self.api_client = api_client
        self.max_concurrent_uploads = max_concurrent_uploads
        self._semaphore = asyncio.Semaphore(max_concurrent_uploads)

    async def upload_file(
        self,
        file: str | Path,
        album_id: str | None = None,
        title: str | None = None,
        description: str | None = None,
    ) -> dict[str, Any]:
        """Upload a local image file.

        A string is treated as a glob: every match is uploaded and the data of
        the first match (in sorted order) is returned. A ``Path`` is uploaded
        as is, without pattern expansion.

        Args:
            file: Glob pattern, or the ``Path`` of a single file
            album_id: Album to add the image to
            title: Image title
            description: Image description

        Returns:
            Uploaded image data

        Raises:
            FileError: If nothing matches or a file cannot be read
        """
        if isinstance(file, Path):
            if not file.is_file():
                raise FileError(f"No such file: {file}")
            paths = [file]
        else:
            paths = expand_file_pattern(file)
        fields = extra_form_fields(album_id, title, description)
        results = await asyncio.gather(
            *(self._upload_path(path, fields) for path in paths)
        )
        return results[0]

    async def upload_url(
        self,
        url: str,
        album_id: str | None = None,
        title: str | None = None,
        description: str | None = None,
    ) -> dict[str, Any]:
        """Have Imgur fetch and store an image from the web.

        Raises:
            ValidationError: If ``url`` is not an http(s) URL
        """
        if not is_valid_url(url):
            raise ValidationError("Invalid URL")
        return await self._upload(url, extra_form_fields(album_id, title, description), url)

    async def upload_base64(
        self,
        data: str,
        album_id: str | None = None,
        title: str | None = None,
        description: str | None = None,
    ) -> dict[str, Any]:
        """Upload a base64 encoded image.

        Raises:
            ValidationError: If ``data`` is not a non-empty string
        """
        if not isinstance(data, str) or not data:
            raise ValidationError("Invalid Base64 input")
        return await self._upload(
            data, extra_form_fields(album_id, title, description), "base64 image"
        )

    async def upload_images(
        self,
        images: Sequence[str | Path],
        upload_type: UploadType | str,
        album_id: str | None = None,
    ) -> list[dict[str, Any]]:
        """Upload several images concurrently.

        Args:
            images: Paths, URLs or base64 strings, matching ``upload_type``
                (for files, a ``Path`` is taken as is and a string is a glob)
            upload_type: How to interpret each image
            album_id: Album to add every image to

        Returns:
            Uploaded image data, in input order

        Raises:
            ValidationError: If ``images`` is not a non-empty list
            ImgurError: The first failure of any single upload
        """
        if not _is_image_list(images):
            raise ValidationError("Invalid image input, only arrays supported")

        upload = self._uploader_for(UploadType.parse(upload_type))
        logger.info(f"Uploading {len(images)} image(s)")
        # gather raises the first failure; uploads already sent are not undone
        results = await asyncio.gather(*(upload(image, album_id) for image in images))
        return list(results)

    async def upload_album(
        self,
        images: Sequence[str | Path],
        upload_type: UploadType | str,
        fail_safe: bool = False,
    ) -> AlbumUploadResult:
        """Create an album and upload images into it.

        Args:
            images: Paths, URLs or base64 strings, matching ``upload_type``
            upload_type: How to interpret each image
            fail_safe: Return an empty result instead of raising when the
                image list itself is invalid. Failed uploads still raise.

        Returns:
            Album data and the data of every uploaded image

        Raises:
            ValidationError: If the image list is invalid and ``fail_safe`` is off
        """
        if not _is_image_list(images):
            if fail_safe:
                logger.warning("No images to upload, returning an empty album result")
                return AlbumUploadResult(data={}, images=[])
            raise ValidationError("Invalid image input, only arrays supported")

        upload_type = UploadType.parse(upload_type)
        album = await self.api_client.create_album()
        uploaded = await self.upload_images(images, upload_type, album["id"])
        return AlbumUploadResult(data=album, images=uploaded)

    def _uploader_for(
        self, upload_type: UploadType
    ) -> Callable[[Any, str | None], Awaitable[dict[str, Any]]]:
        if upload_type is UploadType.FILE:
            return self.upload_file
        if upload_type is UploadType.URL:
            return self.upload_url
        return self.upload_base64

    async def _upload_path(self, path: Path, fields: dict[str, str]) -> dict[str, Any]:
        try:
            content = path.read_bytes()
        except OSError as e:
            raise FileError(f"Cannot read {path}: {e}") from e

        mime_type = mimetypes.guess_type(path)[0] or "application/octet-stream"
        image = ImageFile(name=path.name, content=content, mime_type=mime_type)
        return await self._upload(image, fields, path.name)

    async def _upload(
        self, payload: ImageFile | str, fields: dict[str, str], label: str
    ) -> dict[str, Any]:
        """Upload a single image with semaphore-based concurrency control."""
        async with self._semaphore:
            data = await self.api_client.dispatch(Operation.UPLOAD, payload, fields)
        link = data.get("link") if isinstance(data, dict) else None
        logger.info(f"Uploaded {label}: {link}")
        return data


def _is_image_list(images: Any) -> bool:
    return isinstance(images, (list, tuple)) and len(images) > 0

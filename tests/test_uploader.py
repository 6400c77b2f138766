"""White-box tests for uploader validation and concurrency control."""

import asyncio
import pytest
from pathlib import Path
from unittest.mock import AsyncMock, patch

from pytest_httpx import HTTPXMock

from imgur_uploader.api_client import ImgurAPIClient
from imgur_uploader.config import ImgurConfig
from imgur_uploader.errors import ApiError, FileError, ValidationError
from imgur_uploader.models import AlbumUploadResult, ImageFile, Operation, UploadType
from imgur_uploader.uploader import ImageUploader

from conftest import API_URL, api_body


@pytest.mark.asyncio
class TestSingleUploads:
    """Test single-image uploads."""

    async def test_upload_file(
        self, config: ImgurConfig, temp_images_dir: Path, httpx_mock: HTTPXMock
    ) -> None:
        httpx_mock.add_response(
            method="POST",
            url=f"{API_URL}image",
            json=api_body({"id": "img1", "link": "https://i.imgur.com/img1.jpg"}),
        )

        async with ImgurAPIClient(config) as client:
            image = await ImageUploader(client).upload_file(
                temp_images_dir / "photo1.jpg", title="First"
            )

        assert image["id"] == "img1"
        body = httpx_mock.get_request().content
        assert b'filename="photo1.jpg"' in body
        assert b"Content-Type: image/jpeg" in body
        assert b"fake jpg content" in body
        assert b'name="title"' in body

    async def test_upload_file_glob_uploads_every_match(
        self, config: ImgurConfig, temp_images_dir: Path
    ) -> None:
        """Test that a glob uploads each match and returns the first match's data."""
        async with ImgurAPIClient(config) as client:
            uploader = ImageUploader(client)

            async def fake_dispatch(operation, payload, fields):
                return {"id": payload.name}

            with patch.object(client, "dispatch", side_effect=fake_dispatch) as dispatch:
                image = await uploader.upload_file(str(temp_images_dir / "photo*"))

        assert dispatch.call_count == 2
        assert image == {"id": "photo1.jpg"}

    async def test_upload_file_no_match(
        self, config: ImgurConfig, tmp_path: Path, httpx_mock: HTTPXMock
    ) -> None:
        async with ImgurAPIClient(config) as client:
            with pytest.raises(FileError, match="Invalid file or glob"):
                await ImageUploader(client).upload_file(str(tmp_path / "*.png"))

        assert httpx_mock.get_requests() == []

    async def test_upload_file_path_is_not_a_pattern(
        self, config: ImgurConfig, tmp_path: Path, httpx_mock: HTTPXMock
    ) -> None:
        """Test that a Path with glob characters in its name is uploaded as is."""
        path = tmp_path / "img[1].png"
        path.write_bytes(b"bracketed")
        httpx_mock.add_response(
            method="POST", url=f"{API_URL}image", json=api_body({"id": "img1"})
        )

        async with ImgurAPIClient(config) as client:
            image = await ImageUploader(client).upload_file(path)

        assert image == {"id": "img1"}
        assert b'filename="img[1].png"' in httpx_mock.get_request().content

    async def test_upload_file_missing_path(
        self, config: ImgurConfig, tmp_path: Path, httpx_mock: HTTPXMock
    ) -> None:
        async with ImgurAPIClient(config) as client:
            with pytest.raises(FileError, match="No such file"):
                await ImageUploader(client).upload_file(tmp_path / "gone.png")

        assert httpx_mock.get_requests() == []

    async def test_upload_url_invalid(self, config: ImgurConfig, httpx_mock: HTTPXMock) -> None:
        async with ImgurAPIClient(config) as client:
            with pytest.raises(ValidationError, match="Invalid URL"):
                await ImageUploader(client).upload_url("not a url")

        assert httpx_mock.get_requests() == []

    async def test_upload_url_valid(self, config: ImgurConfig) -> None:
        async with ImgurAPIClient(config) as client:
            with patch.object(
                client, "dispatch", new=AsyncMock(return_value={"id": "u1"})
            ) as dispatch:
                image = await ImageUploader(client).upload_url(
                    "https://example.com/a.png", album_id="alb1"
                )

        assert image == {"id": "u1"}
        dispatch.assert_awaited_once_with(
            Operation.UPLOAD, "https://example.com/a.png", {"album": "alb1"}
        )

    @pytest.mark.parametrize("data", ["", None, b"aGVsbG8="])
    async def test_upload_base64_invalid(
        self, config: ImgurConfig, httpx_mock: HTTPXMock, data
    ) -> None:
        async with ImgurAPIClient(config) as client:
            with pytest.raises(ValidationError, match="Invalid Base64 input"):
                await ImageUploader(client).upload_base64(data)

        assert httpx_mock.get_requests() == []

    async def test_upload_base64(self, config: ImgurConfig, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(
            method="POST", url=f"{API_URL}image", json=api_body({"id": "b64"})
        )

        async with ImgurAPIClient(config) as client:
            image = await ImageUploader(client).upload_base64("aGVsbG8=", description="hi")

        assert image == {"id": "b64"}
        body = httpx_mock.get_request().content
        assert b"aGVsbG8=" in body
        assert b'name="description"' in body


@pytest.mark.asyncio
class TestBulkUploads:
    """Test album and multi-image uploads."""

    async def test_upload_images_keeps_order(self, config: ImgurConfig) -> None:
        async def fake_dispatch(operation, payload, fields):
            # finish in reverse order
            await asyncio.sleep(0.01 * (3 - int(payload[-1])))
            return {"id": payload, "album": fields.get("album")}

        async with ImgurAPIClient(config) as client:
            with patch.object(client, "dispatch", side_effect=fake_dispatch):
                images = await ImageUploader(client).upload_images(
                    ["img1", "img2", "img3"], "Base64", album_id="alb1"
                )

        assert [image["id"] for image in images] == ["img1", "img2", "img3"]
        assert all(image["album"] == "alb1" for image in images)

    @pytest.mark.parametrize("images", [[], None, "img1", ()])
    async def test_upload_images_invalid_input(self, config: ImgurConfig, images) -> None:
        async with ImgurAPIClient(config) as client:
            with pytest.raises(ValidationError, match="only arrays supported"):
                await ImageUploader(client).upload_images(images, UploadType.URL)

    async def test_upload_images_invalid_type(self, config: ImgurConfig) -> None:
        async with ImgurAPIClient(config) as client:
            with pytest.raises(ValidationError, match="Invalid upload type"):
                await ImageUploader(client).upload_images(["x"], "Gif")

    async def test_concurrent_upload_limit(self, config: ImgurConfig) -> None:
        """Test that concurrent uploads respect the semaphore limit."""
        max_concurrent = 0
        current_concurrent = 0
        lock = asyncio.Lock()

        async def fake_dispatch(*args, **kwargs):
            nonlocal max_concurrent, current_concurrent
            async with lock:
                current_concurrent += 1
                max_concurrent = max(max_concurrent, current_concurrent)

            await asyncio.sleep(0.01)

            async with lock:
                current_concurrent -= 1

            return {"id": "img"}

        async with ImgurAPIClient(config) as client:
            uploader = ImageUploader(client, max_concurrent_uploads=5)
            with patch.object(client, "dispatch", side_effect=fake_dispatch):
                await uploader.upload_images([f"img{i}" for i in range(20)], UploadType.BASE64)

        assert max_concurrent <= 5
        assert max_concurrent > 1

    async def test_upload_album(self, config: ImgurConfig, httpx_mock: HTTPXMock) -> None:
        httpx_mock.add_response(
            method="POST",
            url=f"{API_URL}album",
            json=api_body({"id": "alb1", "deletehash": "del1"}),
        )
        for i in range(2):
            httpx_mock.add_response(
                method="POST",
                url=f"{API_URL}image",
                json=api_body({"id": f"img{i}"}),
            )

        async with ImgurAPIClient(config) as client:
            result = await ImageUploader(client).upload_album(
                ["https://example.com/a.png", "https://example.com/b.png"], "Url"
            )

        assert result.data == {"id": "alb1", "deletehash": "del1"}
        assert sorted(image["id"] for image in result.images) == ["img0", "img1"]
        for request in httpx_mock.get_requests(url=f"{API_URL}image"):
            assert b'name="album"' in request.content
            assert b"alb1" in request.content

    async def test_upload_album_fail_safe(
        self, config: ImgurConfig, httpx_mock: HTTPXMock
    ) -> None:
        """Test that an empty image list gives an empty result when fail-safe."""
        async with ImgurAPIClient(config) as client:
            result = await ImageUploader(client).upload_album([], UploadType.FILE, fail_safe=True)

        assert result == AlbumUploadResult(data={}, images=[])
        assert httpx_mock.get_requests() == []

    async def test_upload_album_empty_without_fail_safe(
        self, config: ImgurConfig, httpx_mock: HTTPXMock
    ) -> None:
        async with ImgurAPIClient(config) as client:
            with pytest.raises(ValidationError):
                await ImageUploader(client).upload_album([], UploadType.FILE)

        assert httpx_mock.get_requests() == []

    @pytest.mark.parametrize("fail_safe", [True, False])
    async def test_upload_album_item_failure(
        self, config: ImgurConfig, fail_safe: bool
    ) -> None:
        """Test that one failed image fails the whole album upload."""
        async def fake_dispatch(operation, payload=None, fields=None):
            if operation is Operation.CREATE_ALBUM:
                return {"id": "alb1"}
            if payload == "img2":
                raise ApiError("Upload failed", status=400)
            return {"id": payload}

        async with ImgurAPIClient(config) as client:
            with patch.object(client, "dispatch", side_effect=fake_dispatch) as dispatch:
                with pytest.raises(ApiError, match="Upload failed"):
                    await ImageUploader(client).upload_album(
                        ["img1", "img2", "img3"], UploadType.BASE64, fail_safe=fail_safe
                    )

        # album creation plus one request per image
        assert dispatch.call_count == 4

    async def test_upload_album_file_type(
        self, config: ImgurConfig, temp_images_dir: Path
    ) -> None:
        uploaded = []

        async def fake_dispatch(operation, payload=None, fields=None):
            if operation is Operation.CREATE_ALBUM:
                return {"id": "alb1"}
            assert isinstance(payload, ImageFile)
            uploaded.append((payload.name, fields["album"]))
            return {"id": payload.name}

        async with ImgurAPIClient(config) as client:
            with patch.object(client, "dispatch", side_effect=fake_dispatch):
                result = await ImageUploader(client).upload_album(
                    [str(temp_images_dir / "photo1.jpg"), str(temp_images_dir / "nested" / "photo3.gif")],
                    "File",
                )

        assert [image["id"] for image in result.images] == ["photo1.jpg", "photo3.gif"]
        assert sorted(uploaded) == [("photo1.jpg", "alb1"), ("photo3.gif", "alb1")]

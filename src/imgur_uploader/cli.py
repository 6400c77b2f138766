"""Command-line interface for the Imgur uploader."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any, TypeVar

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from imgur_uploader.api_client import ImgurAPIClient
from imgur_uploader.config import (
    DEFAULT_CLIENT_ID_PATH,
    ImgurConfig,
    clear_client_id,
    load_client_id,
    save_client_id,
)
from imgur_uploader.errors import FileError, ImgurError
from imgur_uploader.models import UploadType
from imgur_uploader.uploader import ImageUploader
from imgur_uploader.utils import expand_file_pattern, is_image_file

app = typer.Typer(
    name="imgur-uploader",
    help="Upload images to Imgur and manage albums",
    add_completion=False,
)
client_id_app = typer.Typer(help="Manage the saved client ID")
app.add_typer(client_id_app, name="client-id")
console = Console()
logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class Settings:
    """Global options shared by every command."""

    client_id: str | None
    client_id_file: Path
    api_url: str | None
    mashape_key: str | None
    username: str | None
    password: str | None
    access_token: str | None


def setup_logging(verbose: bool) -> None:
    """Configure logging with Rich handler.

    Args:
        verbose: Enable verbose (DEBUG) logging
    """
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(rich_tracebacks=True, console=console)],
    )


def run_with_client(
    settings: Settings, action: Callable[[ImgurAPIClient], Awaitable[T]]
) -> T:
    """Run an async action against a configured client, exiting 1 on failure.

    Args:
        settings: Global CLI options
        action: Coroutine function receiving the open client

    Returns:
        Whatever the action returns
    """
    try:
        config = ImgurConfig.from_env(
            client_id=settings.client_id,
            api_url=settings.api_url,
            mashape_key=settings.mashape_key,
            username=settings.username,
            password=settings.password,
            access_token=settings.access_token,
            client_id_path=settings.client_id_file,
        )
    except ImgurError as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        raise typer.Exit(1)

    async def _run() -> T:
        async with ImgurAPIClient(config) as client:
            return await action(client)

    try:
        return asyncio.run(_run())
    except ImgurError as e:
        logger.debug("Command failed", exc_info=True)
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        raise typer.Exit(1)


def print_image(image: dict[str, Any]) -> None:
    """Print the link and delete hash of an uploaded image."""
    console.print(f"[green]{image.get('link')}[/green]")
    if image.get("deletehash"):
        console.print(f"  deletehash: {image['deletehash']}")


def collect_images(patterns: list[str], skip_unmatched: bool = False) -> list[Path]:
    """Expand file patterns to image files, skipping anything that is not an image.

    Args:
        patterns: File paths or glob patterns
        skip_unmatched: Treat a pattern that matches nothing as contributing no
            images instead of failing

    Raises:
        FileError: If a pattern matches nothing and ``skip_unmatched`` is off
    """
    images: list[Path] = []
    for pattern in patterns:
        try:
            paths = expand_file_pattern(pattern)
        except FileError:
            if not skip_unmatched:
                raise
            logger.warning(f"No files match {pattern}")
            continue

        for path in paths:
            if is_image_file(path):
                images.append(path)
            else:
                logger.warning(f"Skipping non-image file: {path}")
    return images


@app.callback()
def main(
    ctx: typer.Context,
    client_id: str = typer.Option(
        None,
        "--client-id",
        envvar="IMGUR_CLIENT_ID",
        help="Imgur API client ID (or set IMGUR_CLIENT_ID env var)",
    ),
    client_id_file: Path = typer.Option(
        DEFAULT_CLIENT_ID_PATH,
        "--client-id-file",
        help="File holding a saved client ID, used when no client ID is given",
    ),
    api_url: str = typer.Option(
        None,
        "--api-url",
        envvar="IMGUR_API_URL",
        help="Imgur API base URL",
    ),
    mashape_key: str = typer.Option(
        None,
        "--mashape-key",
        envvar="IMGUR_MASHAPE_KEY",
        help="API gateway key, sent as X-Mashape-Key",
    ),
    username: str = typer.Option(
        None,
        "--username",
        "-u",
        envvar="IMGUR_USERNAME",
        help="Imgur username for authenticated requests",
    ),
    password: str = typer.Option(
        None,
        "--password",
        "-p",
        envvar="IMGUR_PASSWORD",
        help="Imgur password for authenticated requests",
    ),
    access_token: str = typer.Option(
        None,
        "--access-token",
        "-t",
        envvar="IMGUR_ACCESS_TOKEN",
        help="OAuth access token, used instead of logging in",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose logging",
    ),
) -> None:
    """Upload images to Imgur and manage albums.

    Requests are anonymous (Client-ID) unless an access token or a
    username and password are given.
    """
    setup_logging(verbose)
    ctx.obj = Settings(
        client_id=client_id,
        client_id_file=client_id_file,
        api_url=api_url,
        mashape_key=mashape_key,
        username=username,
        password=password,
        access_token=access_token,
    )


@app.command()
def upload(
    ctx: typer.Context,
    patterns: list[str] = typer.Argument(..., help="Image files or glob patterns"),
    album_id: str = typer.Option(None, "--album-id", "-a", help="Album to add the images to"),
    title: str = typer.Option(None, "--title", help="Image title"),
    description: str = typer.Option(None, "--description", help="Image description"),
) -> None:
    """Upload image files. Glob patterns such as 'photos/*.png' are expanded."""

    async def action(client: ImgurAPIClient) -> list[dict[str, Any]]:
        paths = collect_images(patterns)
        if not paths:
            logger.warning("No images found to upload")
            return []
        uploader = ImageUploader(client)
        return list(
            await asyncio.gather(
                *(uploader.upload_file(path, album_id, title, description) for path in paths)
            )
        )

    for image in run_with_client(ctx.obj, action):
        print_image(image)


@app.command("upload-url")
def upload_url(
    ctx: typer.Context,
    urls: list[str] = typer.Argument(..., help="Addresses of images on the web"),
    album_id: str = typer.Option(None, "--album-id", "-a", help="Album to add the images to"),
    title: str = typer.Option(None, "--title", help="Image title"),
    description: str = typer.Option(None, "--description", help="Image description"),
) -> None:
    """Have Imgur fetch images from URLs."""

    async def action(client: ImgurAPIClient) -> list[dict[str, Any]]:
        uploader = ImageUploader(client)
        return list(
            await asyncio.gather(
                *(uploader.upload_url(url, album_id, title, description) for url in urls)
            )
        )

    for image in run_with_client(ctx.obj, action):
        print_image(image)


@app.command("upload-base64")
def upload_base64(
    ctx: typer.Context,
    data: str = typer.Argument(..., help="Base64 encoded image"),
    album_id: str = typer.Option(None, "--album-id", "-a", help="Album to add the image to"),
    title: str = typer.Option(None, "--title", help="Image title"),
    description: str = typer.Option(None, "--description", help="Image description"),
) -> None:
    """Upload a base64 encoded image."""

    async def action(client: ImgurAPIClient) -> dict[str, Any]:
        return await ImageUploader(client).upload_base64(data, album_id, title, description)

    print_image(run_with_client(ctx.obj, action))


@app.command()
def album(
    ctx: typer.Context,
    patterns: list[str] = typer.Argument(..., help="Image files or glob patterns"),
    fail_safe: bool = typer.Option(
        False,
        "--fail-safe",
        help="Print an empty result instead of failing when no images match",
    ),
    max_concurrent: int = typer.Option(
        10,
        "--max-concurrent",
        "-c",
        min=1,
        max=50,
        help="Maximum number of concurrent uploads",
    ),
) -> None:
    """Create a new album and upload image files into it."""

    async def action(client: ImgurAPIClient):
        images = collect_images(patterns, skip_unmatched=fail_safe)
        uploader = ImageUploader(client, max_concurrent_uploads=max_concurrent)
        return await uploader.upload_album(images, UploadType.FILE, fail_safe=fail_safe)

    result = run_with_client(ctx.obj, action)

    console.print("\n[bold]Album:[/bold]")
    console.print(f"  id: {result.data.get('id')}")
    if result.data.get("deletehash"):
        console.print(f"  deletehash: {result.data['deletehash']}")
    console.print(f"  Images: {len(result.images)}")
    for image in result.images:
        print_image(image)


@app.command()
def info(
    ctx: typer.Context,
    image_id: str = typer.Argument(..., help="Image ID"),
) -> None:
    """Show image metadata."""
    console.print_json(data=run_with_client(ctx.obj, lambda client: client.get_info(image_id)))


@app.command("album-info")
def album_info(
    ctx: typer.Context,
    album_id: str = typer.Argument(..., help="Album ID"),
) -> None:
    """Show album metadata."""
    console.print_json(
        data=run_with_client(ctx.obj, lambda client: client.get_album_info(album_id))
    )


@app.command()
def delete(
    ctx: typer.Context,
    delete_hash: str = typer.Argument(..., help="Delete hash returned by an upload"),
) -> None:
    """Delete an image."""
    run_with_client(ctx.obj, lambda client: client.delete_image(delete_hash))
    console.print(f"[green]Deleted image {delete_hash}[/green]")


@app.command()
def credits(ctx: typer.Context) -> None:
    """Show remaining API credits."""
    console.print_json(data=run_with_client(ctx.obj, lambda client: client.get_credits()))


@app.command()
def search(
    ctx: typer.Context,
    query: str = typer.Argument(..., help="Search term"),
    sort: str = typer.Option("time", "--sort", help="time, viral or top"),
    date_range: str = typer.Option("all", "--date-range", help="day, week, month, year or all"),
    page: int = typer.Option(1, "--page", min=1, help="Result page"),
) -> None:
    """Search the gallery."""
    options = {"sort": sort, "date_range": date_range, "page": page}
    result = run_with_client(ctx.obj, lambda client: client.search(query, options))

    table = Table(title=f"Results for '{query}'")
    table.add_column("Title")
    table.add_column("Link")
    for item in result.data or []:
        table.add_row(str(item.get("title") or ""), str(item.get("link") or ""))
    console.print(table)
    console.print(
        f"sort={result.params['sort']} date_range={result.params['date_range']} "
        f"page={result.params['page']}"
    )


@client_id_app.command("save")
def client_id_save(
    client_id: str = typer.Argument(..., help="Client ID to save"),
    path: Path = typer.Option(DEFAULT_CLIENT_ID_PATH, "--path", help="Client ID file"),
) -> None:
    """Save a client ID for later runs."""
    try:
        written = save_client_id(client_id, path)
    except ImgurError as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        raise typer.Exit(1)
    console.print(f"Saved client ID to {written}")


@client_id_app.command("show")
def client_id_show(
    path: Path = typer.Option(DEFAULT_CLIENT_ID_PATH, "--path", help="Client ID file"),
) -> None:
    """Show the saved client ID."""
    try:
        console.print(load_client_id(path))
    except ImgurError as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        raise typer.Exit(1)


@client_id_app.command("clear")
def client_id_clear(
    path: Path = typer.Option(DEFAULT_CLIENT_ID_PATH, "--path", help="Client ID file"),
) -> None:
    """Forget the saved client ID. The file is emptied, not removed."""
    try:
        clear_client_id(path)
    except ImgurError as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        raise typer.Exit(1)
    console.print(f"Cleared client ID in {path}")


if __name__ == "__main__":
    app()

"""Input validation and path helpers for the Imgur client."""

import glob
import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

from imgur_uploader.errors import FileError, ValidationError
from imgur_uploader.models import SearchParams

logger = logging.getLogger(__name__)

# Supported image extensions
IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".gif", ".apng", ".tiff", ".bmp", ".webp", ".heic"}

URL_SCHEMES = {"http", "https"}

SEARCH_SORTS = {"time", "viral", "top"}
SEARCH_DATE_RANGES = {"day", "week", "month", "year", "all"}
SEARCH_DEFAULTS = {"sort": "time", "date_range": "all", "page": "1"}

# Accepted option keys, mapped to parameter names
SEARCH_OPTION_KEYS = {"sort": "sort", "date_range": "date_range", "dateRange": "date_range", "page": "page"}


def is_image_file(path: Path) -> bool:
    """Check if a file is a supported image format.

    Args:
        path: Path to the file to check

    Returns:
        True if the file is a supported image format, False otherwise
    """
    return path.is_file() and path.suffix.lower() in IMAGE_EXTENSIONS


def expand_file_pattern(pattern: str | Path) -> list[Path]:
    """Resolve a path or glob pattern to the files it matches.

    Args:
        pattern: A file path or a glob such as ``photos/*.png`` (``**`` recurses)

    Returns:
        Matching files, sorted

    Raises:
        ValidationError: If the pattern is empty
        FileError: If nothing matches
    """
    pattern = str(pattern)
    if not pattern:
        raise ValidationError("Invalid file or glob")

    files = sorted(Path(p) for p in glob.glob(pattern, recursive=True) if Path(p).is_file())
    if not files:
        raise FileError(f"Invalid file or glob: {pattern}")

    logger.debug(f"Pattern {pattern!r} matched {len(files)} file(s)")
    return files


def is_valid_url(url: Any) -> bool:
    """Return True if ``url`` is a string with an http(s) scheme and a host."""
    if not isinstance(url, str) or not url:
        return False
    parsed = urlparse(url)
    return parsed.scheme.lower() in URL_SCHEMES and bool(parsed.netloc)


def extra_form_fields(
    album_id: str | None = None,
    title: str | None = None,
    description: str | None = None,
) -> dict[str, str]:
    """Collect the optional upload form fields that hold non-empty strings."""
    fields = {"album": album_id, "title": title, "description": description}
    return {
        name: value
        for name, value in fields.items()
        if isinstance(value, str) and value
    }


def check_query(query: Any) -> None:
    """Validate a search query.

    Raises:
        ValidationError: If the query is missing or not a string
    """
    if query is None or query == "":
        raise ValidationError("Search requires a query. Try searching with a query (e.g cats).")
    if not isinstance(query, str):
        raise ValidationError("You did not pass a string as a query.")


def init_search_params(query: str, options: Mapping[str, Any] | None = None) -> SearchParams:
    """Compose gallery search parameters.

    Unrecognized option keys are ignored.

    Args:
        query: Search term
        options: Any of ``sort``, ``date_range`` (or ``dateRange``) and ``page``

    Returns:
        Parameters with the composed ``/<sort>/<date_range>/<page>?q=<query>`` path

    Raises:
        ValidationError: If a recognized option has an unsupported value
    """
    params = dict(SEARCH_DEFAULTS)

    for key, value in (options or {}).items():
        name = SEARCH_OPTION_KEYS.get(key)
        if name is None:
            logger.debug(f"Ignoring unknown search option: {key}")
            continue
        params[name] = _validate_search_option(name, value)

    query_str = f"/{params['sort']}/{params['date_range']}/{params['page']}?q={query}"
    return SearchParams(
        sort=params["sort"],
        date_range=params["date_range"],
        page=params["page"],
        query_str=query_str,
    )


def _validate_search_option(name: str, value: Any) -> str:
    if name == "page":
        # bool is an int subclass
        if isinstance(value, int) and not isinstance(value, bool) and value > 0:
            return str(value)
        if isinstance(value, str) and value.isdigit() and int(value) > 0:
            return value
        raise ValidationError(f"Invalid search page: {value!r}")

    allowed = SEARCH_SORTS if name == "sort" else SEARCH_DATE_RANGES
    if not isinstance(value, str) or value not in allowed:
        raise ValidationError(
            f"Invalid search {name}: {value!r} (expected one of {', '.join(sorted(allowed))})"
        )
    return value

import math
from typing import Any, Iterable, Mapping, Sequence, TypeVar
from urllib.parse import quote

from yarl import URL

T = TypeVar("T")


def build_path(base: str, *segments: str | int) -> str:
    """
    Append path segments to an API path, percent-encoding each segment

    Reserved characters are encoded too, so a "/" inside a value stays
    within its segment.

    Args:
        base (str): The base path, e.g. "/library/years"
        *segments (str | int): Segments to append

    Returns:
        str: The encoded path

    Example:
        ```python
        build_path("/projects/category", "Arts Déco")
        # "/projects/category/Arts%20D%C3%A9co"
        build_path("/projects/category", "Plomberie/Chauffage")
        # "/projects/category/Plomberie%2FChauffage"
        ```
    """
    encoded = [quote(str(segment), safe="") for segment in segments]
    path = "/".join([base.rstrip("/"), *encoded]) if encoded else base

    return URL.build(path=path, encoded=True).raw_path


def clean_params(params: Mapping[str, Any] | None) -> dict[str, str]:
    """
    Convert query parameters to strings, dropping None values

    Args:
        params (Mapping[str, Any] | None): Raw parameters

    Returns:
        dict[str, str]: Parameters ready for the query string
    """
    if not params:
        return {}

    cleaned = {}
    for key, value in params.items():
        if value is None:
            continue

        if isinstance(value, bool):
            cleaned[key] = "true" if value else "false"
        else:
            cleaned[key] = str(value)

    return cleaned


def paginate(items: Sequence[T], page: int, limit: int) -> tuple[list[T], int]:
    """
    Slice one page out of a sequence

    Args:
        items (Sequence[T]): All items
        page (int): 1-based page number
        limit (int): Page size

    Returns:
        tuple[list[T], int]: The page items and the total number of pages

    Raises:
        ValueError: If page or limit is lower than 1
    """
    if page < 1 or limit < 1:
        raise ValueError("page and limit must be positive")

    total_pages = math.ceil(len(items) / limit)
    start = (page - 1) * limit

    return list(items[start : start + limit]), total_pages


def count_by(keys: Iterable[Any]) -> dict[Any, int]:
    """
    Count occurrences of each key, keeping first-seen order
    """
    counts: dict[Any, int] = {}
    for key in keys:
        counts[key] = counts.get(key, 0) + 1

    return counts

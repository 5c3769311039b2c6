from collections.abc import Callable, Iterable
from typing import Any, TypeVar

T = TypeVar("T")


def filter_collection(
    items: Iterable[T],
    predicate: Callable[[T], bool] | None,
    sort_key: Callable[[T], Any] | None,
    sort_ascending: bool,
    offset: int,
    limit: int,
) -> list[T]:
    """Filter, sort and page a collection.

    Without a ``sort_key`` the filtered items are returned in source order and
    ``offset``/``limit`` are not applied. With one, items are stably sorted
    (ties keep their source order in either direction) and then paged.

    Raises:
        ValueError: if ``offset`` or ``limit`` is negative.
    """
    if offset < 0:
        raise ValueError(f"offset must be non-negative, got {offset}")
    if limit < 0:
        raise ValueError(f"limit must be non-negative, got {limit}")

    filtered = [item for item in items if predicate is None or predicate(item)]
    if sort_key is None:
        return filtered

    ordered = sorted(filtered, key=sort_key, reverse=not sort_ascending)
    return ordered[offset : offset + limit]

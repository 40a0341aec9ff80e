from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Generic, Iterator, List, Optional, Tuple, TypeVar, Union

from freshteam_sync.cancel import CancelToken, check
from freshteam_sync.logging_utils import log_event

LOGGER = logging.getLogger("freshteam_sync.pagination")

DEFAULT_PER_PAGE = 30

T = TypeVar("T")


@dataclass
class Page(Generic[T]):
    """Parsed items of one page plus the number of entries the server sent.

    `raw_count` drives termination; entries that could not be parsed still
    count towards a full page.
    """

    items: List[T]
    raw_count: int


FetchPage = Callable[[int, int], Union[Page[T], List[T]]]


def _unpack(fetched: Union[Page[T], List[T]]) -> Tuple[List[T], int]:
    if isinstance(fetched, Page):
        return fetched.items, fetched.raw_count
    return fetched, len(fetched)


def iter_pages(
    fetch_page: FetchPage[T],
    *,
    per_page: int = DEFAULT_PER_PAGE,
    start_page: int = 1,
    expected_total: Optional[int] = None,
    cancel: Optional[CancelToken] = None,
) -> Iterator[Tuple[int, List[T]]]:
    """Yield (page_number, items) until a short page signals the end.

    A collection that is an exact multiple of `per_page` costs one extra,
    empty page request. Passing `expected_total` stops as soon as that many
    items have been seen instead.
    """
    per_page = max(1, int(per_page))
    page = max(1, int(start_page))
    seen = 0

    while True:
        check(cancel, f"page {page}")
        items, raw_count = _unpack(fetch_page(page, per_page))
        seen += raw_count
        log_event(
            LOGGER,
            logging.DEBUG,
            "page_fetched",
            page=page,
            per_page=per_page,
            items=len(items),
            raw_count=raw_count,
            seen=seen,
        )
        yield page, items

        if raw_count < per_page:
            return
        if expected_total is not None and seen >= expected_total:
            return
        page += 1


def iter_items(
    fetch_page: FetchPage[T],
    *,
    per_page: int = DEFAULT_PER_PAGE,
    start_page: int = 1,
    expected_total: Optional[int] = None,
    cancel: Optional[CancelToken] = None,
) -> Iterator[T]:
    for _page, items in iter_pages(
        fetch_page,
        per_page=per_page,
        start_page=start_page,
        expected_total=expected_total,
        cancel=cancel,
    ):
        yield from items

"""Two-phase collection of paginated JSON:API listings.

The total page count is only known once the first page has been read, so
collection happens in two phases:
1. Fetch page 1 and read its ``meta.total_pages``
2. Fetch the remaining pages strictly in order
"""

import logging
from typing import Any, Protocol

from edgewaf.api.models import Page
from edgewaf.errors import NoRecordsError
from edgewaf.utils.logging import get_logger

PAGE_NUMBER_PARAM = "page[number]"
PAGE_SIZE_PARAM = "page[size]"


class PageSource(Protocol):
    """Anything able to fetch a single page of a listing."""

    def get_page(self, path: str, params: dict[str, Any] | None = None) -> Page: ...


class PaginatedCollector:
    """Aggregates every page of a listing into one ordered result."""

    def __init__(
        self,
        source: PageSource,
        logger: logging.Logger | None = None,
    ) -> None:
        """Initialize the collector.

        Args:
            source: Page source, usually an EdgeApiClient.
            logger: Logger for progress messages.
        """
        self._source = source
        self._logger = logger or get_logger(__name__)

    def fetch_pages(
        self,
        path: str,
        params: dict[str, Any] | None = None,
        resource: str = "rules",
    ) -> list[Page]:
        """Fetch every page of a listing.

        Args:
            path: Listing endpoint path.
            params: Filter parameters sent with every page request.
            resource: Name of the listed records, used in messages.

        Returns:
            Pages in arrival order.

        Raises:
            NoRecordsError: If the first page holds no records.
            NetworkError: If any page cannot be fetched.
            ApiError: If any page returns a non-success status.
        """
        base_params = dict(params or {})

        first = self._source.get_page(path, {**base_params, PAGE_NUMBER_PARAM: 1})
        if not first.data:
            raise NoRecordsError(resource)

        pages = [first]
        total_pages = first.total_pages

        self._logger.info(
            "Read total pages: %d with %d %s", total_pages, first.record_count, resource
        )

        for number in range(first.current_page + 1, total_pages + 1):
            self._logger.info("Reading page: %d out of %d", number, total_pages)
            page_params = {**base_params, PAGE_NUMBER_PARAM: number}
            if first.per_page:
                page_params[PAGE_SIZE_PARAM] = first.per_page
            pages.append(self._source.get_page(path, page_params))

        return pages

    def collect(
        self,
        path: str,
        params: dict[str, Any] | None = None,
        resource: str = "rules",
    ) -> list[dict[str, Any]]:
        """Fetch every page of a listing and concatenate their records.

        Records keep page order, then in-page order.
        """
        records: list[dict[str, Any]] = []
        for page in self.fetch_pages(path, params, resource):
            records.extend(page.data)
        return records

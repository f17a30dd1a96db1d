"""Full enumeration of pinned CIDs."""

import logging
from collections.abc import Callable
from dataclasses import dataclass

from ipfs_backup.adapters.pinata_client import PinListingClient

PAGE_LIMIT = 1000
PINNED_STATUS = "pinned"

_logger = logging.getLogger(__name__)


@dataclass
class PinEnumerator:
    """Collect every pinned CID by walking the listing page by page.

    Pages are requested one at a time with the offset advanced by a full page.
    The first page shorter than ``page_limit`` ends the walk. Results are not
    deduplicated; disjoint pages are the service's responsibility.
    """

    client: PinListingClient
    page_limit: int = PAGE_LIMIT

    def __post_init__(self) -> None:
        if self.page_limit <= 0:
            raise ValueError("page_limit must be positive")

    async def fetch_all(
        self, on_progress: Callable[[int], None] | None = None
    ) -> list[str]:
        """Return all pinned CIDs in the order the service listed them."""
        cids: list[str] = []
        offset = 0
        while True:
            page = await self.client.list_pins(
                status=PINNED_STATUS, limit=self.page_limit, offset=offset
            )
            cids.extend(page.cids())
            _logger.info("Fetched %s CIDs so far...", len(cids))
            if on_progress is not None:
                on_progress(len(cids))
            if len(page.rows) < self.page_limit:
                return cids
            offset += self.page_limit

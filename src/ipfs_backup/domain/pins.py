"""Models for the pinning service listing payload."""

from pydantic import BaseModel, ConfigDict


class PinListRow(BaseModel):
    """Single pinned item as returned by the listing endpoint."""

    model_config = ConfigDict(extra="ignore")

    ipfs_pin_hash: str


class PinListPage(BaseModel):
    """One page of the pin listing.

    ``count`` is informational only; end of data is detected by a short page.
    """

    model_config = ConfigDict(extra="ignore")

    count: int | None = None
    rows: list[PinListRow]

    def cids(self) -> list[str]:
        """Return the CIDs on this page in service order."""
        return [row.ipfs_pin_hash for row in self.rows]

"""Pinata pin listing client."""

from dataclasses import dataclass
from typing import Protocol

import httpx

from ipfs_backup.domain.pins import PinListPage
from ipfs_backup.errors import TransportError


class PinListingClient(Protocol):
    """Interface for the paginated pin listing endpoint."""

    async def list_pins(self, *, status: str, limit: int, offset: int) -> PinListPage:
        """Return one page of pins starting at ``offset``."""


@dataclass
class HttpxPinataClient(PinListingClient):
    """HTTPX-backed Pinata client."""

    jwt: str
    base_url: str
    http_client: httpx.AsyncClient

    @classmethod
    def create(cls, jwt: str, base_url: str) -> "HttpxPinataClient":
        """Create a Pinata client with a managed httpx session."""
        return cls(
            jwt=jwt, base_url=base_url.rstrip("/"), http_client=httpx.AsyncClient()
        )

    async def list_pins(self, *, status: str, limit: int, offset: int) -> PinListPage:
        """Fetch one page from ``/data/pinList``."""
        url = f"{self.base_url}/data/pinList"
        try:
            response = await self.http_client.get(
                url,
                params={"status": status, "pageLimit": limit, "pageOffset": offset},
                headers={"Authorization": f"Bearer {self.jwt}"},
                timeout=30,
            )
        except httpx.HTTPError as exc:
            raise TransportError(None, type(exc).__name__, str(exc)) from exc
        if not response.is_success:
            raise TransportError(
                response.status_code, response.reason_phrase, response.text
            )
        try:
            return PinListPage.model_validate(response.json())
        except ValueError as exc:
            raise TransportError(
                response.status_code, "Unexpected payload", response.text
            ) from exc

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()

"""Shared test fixtures."""

import asyncio
from dataclasses import dataclass, field
from typing import BinaryIO

import pytest

from ipfs_backup.adapters.irys_client import (
    BundlerClient,
    ChunkedTransferClient,
    ChunkedUploaderConfig,
)
from ipfs_backup.adapters.pinata_client import PinListingClient
from ipfs_backup.config import Settings
from ipfs_backup.domain.pins import PinListPage, PinListRow
from ipfs_backup.domain.uploads import UploadEvent
from ipfs_backup.errors import TransportError
from ipfs_backup.services.uploads import UploadCoordinator


def signed_data_item(payload: bytes, tags: bytes = b"") -> bytes:
    """Build an ethereum-signed data item layout around ``payload``."""
    tag_count = 1 if tags else 0
    return (
        (3).to_bytes(2, "little")
        + b"\x11" * 65
        + b"\x22" * 65
        + b"\x00\x00"
        + tag_count.to_bytes(8, "little")
        + len(tags).to_bytes(8, "little")
        + tags
        + payload
    )


@dataclass
class FakeClock:
    """Manually advanced monotonic clock."""

    now: float = 1000.0

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@dataclass
class PagedPinListingClient(PinListingClient):
    """Serves a fixed list of CIDs in offset/limit windows."""

    cids: list[str]
    fail_at_offset: int | None = None
    calls: list[tuple[str, int, int]] = field(default_factory=list)

    async def list_pins(self, *, status: str, limit: int, offset: int) -> PinListPage:
        self.calls.append((status, limit, offset))
        if self.fail_at_offset is not None and offset == self.fail_at_offset:
            raise TransportError(502, "Bad Gateway", "upstream unavailable")
        window = self.cids[offset : offset + limit]
        return PinListPage(
            count=len(self.cids), rows=[PinListRow(ipfs_pin_hash=cid) for cid in window]
        )


@dataclass
class FakeBundlerClient(BundlerClient):
    """Bundler client with fixed price and balance."""

    price: int = 100
    balance: int = 1_000
    price_requests: list[int] = field(default_factory=list)
    balance_requests: list[str] = field(default_factory=list)

    async def get_price(self, num_bytes: int) -> int:
        self.price_requests.append(num_bytes)
        return self.price

    async def get_balance(self, address: str) -> int:
        self.balance_requests.append(address)
        return self.balance


@dataclass
class ScriptedTransferClient(ChunkedTransferClient):
    """Transfer client that replays scripted events.

    Each script step is either an event pushed to the queue or a float that
    advances the shared clock before the next event.
    """

    clock: FakeClock
    script: list[object] = field(default_factory=list)
    transaction_id: str = "tx-123"
    error: BaseException | None = None
    config: ChunkedUploaderConfig = field(
        default_factory=lambda: ChunkedUploaderConfig(chunk_size=10, batch_size=2)
    )
    calls: int = 0

    async def upload(
        self,
        stream: BinaryIO,
        total_size: int,
        events: "asyncio.Queue[UploadEvent | None]",
    ) -> str:
        self.calls += 1
        for step in self.script:
            if isinstance(step, float | int):
                self.clock.advance(float(step))
                continue
            await events.put(step)  # type: ignore[arg-type]
            await asyncio.sleep(0)
        if self.error is not None:
            raise self.error
        return self.transaction_id


@pytest.fixture
def settings() -> Settings:
    return Settings(
        pinata_jwt="pinata-jwt",
        pinata_api_url="https://pinata.test",
        wallet_address="0xabc",
        irys_node_url="https://bundler.test",
        irys_gateway_url="https://gateway.test",
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def bundler_client() -> FakeBundlerClient:
    return FakeBundlerClient()


@pytest.fixture
def transfer_client(clock: FakeClock) -> ScriptedTransferClient:
    return ScriptedTransferClient(clock=clock)


@pytest.fixture
def coordinator(
    bundler_client: FakeBundlerClient,
    transfer_client: ScriptedTransferClient,
    clock: FakeClock,
) -> UploadCoordinator:
    return UploadCoordinator(
        bundler_client=bundler_client,
        transfer_client=transfer_client,
        wallet_address="0xabc",
        gateway_url="https://gateway.test",
        progress_interval_seconds=5.0,
        clock=clock,
    )

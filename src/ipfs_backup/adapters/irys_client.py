"""Irys bundler clients: funding queries and chunked transfer."""

import asyncio
from dataclasses import dataclass
from typing import BinaryIO, Protocol

import httpx

from ipfs_backup.domain.uploads import (
    Chunk,
    ChunkFailed,
    ChunkUploaded,
    UploadEvent,
    UploadFinished,
    plan_chunks,
)
from ipfs_backup.errors import ChunkError, TransportError, UploadError


class BundlerClient(Protocol):
    """Interface for bundler price and balance queries."""

    async def get_price(self, num_bytes: int) -> int:
        """Return the price of storing ``num_bytes`` in atomic units."""

    async def get_balance(self, address: str) -> int:
        """Return the funded balance of ``address`` in atomic units."""


class ChunkedTransferClient(Protocol):
    """Interface for a configured chunked-transfer client."""

    config: "ChunkedUploaderConfig"

    async def upload(
        self,
        stream: BinaryIO,
        total_size: int,
        events: "asyncio.Queue[UploadEvent | None]",
    ) -> str:
        """Upload ``total_size`` bytes from ``stream`` and return the tx id."""


@dataclass(frozen=True)
class ChunkedUploaderConfig:
    """Transfer settings fixed for the lifetime of an uploader."""

    chunk_size: int = 25_000_000
    batch_size: int = 5
    retry_attempts: int = 3
    retry_delay_seconds: float = 1.0

    def __post_init__(self) -> None:
        if self.chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        if self.batch_size <= 0:
            raise ValueError("batch_size must be positive")
        if self.retry_attempts < 0:
            raise ValueError("retry_attempts must not be negative")
        if self.retry_delay_seconds < 0:
            raise ValueError("retry_delay_seconds must not be negative")


@dataclass
class HttpxIrysClient(BundlerClient):
    """HTTPX-backed bundler client for funding checks."""

    node_url: str
    token: str
    http_client: httpx.AsyncClient

    @classmethod
    def create(cls, node_url: str, token: str) -> "HttpxIrysClient":
        """Create a bundler client with a managed httpx session."""
        return cls(
            node_url=node_url.rstrip("/"), token=token, http_client=httpx.AsyncClient()
        )

    async def get_price(self, num_bytes: int) -> int:
        """Fetch the upload price for ``num_bytes``."""
        payload = await self._get_json(f"/price/{self.token}/{num_bytes}")
        return _atomic_or_raise(payload, payload)

    async def get_balance(self, address: str) -> int:
        """Fetch the funded balance for ``address``."""
        payload = await self._get_json(
            f"/account/balance/{self.token}", params={"address": address}
        )
        value = payload.get("balance") if isinstance(payload, dict) else payload
        return _atomic_or_raise(value, payload)

    async def _get_json(
        self, path: str, params: dict[str, str] | None = None
    ) -> object:
        try:
            response = await self.http_client.get(
                f"{self.node_url}{path}", params=params, timeout=30
            )
        except httpx.HTTPError as exc:
            raise TransportError(None, type(exc).__name__, str(exc)) from exc
        if not response.is_success:
            raise TransportError(
                response.status_code, response.reason_phrase, response.text
            )
        return _json_or_raise(response)

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()


@dataclass
class _TransferProgress:
    uploaded: int = 0


@dataclass
class HttpxChunkedUploader(ChunkedTransferClient):
    """Chunked uploader speaking the bundler ``/chunks`` protocol.

    The stream must already hold a signed data item; the bundler validates the
    signature when the upload is finished and the bytes are sent unchanged.
    The queue is only written to; ``None`` is reserved for the consumer.

    Chunks are read from the stream in order, one at a time, and posted with at
    most ``config.batch_size`` requests in flight. A failed chunk is retried up
    to ``config.retry_attempts`` times before the whole upload is abandoned.
    """

    node_url: str
    token: str
    config: ChunkedUploaderConfig
    http_client: httpx.AsyncClient

    @classmethod
    def create(
        cls, node_url: str, token: str, config: ChunkedUploaderConfig
    ) -> "HttpxChunkedUploader":
        """Create an uploader with a managed httpx session."""
        return cls(
            node_url=node_url.rstrip("/"),
            token=token,
            config=config,
            http_client=httpx.AsyncClient(),
        )

    async def upload(
        self,
        stream: BinaryIO,
        total_size: int,
        events: "asyncio.Queue[UploadEvent | None]",
    ) -> str:
        """Upload the stream chunk by chunk and return the transaction id."""
        upload_id = await self._start()
        semaphore = asyncio.Semaphore(self.config.batch_size)
        progress = _TransferProgress()
        tasks: list[asyncio.Task[None]] = []
        try:
            for chunk in plan_chunks(total_size, self.config.chunk_size):
                await semaphore.acquire()
                _raise_first_failure(tasks)
                data = await asyncio.to_thread(stream.read, chunk.size)
                if len(data) != chunk.size:
                    raise UploadError(
                        f"Source ended early at chunk #{chunk.id}: "
                        f"expected {chunk.size} bytes, read {len(data)}"
                    )
                tasks.append(
                    asyncio.create_task(
                        self._send_chunk(
                            upload_id, chunk, data, semaphore, events, progress
                        )
                    )
                )
            await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise
        transaction_id = await self._finish(upload_id)
        await events.put(UploadFinished(transaction_id=transaction_id))
        return transaction_id

    async def _start(self) -> str:
        payload = await self._request_json("GET", f"/chunks/{self.token}/-1/-1")
        upload_id = payload.get("id") if isinstance(payload, dict) else None
        if not upload_id:
            raise UploadError("Bundler did not return a chunked upload id")
        return str(upload_id)

    async def _finish(self, upload_id: str) -> str:
        payload = await self._request_json(
            "POST", f"/chunks/{self.token}/{upload_id}/-1"
        )
        transaction_id = payload.get("id") if isinstance(payload, dict) else None
        if not transaction_id:
            raise UploadError("Bundler did not return a transaction id")
        return str(transaction_id)

    async def _send_chunk(  # noqa: PLR0913
        self,
        upload_id: str,
        chunk: Chunk,
        data: bytes,
        semaphore: asyncio.Semaphore,
        events: "asyncio.Queue[UploadEvent | None]",
        progress: _TransferProgress,
    ) -> None:
        try:
            attempt = 0
            while True:
                try:
                    await self._post_chunk(upload_id, chunk, data)
                    break
                except ChunkError as exc:
                    attempt += 1
                    if attempt > self.config.retry_attempts:
                        raise UploadError(
                            f"Chunk #{chunk.id} failed after {attempt} attempts: "
                            f"{exc.detail}"
                        ) from exc
                    await events.put(ChunkFailed(chunk=chunk, detail=exc.detail))
                    await asyncio.sleep(self.config.retry_delay_seconds)
            progress.uploaded += chunk.size
            await events.put(
                ChunkUploaded(chunk=chunk, total_uploaded=progress.uploaded)
            )
        finally:
            semaphore.release()

    async def _post_chunk(self, upload_id: str, chunk: Chunk, data: bytes) -> None:
        url = f"{self.node_url}/chunks/{self.token}/{upload_id}/{chunk.offset}"
        try:
            response = await self.http_client.post(
                url,
                content=data,
                headers={"Content-Type": "application/octet-stream"},
                timeout=300,
            )
        except httpx.HTTPError as exc:
            raise ChunkError(chunk.id, f"{type(exc).__name__}: {exc}") from exc
        if not response.is_success:
            detail = f"{response.status_code} {response.reason_phrase}".strip()
            raise ChunkError(chunk.id, detail)

    async def _request_json(self, method: str, path: str) -> object:
        try:
            response = await self.http_client.request(
                method, f"{self.node_url}{path}", timeout=60
            )
        except httpx.HTTPError as exc:
            raise TransportError(None, type(exc).__name__, str(exc)) from exc
        if not response.is_success:
            raise TransportError(
                response.status_code, response.reason_phrase, response.text
            )
        return _json_or_raise(response)

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()


def _raise_first_failure(tasks: list[asyncio.Task[None]]) -> None:
    """Re-raise the error of the first finished chunk task that failed."""
    for task in tasks:
        if task.done() and not task.cancelled() and task.exception() is not None:
            raise task.exception()  # type: ignore[misc]


def _to_atomic(value: object) -> int | None:
    """Parse an atomic amount delivered as an integer or a digit string."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


def _atomic_or_raise(value: object, payload: object) -> int:
    amount = _to_atomic(value)
    if amount is None:
        raise TransportError(200, "Unexpected payload", repr(payload))
    return amount


def _json_or_raise(response: httpx.Response) -> object:
    try:
        return response.json()
    except ValueError as exc:
        raise TransportError(
            response.status_code, "Unexpected payload", response.text
        ) from exc

"""Chunked upload coordination with funding check and progress reporting."""

import asyncio
import logging
import math
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import BinaryIO

from ipfs_backup.adapters.irys_client import BundlerClient, ChunkedTransferClient
from ipfs_backup.domain.uploads import (
    ChunkFailed,
    ChunkUploaded,
    FundingQuote,
    ProgressSnapshot,
    UploadEvent,
    UploadFinished,
    UploadReceipt,
    UploadSession,
    UploadState,
)
from ipfs_backup.errors import InsufficientBalanceError, UploadError
from ipfs_backup.formatting import format_atomic, format_bytes, format_duration
from ipfs_backup.services.progress import ProgressGate, compute_snapshot

_logger = logging.getLogger(__name__)


@dataclass
class UploadCoordinator:
    """Drive one chunked upload and report its progress.

    The transfer client pushes chunk events into a bounded queue. A single
    reporting task consumes them in arrival order and is the only writer of
    the session counters.
    """

    bundler_client: BundlerClient
    transfer_client: ChunkedTransferClient
    wallet_address: str
    gateway_url: str = "https://gateway.irys.xyz"
    progress_interval_seconds: float = 5.0
    atomic_decimals: int = 6
    atomic_symbol: str = "USDC"
    event_buffer_size: int = 64
    clock: Callable[[], float] = time.monotonic

    async def check_funding(self, total_size: int) -> FundingQuote:
        """Verify the funded balance covers the price of ``total_size`` bytes."""
        price = await self.bundler_client.get_price(total_size)
        balance = await self.bundler_client.get_balance(self.wallet_address)
        quote = FundingQuote(price=price, balance=balance)
        _logger.info("Upload cost: %s atomic (%s)", price, self._atomic(price))
        _logger.info("Balance:     %s atomic (%s)", balance, self._atomic(balance))
        if not quote.sufficient:
            _logger.error(
                "Insufficient balance. Need %s more atomic (%s).",
                quote.deficit,
                self._atomic(quote.deficit),
            )
            _logger.error("Fund the bundler account first, then re-run.")
            raise InsufficientBalanceError(price=price, balance=balance)
        return quote

    def new_session(self, total_size: int) -> UploadSession:
        """Create an idle session starting now."""
        return UploadSession(total_size=total_size, started_at=self.clock())

    async def upload(self, stream: BinaryIO, total_size: int) -> UploadReceipt:
        """Check funding, then upload ``total_size`` bytes from ``stream``."""
        await self.check_funding(total_size)
        return await self.transfer(self.new_session(total_size), stream)

    async def transfer(
        self, session: UploadSession, stream: BinaryIO
    ) -> UploadReceipt:
        """Run the transfer for an idle session until a terminal state."""
        if session.state is not UploadState.IDLE:
            raise UploadError(f"Session already {session.state.value}")
        config = self.transfer_client.config
        _logger.info(
            "Starting chunked upload (%s chunks, batch size %s)...",
            format_bytes(config.chunk_size),
            config.batch_size,
        )
        events: asyncio.Queue[UploadEvent | None] = asyncio.Queue(
            maxsize=self.event_buffer_size
        )
        gate = ProgressGate(interval_seconds=self.progress_interval_seconds)
        session.state = UploadState.IN_PROGRESS
        reporter = asyncio.create_task(self._report(session, events, gate))
        try:
            transaction_id = await self.transfer_client.upload(
                stream, session.total_size, events
            )
        except Exception as exc:
            session.state = UploadState.FAILED
            _logger.error("Upload failed: %s", exc)
            if isinstance(exc, UploadError):
                raise
            raise UploadError(str(exc)) from exc
        except BaseException:
            session.state = UploadState.FAILED
            raise
        finally:
            await self._stop_reporter(reporter, events)

        if session.transaction_id is None:
            self._complete(session, transaction_id)
        elif session.transaction_id != transaction_id:
            _logger.error(
                "Transaction id mismatch: done event %s, response %s",
                session.transaction_id,
                transaction_id,
            )
            raise UploadError(
                f"Transaction id mismatch: {session.transaction_id} != {transaction_id}"
            )
        url = self._gateway_link(transaction_id)
        _logger.info("Response ID: %s", transaction_id)
        _logger.info("%s", url)
        elapsed = self.clock() - session.started_at
        return UploadReceipt(
            transaction_id=transaction_id,
            url=url,
            elapsed_seconds=elapsed,
            average_bytes_per_second=_average_speed(session.total_size, elapsed),
        )

    async def _report(
        self,
        session: UploadSession,
        events: "asyncio.Queue[UploadEvent | None]",
        gate: ProgressGate,
    ) -> None:
        while True:
            event = await events.get()
            if event is None:
                return
            if session.state.is_terminal:
                continue
            if isinstance(event, ChunkUploaded):
                self._record_progress(session, event, gate)
            elif isinstance(event, ChunkFailed):
                session.chunk_errors += 1
                _logger.warning(
                    "Chunk #%s error: %s (will retry)", event.chunk.id, event.detail
                )
            elif isinstance(event, UploadFinished):
                self._complete(session, event.transaction_id)

    async def _stop_reporter(
        self,
        reporter: "asyncio.Task[None]",
        events: "asyncio.Queue[UploadEvent | None]",
    ) -> None:
        await events.put(None)
        await reporter

    def _record_progress(
        self, session: UploadSession, event: ChunkUploaded, gate: ProgressGate
    ) -> None:
        now = self.clock()
        session.acknowledged_bytes = max(
            session.acknowledged_bytes, event.total_uploaded
        )
        session.chunks_completed += 1
        snapshot = compute_snapshot(
            chunk=event.chunk,
            total_uploaded=session.acknowledged_bytes,
            total_size=session.total_size,
            elapsed_seconds=now - session.started_at,
        )
        session.snapshots.append(snapshot)
        line = _progress_line(snapshot)
        if gate.should_emit(now):
            session.visible_reports += 1
            _logger.info("%s", line)
        else:
            _logger.debug("%s", line)

    def _complete(self, session: UploadSession, transaction_id: str) -> None:
        elapsed = self.clock() - session.started_at
        session.acknowledged_bytes = session.total_size
        session.snapshots.append(
            compute_snapshot(
                chunk=None,
                total_uploaded=session.total_size,
                total_size=session.total_size,
                elapsed_seconds=elapsed,
            )
        )
        session.transaction_id = transaction_id
        session.state = UploadState.COMPLETED
        _logger.info("Upload complete!")
        _logger.info("TX ID: %s", transaction_id)
        _logger.info("URL: %s", self._gateway_link(transaction_id))
        _logger.info("Duration: %s", format_duration(elapsed))
        _logger.info(
            "Avg speed: %s/s",
            format_bytes(_average_speed(session.total_size, elapsed)),
        )

    def _gateway_link(self, transaction_id: str) -> str:
        return f"{self.gateway_url.rstrip('/')}/{transaction_id}"

    def _atomic(self, amount: int) -> str:
        return format_atomic(amount, self.atomic_decimals, self.atomic_symbol)


def _average_speed(total_size: int, elapsed_seconds: float) -> float:
    if elapsed_seconds <= 0:
        return math.inf
    return total_size / elapsed_seconds


def _progress_line(snapshot: ProgressSnapshot) -> str:
    chunk = snapshot.chunk
    chunk_part = (
        f"chunk #{chunk.id} ({format_bytes(chunk.size)})" if chunk else "final"
    )
    return (
        f"{snapshot.percent:.2f}% | "
        f"{format_bytes(snapshot.total_uploaded)}/"
        f"{format_bytes(snapshot.total_size)} | "
        f"{chunk_part} | {format_bytes(snapshot.bytes_per_second)}/s | "
        f"ETA: {format_duration(snapshot.eta_seconds)}"
    )

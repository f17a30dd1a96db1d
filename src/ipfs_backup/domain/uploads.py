"""Domain models for chunked uploads."""

from dataclasses import dataclass, field
from enum import Enum


@dataclass(frozen=True)
class Chunk:
    """Contiguous byte range of the upload source."""

    id: int
    offset: int
    size: int


def plan_chunks(total_size: int, chunk_size: int) -> list[Chunk]:
    """Split ``total_size`` bytes into ordered chunks of at most ``chunk_size``."""
    if chunk_size <= 0:
        raise ValueError("chunk_size must be positive")
    if total_size < 0:
        raise ValueError("total_size must not be negative")
    return [
        Chunk(id=index, offset=offset, size=min(chunk_size, total_size - offset))
        for index, offset in enumerate(range(0, total_size, chunk_size))
    ]


@dataclass(frozen=True)
class ChunkUploaded:
    """A chunk was acknowledged; ``total_uploaded`` is the running total."""

    chunk: Chunk
    total_uploaded: int


@dataclass(frozen=True)
class ChunkFailed:
    """A chunk attempt failed remotely and will be retried by the transfer client."""

    chunk: Chunk
    detail: str


@dataclass(frozen=True)
class UploadFinished:
    """The bundler accepted the whole upload."""

    transaction_id: str


UploadEvent = ChunkUploaded | ChunkFailed | UploadFinished


@dataclass(frozen=True)
class ProgressSnapshot:
    """Derived upload metrics at the time of one chunk event."""

    chunk: Chunk | None
    total_uploaded: int
    total_size: int
    elapsed_seconds: float
    percent: float
    bytes_per_second: float
    eta_seconds: float


class UploadState(Enum):
    """Lifecycle of an upload session."""

    IDLE = "idle"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in {UploadState.COMPLETED, UploadState.FAILED}


@dataclass
class UploadSession:
    """Mutable counters for one transfer, owned by the coordinator."""

    total_size: int
    started_at: float
    state: UploadState = UploadState.IDLE
    acknowledged_bytes: int = 0
    chunks_completed: int = 0
    chunk_errors: int = 0
    visible_reports: int = 0
    transaction_id: str | None = None
    snapshots: list[ProgressSnapshot] = field(default_factory=list)


@dataclass(frozen=True)
class FundingQuote:
    """Upload price and funded balance, both in atomic units."""

    price: int
    balance: int

    @property
    def sufficient(self) -> bool:
        return self.balance >= self.price

    @property
    def deficit(self) -> int:
        return max(self.price - self.balance, 0)


@dataclass(frozen=True)
class UploadReceipt:
    """Completion record for a finished upload."""

    transaction_id: str
    url: str
    elapsed_seconds: float
    average_bytes_per_second: float

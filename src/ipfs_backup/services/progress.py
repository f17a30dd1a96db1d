"""Upload progress metrics and report throttling."""

import math
from dataclasses import dataclass

from ipfs_backup.domain.uploads import Chunk, ProgressSnapshot


def compute_snapshot(
    *,
    chunk: Chunk | None,
    total_uploaded: int,
    total_size: int,
    elapsed_seconds: float,
) -> ProgressSnapshot:
    """Derive percent, throughput and ETA from the running totals.

    Nothing is smoothed. A zero elapsed time yields infinite throughput, and
    the ETA is infinite whenever bytes remain but the throughput is not a
    usable finite number.
    """
    percent = total_uploaded / total_size * 100 if total_size > 0 else 100.0
    if elapsed_seconds > 0:
        bytes_per_second = total_uploaded / elapsed_seconds
    else:
        bytes_per_second = math.inf
    remaining = total_size - total_uploaded
    if remaining <= 0:
        eta_seconds = 0.0
    elif bytes_per_second > 0 and math.isfinite(bytes_per_second):
        eta_seconds = remaining / bytes_per_second
    else:
        eta_seconds = math.inf
    return ProgressSnapshot(
        chunk=chunk,
        total_uploaded=total_uploaded,
        total_size=total_size,
        elapsed_seconds=elapsed_seconds,
        percent=percent,
        bytes_per_second=bytes_per_second,
        eta_seconds=eta_seconds,
    )


@dataclass
class ProgressGate:
    """Interval gate deciding which progress reports are shown to the operator."""

    interval_seconds: float
    last_emit: float | None = None

    def should_emit(self, now: float) -> bool:
        """Return True and remember ``now`` if the interval has elapsed."""
        if self.last_emit is None or now - self.last_emit >= self.interval_seconds:
            self.last_emit = now
            return True
        return False

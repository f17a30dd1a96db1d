"""Writing CID listings to disk."""

import json
import logging
from datetime import UTC, datetime
from pathlib import Path

_logger = logging.getLogger(__name__)


def write_cid_listing(
    cids: list[str], output_dir: str | Path, now: datetime | None = None
) -> Path:
    """Write ``cids`` as a JSON array to a fresh ``cids_<unix-ms>.json`` file."""
    directory = Path(output_dir)
    directory.mkdir(parents=True, exist_ok=True)
    moment = now or datetime.now(tz=UTC)
    filename = f"cids_{int(moment.timestamp() * 1000)}.json"
    path = directory / filename
    path.write_text(json.dumps(cids, indent=2), encoding="utf-8")
    _logger.info("Written to %s", path)
    return path

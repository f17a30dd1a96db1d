"""Command line entrypoint for the backup tools."""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from ipfs_backup.app_logging import configure_logging
from ipfs_backup.config import Settings
from ipfs_backup.containers import build_listing_container, build_upload_container
from ipfs_backup.domain.data_items import HEADER_PEEK_BYTES, parse_data_item_header
from ipfs_backup.domain.uploads import UploadReceipt
from ipfs_backup.errors import IpfsBackupError
from ipfs_backup.formatting import format_bytes
from ipfs_backup.services.exports import write_cid_listing

_logger = logging.getLogger("ipfs_backup.main")


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with the ``list-cids`` and ``upload`` commands."""
    parser = argparse.ArgumentParser(
        prog="ipfs-backup",
        description="Export pinned CIDs and upload IPFS backup archives",
    )
    sub = parser.add_subparsers(dest="command", metavar="COMMAND")

    p = sub.add_parser("list-cids", help="Export every pinned CID to a JSON file")
    p.add_argument("--output-dir", help="Directory for the cids_<ms>.json file")

    p = sub.add_parser("upload", help="Upload the backup archive in chunks")
    p.add_argument("--file", help="Archive to upload (default: BACKUP_FILE_PATH)")
    p.add_argument("--log-file", help="Append-only log file (default: UPLOAD_LOG_FILE)")

    return parser


async def run_list_cids(settings: Settings, output_dir: str | None) -> Path:
    """Fetch every pinned CID and write the listing file."""
    container = build_listing_container(settings)
    try:
        _logger.info("Fetching pinned CIDs from Pinata...")
        cids = await container.pin_enumerator.fetch_all()
    finally:
        await container.close_resources()
    _logger.info("Total CIDs: %s", len(cids))
    return write_cid_listing(cids, output_dir or settings.cid_output_dir)


async def run_upload(settings: Settings, file_path: Path) -> UploadReceipt:
    """Upload ``file_path`` through the chunked upload coordinator."""
    if not file_path.is_file():
        raise FileNotFoundError(f"File not found: {file_path}")
    file_size = file_path.stat().st_size
    _logger.info("File: %s", file_path)
    _logger.info("Size: %s (%s bytes)", format_bytes(file_size), file_size)

    container = build_upload_container(settings)
    try:
        _logger.info(
            "Connecting to bundler %s (%s)...",
            settings.irys_node_url,
            settings.irys_token,
        )
        _logger.info("Wallet: %s", container.upload_coordinator.wallet_address)
        with file_path.open("rb") as stream:
            header = parse_data_item_header(stream.read(HEADER_PEEK_BYTES), file_size)
            _logger.info(
                "Data item: signature type %s, %s tags, %s header bytes",
                header.signature_type,
                header.tag_count,
                header.header_size,
            )
            stream.seek(0)
            return await container.upload_coordinator.upload(stream, file_size)
    finally:
        await container.close_resources()


def main(argv: list[str] | None = None, settings: Settings | None = None) -> int:
    """Run a command and return the process exit code."""
    parser = build_parser()
    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help()
        return 1

    resolved_settings = settings or Settings()
    if args.command == "upload":
        configure_logging(args.log_file or resolved_settings.upload_log_file)
    else:
        configure_logging()

    try:
        if args.command == "list-cids":
            asyncio.run(run_list_cids(resolved_settings, args.output_dir))
        else:
            file_path = Path(args.file or resolved_settings.backup_file_path)
            asyncio.run(run_upload(resolved_settings, file_path))
    except (IpfsBackupError, FileNotFoundError) as exc:
        _logger.error("FAILED: %s", exc)
        return 1
    return 0


def run() -> None:
    """Console script entrypoint."""
    sys.exit(main())


if __name__ == "__main__":
    run()

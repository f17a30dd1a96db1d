"""Dependency container wiring for the command line tools."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from ipfs_backup.adapters.irys_client import (
    ChunkedUploaderConfig,
    HttpxChunkedUploader,
    HttpxIrysClient,
)
from ipfs_backup.adapters.pinata_client import HttpxPinataClient
from ipfs_backup.config import Settings, require_setting
from ipfs_backup.errors import ConfigurationError
from ipfs_backup.services.pins import PinEnumerator
from ipfs_backup.services.uploads import UploadCoordinator


@dataclass
class ListingContainer:
    """Dependencies for exporting the pinned CID listing."""

    settings: Settings
    pin_enumerator: PinEnumerator
    close_resources: Callable[[], Awaitable[None]]


@dataclass
class UploadContainer:
    """Dependencies for uploading the backup archive."""

    settings: Settings
    upload_coordinator: UploadCoordinator
    close_resources: Callable[[], Awaitable[None]]


def build_listing_container(settings: Settings | None = None) -> ListingContainer:
    """Create the container used by the ``list-cids`` command."""
    resolved_settings = settings or Settings()
    pinata_client = HttpxPinataClient.create(
        jwt=require_setting(resolved_settings.pinata_jwt, "PINATA_JWT"),
        base_url=resolved_settings.pinata_api_url,
    )
    pin_enumerator = PinEnumerator(
        client=pinata_client, page_limit=resolved_settings.pin_page_limit
    )

    async def close_resources() -> None:
        await pinata_client.close()

    return ListingContainer(
        settings=resolved_settings,
        pin_enumerator=pin_enumerator,
        close_resources=close_resources,
    )


def build_upload_container(settings: Settings | None = None) -> UploadContainer:
    """Create the container used by the ``upload`` command."""
    resolved_settings = settings or Settings()
    wallet_address = require_setting(resolved_settings.wallet_address, "WALLET_ADDRESS")
    # The uploader is built once; its chunk and batch sizes never change.
    try:
        uploader_config = ChunkedUploaderConfig(
            chunk_size=resolved_settings.upload_chunk_size,
            batch_size=resolved_settings.upload_batch_size,
            retry_attempts=resolved_settings.chunk_retry_attempts,
            retry_delay_seconds=resolved_settings.chunk_retry_delay_seconds,
        )
    except ValueError as exc:
        raise ConfigurationError(f"Invalid upload settings: {exc}") from exc
    bundler_client = HttpxIrysClient.create(
        node_url=resolved_settings.irys_node_url,
        token=resolved_settings.irys_token,
    )
    transfer_client = HttpxChunkedUploader.create(
        node_url=resolved_settings.irys_node_url,
        token=resolved_settings.irys_token,
        config=uploader_config,
    )
    upload_coordinator = UploadCoordinator(
        bundler_client=bundler_client,
        transfer_client=transfer_client,
        wallet_address=wallet_address,
        gateway_url=resolved_settings.irys_gateway_url,
        progress_interval_seconds=resolved_settings.progress_interval_seconds,
        atomic_decimals=resolved_settings.atomic_decimals,
        atomic_symbol=resolved_settings.atomic_symbol,
    )

    async def close_resources() -> None:
        await bundler_client.close()
        await transfer_client.close()

    return UploadContainer(
        settings=resolved_settings,
        upload_coordinator=upload_coordinator,
        close_resources=close_resources,
    )

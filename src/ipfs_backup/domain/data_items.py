"""Structural checks for signed bundler data items.

The bundler only accepts a chunked upload whose bytes form a signed data
item: a little-endian signature type, the signature and owner key, optional
target and anchor fields, then the encoded tags and the payload. The archive
must be signed before upload; this module only checks that the header is
well formed so an unsigned file fails before any funds are spent.
"""

from dataclasses import dataclass

from ipfs_backup.errors import DataItemError

# signature type -> (signature length, owner key length)
SIGNATURE_LAYOUTS: dict[int, tuple[int, int]] = {
    1: (512, 512),  # arweave
    2: (64, 32),  # ed25519
    3: (65, 65),  # ethereum
    4: (64, 32),  # solana
    5: (64, 32),  # injected aptos
    6: (2052, 1025),  # multi aptos
    7: (65, 42),  # typed ethereum
}

_OPTIONAL_FIELD_SIZE = 32
_TAG_COUNTS_SIZE = 16

# Enough bytes to cover the fixed part of the largest header.
HEADER_PEEK_BYTES = 4096


@dataclass(frozen=True)
class DataItemHeader:
    """Parsed fixed part of a data item header."""

    signature_type: int
    tag_count: int
    header_size: int


def parse_data_item_header(head: bytes, total_size: int) -> DataItemHeader:
    """Parse the leading bytes of a data item of ``total_size`` bytes.

    Raises ``DataItemError`` when the bytes cannot be the start of a signed
    data item.
    """
    if len(head) < 2:
        raise DataItemError("too short to hold a signature type")
    signature_type = int.from_bytes(head[:2], "little")
    layout = SIGNATURE_LAYOUTS.get(signature_type)
    if layout is None:
        raise DataItemError(f"unknown signature type {signature_type}")
    signature_size, owner_size = layout
    position = 2 + signature_size + owner_size

    for name in ("target", "anchor"):
        if len(head) <= position:
            raise DataItemError(f"header ends before the {name} flag")
        flag = head[position]
        if flag not in (0, 1):
            raise DataItemError(f"invalid {name} flag {flag}")
        position += 1 + (_OPTIONAL_FIELD_SIZE if flag else 0)

    if len(head) < position + _TAG_COUNTS_SIZE:
        raise DataItemError("header ends before the tag counts")
    tag_count = int.from_bytes(head[position : position + 8], "little")
    tag_bytes = int.from_bytes(head[position + 8 : position + 16], "little")
    if tag_count and not tag_bytes:
        raise DataItemError(f"{tag_count} tags declared with no tag bytes")
    header_size = position + _TAG_COUNTS_SIZE + tag_bytes
    if header_size > total_size:
        raise DataItemError(
            f"header needs {header_size} bytes but the source has {total_size}"
        )
    return DataItemHeader(
        signature_type=signature_type, tag_count=tag_count, header_size=header_size
    )

"""Chunk decoding.

Every file of a pagefind bundle is either gzip-compressed or already
inflated, in which case it starts with a 12-byte ASCII signature. The
signature is also present inside the gzip stream of current bundles but
older bundles omit it, so its absence after inflation is tolerated.
"""

from __future__ import annotations

import gzip
import zlib

from pagefind_client.domain.errors import DecodeError


SIGNATURE = b"pagefind_dcd"
SIGNATURE_LEN = len(SIGNATURE)


def has_signature(data: bytes) -> bool:
    return data[:SIGNATURE_LEN] == SIGNATURE


def decompress(data: bytes, resource: str = "<chunk>") -> bytes:
    """Decode a bundle file into its raw payload.

    Args:
        data: Bytes as served
        resource: Url or path of the file, used in error messages

    Returns:
        The payload with any signature prefix removed

    Raises:
        DecodeError: If the data is neither signature-prefixed nor a valid gzip stream
    """
    if has_signature(data):
        return data[SIGNATURE_LEN:]

    try:
        inflated = gzip.decompress(data)
    except (OSError, EOFError, zlib.error) as exc:
        raise DecodeError(resource, f"gzip inflation failed: {exc}") from exc

    if has_signature(inflated):
        return inflated[SIGNATURE_LEN:]
    return inflated

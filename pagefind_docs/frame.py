"""Decoder for the gzip + fixed-header envelope used by Pagefind binaries."""

from __future__ import annotations

import gzip
import zlib

from .errors import FormatError

# Length of the "pagefind_dcd" magic prefix. Only the length is checked.
HEADER_SIZE = 12


def decode_frame(data: bytes) -> bytes:
    """Gunzip *data* and strip the fixed-size header, returning the payload.

    Raises:
        FormatError: If the input is not valid gzip or the decompressed
            buffer is too short to hold the header.
    """
    try:
        decompressed = gzip.decompress(data)
    except (OSError, EOFError, zlib.error) as exc:
        raise FormatError(f"Failed to gunzip Pagefind frame: {exc}") from exc

    if len(decompressed) < HEADER_SIZE:
        raise FormatError(
            f"Decompressed Pagefind data is {len(decompressed)} bytes, shorter "
            f"than the required {HEADER_SIZE}-byte header"
        )

    return decompressed[HEADER_SIZE:]

"""BTX container framing.

A BTX file is a fixed 4-byte magic followed verbatim by a KTX payload.
There is no length field and no checksum.
"""

from .errors import MalformedInput

BTX_MAGIC = bytes([0x4B, 0x54, 0x58, 0x11])
HEADER_SIZE = len(BTX_MAGIC)


def strip(data: bytes) -> bytes:
    """Drop the BTX header and return the inner payload unchanged."""
    if len(data) < HEADER_SIZE:
        raise MalformedInput(
            f"input is {len(data)} bytes, shorter than the {HEADER_SIZE}-byte BTX header"
        )
    return bytes(data[HEADER_SIZE:])


def wrap(payload: bytes) -> bytes:
    return BTX_MAGIC + bytes(payload)

"""BSDIFF40 header parsing.

Header layout (32 bytes, little-endian):

    0   8   "BSDIFF40"
    8   8   compressed length of the control segment
    16  8   compressed length of the diff segment
    24  8   size of the reconstructed file

The three lengths use the bsdiff offset encoding (see ``read_offset``): a
63-bit magnitude plus a sign flag in the top bit, not two's complement.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import BinaryIO, Callable

from ..exceptions import CorruptPatchError

BSDIFF_MAGIC = b"BSDIFF40"
HEADER_SIZE = 32
OFFSET_SIZE = 8

PatchOpener = Callable[[], BinaryIO]


@dataclass(frozen=True)
class PatchHeader:
    """Parsed patch header."""

    signature: bytes
    control_length: int
    diff_length: int
    new_size: int

    @property
    def control_offset(self) -> int:
        return HEADER_SIZE

    @property
    def diff_offset(self) -> int:
        return HEADER_SIZE + self.control_length

    @property
    def extra_offset(self) -> int:
        return HEADER_SIZE + self.control_length + self.diff_length

    def to_dict(self) -> dict:
        return {
            "signature": self.signature.decode("ascii", errors="replace"),
            "control_length": self.control_length,
            "diff_length": self.diff_length,
            "new_size": self.new_size,
        }


def read_offset(buf: bytes, offset: int = 0) -> int:
    """Decode one 8-byte bsdiff offset starting at ``offset``.

    Bytes 0..6 and the low 7 bits of byte 7 form the magnitude; bit 7 of
    byte 7 negates it.
    """
    if len(buf) - offset < OFFSET_SIZE:
        raise CorruptPatchError(reason="truncated offset field", offset=offset)

    top = buf[offset + 7]
    value = top & 0x7F
    for index in range(6, -1, -1):
        value = value * 256 + buf[offset + index]

    if top & 0x80:
        value = -value
    return value


def read_exactly(stream: BinaryIO, count: int) -> bytes:
    """Read exactly ``count`` bytes from a patch stream.

    Short reads are retried; running out of data raises ``CorruptPatchError``.
    """
    if count < 0:
        raise ValueError("count must not be negative")

    chunks = []
    remaining = count
    while remaining > 0:
        chunk = stream.read(remaining)
        if not chunk:
            raise CorruptPatchError(
                reason="unexpected end of patch data",
                details={"expected": count, "received": count - remaining},
            )
        chunks.append(chunk)
        remaining -= len(chunk)
    return b"".join(chunks)


def parse_header(stream: BinaryIO) -> PatchHeader:
    """Read and validate the 32-byte header from ``stream``.

    Raises:
        CorruptPatchError: bad magic, negative lengths or a short header
    """
    header = read_exactly(stream, HEADER_SIZE)

    signature = header[:OFFSET_SIZE]
    if signature != BSDIFF_MAGIC:
        raise CorruptPatchError(reason="bad signature", offset=0,
                                details={"signature": signature.hex()})

    control_length = read_offset(header, 8)
    diff_length = read_offset(header, 16)
    new_size = read_offset(header, 24)
    if control_length < 0 or diff_length < 0 or new_size < 0:
        raise CorruptPatchError(
            reason="negative length in header",
            details={
                "control_length": control_length,
                "diff_length": diff_length,
                "new_size": new_size,
            },
        )

    return PatchHeader(signature, control_length, diff_length, new_size)


def check_patch_stream(stream: BinaryIO) -> None:
    """Reject patch cursors that cannot be read and repositioned."""
    if not stream.readable():
        raise ValueError("Patch stream must be readable.")
    if not stream.seekable():
        raise ValueError("Patch stream must be seekable.")


def read_header(open_patch: PatchOpener) -> PatchHeader:
    """Open a fresh cursor from ``open_patch``, parse the header and close it."""
    with open_patch() as stream:
        check_patch_stream(stream)
        return parse_header(stream)

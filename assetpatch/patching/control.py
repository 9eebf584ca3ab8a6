"""Control block decoding.

The decompressed control segment is a flat sequence of 24-byte records,
each holding three bsdiff offsets: bytes to merge from the old file, bytes
to copy from the extra segment, and how far to move the old-file cursor.
"""

from __future__ import annotations

from typing import NamedTuple

from .header import OFFSET_SIZE, read_offset
from .segments import SegmentStream

CONTROL_RECORD_SIZE = 3 * OFFSET_SIZE


class ControlTriple(NamedTuple):
    copy_len: int
    extra_len: int
    seek_offset: int


class ControlDecoder:
    """Reads ``ControlTriple`` records one at a time from the control stream."""

    def __init__(self, stream: SegmentStream):
        self._stream = stream
        self.records_read = 0

    def read_triple(self) -> ControlTriple:
        record = self._stream.read_exactly(CONTROL_RECORD_SIZE)
        self.records_read += 1
        return ControlTriple(
            read_offset(record, 0),
            read_offset(record, OFFSET_SIZE),
            read_offset(record, 2 * OFFSET_SIZE),
        )


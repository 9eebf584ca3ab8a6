"""Compressed segment streams of a BSDIFF40 container.

The control, diff and extra segments are read interleaved during
reconstruction, so each one gets its own cursor from the patch opener and
its own decompressor. Every cursor is bounded to its segment so a
decompressor never runs into the next segment's bytes.
"""

from __future__ import annotations

import bz2
import gzip
import io
import logging
import zlib
from contextlib import ExitStack, contextmanager
from dataclasses import dataclass
from typing import BinaryIO, Iterator, Optional

from ..exceptions import CorruptPatchError
from .header import PatchHeader, PatchOpener, check_patch_stream, read_exactly

logger = logging.getLogger(__name__)

SEGMENT_CODECS = ("auto", "gzip", "bz2")

GZIP_MAGIC = b"\x1f\x8b"
BZ2_MAGIC = b"BZh"

# Errors the decompressors raise for malformed or truncated input. bz2
# reports bad data as a plain OSError, so I/O failures on the patch cursor
# are raised as SegmentReadError and kept apart.
_DECOMPRESSION_ERRORS = (OSError, EOFError, zlib.error)


class SegmentReadError(OSError):
    """Reading the patch container itself failed."""


class SegmentWindow(io.RawIOBase):
    """Read-only view over ``length`` bytes of ``raw`` starting at ``start``.

    ``start`` is relative to the cursor position at construction time, which
    for a freshly opened patch stream is the container start. ``length=None``
    means "up to the end of the container". Closing the window leaves ``raw``
    open; its owner closes it.
    """

    def __init__(self, raw: BinaryIO, start: int, length: Optional[int] = None):
        super().__init__()
        self._raw = raw
        self._start = raw.tell() + start
        self._length = length
        self._pos = 0

    def readable(self) -> bool:
        return True

    def seekable(self) -> bool:
        return True

    def tell(self) -> int:
        return self._pos

    def seek(self, pos: int, whence: int = io.SEEK_SET) -> int:
        if whence == io.SEEK_SET:
            target = pos
        elif whence == io.SEEK_CUR:
            target = self._pos + pos
        elif whence == io.SEEK_END:
            if self._length is None:
                end = self._raw.seek(0, io.SEEK_END) - self._start
            else:
                end = self._length
            target = end + pos
        else:
            raise ValueError(f"Invalid whence: {whence}")
        if target < 0:
            raise ValueError("Negative seek position")
        self._pos = target
        return self._pos

    def readinto(self, buffer) -> int:
        size = len(buffer)
        if self._length is not None:
            size = min(size, self._length - self._pos)
        if size <= 0:
            return 0

        try:
            self._raw.seek(self._start + self._pos)
            data = self._raw.read(size)
        except OSError as exc:
            raise SegmentReadError(f"Cannot read patch data: {exc}") from exc
        count = len(data)
        buffer[:count] = data
        self._pos += count
        return count


def detect_codec(window: SegmentWindow) -> str:
    """Guess the segment codec from its first bytes.

    Empty or unrecognised segments are treated as gzip; reading them then
    fails as corruption.
    """
    head = window.read(len(BZ2_MAGIC))
    window.seek(0)
    if head.startswith(BZ2_MAGIC):
        return "bz2"
    return "gzip"


def _open_decompressor(window: SegmentWindow, codec: str) -> BinaryIO:
    if codec == "gzip":
        return gzip.GzipFile(fileobj=window, mode="rb")
    if codec == "bz2":
        return bz2.BZ2File(window, mode="rb")
    raise ValueError(f"Unsupported segment codec: {codec}")


class SegmentStream:
    """Decompressed reader over one patch segment."""

    def __init__(self, name: str, decompressor: BinaryIO, codec: str):
        self.name = name
        self.codec = codec
        self._decompressor = decompressor

    def read_exactly(self, count: int) -> bytes:
        """Read ``count`` decompressed bytes or raise ``CorruptPatchError``."""
        try:
            return read_exactly(self._decompressor, count)
        except CorruptPatchError as exc:
            raise CorruptPatchError(
                reason=f"{self.name} segment ended early",
                details=dict(exc.details, segment=self.name),
            ) from exc
        except SegmentReadError:
            raise
        except _DECOMPRESSION_ERRORS as exc:
            raise CorruptPatchError(
                reason=f"{self.name} segment could not be decompressed",
                details={"segment": self.name, "codec": self.codec, "error": str(exc)},
            ) from exc


@dataclass(frozen=True)
class SegmentStreams:
    control: SegmentStream
    diff: SegmentStream
    extra: SegmentStream


def _open_segment(
    stack: ExitStack,
    open_patch: PatchOpener,
    name: str,
    offset: int,
    length: Optional[int],
    codec: str,
) -> SegmentStream:
    raw = stack.enter_context(open_patch())
    check_patch_stream(raw)
    window = stack.enter_context(SegmentWindow(raw, offset, length))

    if codec == "auto":
        codec = detect_codec(window)

    decompressor = stack.enter_context(_open_decompressor(window, codec))
    logger.debug("Opened %s segment at offset %d (codec=%s)", name, offset, codec)
    return SegmentStream(name, decompressor, codec)


@contextmanager
def open_segment_streams(
    open_patch: PatchOpener,
    header: PatchHeader,
    codec: str = "auto",
) -> Iterator[SegmentStreams]:
    """Open the control, diff and extra decompression streams.

    Each segment uses its own cursor from ``open_patch``; all cursors and
    decompressors are closed when the context exits, including when opening
    one of them fails.
    """
    if codec not in SEGMENT_CODECS:
        raise ValueError(f"Unsupported segment codec: {codec}")

    with ExitStack() as stack:
        control = _open_segment(stack, open_patch, "control",
                                header.control_offset, header.control_length, codec)
        diff = _open_segment(stack, open_patch, "diff",
                             header.diff_offset, header.diff_length, codec)
        extra = _open_segment(stack, open_patch, "extra",
                              header.extra_offset, None, codec)
        yield SegmentStreams(control, diff, extra)

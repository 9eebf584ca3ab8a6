"""BSDIFF40 reconstruction engine.

Rebuilds the new file from the old file and a patch container:

- for each control record, add ``copy_len`` diff bytes to the old bytes at
  the old-file cursor (mod 256) and write the result;
- copy ``extra_len`` bytes from the extra segment verbatim;
- move the old-file cursor by ``seek_offset``.

Old bytes past the end of the old file count as zero. The loop stops when
exactly ``new_size`` bytes have been written; every step that would write
past ``new_size`` is rejected as corruption.
"""

from __future__ import annotations

import io
import logging
from typing import BinaryIO, Optional

import numpy as np

from ..exceptions import CorruptPatchError, PatchCancelledError
from .control import ControlDecoder
from .header import PatchHeader, PatchOpener, read_header
from .models import CancelTokenProtocol, is_cancelled
from .reporting import (
    EVENT_CANCELLED,
    EVENT_COMPLETED,
    EVENT_FAILED,
    EVENT_HEADER,
    EVENT_PROGRESS,
    LoggingReporter,
    PatchEvent,
    PatchReporter,
)
from .segments import SegmentStreams, open_segment_streams

logger = logging.getLogger(__name__)

DEFAULT_BUFFER_SIZE = 1024 * 1024
DEFAULT_PROGRESS_INTERVAL = 8 * 1024 * 1024


def _stream_length(stream: BinaryIO) -> int:
    current = stream.tell()
    end = stream.seek(0, io.SEEK_END)
    stream.seek(current)
    return end


def _read_old(stream: BinaryIO, count: int) -> bytes:
    chunks = []
    remaining = count
    while remaining > 0:
        chunk = stream.read(remaining)
        if not chunk:
            raise OSError(f"Old file ended early: expected {count} bytes, got {count - remaining}")
        chunks.append(chunk)
        remaining -= len(chunk)
    return b"".join(chunks)


class ReconstructionEngine:
    """Drives the control loop for one apply call.

    Owns the two cursors; the streams themselves belong to the caller.
    """

    def __init__(
        self,
        old: BinaryIO,
        streams: SegmentStreams,
        output: BinaryIO,
        header: PatchHeader,
        reporter: PatchReporter,
        cancel_token: Optional[CancelTokenProtocol] = None,
        buffer_size: int = DEFAULT_BUFFER_SIZE,
        progress_interval: int = DEFAULT_PROGRESS_INTERVAL,
    ):
        self._old = old
        self._streams = streams
        self._output = output
        self._header = header
        self._reporter = reporter
        self._cancel_token = cancel_token
        self._buffer_size = buffer_size
        self._progress_interval = progress_interval
        self._old_size = _stream_length(old)

        self.old_position = 0
        self.new_position = 0

    def run(self) -> None:
        decoder = ControlDecoder(self._streams.control)
        new_size = self._header.new_size
        next_progress = self._progress_interval

        while self.new_position < new_size:
            if is_cancelled(self._cancel_token):
                raise PatchCancelledError(new_position=self.new_position)

            copy_len, extra_len, seek_offset = decoder.read_triple()
            if copy_len < 0 or extra_len < 0:
                raise CorruptPatchError(
                    reason="negative length in control record",
                    offset=self.new_position,
                    details={"record": decoder.records_read, "copy_len": copy_len, "extra_len": extra_len},
                )

            # sanity-check
            if self.new_position + copy_len > new_size:
                raise CorruptPatchError(
                    reason="diff data overruns declared size",
                    offset=self.new_position,
                    details={"record": decoder.records_read, "copy_len": copy_len, "new_size": new_size},
                )
            self._merge(copy_len)

            # sanity-check
            if self.new_position + extra_len > new_size:
                raise CorruptPatchError(
                    reason="extra data overruns declared size",
                    offset=self.new_position,
                    details={"record": decoder.records_read, "extra_len": extra_len, "new_size": new_size},
                )
            self._copy_extra(extra_len)

            self.old_position += seek_offset

            if self.new_position >= next_progress:
                self._report_progress()
                next_progress = self.new_position + self._progress_interval

        logger.debug("Applied %d control records", decoder.records_read)

    def _merge(self, count: int) -> None:
        if count == 0:
            return
        if self.old_position < 0:
            raise CorruptPatchError(
                reason="old file position is negative",
                offset=self.new_position,
                details={"old_position": self.old_position},
            )

        self._old.seek(self.old_position)
        while count > 0:
            chunk = min(count, self._buffer_size)

            diff = self._streams.diff.read_exactly(chunk)
            merged = np.frombuffer(diff, dtype=np.uint8).copy()

            # old bytes past EOF contribute nothing
            available = max(0, min(chunk, self._old_size - self.old_position))
            if available:
                old_bytes = _read_old(self._old, available)
                merged[:available] += np.frombuffer(old_bytes, dtype=np.uint8)

            self._output.write(merged.tobytes())

            self.new_position += chunk
            self.old_position += chunk
            count -= chunk

    def _copy_extra(self, count: int) -> None:
        while count > 0:
            chunk = min(count, self._buffer_size)
            self._output.write(self._streams.extra.read_exactly(chunk))
            self.new_position += chunk
            count -= chunk

    def _report_progress(self) -> None:
        new_size = self._header.new_size
        percent = (self.new_position / new_size * 100) if new_size else 100.0
        self._reporter.report(PatchEvent(
            EVENT_PROGRESS,
            f"Reconstructed {self.new_position}/{new_size} bytes",
            {"new_position": self.new_position, "new_size": new_size, "percent": round(percent, 1)},
        ))


def apply_patch(
    old: BinaryIO,
    open_patch: PatchOpener,
    output: BinaryIO,
    *,
    reporter: Optional[PatchReporter] = None,
    cancel_token: Optional[CancelTokenProtocol] = None,
    buffer_size: int = DEFAULT_BUFFER_SIZE,
    progress_interval: int = DEFAULT_PROGRESS_INTERVAL,
    codec: str = "auto",
) -> PatchHeader:
    """Apply a BSDIFF40 patch to ``old`` and write the new file to ``output``.

    Args:
        old: Seekable, readable old file. Read and repositioned only.
        open_patch: Zero-argument callable returning a fresh, independent,
            seekable stream positioned at the start of the patch on every
            call. It is called four times (header plus three segments).
        output: Writable sink receiving exactly ``new_size`` bytes.
        reporter: Receives ``PatchEvent`` objects; defaults to logging.
        cancel_token: Checked between control records.
        buffer_size: Upper bound on bytes processed per chunk.
        progress_interval: Output bytes between progress events.
        codec: Segment codec, one of "auto", "gzip", "bz2".

    Returns:
        The parsed patch header.

    Raises:
        CorruptPatchError: the patch is malformed; partial output is invalid
        PatchCancelledError: the cancel token fired
        OSError: reading the old file or writing the output failed
    """
    if buffer_size <= 0:
        raise ValueError("buffer_size must be positive")
    if progress_interval <= 0:
        raise ValueError("progress_interval must be positive")

    reporter = reporter or LoggingReporter()

    try:
        header = read_header(open_patch)
        reporter.report(PatchEvent(EVENT_HEADER, "Patch header parsed", header.to_dict()))

        with open_segment_streams(open_patch, header, codec) as streams:
            engine = ReconstructionEngine(
                old,
                streams,
                output,
                header,
                reporter,
                cancel_token=cancel_token,
                buffer_size=buffer_size,
                progress_interval=progress_interval,
            )
            engine.run()
    except PatchCancelledError as exc:
        reporter.report(PatchEvent(EVENT_CANCELLED, str(exc), exc.details))
        raise
    except CorruptPatchError as exc:
        reporter.report(PatchEvent(EVENT_FAILED, str(exc), exc.to_dict()))
        raise

    reporter.report(PatchEvent(
        EVENT_COMPLETED,
        f"Patch applied ({header.new_size} bytes)",
        {"new_size": header.new_size},
    ))
    return header

from __future__ import annotations

import bz2
import gzip
import io
from typing import Iterable, List, Optional, Tuple

import pytest

Control = Tuple[int, int, int]


def encode_offset(value: int) -> bytes:
    """bsdiff offset encoding: 63-bit magnitude, sign in the top bit."""
    buf = bytearray(abs(value).to_bytes(8, "little"))
    if value < 0:
        buf[7] |= 0x80
    return bytes(buf)


def _compress(data: bytes, codec: str) -> bytes:
    if codec == "bz2":
        return bz2.compress(data)
    return gzip.compress(data)


def build_patch(
    controls: Iterable[Control],
    diff: bytes = b"",
    extra: bytes = b"",
    new_size: Optional[int] = None,
    codec: str = "gzip",
    magic: bytes = b"BSDIFF40",
) -> bytes:
    """Assemble a BSDIFF40 container from raw control records and segments."""
    controls = list(controls)
    control_block = b"".join(
        encode_offset(copy_len) + encode_offset(extra_len) + encode_offset(seek)
        for copy_len, extra_len, seek in controls
    )
    if new_size is None:
        new_size = sum(copy_len + extra_len for copy_len, extra_len, _ in controls)

    compressed_control = _compress(control_block, codec)
    compressed_diff = _compress(diff, codec)
    compressed_extra = _compress(extra, codec)
    return (
        magic
        + encode_offset(len(compressed_control))
        + encode_offset(len(compressed_diff))
        + encode_offset(new_size)
        + compressed_control
        + compressed_diff
        + compressed_extra
    )


class TrackingOpener:
    """Patch opener over bytes that remembers every cursor it handed out."""

    def __init__(self, data: bytes):
        self.data = data
        self.opened: List[io.BytesIO] = []

    def __call__(self) -> io.BytesIO:
        stream = io.BytesIO(self.data)
        self.opened.append(stream)
        return stream

    @property
    def all_closed(self) -> bool:
        return all(stream.closed for stream in self.opened)


@pytest.fixture
def make_patch():
    return build_patch


@pytest.fixture
def encode():
    return encode_offset


@pytest.fixture
def tracking_opener():
    return TrackingOpener

"""Patch container openers.

The engine needs several independent cursors into one patch, so it takes a
zero-argument opener instead of a stream. Each call must return a new,
seekable stream positioned at the start of the patch.
"""

from __future__ import annotations

import io
import os
from typing import Union

from .header import PatchOpener


def file_opener(path: Union[str, os.PathLike]) -> PatchOpener:
    """Opener that re-opens ``path`` for every cursor."""
    patch_path = os.fspath(path)

    def _open():
        return open(patch_path, "rb")

    return _open


def bytes_opener(data: Union[bytes, bytearray, memoryview]) -> PatchOpener:
    """Opener over an in-memory patch; cursors share one immutable copy."""
    payload = bytes(data)

    def _open():
        return io.BytesIO(payload)

    return _open

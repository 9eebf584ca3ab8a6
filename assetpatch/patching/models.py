"""Shared types for the patching package."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from enum import Enum, auto
from typing import Optional, Protocol


class PatchFormat(Enum):
    """Supported patch formats."""

    BSDIFF40 = auto()
    UNKNOWN = auto()


class CancelTokenProtocol(Protocol):
    def is_cancelled(self) -> bool: ...


class CancelToken:
    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    def is_cancelled(self) -> bool:
        return self._event.is_set()


def is_cancelled(token: Optional[CancelTokenProtocol]) -> bool:
    return bool(token and token.is_cancelled())


@dataclass
class PatchResult:
    """Result of a file-level patch operation."""

    success: bool
    output_path: Optional[str] = None
    original_size: int = 0
    patched_size: int = 0
    format_used: PatchFormat = PatchFormat.UNKNOWN
    error: Optional[str] = None
    error_code: Optional[str] = None

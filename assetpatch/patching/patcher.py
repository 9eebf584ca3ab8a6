"""File-level BSDIFF40 patcher.

Wraps the reconstruction engine for the common case of an old file, a patch
file and an output path: detects the format, writes the new file next to its
destination as ``.part`` and moves it into place only after the whole patch
applied cleanly.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional, Union

from ..config.models import PatchingSettings
from ..exceptions import BaseError, FileOperationError
from ..logging_config import LoggingTimer
from .engine import apply_patch
from .header import BSDIFF_MAGIC, PatchHeader, read_header
from .models import CancelTokenProtocol, PatchFormat, PatchResult
from .reporting import PatchReporter
from .sources import file_opener

logger = logging.getLogger(__name__)

PathLike = Union[str, os.PathLike]


def _remove_quietly(path: Path) -> None:
    try:
        path.unlink()
    except FileNotFoundError:
        pass
    except OSError as exc:
        logger.debug("Failed to remove temp file %s: %s", path, exc)


class Patcher:
    """Applies BSDIFF40 patches to files on disk."""

    def __init__(self, settings: Optional[PatchingSettings] = None,
                 reporter: Optional[PatchReporter] = None):
        """Initialize patcher.

        Args:
            settings: Buffering and codec settings (defaults when omitted)
            reporter: Receives engine events; logging is used when omitted
        """
        self.settings = settings or PatchingSettings()
        self.reporter = reporter

    def detect_format(self, patch_path: PathLike) -> PatchFormat:
        """Detect patch format from the file's magic bytes."""
        try:
            with open(patch_path, "rb") as f:
                magic = f.read(len(BSDIFF_MAGIC))
        except OSError as exc:
            logger.debug("Cannot read patch %s: %s", patch_path, exc)
            return PatchFormat.UNKNOWN

        if magic == BSDIFF_MAGIC:
            return PatchFormat.BSDIFF40
        return PatchFormat.UNKNOWN

    def inspect(self, patch_path: PathLike) -> PatchHeader:
        """Parse and return the patch header without applying anything."""
        return read_header(file_opener(patch_path))

    def apply(
        self,
        old_path: PathLike,
        patch_path: PathLike,
        output_path: Optional[PathLike] = None,
        cancel_token: Optional[CancelTokenProtocol] = None,
    ) -> PatchResult:
        """Apply a patch to an old file.

        Args:
            old_path: Path to the old file
            patch_path: Path to the patch file
            output_path: Path for the new file (default: old path with .patched before the suffix)
            cancel_token: Checked between control records

        Returns:
            PatchResult with status and details. Patch and cancellation errors
            are reported in the result; OSError from the files propagates.
        """
        old_p = Path(old_path)
        if output_path is None:
            output_p = old_p.parent / f"{old_p.stem}.patched{old_p.suffix}"
        else:
            output_p = Path(output_path)

        # a bad signature is rejected by the header parser as corruption
        patch_format = self.detect_format(patch_path)

        tmp = output_p.with_name(output_p.name + ".part")
        try:
            if output_p.resolve() == old_p.resolve():
                raise FileOperationError(
                    "Output path must differ from the old file",
                    file_path=str(output_p),
                    operation="patch",
                )

            with LoggingTimer("patch.apply"):
                with open(old_p, "rb") as old, open(tmp, "wb") as out:
                    header = apply_patch(
                        old,
                        file_opener(patch_path),
                        out,
                        reporter=self.reporter,
                        cancel_token=cancel_token,
                        buffer_size=self.settings.buffer_size,
                        progress_interval=self.settings.progress_interval,
                        codec=self.settings.segment_codec,
                    )
                    out.flush()
                    os.fsync(out.fileno())
                original_size = old_p.stat().st_size

            os.replace(str(tmp), str(output_p))
        except BaseError as exc:
            logger.error("Patching %s failed: %s", old_p, exc.to_dict())
            return PatchResult(
                success=False,
                output_path=None,
                format_used=patch_format,
                error=str(exc),
                error_code=exc.error_code,
            )
        finally:
            if tmp.exists():
                _remove_quietly(tmp)

        logger.info("Patched %s -> %s (%d bytes)", old_p, output_p, header.new_size)
        return PatchResult(
            success=True,
            output_path=str(output_p),
            original_size=original_size,
            patched_size=header.new_size,
            format_used=patch_format,
        )


# Convenience function
def apply_bsdiff_patch(old_path: PathLike, patch_path: PathLike,
                       output_path: Optional[PathLike] = None) -> PatchResult:
    """Apply a BSDIFF40 patch to a file with default settings."""
    patcher = Patcher()
    return patcher.apply(old_path, patch_path, output_path)

"""Binary patch application.

- BSDIFF40 header parsing and offset decoding
- Independent decompression cursors over the control, diff and extra segments
- Reconstruction engine with corruption checks and cancellation
- File-level patcher writing through a ``.part`` file
"""

from .control import ControlDecoder, ControlTriple
from .engine import DEFAULT_BUFFER_SIZE, ReconstructionEngine, apply_patch
from .header import BSDIFF_MAGIC, HEADER_SIZE, PatchHeader, parse_header, read_header, read_offset
from .models import CancelToken, PatchFormat, PatchResult
from .patcher import Patcher, apply_bsdiff_patch
from .reporting import CallbackReporter, LoggingReporter, PatchEvent, RecordingReporter
from .segments import SEGMENT_CODECS, open_segment_streams
from .sources import bytes_opener, file_opener

__all__ = [
    # Core
    "apply_patch",
    "ReconstructionEngine",
    "DEFAULT_BUFFER_SIZE",
    # Header / control
    "BSDIFF_MAGIC",
    "HEADER_SIZE",
    "PatchHeader",
    "parse_header",
    "read_header",
    "read_offset",
    "ControlDecoder",
    "ControlTriple",
    # Segments / sources
    "SEGMENT_CODECS",
    "open_segment_streams",
    "bytes_opener",
    "file_opener",
    # Reporting
    "PatchEvent",
    "LoggingReporter",
    "CallbackReporter",
    "RecordingReporter",
    # File facade
    "Patcher",
    "PatchFormat",
    "PatchResult",
    "CancelToken",
    "apply_bsdiff_patch",
]

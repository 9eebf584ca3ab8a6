"""assetpatch - incremental game asset updates from BSDIFF40 patches."""

from .version import load_version

__version__ = load_version()

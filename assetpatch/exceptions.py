#!/usr/bin/env python3
# -*-coding: utf-8-*-
"""
assetpatch - Consolidated Exception Classes

All project-specific errors live here so the patch engine, the file-level
patcher, the configuration layer and the command line share one hierarchy.
"""

from datetime import datetime
from typing import Dict, Any, Optional


class BaseError(Exception):
    """Base class for all project-specific errors."""

    def __init__(self, message: str, error_code: Optional[str] = None,
                 details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.error_code = error_code or "ERROR"
        self.details = details or {}
        self.timestamp = datetime.now()

    def to_dict(self) -> Dict[str, Any]:
        """Converts the exception to a dictionary for structured logging."""
        return {
            'error_code': self.error_code,
            'message': str(self),
            'details': self.details,
            'timestamp': self.timestamp.isoformat()
        }


# =====================================================================================================
# Patching errors
# =====================================================================================================

class PatchError(BaseError):
    """Base class for errors raised while applying a patch."""

    def __init__(self, message: str, error_code: Optional[str] = None,
                 details: Optional[Dict[str, Any]] = None):
        super().__init__(message, error_code or "PATCH_ERROR", details)


class CorruptPatchError(PatchError):
    """Raised when the patch container is structurally or arithmetically invalid."""

    def __init__(self, message: Optional[str] = None, reason: Optional[str] = None,
                 offset: Optional[int] = None,
                 details: Optional[Dict[str, Any]] = None):
        if message is None:
            message = f"Corrupt patch: {reason}" if reason else "Corrupt patch"
        patch_details = details or {}
        if reason:
            patch_details['reason'] = reason
        if offset is not None:
            patch_details['offset'] = offset
        super().__init__(message, "CORRUPT_PATCH", patch_details)


class PatchCancelledError(PatchError):
    """Raised when a cancel token fires between reconstruction steps."""

    def __init__(self, message: str = "Patch cancelled.", new_position: Optional[int] = None,
                 details: Optional[Dict[str, Any]] = None):
        cancel_details = details or {}
        if new_position is not None:
            cancel_details['new_position'] = new_position
        super().__init__(message, "PATCH_CANCELLED", cancel_details)


# =====================================================================================================
# Configuration -related errors
# =====================================================================================================

class ConfigurationError(BaseError):
    """Base class for configuration errors."""

    def __init__(self, message: str, error_code: Optional[str] = None,
                 file_path: Optional[str] = None,
                 details: Optional[Dict[str, Any]] = None):
        config_details = details or {}
        if file_path:
            config_details['file_path'] = str(file_path)
        super().__init__(message, error_code or "CONFIG_ERROR", config_details)


class ValidationError(ConfigurationError):
    """Raised when configuration validation fails."""

    def __init__(self, message: str, field_name: Optional[str] = None,
                 expected_type: Optional[str] = None,
                 details: Optional[Dict[str, Any]] = None):
        validation_details = details or {}
        if field_name:
            validation_details['field_name'] = field_name
        if expected_type:
            validation_details['expected_type'] = expected_type
        super().__init__(message, "VALIDATION_ERROR", None, validation_details)


# =====================================================================================================
# IO errors
# =====================================================================================================

class FileOperationError(BaseError):
    """Raised when a file operation is refused before any I/O happens."""

    def __init__(self, message: str, file_path: Optional[str] = None,
                 operation: Optional[str] = None,
                 details: Optional[Dict[str, Any]] = None):
        file_details = details or {}
        if file_path:
            file_details['file_path'] = str(file_path)
        if operation:
            file_details['operation'] = operation
        super().__init__(message, "FILE_OP_ERROR", file_details)


"""Error taxonomy for all storage operations.

Low-level failures (OSError, JSON decode errors, pydantic validation errors)
are wrapped into a MosaicError once, where they are first detected, and then
propagate unchanged.
"""

from __future__ import annotations

import errno
from enum import Enum
from pathlib import Path


class ErrorCode(str, Enum):
    """Stable error codes for programmatic handling."""

    # File system
    NOT_FOUND = "not_found"
    ALREADY_EXISTS = "already_exists"
    PERMISSION_DENIED = "permission_denied"
    IO_ERROR = "io_error"

    # Data
    INVALID_JSON = "invalid_json"
    INVALID_FORMAT = "invalid_format"
    MIGRATION_FAILED = "migration_failed"

    # Vault
    VAULT_NOT_FOUND = "vault_not_found"
    VAULT_ALREADY_EXISTS = "vault_already_exists"
    INVALID_VAULT = "invalid_vault"

    # Canvas
    CANVAS_NOT_FOUND = "canvas_not_found"
    CANVAS_ALREADY_EXISTS = "canvas_already_exists"
    INVALID_CANVAS = "invalid_canvas"

    # State
    STATE_NOT_FOUND = "state_not_found"
    STATE_SAVE_FAILED = "state_save_failed"

    UNKNOWN = "unknown"


class MosaicError(Exception):
    """Base class for every error raised by the storage core."""

    code: ErrorCode = ErrorCode.UNKNOWN

    def __init__(
        self,
        message: str,
        context: str | None = None,
        code: ErrorCode | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.context = context
        if code is not None:
            self.code = code

    def __str__(self) -> str:
        return f"[{self.code.value}] {self.message}"

    def to_dict(self) -> dict:
        """Serialize for transport to a caller (GUI, CLI --json)."""
        result = {"code": self.code.value, "message": self.message}
        if self.context is not None:
            result["context"] = self.context
        return result

    @classmethod
    def from_os_error(cls, err: OSError, path: Path | str | None = None) -> "MosaicError":
        """Map an OSError onto the taxonomy by errno."""
        context = str(path) if path is not None else None
        if isinstance(err, FileNotFoundError) or err.errno == errno.ENOENT:
            return NotFoundError(f"{path or 'Path'} not found", context=context)
        if isinstance(err, PermissionError) or err.errno in (errno.EACCES, errno.EPERM):
            return PermissionDeniedError(f"Permission denied: {err}", context=context)
        if isinstance(err, FileExistsError) or err.errno == errno.EEXIST:
            return AlreadyExistsError(f"{path or 'Path'} already exists", context=context)
        return StorageIOError(f"I/O error: {err}", context=context)


class NotFoundError(MosaicError):
    code = ErrorCode.NOT_FOUND


class AlreadyExistsError(MosaicError):
    code = ErrorCode.ALREADY_EXISTS


class PermissionDeniedError(MosaicError):
    code = ErrorCode.PERMISSION_DENIED


class StorageIOError(MosaicError):
    code = ErrorCode.IO_ERROR


class InvalidJsonError(MosaicError):
    code = ErrorCode.INVALID_JSON


class InvalidFormatError(MosaicError):
    code = ErrorCode.INVALID_FORMAT


class MigrationFailedError(MosaicError):
    code = ErrorCode.MIGRATION_FAILED


class VaultNotFoundError(NotFoundError):
    code = ErrorCode.VAULT_NOT_FOUND

    def __init__(self, path: Path | str):
        super().__init__(f"Vault not found at: {path}", context=str(path))


class VaultAlreadyExistsError(AlreadyExistsError):
    code = ErrorCode.VAULT_ALREADY_EXISTS


class InvalidVaultError(InvalidFormatError):
    code = ErrorCode.INVALID_VAULT


class CanvasNotFoundError(NotFoundError):
    code = ErrorCode.CANVAS_NOT_FOUND

    def __init__(self, path: Path | str):
        super().__init__(f"Canvas not found at: {path}", context=str(path))


class CanvasAlreadyExistsError(AlreadyExistsError):
    code = ErrorCode.CANVAS_ALREADY_EXISTS


class InvalidCanvasError(InvalidFormatError):
    code = ErrorCode.INVALID_CANVAS


class StateNotFoundError(NotFoundError):
    code = ErrorCode.STATE_NOT_FOUND


class StateSaveFailedError(MosaicError):
    code = ErrorCode.STATE_SAVE_FAILED

"""
Store errors.

Every failure that crosses the store boundary is a ``StoreError`` carrying
a machine-readable ``kind`` and a human-readable ``detail``. Lookups that
simply find nothing are not errors; they return None or an empty list.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    """What went wrong."""

    SCAN = "scan"
    ENCRYPTION = "encryption"
    DECRYPTION = "decryption"
    KEY_NOT_FOUND = "key_not_found"
    IO = "io"
    VCS = "vcs"


class StoreError(Exception):
    """Base class for store failures."""

    kind: ErrorKind = ErrorKind.IO

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail

    def __str__(self) -> str:
        return f"{self.kind.value} error: {self.detail}"


class ScanError(StoreError):
    """Raised when the store directory cannot be read during construction."""

    kind = ErrorKind.SCAN


class EncryptionError(StoreError):
    """Raised when data cannot be encrypted for the recipient."""

    kind = ErrorKind.ENCRYPTION


class DecryptionError(StoreError):
    """Raised when ciphertext cannot be decrypted."""

    kind = ErrorKind.DECRYPTION


class KeyNotFoundError(StoreError):
    """Raised when no key matches an identifier."""

    kind = ErrorKind.KEY_NOT_FOUND


class StoreIOError(StoreError):
    """Raised when a backing file cannot be created, written or removed."""

    kind = ErrorKind.IO


class VcsError(StoreError):
    """Raised when the version-control collaborator fails."""

    kind = ErrorKind.VCS

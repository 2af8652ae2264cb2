"""Exception taxonomy for the region backup store."""

from __future__ import annotations


class PersistenceError(Exception):
    """Base class for store errors."""


class CodecError(PersistenceError):
    """Bytes on disk could not be decoded, or a snapshot could not be encoded."""


class SnapshotInvalidError(CodecError):
    """Snapshot is missing its region info and cannot be persisted."""


class StoreConfigurationError(PersistenceError):
    """Store directories could not be prepared at startup."""

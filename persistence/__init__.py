"""File based persistence of simulated regions."""

from persistence.atomic_writer import AtomicFileWriter
from persistence.backup_store import BackupStore
from persistence.codecs import CodecChain, RegionCodec
from persistence.legacy_codec import LegacyCodec
from persistence.models import BackupRecord, ObjectGroup, Parcel, RegionInfo, RegionSnapshot, SaveResult
from persistence.retention import RetentionPruner
from persistence.save_coordinator import SaveCoordinator
from persistence.save_scheduler import PeriodicTrigger, SaveScheduler
from persistence.snapshot_codec import SnapshotCodec

__all__ = [
    "AtomicFileWriter",
    "BackupRecord",
    "BackupStore",
    "CodecChain",
    "LegacyCodec",
    "ObjectGroup",
    "Parcel",
    "PeriodicTrigger",
    "RegionCodec",
    "RegionInfo",
    "RegionSnapshot",
    "RetentionPruner",
    "SaveCoordinator",
    "SaveResult",
    "SaveScheduler",
    "SnapshotCodec",
]

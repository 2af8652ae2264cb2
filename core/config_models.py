"""Configuration models for the region backup store."""

from __future__ import annotations

from enum import StrEnum
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, model_validator

DEFAULT_STORE_DIRECTORY = "data/Region"
DEFAULT_ARCHIVE_DIRECTORY = "data/RegionBak"


class Environment(StrEnum):
    """Runtime environment modes."""

    DEVELOPMENT = "development"
    PRODUCTION = "production"


class LogLevel(StrEnum):
    """Supported logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"


class SystemConfig(BaseModel):
    """Global process configuration."""

    run_id: str | None = None
    environment: Environment = Environment.DEVELOPMENT
    log_level: LogLevel = LogLevel.INFO
    log_dir: str = "logs"

    @model_validator(mode="after")
    def ensure_run_id(self) -> SystemConfig:
        if not self.run_id:
            self.run_id = str(uuid4())
        return self


class BackupConfig(BaseModel):
    """Save loop, archive and retention options of the file based store.

    Field aliases match the option names used by simulator ini sections so
    existing configuration can be pasted in unchanged.
    """

    model_config = ConfigDict(populate_by_name=True)

    save_changes: bool = Field(default=True, alias="SaveChanges")
    time_between_saves: int = Field(default=5, ge=0, alias="TimeBetweenSaves")
    save_previous_backup: bool = Field(default=True, alias="SavePreviousBackup")
    previous_backup_directory: str = Field(
        default=DEFAULT_ARCHIVE_DIRECTORY,
        alias="PreviousBackupDirectory",
    )
    store_backup_directory: str = Field(
        default=DEFAULT_STORE_DIRECTORY,
        alias="StoreBackupDirectory",
    )
    archive_days: int = Field(default=30, alias="ArchiveDays")
    save_timed_previous_backup: bool | None = Field(default=None, alias="SaveTimedPreviousBackup")
    time_between_backup_saves: int = Field(default=1440, ge=0, alias="TimeBetweenBackupSaves")

    @model_validator(mode="after")
    def apply_fallbacks(self) -> BackupConfig:
        if not self.store_backup_directory.strip():
            self.store_backup_directory = DEFAULT_STORE_DIRECTORY
        if not self.previous_backup_directory.strip():
            self.previous_backup_directory = DEFAULT_ARCHIVE_DIRECTORY
        if self.save_timed_previous_backup is None:
            self.save_timed_previous_backup = self.save_previous_backup
        return self

    @property
    def primary_save_enabled(self) -> bool:
        return self.save_changes and self.time_between_saves != 0

    @property
    def archival_save_enabled(self) -> bool:
        return bool(self.save_timed_previous_backup) and self.time_between_backup_saves != 0


class RootConfig(BaseModel):
    """Full application configuration."""

    system: SystemConfig = Field(default_factory=SystemConfig)
    backup: BackupConfig = Field(default_factory=BackupConfig)

from __future__ import annotations

from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from core.config_loader import load_config
from core.config_models import DEFAULT_ARCHIVE_DIRECTORY, DEFAULT_STORE_DIRECTORY, BackupConfig


def _write_yaml(path: Path, payload: dict) -> None:
    path.write_text(yaml.safe_dump(payload, sort_keys=False), encoding="utf-8")


def _make_config_dir(tmp_path: Path, backup: dict | None = None) -> Path:
    config_dir = tmp_path / "config"
    config_dir.mkdir()
    _write_yaml(
        config_dir / "system.yaml",
        {"system": {"environment": "development", "log_level": "INFO"}},
    )
    _write_yaml(
        config_dir / "backup.yaml",
        {
            "backup": backup
            or {
                "SaveChanges": True,
                "TimeBetweenSaves": 5,
                "StoreBackupDirectory": "data/Region",
                "PreviousBackupDirectory": "data/RegionBak",
                "ArchiveDays": 30,
            }
        },
    )
    return config_dir


def test_load_valid_yaml(tmp_path: Path) -> None:
    config = load_config(_make_config_dir(tmp_path))

    assert config.system.environment.value == "development"
    assert config.system.run_id is not None
    assert config.backup.time_between_saves == 5
    assert config.backup.time_between_backup_saves == 1440


def test_snake_case_keys_are_accepted(tmp_path: Path) -> None:
    config = load_config(_make_config_dir(tmp_path, {"save_changes": False, "archive_days": 7}))

    assert config.backup.save_changes is False
    assert config.backup.archive_days == 7


def test_missing_directory_uses_defaults(tmp_path: Path) -> None:
    config = load_config(tmp_path / "absent")

    assert config.backup.save_changes is True
    assert config.backup.store_backup_directory == DEFAULT_STORE_DIRECTORY


def test_invalid_field_has_clear_error(tmp_path: Path) -> None:
    config_dir = _make_config_dir(tmp_path)
    _write_yaml(config_dir / "system.yaml", {"system": {"log_level": "INVALID"}})

    with pytest.raises(ValidationError) as exc:
        load_config(config_dir)

    errors = exc.value.errors()
    assert any("log_level" in ".".join(map(str, item["loc"])) for item in errors)


def test_negative_interval_is_rejected(tmp_path: Path) -> None:
    with pytest.raises(ValidationError):
        load_config(_make_config_dir(tmp_path, {"TimeBetweenSaves": -1}))


def test_env_override_replaces_aliased_key(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    config_dir = _make_config_dir(tmp_path)
    monkeypatch.setenv("RBS_BACKUP__SAVE_CHANGES", "false")
    monkeypatch.setenv("RBS_SYSTEM__ENVIRONMENT", "production")

    config = load_config(config_dir)

    assert config.backup.save_changes is False
    assert config.system.environment.value == "production"


def test_blank_directories_fall_back_to_defaults() -> None:
    config = BackupConfig(StoreBackupDirectory="", PreviousBackupDirectory="  ")

    assert config.store_backup_directory == DEFAULT_STORE_DIRECTORY
    assert config.previous_backup_directory == DEFAULT_ARCHIVE_DIRECTORY


def test_timed_archive_follows_previous_backup_by_default() -> None:
    assert BackupConfig(SavePreviousBackup=False).save_timed_previous_backup is False
    assert BackupConfig().save_timed_previous_backup is True
    assert BackupConfig(SavePreviousBackup=False, SaveTimedPreviousBackup=True).archival_save_enabled is True


def test_zero_intervals_disable_triggers() -> None:
    config = BackupConfig(TimeBetweenSaves=0, TimeBetweenBackupSaves=0)

    assert config.primary_save_enabled is False
    assert config.archival_save_enabled is False


def test_simulator_section_name_is_accepted(tmp_path: Path) -> None:
    config_file = tmp_path / "region.yaml"
    _write_yaml(
        config_file,
        {
            "FileBasedSimulationData": {"SaveChanges": False, "TimeBetweenSaves": 10},
            "backup": {"TimeBetweenSaves": 15},
        },
    )

    config = load_config(config_file, environ={})

    assert config.backup.save_changes is False
    assert config.backup.time_between_saves == 15


def test_injected_environment_overrides(tmp_path: Path) -> None:
    config = load_config(
        _make_config_dir(tmp_path),
        environ={"RBS_BACKUP__ARCHIVE_DAYS": "3", "OTHER__ARCHIVE_DAYS": "99"},
    )

    assert config.backup.archive_days == 3

from __future__ import annotations

from pathlib import Path

import pytest
import yaml
from rich.console import Console

from main import main, parse_args
from persistence.snapshot_codec import SnapshotCodec
from tests.unit._store_fixtures import make_snapshot


def _config_dir(tmp_path: Path) -> Path:
    config_dir = tmp_path / "config"
    config_dir.mkdir(exist_ok=True)
    (config_dir / "system.yaml").write_text(
        yaml.safe_dump(
            {"system": {"environment": "production", "log_level": "INFO", "log_dir": str(tmp_path / "logs")}}
        ),
        encoding="utf-8",
    )
    (config_dir / "backup.yaml").write_text(
        yaml.safe_dump(
            {
                "backup": {
                    "StoreBackupDirectory": str(tmp_path / "Region"),
                    "PreviousBackupDirectory": str(tmp_path / "RegionBak"),
                }
            }
        ),
        encoding="utf-8",
    )
    return config_dir


def _run(tmp_path: Path, *argv: str) -> tuple[int, str]:
    console = Console(record=True, width=240)
    code = main(["--config", str(_config_dir(tmp_path)), *argv], console=console)
    return code, console.export_text()


def _seed(tmp_path: Path) -> Path:
    codec = SnapshotCodec()
    (tmp_path / "Region").mkdir()
    (tmp_path / "RegionBak").mkdir()
    codec.save(tmp_path / "Region" / "Alpha.sim", make_snapshot())
    archive = tmp_path / "RegionBak" / "Alpha--2024-01-02-03-04.sim"
    codec.save(archive, make_snapshot())
    return archive


def test_parse_args_requires_command() -> None:
    with pytest.raises(SystemExit):
        parse_args([])

    args = parse_args(["restore", "Alpha", "--file", "x.sim"])
    assert args.command == "restore"
    assert args.file == Path("x.sim")


def test_regions_lists_active_files(tmp_path: Path) -> None:
    _seed(tmp_path)

    code, output = _run(tmp_path, "regions")

    assert code == 0
    assert "Alpha" in output


def test_list_shows_archives(tmp_path: Path) -> None:
    _seed(tmp_path)

    code, output = _run(tmp_path, "list", "Alpha")

    assert code == 0
    assert "2024-01-02 03:04" in output


def test_list_without_archive_directory(tmp_path: Path) -> None:
    code, output = _run(tmp_path, "list", "Alpha")

    assert code == 1
    assert "does not exist" in output


def test_inspect_reports_snapshot(tmp_path: Path) -> None:
    _seed(tmp_path)

    code, output = _run(tmp_path, "inspect", "Alpha")

    assert code == 0
    assert "9000" in output
    assert "1000,1000" in output


def test_restore_and_remove(tmp_path: Path) -> None:
    archive = _seed(tmp_path)
    (tmp_path / "Region" / "Alpha.sim").write_bytes(b"damaged")

    code, _ = _run(tmp_path, "restore", "Alpha", "--file", str(archive))
    assert code == 0
    assert (tmp_path / "Region" / "Alpha.sim").read_bytes() == archive.read_bytes()

    code, output = _run(tmp_path, "remove", "Alpha")
    assert code == 0
    assert "Removed" in output
    assert not (tmp_path / "Region" / "Alpha.sim").exists()


def test_latest_without_recent_backup(tmp_path: Path) -> None:
    code, output = _run(tmp_path, "latest", "Alpha")

    assert code == 1
    assert "No backup" in output


def test_prune_keeps_fresh_archives(tmp_path: Path) -> None:
    archive = _seed(tmp_path)

    code, output = _run(tmp_path, "prune", "--days", "0")

    assert code == 0
    assert "Removed 0 archive files" in output
    assert archive.exists()
    assert (tmp_path / "logs" / "region_backup_store.jsonl").exists()

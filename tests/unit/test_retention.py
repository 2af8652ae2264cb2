from __future__ import annotations

from datetime import datetime, timedelta
from pathlib import Path

from persistence.retention import RetentionPruner

NOW = datetime(2024, 3, 1, 12, 30)
TODAY = NOW.replace(hour=0, minute=30)


def _archive(directory: Path, name: str) -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / name
    path.write_bytes(b"sim")
    return path


def _pruner(directory: Path, created: dict[str, datetime]) -> RetentionPruner:
    def _created_at(path: Path) -> datetime:
        if not path.exists():
            raise FileNotFoundError(path)
        return created[path.name]

    return RetentionPruner(directory, ".sim", created_at=_created_at, clock=lambda: NOW)


def test_removes_only_files_older_than_threshold(tmp_path: Path) -> None:
    names = {
        "Alpha--2024-01-21-10-00.sim": TODAY - timedelta(days=40),
        "Alpha--2024-02-20-10-00.sim": TODAY - timedelta(days=10),
        "Alpha--2024-02-29-10-00.sim": TODAY - timedelta(days=1),
    }
    for name in names:
        _archive(tmp_path, name)

    removed = _pruner(tmp_path, names).prune(30)

    assert removed == 1
    assert sorted(path.name for path in tmp_path.iterdir()) == [
        "Alpha--2024-02-20-10-00.sim",
        "Alpha--2024-02-29-10-00.sim",
    ]


def test_negative_age_disables_pruning(tmp_path: Path) -> None:
    names = {"Alpha--2020-01-01-00-00.sim": TODAY - timedelta(days=1000)}
    _archive(tmp_path, "Alpha--2020-01-01-00-00.sim")

    assert _pruner(tmp_path, names).prune(-1) == 0
    assert (tmp_path / "Alpha--2020-01-01-00-00.sim").exists()


def test_files_outside_naming_convention_are_ignored(tmp_path: Path) -> None:
    old = TODAY - timedelta(days=90)
    names = {"Alpha.sim": old, "notes--2020.sim": old, "Alpha--2023-12-01-00-00.sim": old}
    for name in names:
        _archive(tmp_path, name)

    assert _pruner(tmp_path, names).prune(30) == 1
    assert (tmp_path / "Alpha.sim").exists()
    assert (tmp_path / "notes--2020.sim").exists()


def test_region_scope_does_not_touch_other_regions(tmp_path: Path) -> None:
    old = TODAY - timedelta(days=90)
    names = {"Alpha--2023-12-01-00-00.sim": old, "AlphaBeta--2023-12-01-00-00.sim": old}
    for name in names:
        _archive(tmp_path, name)

    assert _pruner(tmp_path, names).prune(30, "Alpha") == 1
    assert (tmp_path / "AlphaBeta--2023-12-01-00-00.sim").exists()


def test_vanished_file_is_not_an_error(tmp_path: Path) -> None:
    old = TODAY - timedelta(days=90)
    names = {"Alpha--2023-12-01-00-00.sim": old, "Alpha--2023-12-02-00-00.sim": old}
    for name in names:
        _archive(tmp_path, name)

    pruner = _pruner(tmp_path, names)
    files = pruner.candidates()
    files[0].unlink()

    assert pruner.prune(30) == 1


def test_vanished_between_enumeration_and_stat(tmp_path: Path) -> None:
    old = TODAY - timedelta(days=90)
    names = {"Alpha--2023-12-01-00-00.sim": old, "Alpha--2023-12-02-00-00.sim": old}
    for name in names:
        _archive(tmp_path, name)
    first = tmp_path / "Alpha--2023-12-01-00-00.sim"

    def _created_at(path: Path) -> datetime:
        if path == first:
            path.unlink()
            raise FileNotFoundError(path)
        return names[path.name]

    pruner = RetentionPruner(tmp_path, ".sim", created_at=_created_at, clock=lambda: NOW)

    assert pruner.prune(30) == 1
    assert list(tmp_path.iterdir()) == []


def test_missing_archive_directory(tmp_path: Path) -> None:
    assert RetentionPruner(tmp_path / "absent", ".sim").prune(0) == 0

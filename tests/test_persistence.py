from pathlib import Path

from plaquer.persistence.filesystem import FileStorage


def test_file_storage_creates_run_directory(tmp_path: Path) -> None:
    storage = FileStorage(root=tmp_path)
    run_dir = storage.make_run_directory(prefix="gpx_test")

    assert run_dir.exists()
    assert run_dir.is_dir()
    assert run_dir.parent == tmp_path.resolve() / "outputs"
    assert run_dir.name.startswith("gpx_test_")


def test_file_storage_writes_json_and_text(tmp_path: Path) -> None:
    storage = FileStorage(root=tmp_path)
    run_dir = storage.make_run_directory(prefix="route_test")

    summary_path = run_dir / "summary.json"
    gpx_path = run_dir / "nested" / "route.gpx"

    storage.write_json(summary_path, {"stops": 2, "name": "Café walk"})
    storage.write_text(gpx_path, "<gpx/>\n")

    assert summary_path.read_text(encoding="utf-8") == '{\n  "stops": 2,\n  "name": "Café walk"\n}'
    assert gpx_path.read_text(encoding="utf-8") == "<gpx/>\n"

"""Test filesystem helpers in coaster.utils.fs.

Test cases:
    - Atomic text writes keep CRLF terminators verbatim, leave no tmp file
    - read_lines strips CRLF and LF terminators
    - YAML roundtrip preserves key order
    - backup_copy writes <file>_backup
    - scratch_area creates, removes, keeps and retains on failure

Run:
    pytest tests/test_fs.py -v
"""

import pytest

from coaster.utils import fs


def test_ensure_dir_creates_nested(tmp_path):
    new_dir = tmp_path / "a" / "b" / "c"
    assert fs.ensure_dir(new_dir) == new_dir
    assert new_dir.is_dir()


def test_atomic_write_text_keeps_crlf(tmp_path):
    target = tmp_path / "out.gcode"
    fs.atomic_write_text(target, "G1 X1\r\nG1 X2\r\n")
    assert target.read_bytes() == b"G1 X1\r\nG1 X2\r\n"
    assert not (tmp_path / "out.gcode.tmp").exists()


def test_atomic_write_overwrites(tmp_path):
    target = tmp_path / "out.gcode"
    fs.atomic_write_text(target, "old\r\n")
    fs.atomic_write_text(target, "new\r\n")
    assert target.read_text(encoding="utf-8", newline="") == "new\r\n"


def test_read_lines_crlf_and_lf(tmp_path):
    crlf = tmp_path / "crlf.gcode"
    crlf.write_bytes(b";\r\nG1 X0 Y0 E0\r\n; Destring/Wipe/Jump Path\r\n")
    lf = tmp_path / "lf.gcode"
    lf.write_bytes(b";\nG1 X0 Y0 E0\n; Destring/Wipe/Jump Path\n")
    expected = [";", "G1 X0 Y0 E0", "; Destring/Wipe/Jump Path"]
    assert fs.read_lines(crlf) == expected
    assert fs.read_lines(lf) == expected


def test_read_lines_missing(tmp_path):
    with pytest.raises(FileNotFoundError):
        fs.read_lines(tmp_path / "missing.gcode")


def test_yaml_roundtrip_keeps_order(tmp_path):
    data = {"regular_coasted": 3, "prime_coasted": 1, "regular_skipped": 0, "prime_skipped": 2}
    path = tmp_path / "0.stats.yaml"
    fs.atomic_yaml_dump(data, path)
    loaded = fs.load_yaml(path)
    assert loaded == data
    assert list(loaded) == list(data)


def test_load_yaml_missing(tmp_path):
    with pytest.raises(FileNotFoundError):
        fs.load_yaml(tmp_path / "nope.yaml")


def test_backup_copy(tmp_path):
    src = tmp_path / "part.gcode"
    src.write_bytes(b"G1 X1\r\n")
    backup = fs.backup_copy(src)
    assert backup == tmp_path / "part.gcode_backup"
    assert backup.read_bytes() == b"G1 X1\r\n"


def test_scratch_area_removed_after_success(tmp_path):
    with fs.scratch_area(tmp_path, "abc123") as wd:
        assert wd == tmp_path / "coast_wd_abc123"
        (wd / "0.in").write_text("x")
    assert not wd.exists()


def test_scratch_area_kept_on_request(tmp_path):
    with fs.scratch_area(tmp_path, "keep", keep=True) as wd:
        (wd / "0.in").write_text("x")
    assert (wd / "0.in").exists()


def test_scratch_area_retained_on_failure(tmp_path):
    with pytest.raises(RuntimeError):
        with fs.scratch_area(tmp_path, "boom") as wd:
            raise RuntimeError("worker died")
    assert wd.exists()


def test_scratch_area_creation_failure(tmp_path):
    (tmp_path / "coast_wd_taken").mkdir()
    with pytest.raises(fs.ScratchAreaError):
        with fs.scratch_area(tmp_path, "taken"):
            pass


def test_scratch_area_removal_failure_only_warns(tmp_path, monkeypatch, caplog):
    def _fail(path):
        raise OSError("busy")

    monkeypatch.setattr(fs.shutil, "rmtree", _fail)
    with caplog.at_level("WARNING"):
        with fs.scratch_area(tmp_path, "busy") as wd:
            pass
    assert wd.exists()
    assert "Unable to remove scratch directory" in caplog.text

"""Tests for the asar archive writer."""

from __future__ import annotations

import hashlib
import os
import struct
from typing import TYPE_CHECKING
from unittest.mock import patch

import pytest

from electabul.errors import PackagingError
from electabul.instrument.asar import (
    count_files,
    package_directory,
    read_file,
    read_header,
)
from tests.conftest import write_file

if TYPE_CHECKING:
    from pathlib import Path


@pytest.fixture
def app_dir(tmp_path: Path) -> Path:
    root = tmp_path / "app"
    write_file(root, "main.js", "require('./lib/util')\n")
    write_file(root, "lib/util.js", "module.exports = 42\n")
    write_file(root, "package.json", '{"main": "main.js"}\n')
    return root


class TestPackageDirectory:
    def test_header_layout(self, app_dir: Path, tmp_path: Path) -> None:
        archive = package_directory(app_dir, tmp_path / "out" / "app.asar")

        header, _ = read_header(archive)

        assert sorted(header["files"]) == ["lib", "main.js", "package.json"]
        util = header["files"]["lib"]["files"]["util.js"]
        assert util["size"] == len("module.exports = 42\n")
        assert isinstance(util["offset"], str)
        assert util["integrity"]["algorithm"] == "SHA256"
        assert util["integrity"]["hash"] == hashlib.sha256(b"module.exports = 42\n").hexdigest()
        assert count_files(header) == 3

    def test_size_pickle(self, app_dir: Path, tmp_path: Path) -> None:
        archive = package_directory(app_dir, tmp_path / "app.asar")
        raw = archive.read_bytes()
        payload_size, header_size = struct.unpack_from("<II", raw, 0)
        assert payload_size == 4
        (header_payload_size,) = struct.unpack_from("<I", raw, 8)
        assert header_payload_size == header_size - 4
        assert header_size % 4 == 0

    def test_file_contents_round_trip(self, app_dir: Path, tmp_path: Path) -> None:
        archive = package_directory(app_dir, tmp_path / "app.asar")
        assert read_file(archive, "main.js") == b"require('./lib/util')\n"
        assert read_file(archive, "/lib/util.js") == b"module.exports = 42\n"

    def test_overwrites_existing_archive(self, app_dir: Path, tmp_path: Path) -> None:
        target = tmp_path / "app.asar"
        target.write_bytes(b"stale" * 1000)

        package_directory(app_dir, target)

        header, _ = read_header(target)
        assert count_files(header) == 3

    def test_empty_file(self, tmp_path: Path) -> None:
        root = tmp_path / "empty"
        write_file(root, "blank.js", "")
        archive = package_directory(root, tmp_path / "empty.asar")
        assert read_file(archive, "blank.js") == b""

    @pytest.mark.skipif(os.name == "nt", reason="symlinks need privileges on Windows")
    def test_internal_symlink_stored_as_link(self, app_dir: Path, tmp_path: Path) -> None:
        (app_dir / "index.js").symlink_to(app_dir / "main.js")
        archive = package_directory(app_dir, tmp_path / "app.asar")

        header, _ = read_header(archive)

        assert header["files"]["index.js"] == {"link": "main.js"}
        assert read_file(archive, "index.js") == b"require('./lib/util')\n"

    def test_missing_source_dir(self, tmp_path: Path) -> None:
        with pytest.raises(PackagingError, match="not a directory"):
            package_directory(tmp_path / "missing", tmp_path / "app.asar")

    def test_unwritable_output(self, app_dir: Path, tmp_path: Path) -> None:
        blocker = tmp_path / "blocker"
        blocker.write_text("file, not dir")
        with pytest.raises(PackagingError, match="Failed to package"):
            package_directory(app_dir, blocker / "app.asar")

    def test_size_change_keeps_previous_archive(self, app_dir: Path, tmp_path: Path) -> None:
        target = tmp_path / "app.asar"
        target.write_bytes(b"previous")

        with (
            patch("electabul.instrument.asar._copy_exact", return_value=0),
            pytest.raises(PackagingError, match="changed size"),
        ):
            package_directory(app_dir, target)

        assert target.read_bytes() == b"previous"
        assert sorted(p.name for p in tmp_path.iterdir()) == ["app", "app.asar"]

    def test_write_error_leaves_no_archive(self, app_dir: Path, tmp_path: Path) -> None:
        target = tmp_path / "out" / "app.asar"

        with (
            patch("electabul.instrument.asar._copy_exact", side_effect=OSError("disk full")),
            pytest.raises(PackagingError, match="disk full"),
        ):
            package_directory(app_dir, target)

        assert list(target.parent.iterdir()) == []


class TestReadArchive:
    def test_missing_inner_path(self, app_dir: Path, tmp_path: Path) -> None:
        archive = package_directory(app_dir, tmp_path / "app.asar")
        with pytest.raises(PackagingError, match="not found"):
            read_file(archive, "lib/missing.js")

    def test_not_an_archive(self, tmp_path: Path) -> None:
        bogus = tmp_path / "bogus.asar"
        bogus.write_bytes(b"\x01")
        with pytest.raises(PackagingError, match="not an asar archive"):
            read_header(bogus)

"""Tests for ziptree.utils path and date helpers."""

import os
from datetime import datetime

import pytest

from ziptree.errors import UnsafeEntryError
from ziptree.utils import (
    dos_datetime_to_timestamp,
    ensure_parent_directories,
    resolve_destination,
    strip_subdirectory,
    timestamp_to_dos_datetime,
    to_archive_name,
)


class TestToArchiveName:
    def test_file_name(self, tmp_path):
        path = os.path.join(str(tmp_path), "sub", "a.txt")
        assert to_archive_name(path, str(tmp_path), is_dir=False) == "sub/a.txt"

    def test_directory_name_has_trailing_slash(self, tmp_path):
        path = os.path.join(str(tmp_path), "sub", "deeper")
        assert to_archive_name(path, str(tmp_path), is_dir=True) == "sub/deeper/"


class TestStripSubdirectory:
    @pytest.mark.parametrize(
        "name, prefix, expected",
        [
            ("data/x.txt", "data", "x.txt"),
            ("data/x.txt", "data/", "x.txt"),
            ("data\\x.txt", "data", "x.txt"),
            ("data//x.txt", "data", "/x.txt"),
            ("other/x.txt", "data", None),
            ("data", "data", ""),
        ],
    )
    def test_strip(self, name, prefix, expected):
        assert strip_subdirectory(name, prefix) == expected


class TestResolveDestination:
    def test_nested_name(self, tmp_path):
        root = str(tmp_path)
        assert resolve_destination(root, "a/b/c.txt") == os.path.join(root, "a", "b", "c.txt")

    def test_leading_slash_stays_inside(self, tmp_path):
        root = str(tmp_path)
        assert resolve_destination(root, "/etc/passwd") == os.path.join(root, "etc", "passwd")

    def test_empty_name_is_root(self, tmp_path):
        assert resolve_destination(str(tmp_path), "") == str(tmp_path)

    def test_escape_is_rejected(self, tmp_path):
        with pytest.raises(UnsafeEntryError):
            resolve_destination(str(tmp_path), "a/../../b.txt")


class TestEnsureParentDirectories:
    def test_creates_each_ancestor(self, tmp_path):
        ensure_parent_directories(str(tmp_path), "a/b/c/file.txt")
        assert (tmp_path / "a" / "b" / "c").is_dir()
        assert not (tmp_path / "a" / "b" / "c" / "file.txt").exists()

    def test_top_level_file_needs_nothing(self, tmp_path):
        ensure_parent_directories(str(tmp_path), "file.txt")
        assert list(tmp_path.iterdir()) == []


class TestDosDateTime:
    def test_conversion(self):
        dos_date, dos_time = timestamp_to_dos_datetime(datetime(2024, 2, 29, 23, 59, 58))
        assert dos_datetime_to_timestamp(dos_date, dos_time) == datetime(2024, 2, 29, 23, 59, 58)

    def test_years_before_1980_are_clamped(self):
        dos_date, dos_time = timestamp_to_dos_datetime(datetime(1970, 1, 1))
        assert dos_datetime_to_timestamp(dos_date, dos_time).year == 1980

    def test_invalid_fields_fall_back(self):
        assert dos_datetime_to_timestamp(0, 0) == datetime(1980, 1, 1)

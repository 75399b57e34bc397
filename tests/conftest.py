"""Shared fixtures for ziptree tests."""

from pathlib import Path

import pytest


def _populate(root: Path, layout: dict) -> None:
    root.mkdir(parents=True, exist_ok=True)
    for name, content in layout.items():
        path = root / name
        if isinstance(content, dict):
            _populate(path, content)
        else:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(content)


@pytest.fixture
def make_tree(tmp_path):
    """Build a directory tree from a nested dict of name -> bytes | dict."""

    def _make(layout: dict, name: str = "root") -> Path:
        root = tmp_path / name
        _populate(root, layout)
        return root

    return _make


def _read_tree(root: Path) -> dict[str, bytes]:
    return {
        path.relative_to(root).as_posix(): path.read_bytes()
        for path in root.rglob("*")
        if path.is_file()
    }


@pytest.fixture
def read_tree():
    """Map every file under a root to its content, keyed by posix relative path."""
    return _read_tree


from __future__ import annotations

import os

import pytest

from pftp.listing import list_files


def test_lists_files_only(serve_dir):
    assert sorted(list_files(serve_dir)) == ["a.txt", "b.txt"]


def test_relisting_sees_new_files(serve_dir):
    assert len(list_files(serve_dir)) == 2
    (serve_dir / "c.bin").write_bytes(b"\x00")
    assert sorted(list_files(serve_dir)) == ["a.txt", "b.txt", "c.bin"]


def test_empty_directory(tmp_path):
    assert list_files(tmp_path) == []


@pytest.mark.skipif(not hasattr(os, "symlink"), reason="needs symlinks")
def test_symlink_to_directory_is_skipped(serve_dir):
    (serve_dir / "link").symlink_to(serve_dir / "subdir", target_is_directory=True)
    assert "link" not in list_files(serve_dir)


def test_missing_directory_raises(tmp_path):
    with pytest.raises(OSError):
        list_files(tmp_path / "nope")

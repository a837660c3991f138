"""Tests for the watch-directory input source."""

import os

import pytest

from ingestor.sources import DirectorySource, is_accepted_name

from conftest import drop_file


@pytest.mark.parametrize("name", ["notes.txt", "README", "doc.MD", "data.jsonl", "page.html", "Makefile"])
def test_accepted_names(name):
    assert is_accepted_name(name) is True


@pytest.mark.parametrize("name", ["photo.png", "archive.zip", "report.pdf", "binary.exe"])
def test_rejected_names(name):
    assert is_accepted_name(name) is False


class TestDirectorySource:
    def test_scan_orders_oldest_first(self, source, watch_dir):
        newer = drop_file(watch_dir, "a.txt", b"a\n")
        older = drop_file(watch_dir, "b.txt", b"b\n")
        os.utime(older, (1_000, 1_000))
        os.utime(newer, (2_000, 2_000))

        assert [item.display_name for item in source.scan()] == ["b.txt", "a.txt"]

    def test_scan_skips_hidden_unsupported_and_directories(self, source, watch_dir):
        drop_file(watch_dir, "keep.txt", b"x\n")
        drop_file(watch_dir, ".hidden.txt", b"x\n")
        drop_file(watch_dir, "image.png", b"x")
        (watch_dir / "nested").mkdir()
        drop_file(source.incoming_dir, "staged.txt", b"x\n")

        assert [item.display_name for item in source.scan()] == ["keep.txt"]

    def test_scan_missing_directory(self, tmp_path):
        assert DirectorySource(tmp_path / "nope").scan() == []

    def test_read_and_remove(self, source, watch_dir):
        drop_file(watch_dir, "a.txt", b"content\n")
        item = source.scan()[0]

        assert source.read(item) == b"content\n"
        assert source.remove(item) is True
        assert source.remove(item) is False
        assert source.scan() == []

    def test_submit_places_file_atomically(self, source, watch_dir):
        path = source.submit("upload.txt", b"hello\n")

        assert path == watch_dir / "upload.txt"
        assert path.read_bytes() == b"hello\n"
        assert list(source.incoming_dir.iterdir()) == []

    def test_submit_never_overwrites(self, source, watch_dir):
        drop_file(watch_dir, "upload.txt", b"first\n")

        path = source.submit("upload.txt", b"second\n")

        assert path.name == "upload-1.txt"
        assert (watch_dir / "upload.txt").read_bytes() == b"first\n"

    def test_submit_strips_directories(self, source, watch_dir):
        path = source.submit("../../etc/evil.txt", b"x\n")

        assert path.parent == watch_dir
        assert path.name == "evil.txt"

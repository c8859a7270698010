"""Unit tests for the file mover."""
import os
import shutil
from pathlib import Path

import pytest

from file_relay.errors import TransferError
from file_relay.mover import FileMover, TransferRecord, TransferStats
from file_relay.watcher import WorkItem


def _item(path: Path) -> WorkItem:
    st = path.stat()
    return WorkItem(path=path, name=path.name, mtime=st.st_mtime, size=st.st_size)


class TestHandle:
    """Tests for writing work items into the destination."""

    def test_moves_file(self, src_dir, dst_dir):
        src = src_dir / "a.txt"
        src.write_text("hello")
        rec = FileMover(dst_dir).handle(_item(src))

        assert (dst_dir / "a.txt").read_text() == "hello"
        assert not src.exists()
        assert rec.success
        assert rec.source_removed
        assert rec.size_bytes == 5
        assert rec.destination == str(dst_dir.absolute() / "a.txt")

    def test_creates_missing_destination_with_parents(self, src_dir, tmp_path):
        dest = tmp_path / "deep" / "er" / "out"
        src = src_dir / "a.txt"
        src.write_text("x")
        FileMover(dest).handle(_item(src))
        assert (dest / "a.txt").read_text() == "x"

    def test_existing_destination_directory_is_fine(self, src_dir, dst_dir):
        dst_dir.mkdir()
        src = src_dir / "a.txt"
        src.write_text("x")
        assert FileMover(dst_dir).handle(_item(src)).success

    def test_replaces_existing_file(self, src_dir, dst_dir):
        dst_dir.mkdir()
        (dst_dir / "a.txt").write_text("old content that is longer")
        src = src_dir / "a.txt"
        src.write_text("new")
        rec = FileMover(dst_dir).handle(_item(src))

        assert (dst_dir / "a.txt").read_text() == "new"
        assert rec.replaced
        assert sorted(p.name for p in dst_dir.iterdir()) == ["a.txt"]

    def test_binary_content_identical(self, src_dir, dst_dir):
        data = bytes(range(256)) * 4096
        src = src_dir / "blob.txt"
        src.write_bytes(data)
        FileMover(dst_dir).handle(_item(src))
        assert (dst_dir / "blob.txt").read_bytes() == data

    def test_copy_mode_keeps_source(self, src_dir, dst_dir):
        src = src_dir / "a.txt"
        src.write_text("keep")
        rec = FileMover(dst_dir, delete_source_files=False).handle(_item(src))
        assert src.read_text() == "keep"
        assert (dst_dir / "a.txt").read_text() == "keep"
        assert not rec.source_removed

    def test_preserve_timestamp(self, src_dir, dst_dir):
        src = src_dir / "a.txt"
        src.write_text("x")
        os.utime(src, (1_000_000, 1_000_000))
        FileMover(dst_dir, preserve_timestamp=True).handle(_item(src))
        assert (dst_dir / "a.txt").stat().st_mtime == 1_000_000

    def test_no_temp_file_left_behind(self, src_dir, dst_dir):
        src = src_dir / "a.txt"
        src.write_text("x")
        FileMover(dst_dir).handle(_item(src))
        assert [p.name for p in dst_dir.iterdir()] == ["a.txt"]


class TestFailures:
    """Tests for failed writes."""

    def test_unwritable_destination_keeps_source(self, src_dir, tmp_path):
        blocker = tmp_path / "dir_target"
        blocker.write_text("not a directory")
        src = src_dir / "a.txt"
        src.write_text("hello")
        mover = FileMover(blocker)

        with pytest.raises(TransferError) as excinfo:
            mover.handle(_item(src))

        assert src.read_text() == "hello"
        rec = excinfo.value.record
        assert isinstance(rec, TransferRecord)
        assert not rec.success
        assert rec.error
        assert mover.stats.total_failed == 1

    def test_missing_destination_without_auto_create(self, src_dir, dst_dir):
        src = src_dir / "a.txt"
        src.write_text("x")
        with pytest.raises(TransferError):
            FileMover(dst_dir, auto_create_directory=False).handle(_item(src))
        assert not dst_dir.exists()
        assert src.exists()

    def test_partial_write_cleaned_up(self, src_dir, dst_dir, monkeypatch):
        """Test that a write failing mid-stream leaves no temp file and keeps the source."""
        dst_dir.mkdir()
        (dst_dir / "a.txt").write_text("old")
        src = src_dir / "a.txt"
        src.write_text("new")

        def disk_full(fsrc, fdst, length=0):
            fdst.write(b"ne")
            raise OSError(28, "No space left on device")

        monkeypatch.setattr(shutil, "copyfileobj", disk_full)
        with pytest.raises(TransferError, match="No space left"):
            FileMover(dst_dir).handle(_item(src))

        assert sorted(p.name for p in dst_dir.iterdir()) == ["a.txt"]
        assert (dst_dir / "a.txt").read_text() == "old"
        assert src.read_text() == "new"

    def test_vanished_source_fails(self, src_dir, dst_dir):
        src = src_dir / "a.txt"
        src.write_text("x")
        item = _item(src)
        src.unlink()
        with pytest.raises(TransferError):
            FileMover(dst_dir).handle(item)


class TestStats:
    """Tests for transfer records and statistics."""

    def test_stats_accumulate(self, src_dir, dst_dir):
        mover = FileMover(dst_dir)
        for name in ("a.txt", "b.txt"):
            path = src_dir / name
            path.write_text("abc")
            mover.handle(_item(path))
        assert mover.stats.total_transferred == 2
        assert mover.stats.total_bytes == 6
        assert mover.stats.last_transferred_file.endswith("b.txt")

    def test_history_is_bounded(self):
        stats = TransferStats()
        for i in range(1005):
            stats.record(TransferRecord(source=str(i), destination=str(i), success=True))
        assert len(stats.history) == 1000
        assert stats.history[0].source == "5"

    def test_record_duration(self):
        rec = TransferRecord(source="a", destination="b", started=10.0, finished=12.5)
        assert rec.duration == 2.5
        assert TransferRecord(source="a", destination="b").duration == 0.0

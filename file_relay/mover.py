"""
File mover for File Relay.

Writes each work item into the destination folder under its original
name. The destination folder is created on demand, an existing file of
the same name is replaced, and content is first written to a temporary
file that is renamed over the target once complete. The source file is
removed only after the destination write has fully succeeded.
"""

import logging
import os
import shutil
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path

from file_relay.errors import TransferError
from file_relay.watcher import WorkItem

logger = logging.getLogger(__name__)

_COPY_CHUNK = 256 * 1024  # 256 KiB buffer for streaming content


@dataclass
class TransferRecord:
    """Record of a single hand-off to the mover."""
    source: str
    destination: str
    size_bytes: int = 0
    started: float = 0.0
    finished: float = 0.0
    success: bool = False
    replaced: bool = False
    source_removed: bool = False
    error: str = ""

    @property
    def duration(self) -> float:
        if self.finished and self.started:
            return self.finished - self.started
        return 0.0


@dataclass
class TransferStats:
    """Aggregated transfer statistics."""
    total_transferred: int = 0
    total_failed: int = 0
    total_bytes: int = 0
    last_transferred_file: str = ""
    history: list[TransferRecord] = field(default_factory=list)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def record(self, rec: TransferRecord) -> None:
        with self._lock:
            self.history.append(rec)
            if rec.success:
                self.total_transferred += 1
                self.total_bytes += rec.size_bytes
                self.last_transferred_file = rec.destination
            else:
                self.total_failed += 1
            # Keep last 1000 records
            if len(self.history) > 1000:
                self.history = self.history[-1000:]


class FileMover:
    """
    Moves work items into the destination folder, synchronously.

    Parameters
    ----------
    destination_directory : str
        The folder files are written into.
    auto_create_directory : bool
        Create the destination (and parents) when it is missing.
    delete_source_files : bool
        Remove the source after a successful write. False copies instead.
    temporary_file_suffix : str
        Suffix of the in-progress file renamed over the target when done.
    preserve_timestamp : bool
        Copy the source modification time onto the written file.
    """

    def __init__(
        self,
        destination_directory: str | os.PathLike,
        auto_create_directory: bool = True,
        delete_source_files: bool = True,
        temporary_file_suffix: str = ".writing",
        preserve_timestamp: bool = False,
    ):
        self.destination_directory = Path(destination_directory).absolute()
        self._auto_create = auto_create_directory
        self._delete_source = delete_source_files
        self._temp_suffix = temporary_file_suffix
        self._preserve_timestamp = preserve_timestamp
        self.stats = TransferStats()

    def destination_for(self, item: WorkItem) -> Path:
        """Return the target path for *item*."""
        return self.destination_directory / item.name

    def _ensure_directory(self) -> None:
        if self.destination_directory.is_dir():
            return
        if not self._auto_create:
            raise FileNotFoundError(
                f"Destination directory does not exist: {self.destination_directory}"
            )
        self.destination_directory.mkdir(parents=True, exist_ok=True)
        logger.info("Created destination directory %s", self.destination_directory)

    def _write(self, item: WorkItem, dest: Path) -> int:
        """Stream *item* into a temp file beside *dest*, then swap it in."""
        tmp = dest.with_name(dest.name + self._temp_suffix)
        written = 0
        try:
            with item.open() as src, open(tmp, "wb") as dst:
                shutil.copyfileobj(src, dst, _COPY_CHUNK)
                dst.flush()
                written = dst.tell()
            if self._preserve_timestamp:
                os.utime(tmp, (item.mtime, item.mtime))
            os.replace(tmp, dest)
        except BaseException:
            try:
                tmp.unlink(missing_ok=True)
            except OSError:
                logger.warning("Could not remove partial file %s", tmp, exc_info=True)
            raise
        return written

    def handle(self, item: WorkItem) -> TransferRecord:
        """
        Write *item* to the destination, replacing any file of that name.

        Raises TransferError when the write fails; the source file is left
        untouched in that case.
        """
        dest = self.destination_for(item)
        rec = TransferRecord(source=str(item.path), destination=str(dest))
        rec.started = time.time()

        try:
            self._ensure_directory()
            rec.replaced = dest.exists()
            logger.info(
                "Transferring %s -> %s%s",
                item.path, dest, " (replacing)" if rec.replaced else "",
            )
            rec.size_bytes = self._write(item, dest)
            rec.success = True
        except OSError as exc:
            rec.error = str(exc)
            logger.error("Transfer failed for %s: %s", item.path, exc)
        finally:
            rec.finished = time.time()

        if rec.success and self._delete_source:
            try:
                item.path.unlink()
                rec.source_removed = True
            except FileNotFoundError:
                logger.warning("Source already gone after transfer: %s", item.path)
            except OSError as exc:
                logger.warning("Could not remove source %s: %s", item.path, exc)

        if rec.success:
            logger.info("Transfer complete in %.3fs: %s", rec.duration, dest)

        self.stats.record(rec)

        if not rec.success:
            raise TransferError(f"Could not write {dest}: {rec.error}", rec)
        return rec

"""Source folder watcher for File Relay.

Lists the source folder on every tick with watchdog's directory
snapshot, filters entries by a glob pattern and emits each newly
observed file exactly once as a WorkItem.
"""

from __future__ import annotations

import fnmatch
import logging
import os
import stat
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO

from watchdog.utils.dirsnapshot import DirectorySnapshot

from file_relay.errors import ConfigurationError, ScanError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WorkItem:
    """One discovered file awaiting transfer."""
    path: Path
    name: str
    mtime: float
    size: int = 0

    def open(self) -> BinaryIO:
        """Open the source file for binary reading."""
        return open(self.path, "rb")


class SourceWatcher:
    """
    Emits matching files from a single source folder (non-recursive).

    Only this object mutates its seen/in-flight bookkeeping; the pipeline
    reports outcomes back through :meth:`complete`.

    Usage:
        watcher = SourceWatcher("dir_src", pattern="*.txt")
        watcher.check()
        for item in watcher.scan():
            ...
            watcher.complete(item, success=True)
    """

    def __init__(
        self,
        source_directory: str | os.PathLike,
        pattern: str = "*.txt",
        rescan_on_modification: bool = False,
    ):
        self.source_directory = Path(source_directory).absolute()
        self.pattern = pattern
        self._rescan_on_modification = rescan_on_modification
        # path -> mtime at the time it was emitted
        self._seen: dict[Path, float] = {}
        self._in_flight: set[Path] = set()
        self._lock = threading.Lock()

    # ---- lifecycle ----

    def check(self) -> None:
        """Fail fast when the source folder is unusable."""
        if not self.source_directory.is_dir():
            logger.error("Source directory does not exist: %s", self.source_directory)
            raise ConfigurationError(
                f"Source directory does not exist: {self.source_directory}"
            )

    # ---- scanning ----

    def matches(self, name: str) -> bool:
        """Return whether *name* passes the glob filter."""
        return fnmatch.fnmatchcase(name, self.pattern)

    def _stat(self, path: str) -> os.stat_result:
        try:
            return os.stat(path)
        except OSError as exc:
            # DirectorySnapshot drops entries whose stat fails; report them
            if Path(path) != self.source_directory:
                logger.warning("Skipping %s this tick: %s", path, exc)
            raise

    def _snapshot(self) -> DirectorySnapshot:
        try:
            return DirectorySnapshot(
                str(self.source_directory), recursive=False, stat=self._stat
            )
        except OSError as exc:
            raise ScanError(
                f"Could not list {self.source_directory}: {exc}"
            ) from exc

    def scan(self) -> list[WorkItem]:
        """
        List the source folder once and return newly observed files.

        Items come back in lexical order of file name. Every returned item
        is recorded as seen; paths that vanished since the last scan are
        forgotten so a reappearance counts as a new file.
        """
        snapshot = self._snapshot()
        root = str(self.source_directory)

        present: dict[Path, os.stat_result] = {}
        for p in snapshot.paths:
            if p == root:
                continue
            st = snapshot.stat_info(p)
            if not stat.S_ISREG(st.st_mode):
                continue
            name = os.path.basename(p)
            if not self.matches(name):
                logger.debug("Ignoring %s (does not match %s)", name, self.pattern)
                continue
            present[Path(p)] = st

        items: list[WorkItem] = []
        with self._lock:
            for gone in [p for p in self._seen if p not in present]:
                if gone not in self._in_flight:
                    del self._seen[gone]
                    logger.debug("Forgetting %s (no longer in source)", gone)

            for path in sorted(present, key=lambda p: p.name):
                st = present[path]
                if path in self._in_flight:
                    continue
                if path in self._seen:
                    if not self._rescan_on_modification:
                        continue
                    if self._seen[path] == st.st_mtime:
                        continue
                    logger.info("File modified since last emit: %s", path)
                self._seen[path] = st.st_mtime
                items.append(
                    WorkItem(path=path, name=path.name, mtime=st.st_mtime, size=st.st_size)
                )

        if items:
            logger.debug("Scan of %s found %d new file(s)", root, len(items))
        return items

    # ---- in-flight bookkeeping ----

    def mark_in_flight(self, item: WorkItem) -> bool:
        """Claim *item* for hand-off. Returns False if it is already in flight."""
        with self._lock:
            if item.path in self._in_flight:
                return False
            self._in_flight.add(item.path)
            return True

    def complete(self, item: WorkItem, success: bool, consumed: bool = False) -> None:
        """
        Release *item* after its hand-off.

        A failed item is forgotten so the next scan retries it. A consumed
        item (source removed by the mover) is forgotten too, so a new file
        written under the same name counts as a new occurrence.
        """
        with self._lock:
            self._in_flight.discard(item.path)
            if consumed or not success:
                self._seen.pop(item.path, None)

    def reset(self) -> None:
        """Forget every emitted and in-flight path."""
        with self._lock:
            self._seen.clear()
            self._in_flight.clear()
        logger.debug("Watcher state reset for %s", self.source_directory)

    # ---- status ----

    @property
    def seen_paths(self) -> frozenset[Path]:
        with self._lock:
            return frozenset(self._seen)

    @property
    def in_flight_paths(self) -> frozenset[Path]:
        with self._lock:
            return frozenset(self._in_flight)

"""Poll-and-move pipeline for File Relay.

Combines the source watcher, the direct channel and the file mover,
and drives them from a single timer thread with a fixed delay between
ticks.
"""

from __future__ import annotations

import logging
import threading

from file_relay.channel import DirectChannel
from file_relay.config import Config
from file_relay.errors import ConfigurationError, ScanError, TransferError
from file_relay.mover import FileMover
from file_relay.watcher import SourceWatcher

logger = logging.getLogger(__name__)


class Pipeline:
    """
    Watcher -> channel -> mover, one tick at a time.

    Usage:
        pipeline = Pipeline(watcher, mover, poll_interval_ms=1000)
        pipeline.start()
        ...
        pipeline.stop()
    """

    def __init__(
        self,
        watcher: SourceWatcher,
        mover: FileMover,
        channel: DirectChannel | None = None,
        poll_interval_ms: int = 1000,
    ):
        self.watcher = watcher
        self.mover = mover
        self.channel = channel or DirectChannel()
        self.channel.subscribe(self.mover.handle)
        self._poll_interval_ms = max(1, int(poll_interval_ms))
        self._tick_lock = threading.Lock()
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @classmethod
    def from_config(cls, cfg: Config) -> Pipeline:
        """Build a pipeline from the settings in *cfg*.

        Raises ConfigurationError when a setting has an unusable value.
        """
        try:
            return cls._build(cfg)
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(f"Invalid configuration in {cfg.path}: {exc}") from exc

    @classmethod
    def _build(cls, cfg: Config) -> Pipeline:
        for key in (
            "source_directory",
            "destination_directory",
            "file_pattern",
            "temporary_file_suffix",
        ):
            value = getattr(cfg, key)
            if not isinstance(value, str) or not value:
                raise ValueError(f"'{key}' must be a non-empty string, got {value!r}")
        try:
            poll_interval_ms = cfg.poll_interval_millis
        except (TypeError, ValueError) as exc:
            raise ValueError(f"'poll_interval_millis' must be an integer ({exc})") from exc
        watcher = SourceWatcher(
            cfg.source_directory,
            pattern=cfg.file_pattern,
            rescan_on_modification=cfg.rescan_on_modification,
        )
        mover = FileMover(
            cfg.destination_directory,
            auto_create_directory=cfg.auto_create_directory,
            delete_source_files=cfg.delete_source_files,
            temporary_file_suffix=cfg.temporary_file_suffix,
            preserve_timestamp=cfg.preserve_timestamp,
        )
        return cls(watcher, mover, poll_interval_ms=poll_interval_ms)

    @property
    def poll_interval_ms(self) -> int:
        return self._poll_interval_ms

    # ---- lifecycle ----

    def start(self) -> None:
        """Validate the source folder and start polling."""
        if self.is_running:
            return
        self.watcher.check()
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._poll, daemon=True, name="FileRelayPoller"
        )
        self._thread.start()
        logger.info(
            "Polling '%s' for '%s' every %d ms -> '%s'",
            self.watcher.source_directory,
            self.watcher.pattern,
            self._poll_interval_ms,
            self.mover.destination_directory,
        )

    def stop(self, timeout: float | None = None) -> None:
        """Stop polling; a tick already in progress runs to completion."""
        self._stop.set()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=timeout)
        self._thread = None
        logger.info("Pipeline stopped.")

    @property
    def is_running(self) -> bool:
        """Return whether the polling thread is alive."""
        return self._thread is not None and self._thread.is_alive()

    # ---- ticks ----

    def _poll(self) -> None:
        while not self._stop.is_set():
            try:
                self.tick()
            except Exception:
                logger.exception("Unexpected error during poll")
            self._stop.wait(timeout=self._poll_interval_ms / 1000.0)

    def tick(self) -> int:
        """
        Scan once and hand every new file to the mover.

        Returns the number of files transferred successfully. Ticks are
        serialized, so a path is never handed over twice at the same time.
        """
        with self._tick_lock:
            try:
                items = self.watcher.scan()
            except ScanError as exc:
                logger.warning("Scan failed, retrying next tick: %s", exc)
                return 0

            transferred = 0
            pending = list(items)
            try:
                while pending:
                    item = pending.pop(0)
                    if not self.watcher.mark_in_flight(item):
                        logger.debug("Already in flight, skipping %s", item.path)
                        continue
                    success = consumed = False
                    try:
                        rec = self.channel.send(item)
                        success = True
                        consumed = bool(getattr(rec, "source_removed", False))
                        transferred += 1
                    except TransferError as exc:
                        logger.warning("%s; source kept for retry", exc)
                    finally:
                        self.watcher.complete(item, success, consumed)
            finally:
                # Items never handed off are forgotten so the next tick emits them
                for item in pending:
                    self.watcher.complete(item, success=False)
            return transferred

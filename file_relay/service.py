"""
Headless runner for File Relay.

Runs the poll-and-move pipeline in the foreground until SIGINT/SIGTERM:

    python -m file_relay start [--config PATH]
    python -m file_relay help
"""

import logging
import logging.handlers
import signal
import sys
import threading
from pathlib import Path

from file_relay import __app_name__, __version__
from file_relay.config import Config, get_log_path
from file_relay.errors import ConfigurationError
from file_relay.pipeline import Pipeline

logger = logging.getLogger(__name__)

_LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def setup_logging(cfg: Config, log_path: Path | None = None) -> None:
    """Configure rotating file log and stderr handler."""
    log_path = log_path or get_log_path()
    level = getattr(logging, cfg.log_level.upper(), logging.INFO)
    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    fmt = logging.Formatter(_LOG_FORMAT)

    # Rotating file handler
    max_bytes = cfg.max_log_size_mb * 1024 * 1024
    fh = logging.handlers.RotatingFileHandler(
        str(log_path),
        maxBytes=max_bytes,
        backupCount=cfg.log_backup_count,
        encoding="utf-8",
    )
    fh.setLevel(level)
    fh.setFormatter(fmt)
    root_logger.addHandler(fh)

    # Stderr handler
    sh = logging.StreamHandler(sys.stderr)
    sh.setLevel(level)
    sh.setFormatter(fmt)
    root_logger.addHandler(sh)


def run_foreground(cfg: Config) -> int:
    """Run the pipeline until SIGINT/SIGTERM. Returns the process exit code."""
    if not cfg.is_configured():
        logger.error("Cannot start: source/destination not configured.")
        return 2

    try:
        pipeline = Pipeline.from_config(cfg)
        pipeline.start()
    except ConfigurationError as exc:
        logger.error("Cannot start: %s", exc)
        return 2

    stop = threading.Event()

    def _handler(sig, frame):
        logger.info("Received signal %d, stopping after current tick.", sig)
        stop.set()

    signal.signal(signal.SIGINT, _handler)
    signal.signal(signal.SIGTERM, _handler)

    print(f"{__app_name__} running (press Ctrl-C to stop)…")
    while not stop.is_set():
        stop.wait(timeout=1)
    pipeline.stop()
    print(f"{__app_name__} stopped.")
    return 0


def _parse_args(argv: list[str]) -> tuple[str, Path | None]:
    """Return (command, config path) from *argv* (without the program name)."""
    cmd = "start"
    config_path = None
    args = list(argv)
    while args:
        arg = args.pop(0)
        if arg == "--config":
            if not args:
                raise ValueError("--config requires a path")
            config_path = Path(args.pop(0))
        elif arg.startswith("--config="):
            config_path = Path(arg.split("=", 1)[1])
        elif arg == "start":
            cmd = "start"
        elif arg in ("help", "-h", "--help"):
            cmd = "help"
        else:
            raise ValueError(f"Unknown argument: {arg}")
    return cmd, config_path


def main(argv: list[str] | None = None) -> None:
    """Entry point for the ``file-relay`` console script."""
    try:
        cmd, config_path = _parse_args(sys.argv[1:] if argv is None else argv)
    except ValueError as exc:
        print(f"ERROR: {exc}")
        _show_help()
        sys.exit(2)

    if cmd == "help":
        _show_help()
        return

    cfg = Config(config_path)
    setup_logging(cfg)
    logger.info("%s %s starting.", __app_name__, __version__)
    sys.exit(run_foreground(cfg))


def _show_help() -> None:
    print(f"{__app_name__} {__version__}")
    print()
    print("Usage:")
    print("  python -m file_relay [start] [--config PATH]   Run in foreground (Ctrl-C to stop)")
    print("  python -m file_relay help                      Show this message")

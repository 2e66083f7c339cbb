# src/lockin/logging_setup.py

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

LOG_FORMAT = "%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Console thresholds by logger prefix; the longest matching prefix wins.
_CONSOLE_THRESHOLDS: dict[str, int] = {
    "lockin": logging.NOTSET,
    "lockin.timer.ticker": logging.WARNING,  # runs every second on the loop thread
    "lockin.storage.document_store": logging.INFO,  # DEBUG on every save
    "py.warnings": logging.ERROR,
}


def _threshold_for(name: str) -> int:
    best, best_len = logging.ERROR, -1  # unknown (third-party) loggers: errors only
    for prefix, level in _CONSOLE_THRESHOLDS.items():
        if (name == prefix or name.startswith(prefix + ".")) and len(prefix) > best_len:
            best, best_len = level, len(prefix)
    return best


class _ConsoleNoiseFilter(logging.Filter):
    """Keep the REPL readable: app logs pass, the rest only when serious."""

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno >= _threshold_for(record.name)


def _level(value: int | str) -> int:
    if isinstance(value, int):
        return value
    resolved = logging.getLevelName(str(value).strip().upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def setup_logging(
    *,
    log_dir: str | Path = ".local/lockin",
    console_level: int | str = logging.INFO,
    file_level: int | str = logging.DEBUG,
) -> Path:
    """
    Configure the root logger once at startup.

    Console gets a filtered stream on stderr (stdout belongs to the REPL);
    the rotating file under log_dir keeps everything. Returns the log file path.
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / "lockin.log"

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for h in list(root.handlers):
        root.removeHandler(h)
        h.close()

    fmt = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(_level(console_level))
    console.setFormatter(fmt)
    console.addFilter(_ConsoleNoiseFilter())
    root.addHandler(console)

    file_handler = RotatingFileHandler(str(log_file), maxBytes=2_000_000, backupCount=3, encoding="utf-8")
    file_handler.setLevel(_level(file_level))
    file_handler.setFormatter(fmt)
    root.addHandler(file_handler)

    logging.captureWarnings(True)
    logging.getLogger("asyncio").setLevel(logging.WARNING)
    return log_file

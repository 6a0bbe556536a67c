import logging
import os
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import List

_INITIALIZED = False

# Attributes every LogRecord carries; anything else arrived through extra={...}
_RECORD_ATTRS = set(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {"message", "asctime"}


class ExtraFormatter(logging.Formatter):
    """Append the ``extra={...}`` context of a record as ``key=value`` pairs."""

    def format(self, record: logging.LogRecord) -> str:
        base = super().format(record)
        extras = {k: v for k, v in vars(record).items() if k not in _RECORD_ATTRS}
        if not extras:
            return base
        return base + " | " + " ".join(f"{k}={v!r}" for k, v in sorted(extras.items()))


class SizeTimestampRotatingFileHandler(RotatingFileHandler):
    """Rotate the query log once it reaches maxBytes.

    The active log keeps its configured name (logs/querycharts.log); a rotated
    file gets a timestamp, e.g. logs/querycharts_20261017_153012.log.
    backupCount=0 keeps every rotated file, otherwise only the newest N survive.
    """

    def _rotated_path(self) -> Path:
        base = Path(self.baseFilename)
        suffix = base.suffix or ".log"
        ts = datetime.now().strftime("%Y%m%d_%H%M%S")
        candidate = base.with_name(f"{base.stem}_{ts}{suffix}")
        n = 1
        while candidate.exists():
            candidate = base.with_name(f"{base.stem}_{ts}_{n}{suffix}")
            n += 1
        return candidate

    def _rotated_files(self) -> List[Path]:
        base = Path(self.baseFilename)
        files = base.parent.glob(f"{base.stem}_*{base.suffix or '.log'}")
        return sorted(files, key=lambda p: p.stat().st_mtime, reverse=True)

    def doRollover(self) -> None:
        if self.stream:
            self.stream.close()
            self.stream = None

        if os.path.exists(self.baseFilename):
            try:
                os.replace(self.baseFilename, self._rotated_path())
            except OSError:
                # keep logging into the current file
                pass

        if self.backupCount > 0:
            for old in self._rotated_files()[self.backupCount:]:
                try:
                    old.unlink()
                except OSError:
                    pass

        if not self.delay:
            self.stream = self._open()


def init_logging(
    log_level: str = "INFO",
    log_file: str = "logs/querycharts.log",
    max_bytes: int = 5 * 1024 * 1024,  # 5 MB
    backup_count: int = 0,
) -> None:
    global _INITIALIZED
    if _INITIALIZED:
        return

    Path(log_file).parent.mkdir(parents=True, exist_ok=True)
    formatter = ExtraFormatter("%(asctime)s | %(levelname)s | %(name)s | %(message)s")

    file_handler = SizeTimestampRotatingFileHandler(
        log_file, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
    )
    stream_handler = logging.StreamHandler()
    for h in (file_handler, stream_handler):
        h.setFormatter(formatter)

    root = logging.getLogger("querycharts")
    root.setLevel(getattr(logging, log_level.upper(), logging.INFO))
    root.addHandler(file_handler)
    root.addHandler(stream_handler)
    _INITIALIZED = True


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(f"querycharts.{name}")

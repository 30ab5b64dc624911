"""Log file output with size-based rotation."""

from pathlib import Path
from threading import Lock
from typing import Optional, TextIO
import logging
import os

from modemport.logging.log_models import LogEntry

logger = logging.getLogger(__name__)


class FileHandler:
    """Thread-safe log file writer.

    When the file reaches ``max_size_mb`` it is renamed to ``<name>.1``,
    older backups shift up by one and anything beyond ``backup_count`` is
    deleted.

    Example:
        >>> handler = FileHandler("~/.modemport/logs/comm.log", max_size_mb=10, backup_count=5)
        >>> handler.write(log_entry)
        True
        >>> handler.close()
    """

    def __init__(self, log_file_path: str, max_size_mb: int = 10, backup_count: int = 5):
        """Create the log directory and open the file for appending.

        Raises:
            OSError: Directory cannot be created or file cannot be opened
        """
        self.log_file_path = Path(log_file_path).expanduser().resolve()
        self.max_size_bytes = max_size_mb * 1024 * 1024
        self.backup_count = backup_count
        self._lock = Lock()
        self._stream: Optional[TextIO] = None

        self.log_file_path.parent.mkdir(parents=True, exist_ok=True)
        self._stream = self._open()

    def _open(self) -> TextIO:
        return open(self.log_file_path, mode='a', encoding='utf-8')

    @property
    def closed(self) -> bool:
        return self._stream is None

    def write(self, entry: LogEntry) -> bool:
        """Append one entry, rotating first if the file is full.

        Returns:
            True if written, False if the handler is closed or the write failed
        """
        with self._lock:
            if self._stream is None:
                return False
            try:
                self._rotate_if_needed()
                self._stream.write(entry.to_string() + '\n')
                self._stream.flush()
                return True
            except OSError as e:
                logger.error("Failed to write log entry to %s: %s", self.log_file_path, e)
                return False

    def _backup_path(self, index: int) -> Path:
        return self.log_file_path.with_name(f"{self.log_file_path.name}.{index}")

    def _rotate_if_needed(self) -> None:
        # Caller holds self._lock
        if os.path.getsize(self.log_file_path) < self.max_size_bytes:
            return

        self._stream.close()
        if self.backup_count > 0:
            oldest = self._backup_path(self.backup_count)
            if oldest.exists():
                oldest.unlink()
            for index in range(self.backup_count - 1, 0, -1):
                src = self._backup_path(index)
                if src.exists():
                    src.replace(self._backup_path(index + 1))
            self.log_file_path.replace(self._backup_path(1))
        else:
            self.log_file_path.unlink()
        self._stream = self._open()

    def flush(self) -> None:
        """Force buffered data to disk."""
        with self._lock:
            if self._stream is not None:
                self._stream.flush()
                os.fsync(self._stream.fileno())

    def close(self) -> None:
        """Close the file. Safe to call multiple times."""
        with self._lock:
            if self._stream is not None:
                try:
                    self._stream.close()
                finally:
                    self._stream = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

"""Audit sinks writing API log entries to the console and to a log file."""

import asyncio
import threading
from pathlib import Path
from typing import Union

from structlog import get_logger

from src.core.exceptions import AuditSinkError
from src.domain.rate_limiting.entities import ApiLogEntry
from src.domain.rate_limiting.repositories import AuditSink
from src.domain.rate_limiting.value_objects import utc_now

logger = get_logger(__name__)


class ConsoleAuditSink(AuditSink):
    """Emits every entry as a structured ``api_call_completed`` log event."""

    name = "console"

    async def write(self, entry: ApiLogEntry) -> None:
        logger.info("api_call_completed", **entry.to_dict())


class FileAuditSink(AuditSink):
    """Appends one text line per entry to a UTF-8 log file.

    Each line is prefixed with the time it was written. The directory is
    created on first write.
    """

    name = "file"

    def __init__(self, log_dir: Union[str, Path], file_name: str = "ApiLogs.txt"):
        self.path = Path(log_dir) / file_name
        self._lock = threading.Lock()

    def _append(self, line: str) -> None:
        with self._lock:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("a", encoding="utf-8") as fh:
                fh.write(line)

    async def write(self, entry: ApiLogEntry) -> None:
        line = f"{utc_now().isoformat()} | {entry.to_log_line()}\n"
        try:
            await asyncio.to_thread(self._append, line)
        except OSError as e:
            raise AuditSinkError(f"Could not write to {self.path}: {e}") from e

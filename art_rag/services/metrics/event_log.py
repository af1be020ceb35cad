"""Append-only NDJSON event logs with size rotation and age retention."""

import asyncio
import json
import os
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from art_rag.core.errors import LogWriteError
from art_rag.core.logging import get_logger

logger = get_logger(__name__)

REQUEST_LOG = "rag_requests.log"
SEARCH_LOG = "search_requests.log"
ERROR_LOG = "errors.log"


def rotation_suffix(now: Optional[datetime] = None) -> str:
    """UTC timestamp safe for file names, e.g. 2024-05-01T12-30-00-123Z."""
    now = now or datetime.now(timezone.utc)
    return now.strftime("%Y-%m-%dT%H-%M-%S-") + f"{now.microsecond // 1000:03d}Z"


class EventLogWriter:
    """Writes one JSON object per line into per-kind log files.

    Appends run in a worker thread so the event loop never blocks on disk,
    and are serialized by a lock so rotation cannot interleave with a
    concurrent append. Every failure is logged as a warning and reported
    through the return value.
    """

    def __init__(self, log_dir: str = "./logs", max_bytes: int = 10 * 1024 * 1024):
        self.log_dir = Path(log_dir)
        self.max_bytes = max_bytes
        self._lock = asyncio.Lock()

    def path_for(self, filename: str) -> Path:
        return self.log_dir / filename

    @staticmethod
    def _report(error: LogWriteError) -> None:
        logger.warning(error.message, extra={"data": error.to_dict()})

    async def append(self, filename: str, event: Dict[str, Any]) -> bool:
        """Append an event, rotating the file when it grows past max_bytes."""
        path = self.path_for(filename)
        try:
            line = json.dumps(event, default=str) + "\n"
            async with self._lock:
                await asyncio.to_thread(self._append_sync, path, line)
            return True
        except (OSError, TypeError, ValueError) as e:
            self._report(LogWriteError(f"Failed to write event log {path}: {e}", path=str(path)))
            return False

    def _append_sync(self, path: Path, line: str) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "a", encoding="utf-8") as f:
            f.write(line)
        self._rotate_if_needed(path)

    def _rotate_if_needed(self, path: Path) -> Optional[Path]:
        if path.stat().st_size <= self.max_bytes:
            return None

        rotated = path.with_name(f"{path.name}.{rotation_suffix()}")
        counter = 1
        while rotated.exists():
            rotated = path.with_name(f"{path.name}.{rotation_suffix()}.{counter}")
            counter += 1

        os.replace(path, rotated)
        path.touch()
        logger.info(f"Rotated event log {path.name} -> {rotated.name}")
        return rotated

    async def prune_older_than(self, days: float) -> int:
        """Delete log files last modified more than `days` ago."""
        try:
            async with self._lock:
                return await asyncio.to_thread(self._prune_sync, days)
        except OSError as e:
            self._report(LogWriteError(f"Failed to prune event logs in {self.log_dir}: {e}", path=str(self.log_dir)))
            return 0

    def _prune_sync(self, days: float) -> int:
        if not self.log_dir.exists():
            return 0

        cutoff = time.time() - days * 24 * 60 * 60
        deleted = 0
        for entry in self.log_dir.iterdir():
            if not entry.is_file():
                continue
            try:
                if entry.stat().st_mtime < cutoff:
                    entry.unlink()
                    deleted += 1
            except OSError as e:
                logger.warning(f"Could not prune {entry}: {e}")

        if deleted:
            logger.info(f"Pruned {deleted} event log files older than {days} days")
        return deleted

    async def write_json(self, filename: str, data: Dict[str, Any]) -> Optional[Path]:
        """Write a standalone JSON document (metrics snapshot export)."""
        path = self.path_for(filename)
        try:
            content = json.dumps(data, indent=2, default=str)
            await asyncio.to_thread(self._write_sync, path, content)
            return path
        except (OSError, TypeError, ValueError) as e:
            self._report(LogWriteError(f"Failed to write {path}: {e}", path=str(path)))
            return None

    @staticmethod
    def _write_sync(path: Path, content: str) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")

import asyncio
import stat
import time
from pathlib import Path
from typing import Iterable, List, Optional

from fastapi.concurrency import run_in_threadpool

from ..config import settings
from ..exceptions import SweeperFileError
from ..utils.logging import logger


class RetentionSweeper:
    """Deletes files older than ``max_age_seconds`` from the watched directories.

    The periodic loop is an asyncio task; ``start`` and ``stop`` are called
    from the application lifespan and are safe to call more than once.
    """

    def __init__(self, directories: Iterable[Path], max_age_seconds: float, interval_seconds: float) -> None:
        self.directories = [Path(directory) for directory in directories]
        self.max_age_seconds = max_age_seconds
        self.interval_seconds = interval_seconds
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def _expire(self, path: Path, now: float) -> bool:
        try:
            file_stat = path.stat()
        except FileNotFoundError:
            return False
        except OSError as e:
            raise SweeperFileError(f"Cannot stat {path}: {e}") from e

        if not stat.S_ISREG(file_stat.st_mode):
            return False

        age = now - file_stat.st_mtime
        if age <= self.max_age_seconds:
            return False

        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            raise SweeperFileError(f"Cannot delete {path}: {e}") from e

        logger.log_file_deleted(str(path), age)
        return True

    def sweep(self, now: Optional[float] = None) -> List[Path]:
        """Run one pass over every directory and return the deleted paths."""
        now = time.time() if now is None else now
        deleted: List[Path] = []

        for directory in self.directories:
            if not directory.is_dir():
                continue
            try:
                entries = list(directory.iterdir())
            except OSError as e:
                logger.log_error("sweeper_directory_error", {"directory": str(directory), "error": str(e)})
                continue

            for entry in entries:
                try:
                    if self._expire(entry, now):
                        deleted.append(entry)
                except SweeperFileError as e:
                    logger.log_error("sweeper_file_error", {"path": str(entry), "error": str(e)})

        logger.log_step("retention_sweep_completed", {
            "directories": [str(directory) for directory in self.directories],
            "deleted_count": len(deleted)
        })
        return deleted

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            try:
                await run_in_threadpool(self.sweep)
            except Exception as e:
                logger.log_error("retention_sweep_failed", {"error": str(e), "error_type": type(e).__name__})

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run())
        logger.log_step("retention_sweeper_started", {
            "interval_seconds": self.interval_seconds,
            "max_age_seconds": self.max_age_seconds
        })

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.log_step("retention_sweeper_stopped")


retention_sweeper = RetentionSweeper(
    directories=[settings.upload_dir_path, settings.public_dir_path],
    max_age_seconds=settings.RETENTION_SECONDS,
    interval_seconds=settings.SWEEP_INTERVAL_SECONDS,
)

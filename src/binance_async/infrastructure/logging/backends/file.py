"""
File Backend

A ``logging.Handler`` that buffers formatted lines in memory and writes them
with aiofiles, so the event loop never blocks on disk I/O. Lines are written
when ``buffer_size`` lines are pending or ``flush_interval`` seconds after the
first buffered line, whichever comes first. The file is rotated by size before
each write:

    client.log -> client.log.1 -> client.log.2 ... (backup_count files kept)

Inside a running loop writes happen on a task; ``await handler.aflush()``
waits for everything buffered so far. Outside a loop ``flush()``/``close()``
drive the same coroutine with ``asyncio.run``.
"""

import asyncio
import logging
import sys
from pathlib import Path
from typing import List, Optional, Set

import aiofiles
import aiofiles.os

from ..structs import FileBackendConfig


class AsyncFileHandler(logging.Handler):
    """Size-rotated file handler with async writes."""

    def __init__(self, config: FileBackendConfig):
        super().__init__(level=config.min_level.upper())
        self.config = config
        self.file_path = Path(config.path)
        self.max_file_size = config.max_size_mb * 1024 * 1024
        self.backup_count = config.backup_count
        self.buffer_size = config.buffer_size
        self.flush_interval = config.flush_interval

        self.file_path.parent.mkdir(parents=True, exist_ok=True)

        self._write_buffer: List[str] = []
        self._write_lock: Optional[asyncio.Lock] = None
        self._timer: Optional[asyncio.TimerHandle] = None
        self._pending: Set[asyncio.Task] = set()

    @staticmethod
    def _running_loop() -> Optional[asyncio.AbstractEventLoop]:
        try:
            return asyncio.get_running_loop()
        except RuntimeError:
            return None

    def emit(self, record: logging.LogRecord) -> None:
        try:
            line = self.format(record)
        except Exception:
            self.handleError(record)
            return

        self._write_buffer.append(line)
        if len(self._write_buffer) >= self.buffer_size or self.flush_interval == 0:
            self._schedule_flush()
        elif self._timer is None:
            loop = self._running_loop()
            if loop is not None:
                self._timer = loop.call_later(self.flush_interval, self._schedule_flush)

    def _schedule_flush(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        loop = self._running_loop()
        if loop is None:
            # Picked up by the next flush()/close() or write from a loop
            return
        task = loop.create_task(self.aflush())
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def aflush(self) -> None:
        """Write every buffered line, after writes already in progress."""
        if self._write_lock is None:
            self._write_lock = asyncio.Lock()
        async with self._write_lock:
            await self._flush_buffer()

    async def _flush_buffer(self) -> None:
        if not self._write_buffer:
            return

        lines, self._write_buffer = self._write_buffer, []
        try:
            await self._check_rotation()
            async with aiofiles.open(self.file_path, "a", encoding="utf-8") as f:
                await f.write("\n".join(lines) + "\n")
        except OSError as e:
            # Keep the lines for the next attempt
            self._write_buffer[:0] = lines
            print(f"AsyncFileHandler write error: {e}", file=sys.stderr)

    async def _check_rotation(self) -> None:
        if not await aiofiles.os.path.exists(self.file_path):
            return
        if await aiofiles.os.path.getsize(self.file_path) >= self.max_file_size:
            await self._rotate_file()

    async def _rotate_file(self) -> None:
        if self.backup_count == 0:
            await aiofiles.os.remove(self.file_path)
            return

        for i in range(self.backup_count - 1, 0, -1):
            old_file = self._backup_path(i)
            if await aiofiles.os.path.exists(old_file):
                await self._move(old_file, self._backup_path(i + 1))
        await self._move(self.file_path, self._backup_path(1))

    @staticmethod
    async def _move(source: Path, target: Path) -> None:
        if await aiofiles.os.path.exists(target):
            await aiofiles.os.remove(target)
        await aiofiles.os.rename(source, target)

    def _backup_path(self, index: int) -> Path:
        return self.file_path.with_name(f"{self.file_path.name}.{index}")

    def flush(self) -> None:
        if not self._write_buffer:
            return
        if self._running_loop() is not None:
            self._schedule_flush()
            return
        try:
            asyncio.run(self._flush_buffer())
        except RuntimeError as e:
            # Interpreter shutdown: no executor threads left for aiofiles
            print(f"AsyncFileHandler flush error: {e}", file=sys.stderr)

    def close(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        try:
            self.flush()
        finally:
            super().close()

    def __repr__(self) -> str:
        return f"<AsyncFileHandler {self.file_path} ({logging.getLevelName(self.level)})>"

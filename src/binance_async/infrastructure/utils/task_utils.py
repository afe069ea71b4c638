import asyncio
from typing import Iterable, List, Optional

from websockets.exceptions import WebSocketException

from binance_async.infrastructure.logging import HFTLoggerInterface


async def cancel_tasks_with_timeout(
    tasks: Iterable[Optional[asyncio.Task]],
    timeout: float = 2.0,
    logger: Optional[HFTLoggerInterface] = None
) -> bool:
    """
    Cancel multiple tasks with timeout protection.

    Args:
        tasks: Tasks to cancel (None entries are ignored)
        timeout: Maximum time to wait for cancellation
        logger: Optional logger for timeout warnings

    Returns:
        bool: True if all tasks finished within timeout, False if timeout occurred
    """
    active_tasks = [task for task in tasks if task is not None and not task.done()]
    if not active_tasks:
        return True

    for task in active_tasks:
        task.cancel()

    try:
        await asyncio.wait_for(
            asyncio.gather(*active_tasks, return_exceptions=True),
            timeout=timeout
        )
        return True
    except asyncio.TimeoutError:
        if logger:
            remaining = [task for task in active_tasks if not task.done()]
            logger.warning("Task cancellation timed out", timeout=timeout, remaining=len(remaining))
        return False


async def safe_close_connection(
    connection,
    timeout: float = 1.0,
    logger: Optional[HFTLoggerInterface] = None
) -> bool:
    """
    Close a connection with timeout protection.

    Close failures are logged and reported through the return value; the
    connection is considered gone either way.

    Returns:
        bool: True if closed within timeout, False otherwise
    """
    if connection is None:
        return True

    try:
        await asyncio.wait_for(connection.close(), timeout=timeout)
        return True
    except asyncio.TimeoutError:
        if logger:
            logger.warning("Connection close timed out", timeout=timeout)
        return False
    except (OSError, RuntimeError, WebSocketException) as e:
        if logger:
            logger.debug("Error closing connection", error_type=type(e).__name__, error=str(e))
        return False


class TaskManager:
    """
    Tracks background tasks so they are not garbage collected mid-flight and
    can be cancelled together.
    """

    def __init__(self, name: str = "task_manager", logger: Optional[HFTLoggerInterface] = None):
        self.name = name
        self.logger = logger
        self._tasks: List[asyncio.Task] = []
        self._should_stop = False

    def create_task(self, coro, name: Optional[str] = None) -> asyncio.Task:
        """Create and track a task."""
        if self._should_stop:
            coro.close()
            raise RuntimeError(f"Cannot create task '{name}' - manager is stopping")

        task_name = f"{self.name}.{name}" if name else f"{self.name}.task_{len(self._tasks)}"
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            coro.close()
            raise
        task = loop.create_task(coro, name=task_name)
        self._tasks.append(task)
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task) -> None:
        try:
            self._tasks.remove(task)
        except ValueError:
            pass
        if task.cancelled() or self.logger is None:
            return
        error = task.exception()
        if error is not None:
            self.logger.error("Background task failed", task=task.get_name(),
                              error_type=type(error).__name__, error=str(error))

    async def shutdown(self, timeout: float = 2.0) -> bool:
        """Cancel all managed tasks."""
        self._should_stop = True
        active_tasks = [task for task in self._tasks if not task.done()]
        success = await cancel_tasks_with_timeout(active_tasks, timeout, self.logger)
        self._tasks.clear()
        return success

    @property
    def active_task_count(self) -> int:
        return len([task for task in self._tasks if not task.done()])

    @property
    def is_stopping(self) -> bool:
        return self._should_stop

from .task_utils import TaskManager, cancel_tasks_with_timeout, safe_close_connection

__all__ = [
    'TaskManager',
    'cancel_tasks_with_timeout',
    'safe_close_connection',
]

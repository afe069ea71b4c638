from .file import AsyncFileHandler

__all__ = [
    'AsyncFileHandler',
]

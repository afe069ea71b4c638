from .retry import retry_decorator, retry_with_backoff

__all__ = ['retry_decorator', 'retry_with_backoff']

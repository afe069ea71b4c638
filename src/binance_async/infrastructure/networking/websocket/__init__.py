from .structs import (
    ConnectionState,
    ConnectionStatus,
    SubscriptionState,
    SubscriptionAction,
    StreamFrame,
)
from .backoff import compute_backoff_delay
from .subscription import SubscriptionHandle
from .ws_connection import StreamConnection, HeartbeatTimeout, default_connect
from .ws_manager import StreamMultiplexer

__all__ = [
    'ConnectionState',
    'ConnectionStatus',
    'SubscriptionState',
    'SubscriptionAction',
    'StreamFrame',
    'compute_backoff_delay',
    'SubscriptionHandle',
    'StreamConnection',
    'HeartbeatTimeout',
    'default_connect',
    'StreamMultiplexer',
]

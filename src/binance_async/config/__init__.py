from .structs import (
    ExchangeConfig,
    ExchangeCredentials,
    FeatureFlags,
    NetworkConfig,
    RateLimitConfig,
    WebSocketConfig,
)
from .config_manager import ConfigManager

__all__ = [
    'ExchangeConfig',
    'ExchangeCredentials',
    'FeatureFlags',
    'NetworkConfig',
    'RateLimitConfig',
    'WebSocketConfig',
    'ConfigManager',
]

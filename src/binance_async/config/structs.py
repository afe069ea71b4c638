from typing import Optional, Dict, Any
import os

from msgspec import Struct, field

from binance_async.infrastructure.exceptions.system import ConfigurationError


SPOT_REST_URL = "https://api.binance.com"
SPOT_WS_URL = "wss://stream.binance.com:9443"
FUTURES_REST_URL = "https://fapi.binance.com"
FUTURES_WS_URL = "wss://fstream.binance.com"

SPOT_TESTNET_REST_URL = "https://testnet.binance.vision"
SPOT_TESTNET_WS_URL = "wss://stream.testnet.binance.vision"
FUTURES_TESTNET_REST_URL = "https://testnet.binancefuture.com"
FUTURES_TESTNET_WS_URL = "wss://stream.binancefuture.com"

DEFAULT_RECV_WINDOW = 5000


class NetworkConfig(Struct, frozen=True):
    """
    Network configuration settings.

    Attributes:
        request_timeout: Total HTTP request timeout in seconds
        connect_timeout: Connection timeout in seconds
        max_connections: Connector pool size
        max_connections_per_host: Connector pool size per host
        keepalive_timeout: Idle keep-alive in seconds
    """
    request_timeout: float = 10.0
    connect_timeout: float = 5.0
    max_connections: int = 100
    max_connections_per_host: int = 30
    keepalive_timeout: float = 60.0

    def validate(self) -> None:
        """Validate network configuration."""
        if self.request_timeout <= 0:
            raise ConfigurationError("request_timeout must be positive", "network.request_timeout")
        if self.connect_timeout <= 0:
            raise ConfigurationError("connect_timeout must be positive", "network.connect_timeout")
        if self.max_connections <= 0 or self.max_connections_per_host <= 0:
            raise ConfigurationError("connection limits must be positive", "network.max_connections")


class RateLimitConfig(Struct, frozen=True):
    """
    Client-side handling of server-communicated limits.

    Attributes:
        wait_on_rate_limit: Sleep until the budget frees instead of raising RateLimited
        max_wait: Upper bound for a single wait when wait_on_rate_limit is set
        apply_exchange_limits: Load limits from exchangeInfo.rateLimits when fetched
    """
    wait_on_rate_limit: bool = False
    max_wait: float = 60.0
    apply_exchange_limits: bool = True

    def validate(self) -> None:
        if self.max_wait <= 0:
            raise ConfigurationError("max_wait must be positive", "rate_limit.max_wait")


class WebSocketConfig(Struct, frozen=True):
    """
    Stream connection settings.

    Attributes:
        connect_timeout: WebSocket open timeout in seconds
        ping_interval: Client ping interval in seconds
        ping_timeout: Maximum wait for a pong in seconds
        close_timeout: Close handshake timeout in seconds

        max_reconnect_attempts: Consecutive failed reconnects before FAILED
        reconnect_delay: Base delay between reconnection attempts in seconds
        reconnect_backoff: Backoff multiplier for reconnection delays
        max_reconnect_delay: Maximum reconnection delay in seconds
        reconnect_jitter: Relative jitter applied to each delay (0.1 = +-10%)

        max_topics_per_connection: Topics packed on one socket
        subscribe_batch_size: Topics per SUBSCRIBE control message
        buffer_capacity: Per-subscription buffered events before drop-oldest
        max_message_size: Maximum inbound frame size in bytes
    """
    connect_timeout: float = 10.0
    ping_interval: float = 20.0
    ping_timeout: float = 10.0
    close_timeout: float = 5.0

    max_reconnect_attempts: int = 10
    reconnect_delay: float = 1.0
    reconnect_backoff: float = 2.0
    max_reconnect_delay: float = 60.0
    reconnect_jitter: float = 0.1

    max_topics_per_connection: int = 200
    subscribe_batch_size: int = 50
    buffer_capacity: int = 1000
    max_message_size: int = 1048576  # 1MB

    def validate(self) -> None:
        """Validate WebSocket configuration."""
        if self.ping_interval <= 0 or self.ping_timeout <= 0:
            raise ConfigurationError("ping_interval and ping_timeout must be positive", "websocket.ping_interval")
        if self.max_reconnect_attempts < 0:
            raise ConfigurationError("max_reconnect_attempts cannot be negative", "websocket.max_reconnect_attempts")
        if self.reconnect_delay < 0 or self.max_reconnect_delay < self.reconnect_delay:
            raise ConfigurationError("invalid reconnect delay bounds", "websocket.reconnect_delay")
        if self.reconnect_backoff < 1.0:
            raise ConfigurationError("reconnect_backoff must be >= 1", "websocket.reconnect_backoff")
        if not 0.0 <= self.reconnect_jitter < 1.0:
            raise ConfigurationError("reconnect_jitter must be in [0, 1)", "websocket.reconnect_jitter")
        if self.max_topics_per_connection <= 0:
            raise ConfigurationError("max_topics_per_connection must be positive", "websocket.max_topics_per_connection")
        if self.subscribe_batch_size <= 0:
            raise ConfigurationError("subscribe_batch_size must be positive", "websocket.subscribe_batch_size")
        if self.buffer_capacity <= 0:
            raise ConfigurationError("buffer_capacity must be positive", "websocket.buffer_capacity")


class FeatureFlags(Struct, frozen=True):
    """Optional endpoint groups; disabled groups raise ConfigurationError on access."""
    margin: bool = True
    futures: bool = True
    savings: bool = True
    wallet: bool = True


class ExchangeCredentials(Struct, frozen=True):
    """Exchange API credentials as loaded from configuration."""
    api_key: str = ""
    secret_key: str = ""

    @property
    def has_private_api(self) -> bool:
        """Check if both credentials are provided."""
        return bool(self.api_key) and bool(self.secret_key)

    def get_preview(self) -> str:
        """Get safe preview of credentials for logging."""
        if not self.api_key:
            return "Not configured"
        if len(self.api_key) > 8:
            return f"{self.api_key[:4]}...{self.api_key[-4:]}"
        return "***"

    def validate(self) -> None:
        """Both empty (public-only mode) or both set."""
        if not self.api_key and not self.secret_key:
            return
        if bool(self.api_key) != bool(self.secret_key):
            raise ConfigurationError(
                "Both api_key and secret_key must be provided together or both empty", "credentials"
            )

    def __repr__(self) -> str:
        return f"ExchangeCredentials(api_key={self.get_preview()!r}, secret_key='***')"


class ExchangeConfig(Struct, frozen=True):
    """
    Complete client configuration.

    Attributes:
        credentials: API credentials (empty for public-only use)
        testnet: Resolve base URLs to the testnet environment
        recv_window: recvWindow attached to signed requests, in ms
        base_url / websocket_url / futures_base_url / futures_websocket_url:
            explicit overrides; resolved from ``testnet`` when unset
    """
    credentials: ExchangeCredentials = field(default_factory=ExchangeCredentials)
    testnet: bool = False
    recv_window: int = DEFAULT_RECV_WINDOW
    base_url: Optional[str] = None
    websocket_url: Optional[str] = None
    futures_base_url: Optional[str] = None
    futures_websocket_url: Optional[str] = None
    network: NetworkConfig = field(default_factory=NetworkConfig)
    rate_limit: RateLimitConfig = field(default_factory=RateLimitConfig)
    websocket: WebSocketConfig = field(default_factory=WebSocketConfig)
    features: FeatureFlags = field(default_factory=FeatureFlags)

    @property
    def rest_url(self) -> str:
        if self.base_url:
            return self.base_url.rstrip("/")
        return SPOT_TESTNET_REST_URL if self.testnet else SPOT_REST_URL

    @property
    def stream_url(self) -> str:
        if self.websocket_url:
            return self.websocket_url.rstrip("/")
        return SPOT_TESTNET_WS_URL if self.testnet else SPOT_WS_URL

    @property
    def futures_rest_url(self) -> str:
        if self.futures_base_url:
            return self.futures_base_url.rstrip("/")
        return FUTURES_TESTNET_REST_URL if self.testnet else FUTURES_REST_URL

    @property
    def futures_stream_url(self) -> str:
        if self.futures_websocket_url:
            return self.futures_websocket_url.rstrip("/")
        return FUTURES_TESTNET_WS_URL if self.testnet else FUTURES_WS_URL

    def has_credentials(self) -> bool:
        return self.credentials.has_private_api

    def validate(self) -> None:
        """Validate the whole tree; raises ConfigurationError naming the setting."""
        if self.recv_window <= 0 or self.recv_window > 60000:
            raise ConfigurationError("recv_window must be in (0, 60000]", "recv_window")
        self.credentials.validate()
        self.network.validate()
        self.rate_limit.validate()
        self.websocket.validate()

    @classmethod
    def from_env(cls, testnet: Optional[bool] = None, **overrides: Any) -> "ExchangeConfig":
        """Build from BINANCE_API_KEY / BINANCE_SECRET_KEY (and BINANCE_TESTNET)."""
        if testnet is None:
            testnet = os.getenv("BINANCE_TESTNET", "false").lower() in ("1", "true", "yes")
        credentials = ExchangeCredentials(
            api_key=os.getenv("BINANCE_API_KEY", ""),
            secret_key=os.getenv("BINANCE_SECRET_KEY", ""),
        )
        return cls(credentials=credentials, testnet=testnet, **overrides)

    def get_capabilities(self) -> Dict[str, bool]:
        """Get client capabilities based on configuration."""
        return {
            "public_data": True,
            "private_data": self.has_credentials(),
            "margin": self.features.margin,
            "futures": self.features.futures,
            "savings": self.features.savings,
            "wallet": self.features.wallet,
        }

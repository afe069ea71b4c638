from .client import BinanceClient
from .streams import Streams, FuturesStreams

__all__ = ['BinanceClient', 'Streams', 'FuturesStreams']

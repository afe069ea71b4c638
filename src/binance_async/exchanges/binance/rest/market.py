"""Public market data endpoints."""

from typing import List, Optional, Union

from binance_async.infrastructure.networking.http import SecurityType
from ..structs import (
    AggTrade, AveragePrice, BookTicker, Kline, KlineInterval, OrderBook, SymbolPrice,
    Ticker24h, Trade,
)
from .base import Endpoint, RestGroup

DEPTH = Endpoint("/api/v3/depth")
TRADES = Endpoint("/api/v3/trades", weight=25)
HISTORICAL_TRADES = Endpoint("/api/v3/historicalTrades", security=SecurityType.API_KEY, weight=25)
AGG_TRADES = Endpoint("/api/v3/aggTrades", weight=2)
KLINES = Endpoint("/api/v3/klines", weight=2)
AVG_PRICE = Endpoint("/api/v3/avgPrice", weight=2)
TICKER_24H = Endpoint("/api/v3/ticker/24hr", weight=2)
TICKER_PRICE = Endpoint("/api/v3/ticker/price", weight=2)
BOOK_TICKER = Endpoint("/api/v3/ticker/bookTicker", weight=2)

# Weights of the all-symbols variants
ALL_TICKERS_24H_WEIGHT = 80
ALL_PRICES_WEIGHT = 4
ALL_BOOK_TICKERS_WEIGHT = 4


def depth_weight(limit: int) -> int:
    """Order book weight scales with the requested depth."""
    if limit <= 100:
        return 5
    if limit <= 500:
        return 25
    if limit <= 1000:
        return 50
    return 250


def _interval(interval: Union[KlineInterval, str]) -> str:
    return interval.value if isinstance(interval, KlineInterval) else interval


class Market(RestGroup):
    """Spot market data."""

    async def depth(self, symbol: str, limit: int = 100) -> OrderBook:
        return await self._call(DEPTH, {"symbol": symbol.upper(), "limit": limit},
                                OrderBook, weight=depth_weight(limit))

    async def trades(self, symbol: str, limit: Optional[int] = None) -> List[Trade]:
        """Recent trades."""
        return await self._call(TRADES, {"symbol": symbol.upper(), "limit": limit}, List[Trade])

    async def historical_trades(self, symbol: str, limit: Optional[int] = None,
                                from_id: Optional[int] = None) -> List[Trade]:
        """Older trades; requires an API key."""
        params = {"symbol": symbol.upper(), "limit": limit, "fromId": from_id}
        return await self._call(HISTORICAL_TRADES, params, List[Trade])

    async def agg_trades(self, symbol: str, from_id: Optional[int] = None,
                         start_time: Optional[int] = None, end_time: Optional[int] = None,
                         limit: Optional[int] = None) -> List[AggTrade]:
        params = {
            "symbol": symbol.upper(),
            "fromId": from_id,
            "startTime": start_time,
            "endTime": end_time,
            "limit": limit,
        }
        return await self._call(AGG_TRADES, params, List[AggTrade])

    async def klines(self, symbol: str, interval: Union[KlineInterval, str],
                     limit: Optional[int] = None, start_time: Optional[int] = None,
                     end_time: Optional[int] = None) -> List[Kline]:
        params = {
            "symbol": symbol.upper(),
            "interval": _interval(interval),
            "startTime": start_time,
            "endTime": end_time,
            "limit": limit,
        }
        return await self._call(KLINES, params, List[Kline])

    async def average_price(self, symbol: str) -> AveragePrice:
        return await self._call(AVG_PRICE, {"symbol": symbol.upper()}, AveragePrice)

    async def ticker_24h(self, symbol: str) -> Ticker24h:
        return await self._call(TICKER_24H, {"symbol": symbol.upper()}, Ticker24h)

    async def all_tickers_24h(self) -> List[Ticker24h]:
        return await self._call(TICKER_24H, response_type=List[Ticker24h],
                                weight=ALL_TICKERS_24H_WEIGHT)

    async def price(self, symbol: str) -> SymbolPrice:
        return await self._call(TICKER_PRICE, {"symbol": symbol.upper()}, SymbolPrice)

    async def prices(self) -> List[SymbolPrice]:
        """Latest price of every symbol."""
        return await self._call(TICKER_PRICE, response_type=List[SymbolPrice],
                                weight=ALL_PRICES_WEIGHT)

    async def book_ticker(self, symbol: str) -> BookTicker:
        return await self._call(BOOK_TICKER, {"symbol": symbol.upper()}, BookTicker)

    async def book_tickers(self) -> List[BookTicker]:
        return await self._call(BOOK_TICKER, response_type=List[BookTicker],
                                weight=ALL_BOOK_TICKERS_WEIGHT)

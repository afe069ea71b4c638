"""
Declarative endpoints and the generic executor.

Every operation group declares its endpoints as ``Endpoint`` constants and
calls ``self._call(ENDPOINT, params, ResponseType)``. The security class of
the endpoint picks the transport call shape; weight and order counting feed
the rate governor.
"""

from typing import Any, Optional, Type

import msgspec

from binance_async.infrastructure.logging import get_logger, HFTLoggerInterface
from binance_async.infrastructure.networking.http import (
    HTTPMethod, ParamsLike, RestManager, SecurityType,
)


class Endpoint(msgspec.Struct, frozen=True):
    """One REST endpoint: path, method, security class, request weight, order counting."""
    path: str
    method: HTTPMethod = HTTPMethod.GET
    security: SecurityType = SecurityType.NONE
    weight: int = 1
    orders: bool = False


class RestGroup:
    """Base for operation groups bound to one transport."""

    def __init__(self, transport: RestManager, logger: Optional[HFTLoggerInterface] = None):
        self._transport = transport
        self.logger = logger or get_logger(f"rest.{type(self).__name__.lower()}")

    @property
    def transport(self) -> RestManager:
        return self._transport

    async def _call(self, endpoint: Endpoint, params: Optional[ParamsLike] = None,
                    response_type: Optional[Type] = None, weight: Optional[int] = None) -> Any:
        """Execute ``endpoint`` with ``params`` and decode into ``response_type``."""
        weight = endpoint.weight if weight is None else weight

        if endpoint.security is SecurityType.SIGNED:
            return await self._transport.request_signed(
                endpoint.path, params, method=endpoint.method, weight=weight,
                response_type=response_type, order_count=endpoint.orders,
            )
        if endpoint.security is SecurityType.API_KEY:
            return await self._transport.request_user_data(
                endpoint.path, params, method=endpoint.method, weight=weight,
                response_type=response_type,
            )
        return await self._transport.request_public(
            endpoint.path, params, method=endpoint.method, weight=weight,
            response_type=response_type,
        )

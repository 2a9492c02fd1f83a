import logging
import time
from abc import ABC, abstractmethod
from typing import Any, Callable, ClassVar, NamedTuple, Optional

import ccxt

from src.core.models import Envelope, ExchangeProperties

Callback = Callable[[Optional[ccxt.BaseError], Envelope], Any]


class UpstreamResult(NamedTuple):
    error: Optional[ccxt.BaseError]
    payload: Any


def timestamp_now() -> int:
    return int(time.time())


def call_upstream(method: Callable, *args) -> UpstreamResult:
    """
    Invoke an upstream client method and fold both error shapes into one result.

    Transport errors arrive as raised ``ccxt.BaseError`` instances; a payload
    that carries an ``error`` key is turned into ``ccxt.ExchangeError``.
    Anything else raised propagates.
    """
    try:
        payload = method(*args)
    except ccxt.BaseError as exc:
        return UpstreamResult(exc, None)

    if isinstance(payload, dict) and "error" in payload:
        return UpstreamResult(ccxt.ExchangeError(str(payload["error"])), None)
    return UpstreamResult(None, payload)


class ExchangeAdapter(ABC):
    """
    Exchange-agnostic operation set consumed by the host.

    Every operation takes an ``options`` dict and an optional callback,
    returns an :class:`Envelope` and, when a callback is given, also calls
    ``callback(error, envelope)`` exactly once.
    """

    properties: ClassVar[ExchangeProperties]

    # Host operation name -> adapter method name
    OPERATIONS: ClassVar[dict] = {
        "getRate": "get_rate",
        "getTicker": "get_ticker",
        "getOrderBook": "get_order_book",
        "getFee": "get_fee",
        "getTrades": "get_trades",
        "getOpenOrders": "get_open_orders",
        "postSellOrder": "post_sell_order",
        "postBuyOrder": "post_buy_order",
        "cancelOrder": "cancel_order",
        "getBalance": "get_balance",
        "getTransactions": "get_transactions",
    }

    def __init__(self, logger: Optional[logging.Logger] = None) -> None:
        self.logger = logger or logging.getLogger(self.__module__)

    # Market Data Methods
    @abstractmethod
    def get_ticker(self, options: Optional[dict] = None, callback: Optional[Callback] = None) -> Envelope:
        pass

    @abstractmethod
    def get_rate(self, options: Optional[dict] = None, callback: Optional[Callback] = None) -> Envelope:
        pass

    @abstractmethod
    def get_order_book(self, options: Optional[dict] = None, callback: Optional[Callback] = None) -> Envelope:
        pass

    @abstractmethod
    def get_fee(self, options: Optional[dict] = None, callback: Optional[Callback] = None) -> Envelope:
        pass

    # Account Methods
    @abstractmethod
    def get_trades(self, options: Optional[dict] = None, callback: Optional[Callback] = None) -> Envelope:
        pass

    @abstractmethod
    def get_transactions(self, options: Optional[dict] = None, callback: Optional[Callback] = None) -> Envelope:
        pass

    @abstractmethod
    def get_balance(self, options: Optional[dict] = None, callback: Optional[Callback] = None) -> Envelope:
        pass

    @abstractmethod
    def get_open_orders(self, options: Optional[dict] = None, callback: Optional[Callback] = None) -> Envelope:
        pass

    # Trading Methods
    @abstractmethod
    def post_sell_order(self, options: Optional[dict] = None, callback: Optional[Callback] = None) -> Envelope:
        pass

    @abstractmethod
    def post_buy_order(self, options: Optional[dict] = None, callback: Optional[Callback] = None) -> Envelope:
        pass

    @abstractmethod
    def cancel_order(self, options: Optional[dict] = None, callback: Optional[Callback] = None) -> Envelope:
        pass

    def dispatch(self, operation: str, options: Optional[dict] = None, callback: Optional[Callback] = None) -> Envelope:
        """Run an operation by its host-facing name, e.g. ``"getTicker"``."""
        if operation in self.properties.methods.not_supported or operation not in self.OPERATIONS:
            raise ccxt.NotSupported(f"{self.properties.name} does not support {operation}")
        return getattr(self, self.OPERATIONS[operation])(options, callback)

    def _respond(self, envelope: Envelope, error: Optional[ccxt.BaseError], callback: Optional[Callback]) -> Envelope:
        if callback is not None:
            callback(error, envelope)
        return envelope

    def _fail(self, error: ccxt.BaseError, callback: Optional[Callback], data: tuple = ()) -> Envelope:
        envelope = Envelope(timestamp=timestamp_now(), error=str(error), data=data)
        return self._respond(envelope, error, callback)

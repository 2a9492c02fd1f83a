"""
BTC-e adapter.

Maps the BTC-e public and trade APIs onto the exchange-agnostic operation
set of :class:`ExchangeAdapter`. Every operation issues exactly one upstream
request and reshapes the answer into an :class:`Envelope`.

Usage::

    from src.exchanges.btce import BtceAdapter

    adapter = BtceAdapter({"key": "...", "secret": "..."})
    envelope = adapter.get_ticker({"pair": "XBT_USD"})
"""

from __future__ import annotations

import logging
import re
from decimal import Decimal
from pathlib import Path
from typing import Callable, Optional

import ccxt

from src.core import config as adapter_config
from src.core.models import (
    ApiSupport,
    Balance,
    BalanceEntry,
    Envelope,
    ExchangeProperties,
    Fee,
    MethodSupport,
    Order,
    OrderBook,
    PostOrderResult,
    PriceLevel,
    Rate,
    Ticker,
    Trade,
    TradeHistory,
)
from src.exchanges.base import Callback, ExchangeAdapter, call_upstream, timestamp_now
from src.exchanges.btce_client import BtceClient
from src.utils.logger import setup_logger

# Error messages BTC-e uses as "nothing to report" signals.
NO_ORDERS_MSG = "no orders"   # ActiveOrders; treated as an empty result
NO_TRADES_MSG = "no trades"   # TradeHistory; still reported as an error
NO_TRANS_MSG = "no trans"     # TransHistory; still reported as an error

TRADE_HISTORY_WINDOW = 24 * 60 * 60

_XBT = re.compile("xbt", re.IGNORECASE)
_BTC_WORD = re.compile(r"\bbtc\b", re.IGNORECASE)


def btce_pair(pair) -> str:
    """
    Convert a canonical pair (``XBT_USD``) to BTC-e notation (``btc_usd``).

    A missing or non-string pair becomes ``"_"``.
    """
    if isinstance(pair, str):
        currencies = (pair.lower().split("_") + ["", ""])[:2]
    else:
        currencies = ["", ""]
    return "_".join(_XBT.sub("btc", currency, count=1) for currency in currencies)


def canonical_pair(options: dict) -> str:
    pair = options.get("pair")
    return pair.upper() if isinstance(pair, str) else ""


def canonical_currency(currency: str) -> str:
    return _BTC_WORD.sub("XBT", currency, count=1).upper()


def decimal_str(value) -> str:
    """Render an upstream number as a fixed-point decimal string."""
    if isinstance(value, str):
        return value
    # Trailing zeros depend on how the payload spelled the number.
    return format(_to_decimal(value).normalize(), "f")


def _to_decimal(value) -> Decimal:
    if isinstance(value, float):
        return Decimal(repr(value))
    return Decimal(value)


def _iso8601(seconds) -> str:
    return ccxt.Exchange.iso8601(int(seconds) * 1000)


class BtceAdapter(ExchangeAdapter):
    """
    Normalized access to BTC-e.

    Parameters
    ----------
    config : dict, optional
        ``key`` and ``secret`` for the trade API. When either is missing the
        public client is used for private calls too, and those calls fail
        with the exchange's authentication error.
    client_factory : callable
        Builds the upstream client: called with no arguments for public
        access and with ``(key, secret)`` for private access.
    logger : logging.Logger, optional
    """

    properties = ExchangeProperties(
        name="BTC-e",
        slug="btce",
        methods=MethodSupport(
            implemented=(
                "getRate", "getTicker", "getOrderBook", "getFee", "getOpenOrders",
                "postSellOrder", "postBuyOrder", "cancelOrder", "getBalance", "getTrades",
            ),
            not_supported=(
                "getMarginPositions", "getLendBook", "getActiveOffers", "postOffer", "cancelOffer",
            ),
        ),
        instruments=("XBT_USD",),
        public_api=ApiSupport(supported=True, requires=()),
        private_api=ApiSupport(supported=True, requires=("key", "secret")),
        market_order=False,
        infinity_order=False,
        monitor_error="",
        trade_error="",
    )

    # Upstream client methods reachable directly on the adapter.
    FORWARDED_CLIENT_METHODS = frozenset({
        "ticker", "depth", "fee", "get_info", "trans_history",
        "trade_history", "active_orders", "trade",
    })

    def __init__(
        self,
        config: Optional[dict] = None,
        client_factory: Callable = BtceClient,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        super().__init__(logger)
        config = config or {}

        self._public = client_factory()
        key, secret = config.get("key"), config.get("secret")
        if isinstance(key, str) and isinstance(secret, str):
            self._private = client_factory(key, secret)
        else:
            self._private = self._public

        mode = "private" if self._private is not self._public else "public only"
        self.logger.debug(f"BtceAdapter initialised, access={mode}")

    @classmethod
    def from_config_file(
        cls,
        config_path: str | Path,
        logger: Optional[logging.Logger] = None,
        client_factory: Callable = BtceClient,
    ) -> "BtceAdapter":
        config = adapter_config.load_config(config_path)
        if logger is None:
            logger = setup_logger(
                "btce_adapter",
                config.get("log_path"),
                level=adapter_config.log_level(config),
            )
        logger.info(f"Config loaded from: {config_path}")
        return cls(adapter_config.exchange_config(config, cls.properties.slug), client_factory, logger)

    def __getattr__(self, name):
        # Only reached for attributes not found normally.
        if name in type(self).FORWARDED_CLIENT_METHODS and "_private" in self.__dict__:
            return getattr(self.__dict__["_private"], name)
        raise AttributeError(f"{type(self).__name__!r} object has no attribute {name!r}")

    # ------------------------------------------------------------------
    # Market data
    # ------------------------------------------------------------------

    def _fetch_ticker(self, options: dict) -> tuple[Optional[ccxt.BaseError], Envelope]:
        pair = btce_pair(options.get("pair"))
        self.logger.debug(f"[{pair}] ticker")
        error, payload = call_upstream(self._public.ticker, pair)
        if error:
            self.logger.warning(f"[{pair}] ticker failed: {error}")
            return error, Envelope(timestamp=timestamp_now(), error=str(error))

        ticker = payload["ticker"]
        data = Ticker(
            pair=canonical_pair(options),
            last=decimal_str(ticker["last"]),
            bid=decimal_str(ticker["sell"]),
            ask=decimal_str(ticker["buy"]),
            volume=decimal_str(ticker["vol_cur"]),
        )
        return None, Envelope(timestamp=int(ticker["updated"]), data=(data,))

    def get_ticker(self, options=None, callback=None):
        error, envelope = self._fetch_ticker(options or {})
        return self._respond(envelope, error, callback)

    def get_rate(self, options=None, callback=None):
        error, ticker = self._fetch_ticker(options or {})
        if not ticker.ok:
            return self._respond(Envelope(timestamp=ticker.timestamp, error=ticker.error), error, callback)

        data = Rate(pair=ticker.data[0].pair.upper(), rate=ticker.data[0].last)
        return self._respond(Envelope(timestamp=ticker.timestamp, data=(data,)), None, callback)

    def get_order_book(self, options=None, callback=None):
        options = options or {}
        pair = btce_pair(options.get("pair"))
        error, depth = call_upstream(self._public.depth, pair)
        if error:
            self.logger.warning(f"[{pair}] depth failed: {error}")
            return self._fail(error, callback)

        data = OrderBook(
            pair=canonical_pair(options),
            asks=tuple(PriceLevel(decimal_str(price), decimal_str(volume)) for price, volume in depth["asks"]),
            bids=tuple(PriceLevel(decimal_str(price), decimal_str(volume)) for price, volume in depth["bids"]),
        )
        return self._respond(Envelope(timestamp=timestamp_now(), data=(data,)), None, callback)

    def get_fee(self, options=None, callback=None):
        options = options or {}
        pair = btce_pair(options.get("pair"))
        error, fee = call_upstream(self._public.fee, pair)
        if error:
            self.logger.warning(f"[{pair}] fee failed: {error}")
            return self._fail(error, callback)

        # BTC-e quotes one percentage fee for both sides of the book.
        fraction = decimal_str(_to_decimal(fee["trade"]) / 100)
        data = Fee(pair=canonical_pair(options), maker_fee=fraction, taker_fee=fraction)
        return self._respond(Envelope(timestamp=timestamp_now(), data=(data,)), None, callback)

    # ------------------------------------------------------------------
    # Account
    # ------------------------------------------------------------------

    def get_trades(self, options=None, callback=None):
        options = options or {}
        pair = btce_pair(options.get("pair"))
        since = timestamp_now() - TRADE_HISTORY_WINDOW
        self.logger.debug(f"[{pair}] trade history since {since}")

        params = {"since": since, "pair": pair, "order": "DESC"}
        error, history = call_upstream(self._private.trade_history, params)
        if error:
            self.logger.warning(f"[{pair}] trade history failed: {error}")
            return self._fail(error, callback)

        trades = [
            Trade(
                trade_id=str(trade["order_id"]),
                type=trade["type"],
                amount=decimal_str(trade["amount"]),
                price=decimal_str(trade["rate"]),
                timestamp=_iso8601(trade["timestamp"]),
            )
            for trade in (history.get("return") or {}).values()
        ]
        # Requested DESC above; the reversal is kept as the host currently expects it.
        trades.reverse()

        requested = options.get("pair")
        data = TradeHistory(pair=requested if isinstance(requested, str) else "", trades=tuple(trades))
        return self._respond(Envelope(timestamp=timestamp_now(), data=(data,)), None, callback)

    def get_transactions(self, options=None, callback=None):
        return self._fail(ccxt.NotSupported("Method not implemented"), callback)

    def get_balance(self, options=None, callback=None):
        # TODO: derive available balance from open orders so total can be filled in.
        error, info = call_upstream(self._private.get_info)
        if error:
            self.logger.warning(f"getInfo failed: {error}")
            return self._fail(error, callback, data=(Balance(),))

        available = tuple(
            BalanceEntry(currency=canonical_currency(currency), amount=amount)
            for currency, amount in info["return"]["funds"].items()
        )
        data = Balance(account_id="exchange", total=(), available=available)
        return self._respond(Envelope(timestamp=timestamp_now(), data=(data,)), None, callback)

    def get_open_orders(self, options=None, callback=None):
        options = options or {}
        pair = btce_pair(options.get("pair"))
        error, result = call_upstream(self._private.active_orders, pair)
        if error and str(error) == NO_ORDERS_MSG:
            self.logger.debug(f"[{pair}] no open orders")
            return self._respond(Envelope(timestamp=timestamp_now()), None, callback)
        if error:
            self.logger.warning(f"[{pair}] active orders failed: {error}")
            return self._fail(error, callback)

        orders = tuple(
            Order(
                order_id=str(order_id),
                pair=order["pair"].upper(),
                type=order["type"],
                amount=decimal_str(order["amount"]),
                rate=decimal_str(order["rate"]),
                margin=False,
                status=str(order["status"]),
                created_at=int(order["timestamp_created"]),
            )
            for order_id, order in (result.get("return") or {}).items()
        )
        return self._respond(Envelope(timestamp=timestamp_now(), data=orders), None, callback)

    # ------------------------------------------------------------------
    # Trading
    # ------------------------------------------------------------------

    def _post_order(self, side: str, options: dict, callback: Optional[Callback]) -> Envelope:
        pair = btce_pair(options["pair"]) if "pair" in options else None
        rate = options.get("rate") or None
        amount = options.get("amount") or None
        self.logger.debug(f"[{pair}] {side} {amount} @ {rate}")

        error, result = call_upstream(self._private.trade, pair, side, rate, amount)
        if error:
            self.logger.warning(f"[{pair}] {side} order failed: {error}")
            return self._fail(error, callback)

        # BTC-e does not report when the order was created.
        data = PostOrderResult(order_id=str(result["return"]["order_id"]), created_at="")
        return self._respond(Envelope(timestamp=timestamp_now(), data=(data,)), None, callback)

    def post_sell_order(self, options=None, callback=None):
        return self._post_order("sell", options or {}, callback)

    def post_buy_order(self, options=None, callback=None):
        return self._post_order("buy", options or {}, callback)

    def cancel_order(self, options=None, callback=None):
        options = options or {}
        order_id = options.get("order_id")
        error, _ = call_upstream(self._private.cancel_order, order_id)
        if error:
            self.logger.warning(f"[{order_id}] cancel failed: {error}")
            return self._fail(error, callback)
        return self._respond(Envelope(timestamp=timestamp_now()), None, callback)

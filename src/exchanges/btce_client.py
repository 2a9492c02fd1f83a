"""
Thin client for the BTC-e public and trade APIs.

    GET  https://btc-e.com/api/2/btc_usd/ticker
    GET  https://btc-e.com/api/2/btc_usd/depth
    GET  https://btc-e.com/api/2/btc_usd/fee
    POST https://btc-e.com/tapi   (method=getInfo, Key + Sign headers)

Pairs are passed in BTC-e notation (``btc_usd``). Public calls return the
decoded payload as-is. Trade API calls return the full payload
(``{"success": 1, "return": {...}}``) and raise ``ccxt.ExchangeError`` with
the exchange's own message when ``success`` is 0.
"""

import hashlib
import json
import time
from decimal import Decimal
from typing import Optional

import ccxt
import requests

_BASE_URL = "https://btc-e.com"
_PUBLIC_ENDPOINT = "/api/2/{pair}/{method}"
_TRADE_ENDPOINT = "/tapi"

_REQUEST_TIMEOUT = 10


class BtceClient:
    """
    Calls the BTC-e REST API.

    Parameters
    ----------
    key, secret : str, optional
        Trade API credentials. Without them only the public methods work;
        trade methods raise ``ccxt.AuthenticationError`` when called.
    base_url : str
        Override the default base URL (useful for testing).
    session : requests.Session, optional
        HTTP session to reuse.
    """

    def __init__(
        self,
        key: Optional[str] = None,
        secret: Optional[str] = None,
        base_url: str = _BASE_URL,
        session: Optional[requests.Session] = None,
        timeout: float = _REQUEST_TIMEOUT,
    ) -> None:
        self.key = key
        self._secret = secret
        self._base_url = base_url.rstrip("/")
        self._session = session or requests.Session()
        self._timeout = timeout
        self._nonce = 0

    @property
    def authenticated(self) -> bool:
        return bool(self.key and self._secret)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def ticker(self, pair: str) -> dict:
        return self._get(pair, "ticker")

    def depth(self, pair: str) -> dict:
        return self._get(pair, "depth")

    def fee(self, pair: str) -> dict:
        """Trade fee in percent, e.g. ``{"trade": 0.2}``."""
        return self._get(pair, "fee")

    # ------------------------------------------------------------------
    # Trade API
    # ------------------------------------------------------------------

    def get_info(self) -> dict:
        return self._post("getInfo")

    def trans_history(self, params: Optional[dict] = None) -> dict:
        return self._post("TransHistory", params)

    def trade_history(self, params: Optional[dict] = None) -> dict:
        """
        Parameters
        ----------
        params : dict, optional
            Any of ``from``, ``count``, ``from_id``, ``end_id``, ``order``
            (``"ASC"``/``"DESC"``), ``since``, ``end``, ``pair``.
        """
        return self._post("TradeHistory", params)

    def active_orders(self, pair: Optional[str] = None) -> dict:
        return self._post("ActiveOrders", {"pair": pair} if pair else None)

    def trade(self, pair, trade_type, rate, amount) -> dict:
        return self._post("Trade", {
            "pair": pair,
            "type": trade_type,
            "rate": rate,
            "amount": amount,
        })

    def cancel_order(self, order_id) -> dict:
        return self._post("CancelOrder", {"order_id": order_id})

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _get(self, pair: str, method: str) -> dict:
        url = self._base_url + _PUBLIC_ENDPOINT.format(pair=pair, method=method)
        try:
            response = self._session.get(url, timeout=self._timeout)
            response.raise_for_status()
        except requests.RequestException as exc:
            raise ccxt.NetworkError(f"{method} {pair}: {exc}") from exc
        return self._decode(response)

    def _post(self, method: str, params: Optional[dict] = None) -> dict:
        if not self.authenticated:
            raise ccxt.AuthenticationError(f"{method} requires an API key and secret")

        body = {"method": method, "nonce": self._next_nonce()}
        if params:
            body.update({k: v for k, v in params.items() if v is not None})
        encoded = ccxt.Exchange.urlencode(body)

        headers = {
            "Content-Type": "application/x-www-form-urlencoded",
            "Key": self.key,
            "Sign": self._sign(encoded),
        }
        try:
            response = self._session.post(
                self._base_url + _TRADE_ENDPOINT,
                data=encoded,
                headers=headers,
                timeout=self._timeout,
            )
            response.raise_for_status()
        except requests.RequestException as exc:
            raise ccxt.NetworkError(f"{method}: {exc}") from exc

        payload = self._decode(response)
        if not payload.get("success"):
            raise ccxt.ExchangeError(str(payload.get("error", f"{method} failed")))
        return payload

    def _sign(self, encoded: str) -> str:
        return ccxt.Exchange.hmac(
            ccxt.Exchange.encode(encoded),
            ccxt.Exchange.encode(self._secret),
            hashlib.sha512,
        )

    def _next_nonce(self) -> int:
        # BTC-e rejects any nonce not strictly greater than the last one.
        self._nonce = max(self._nonce + 1, int(time.time()))
        return self._nonce

    @staticmethod
    def _decode(response) -> dict:
        try:
            return json.loads(response.text, parse_float=Decimal)
        except ValueError as exc:
            raise ccxt.ExchangeError(f"Invalid JSON response: {response.text[:200]!r}") from exc

from dataclasses import asdict, dataclass
from typing import Generic, Tuple, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class Envelope(Generic[T]):
    timestamp: int   # unix seconds
    error: str = ""  # empty on success
    data: Tuple[T, ...] = ()

    @property
    def ok(self) -> bool:
        return self.error == ""

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class Ticker:
    pair: str    # canonical, e.g. "XBT_USD"
    last: str
    bid: str
    ask: str
    volume: str


@dataclass(frozen=True)
class Rate:
    pair: str
    rate: str


@dataclass(frozen=True)
class PriceLevel:
    price: str
    volume: str


@dataclass(frozen=True)
class OrderBook:
    pair: str
    asks: Tuple[PriceLevel, ...] = ()
    bids: Tuple[PriceLevel, ...] = ()


@dataclass(frozen=True)
class Trade:
    trade_id: str
    type: str        # "buy" or "sell"
    amount: str
    price: str
    timestamp: str   # ISO-8601 UTC


@dataclass(frozen=True)
class TradeHistory:
    pair: str
    trades: Tuple[Trade, ...] = ()


@dataclass(frozen=True)
class Fee:
    pair: str
    maker_fee: str   # fraction, e.g. "0.002" for 0.2%
    taker_fee: str


@dataclass(frozen=True)
class BalanceEntry:
    currency: str
    amount: object


@dataclass(frozen=True)
class Balance:
    account_id: str = "exchange"
    total: Tuple[BalanceEntry, ...] = ()
    available: Tuple[BalanceEntry, ...] = ()


@dataclass(frozen=True)
class Order:
    order_id: str
    pair: str
    type: str
    amount: str
    rate: str
    margin: bool     # margin trading is not supported, always False
    status: str
    created_at: int  # unix seconds


@dataclass(frozen=True)
class PostOrderResult:
    order_id: str
    created_at: str = ""


# Capability descriptor

@dataclass(frozen=True)
class MethodSupport:
    implemented: Tuple[str, ...]
    not_supported: Tuple[str, ...] = ()


@dataclass(frozen=True)
class ApiSupport:
    supported: bool
    requires: Tuple[str, ...] = ()


@dataclass(frozen=True)
class ExchangeProperties:
    """
    Declarative description of what an adapter offers, read by the host
    for discovery. ``to_dict`` returns the host-facing key names.
    """

    name: str
    slug: str
    methods: MethodSupport
    instruments: Tuple[str, ...]
    public_api: ApiSupport
    private_api: ApiSupport
    market_order: bool = False
    infinity_order: bool = False  # orders capped to the full balance
    monitor_error: str = ""       # URL explaining why monitoring is unavailable
    trade_error: str = ""         # URL explaining why trading is unavailable

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "slug": self.slug,
            "methods": {
                "implemented": list(self.methods.implemented),
                "notSupported": list(self.methods.not_supported),
            },
            "instruments": [{"pair": pair} for pair in self.instruments],
            "publicAPI": {
                "supported": self.public_api.supported,
                "requires": list(self.public_api.requires),
            },
            "privateAPI": {
                "supported": self.private_api.supported,
                "requires": list(self.private_api.requires),
            },
            "marketOrder": self.market_order,
            "infinityOrder": self.infinity_order,
            "monitorError": self.monitor_error,
            "tradeError": self.trade_error,
        }

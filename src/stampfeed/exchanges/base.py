from typing import Optional, Protocol

from stampfeed.models.market import OrderBook, Ticker, Trade


class IMarketDataClient(Protocol):
    name: str

    def get_ticker(self, symbol: str) -> Ticker: ...
    def get_order_book(self, symbol: str) -> OrderBook: ...
    def get_trades(self, symbol: str, interval: Optional[str] = None) -> list[Trade]: ...

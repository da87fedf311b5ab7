import random, time
from datetime import datetime, timezone
from typing import List, Optional
from stampfeed.exchanges.base import IMarketDataClient
from stampfeed.models.market import Order, OrderBook, Ticker, Trade

class FakeExchange(IMarketDataClient):
    """오프라인용 랜덤워크 마켓 (CLI --use-fake, 테스트)"""
    name = "fake"

    def __init__(self, seed: int = 42, base_price: float = 30000.0, depth: int = 10):
        self._rng = random.Random(seed)
        self._p = base_price
        self._depth = depth
        self._trade_seq = 0

    def _step(self):
        self._p *= (1.0 + self._rng.uniform(-0.001, 0.001))
        return self._p

    def get_ticker(self, symbol: str) -> Ticker:
        p = self._step()
        spread = p * 0.0002
        return Ticker(last=p, high=p * 1.01, low=p * 0.99, ask=p + spread, bid=p - spread)

    def get_order_book(self, symbol: str) -> OrderBook:
        p = self._step()
        tick = p * 0.0001
        # bids 는 내림차순, asks 는 오름차순 (실제 거래소 응답과 같은 모양)
        bids = tuple(Order(p - tick * (i + 1), round(self._rng.uniform(0.01, 2), 8)) for i in range(self._depth))
        asks = tuple(Order(p + tick * (i + 1), round(self._rng.uniform(0.01, 2), 8)) for i in range(self._depth))
        return OrderBook(timestamp=datetime.now(timezone.utc), bids=bids, asks=asks)

    def get_trades(self, symbol: str, interval: Optional[str] = None) -> List[Trade]:
        out: List[Trade] = []
        ts = int(time.time())
        for i in range(20):
            self._trade_seq += 1
            out.append(Trade(
                time=datetime.fromtimestamp(ts - i * 3, tz=timezone.utc),
                id=str(self._trade_seq),
                price=self._step(),
                amount=round(self._rng.uniform(0.001, 1), 8),
            ))
        return out

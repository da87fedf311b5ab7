from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class Ticker:
    last: float
    high: float
    low: float
    ask: float
    bid: float
    vwap: Optional[float] = None
    volume: Optional[float] = None
    open: Optional[float] = None
    timestamp: Optional[datetime] = None


@dataclass(frozen=True)
class Order:
    """(price, amount) 한 호가 레벨"""

    price: float
    amount: float


@dataclass(frozen=True)
class OrderBook:
    # bids/asks 는 소스 순서 그대로 (정렬하지 않음)
    timestamp: datetime
    bids: tuple[Order, ...]
    asks: tuple[Order, ...]


@dataclass(frozen=True)
class Trade:
    time: datetime
    id: str
    price: float
    amount: float

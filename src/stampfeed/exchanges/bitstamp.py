# src/stampfeed/exchanges/bitstamp.py
from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, Optional
import logging

import requests

from stampfeed.data.mapper import decode_order_book, decode_ticker, decode_trades
from stampfeed.errors import ResourceError
from stampfeed.exchanges.base import IMarketDataClient
from stampfeed.models.market import OrderBook, Ticker, Trade

log = logging.getLogger("bitstamp")

BASE = "https://www.bitstamp.net/api/v2"
# /transactions 의 time 파라미터 (서버 기본값 hour)
TRADE_INTERVALS = ("minute", "hour", "day")


@dataclass
class BitstampCreds:
    # 설정으로 받기만 하고 공개 API 에서는 쓰지 않음
    user: str
    password: str


class BitstampClient(IMarketDataClient):
    """Bitstamp 공개 REST API (ticker / order_book / transactions)"""

    name = "bitstamp"

    def __init__(
        self,
        base_url: str = BASE,
        creds: BitstampCreds | None = None,
        timeout: int = 10,
        session: Optional[requests.Session] = None,
    ):
        self.base = base_url.rstrip("/")
        self.creds = creds
        self.timeout = timeout
        self.s = session or requests.Session()

    @classmethod
    def from_config(cls, path: str, **kwargs: Any) -> "BitstampClient":
        """JSON 자격증명 파일로 생성. 비어 있는 값이 있으면 creds 없이."""
        # settings 가 이 모듈의 BASE 를 import 하므로 여기서 import
        from stampfeed.settings import load_credentials

        api = load_credentials(path)
        creds = None
        if api.user and api.password:
            creds = BitstampCreds(user=api.user, password=api.password)
        return cls(creds=creds, **kwargs)

    def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> bytes:
        url = f"{self.base}{path}"
        try:
            r = self.s.get(url, params=params, timeout=self.timeout)
            r.raise_for_status()
        except requests.RequestException as e:
            raise ResourceError(f"GET {path} failed: {e}") from e
        log.debug("GET %s -> %s (%d bytes)", path, r.status_code, len(r.content))
        return r.content

    def get_ticker(self, symbol: str) -> Ticker:
        return decode_ticker(self._get(f"/ticker/{symbol.lower()}/"))

    def get_order_book(self, symbol: str) -> OrderBook:
        return decode_order_book(self._get(f"/order_book/{symbol.lower()}/"))

    def get_trades(self, symbol: str, interval: Optional[str] = None) -> list[Trade]:
        """
        최근 체결 목록 (보통 최신→과거 순).
          interval: minute / hour / day. None 이면 서버 기본값(hour)
        """
        params = None
        if interval is not None:
            if interval not in TRADE_INTERVALS:
                raise ValueError(
                    f"Unsupported interval: {interval} (expected one of {TRADE_INTERVALS})"
                )
            params = {"time": interval}
        return decode_trades(self._get(f"/transactions/{symbol.lower()}/", params))

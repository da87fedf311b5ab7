# src/stampfeed/stream/bitstamp_ws.py
from __future__ import annotations

from stampfeed.stream.client import StreamClient, order_book_channel
from stampfeed.stream.registry import register

WS_URL = "wss://ws.bitstamp.net"


@register("ws")
class BitstampWsClient(StreamClient):
    """Bitstamp v2 websocket. 제어 이벤트 bts:subscribe / bts:unsubscribe"""

    name = "bitstamp-ws"
    url = WS_URL
    control_prefix = "bts:"

    @staticmethod
    def channel_for(symbol: str) -> str:
        return order_book_channel(symbol)

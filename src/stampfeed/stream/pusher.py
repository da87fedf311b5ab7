# src/stampfeed/stream/pusher.py
from __future__ import annotations
import logging

from stampfeed.errors import TransportError
from stampfeed.stream.client import Envelope, StreamClient, order_book_channel
from stampfeed.stream.registry import register

log = logging.getLogger("stream")

APP_KEY = "de504dc5763aeef9ff52"
PUSHER_HOST = "ws.pusherapp.com"
PROTOCOL = 7
# 기본 마켓은 접미사 없는 채널(order_book)을 쓴다
DEFAULT_MARKET = "btcusd"


def pusher_url(key: str = APP_KEY, host: str = PUSHER_HOST) -> str:
    return f"wss://{host}/app/{key}?protocol={PROTOCOL}&client=stampfeed&version=0.1.0"


@register("pusher")
class PusherStreamClient(StreamClient):
    """
    Pusher 프로토콜 백엔드.
      - 제어 이벤트: pusher:subscribe / pusher:unsubscribe
      - data 페이로드는 JSON 문자열
      - pusher:ping 에는 pusher:pong 으로 응답 (안 하면 서버가 끊음)
    """

    name = "pusher"
    url = pusher_url()
    control_prefix = "pusher:"

    @staticmethod
    def channel_for(symbol: str) -> str:
        return order_book_channel(symbol, bare_default=DEFAULT_MARKET)

    def _handle(self, env: Envelope) -> None:
        if env.event != "pusher:ping":
            return
        try:
            self._send_event("pusher:pong", {})
        except TransportError as e:
            log.warning("%s: pong failed: %s", self.name, e)

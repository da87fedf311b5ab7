# src/stampfeed/feed.py
from __future__ import annotations
import logging
import queue
import threading
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Optional

from stampfeed.data.mapper import decode_order_book
from stampfeed.errors import DecodeError, FeedError, TransportError
from stampfeed.models.market import OrderBook
from stampfeed.stream import registry
from stampfeed.stream.client import Envelope, StreamClient

if TYPE_CHECKING:
    from stampfeed.settings import Settings

log = logging.getLogger("feed")

ClientFactory = Callable[[], StreamClient]


class FeedState(str, Enum):
    IDLE = "idle"
    CONNECTING = "connecting"
    SUBSCRIBED = "subscribed"
    DELIVERING = "delivering"
    TERMINATING = "terminating"
    DONE = "done"


class FeedOrchestrator:
    """
    StreamClient + mapper 조합. 심볼의 오더북 채널을 구독하고
    'data' 이벤트를 OrderBook 으로 디코드해서 호출자 큐로 넘긴다.

    종료:
      - stop 이벤트 → 정상 반환
      - errors 큐에서 에러 → FeedError (원인 에러는 __cause__)
    """

    def __init__(self, connect: ClientFactory, poll_interval_s: float = 0.1):
        self._connect = connect
        self.poll_interval_s = poll_interval_s
        self.state = FeedState.IDLE

    @classmethod
    def for_backend(
        cls, backend: str = "ws", endpoint: Optional[str] = None, **client_kwargs: Any
    ) -> "FeedOrchestrator":
        client_cls = registry.get(backend)
        return cls(lambda: client_cls.open(endpoint, **client_kwargs))

    @classmethod
    def from_settings(cls, s: "Settings") -> "FeedOrchestrator":
        return cls.for_backend(
            s.stream.backend,
            endpoint=s.stream.endpoint(),
            retry_delay_s=s.stream.retry_delay_s,
            poll_interval_s=s.stream.poll_interval_s,
        )

    def subscribe_order_book(
        self, symbol: str, out: "queue.Queue[OrderBook]", stop: threading.Event
    ) -> None:
        # (1) CONNECTING: 실패하면 바로 raise
        self.state = FeedState.CONNECTING
        client = self._connect()

        # (2) SUBSCRIBED
        channel = client.channel_for(symbol)
        try:
            client.subscribe(channel)
        except TransportError:
            self.state = FeedState.DONE
            client.close()
            raise
        self.state = FeedState.SUBSCRIBED
        log.info("subscribed to %s (%s)", channel, client.name)

        failure: Optional[Exception] = None
        try:
            # (3) DELIVERING
            self.state = FeedState.DELIVERING
            failure = self._deliver(client, out, stop)
        finally:
            # (4) TERMINATING
            self.state = FeedState.TERMINATING
            try:
                client.unsubscribe(channel)
            except TransportError as e:
                log.warning("unsubscribe %s failed: %s", channel, e)
            client.close()
            self.state = FeedState.DONE

        if failure is not None:
            raise FeedError(
                f"order book feed for {symbol} terminated: {failure}"
            ) from failure
        log.info("order book feed for %s stopped", symbol)

    def _deliver(
        self,
        client: StreamClient,
        out: "queue.Queue[OrderBook]",
        stop: threading.Event,
    ) -> Optional[Exception]:
        while True:
            if stop.is_set():
                return None
            try:
                return client.errors.get_nowait()
            except queue.Empty:
                pass
            try:
                env = client.stream.get(timeout=self.poll_interval_s)
            except queue.Empty:
                continue
            self._dispatch(env, out, stop)

    def _dispatch(
        self, env: Envelope, out: "queue.Queue[OrderBook]", stop: threading.Event
    ) -> None:
        if env.event != "data":
            log.debug("event %s on %r ignored", env.event, env.channel)
            return
        try:
            book = decode_order_book(env.payload())
        except DecodeError as e:
            log.debug("dropping undecodable order book on %r: %s", env.channel, e)
            return
        # 호출자가 안 가져가면 여기서 멈춘다 (stop 은 계속 확인)
        while not stop.is_set():
            try:
                out.put(book, timeout=self.poll_interval_s)
                return
            except queue.Full:
                continue

# src/stampfeed/stream/client.py
"""
지속 연결 하나를 소유하는 스트림 클라이언트.

- 전용 reader 스레드 1개가 연결 수명 동안 프레임을 읽는다.
- stream: 디코드된 Envelope (1칸, 소비자가 가져갈 때까지 reader 블록 = backpressure)
- errors: 전송/디코드 에러 (1칸, 꽉 차 있으면 새 에러는 버림)
- subscribe/unsubscribe 는 write lock 하나로 직렬화
- close() 는 종료 플래그만 세운다. 연결을 닫는 건 reader 뿐 (정확히 1번)
"""
from __future__ import annotations
import json
import logging
import queue
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Optional

import pydantic
from pydantic import BaseModel, ConfigDict, StrictStr

from stampfeed.errors import DecodeError, is_retryable
from stampfeed.stream.transport import Connection, Frame, dial

log = logging.getLogger("stream")

RETRY_DELAY_S = 0.1
POLL_INTERVAL_S = 0.5


class _WireEnvelope(BaseModel):
    model_config = ConfigDict(extra="ignore")

    event: StrictStr
    channel: StrictStr = ""
    data: Any = None


@dataclass(frozen=True)
class Envelope:
    event: str
    channel: str = ""
    data: Any = None

    @classmethod
    def decode(cls, frame: Frame) -> "Envelope":
        try:
            w = _WireEnvelope.model_validate_json(frame)
        except pydantic.ValidationError as e:
            raise DecodeError(f"bad envelope: {e.errors()[0].get('msg')}") from e
        return cls(event=w.event, channel=w.channel, data=w.data)

    def payload(self) -> str:
        """data 를 JSON 텍스트로 (Pusher 는 이미 문자열로 보낸다)"""
        if isinstance(self.data, bytes):
            return self.data.decode("utf-8")
        if isinstance(self.data, str):
            return self.data
        return json.dumps(self.data)


class StreamClient(ABC):
    name = "stream"
    url: str = ""
    # 제어 이벤트 접두사: "bts:" / "pusher:"
    control_prefix = ""

    def __init__(
        self,
        conn: Connection,
        retry_delay_s: float = RETRY_DELAY_S,
        poll_interval_s: float = POLL_INTERVAL_S,
    ):
        self._conn = conn
        self.retry_delay_s = retry_delay_s
        self.poll_interval_s = poll_interval_s

        self.stream: queue.Queue[Envelope] = queue.Queue(maxsize=1)
        self.errors: queue.Queue[Exception] = queue.Queue(maxsize=1)

        self._done = threading.Event()
        self._send_lock = threading.Lock()
        self._released = False
        self._reader = threading.Thread(
            target=self._read_loop, name=f"{self.name}-reader", daemon=True
        )

    @classmethod
    def open(
        cls,
        endpoint: Optional[str] = None,
        dialer: Callable[[str], Connection] = dial,
        **kwargs: Any,
    ) -> "StreamClient":
        """연결 후 reader 시작. 실패 시 TransportError (재시도 없음)"""
        conn = dialer(endpoint or cls.url)
        client = cls(conn, **kwargs)
        client.start()
        return client

    @staticmethod
    @abstractmethod
    def channel_for(symbol: str) -> str: ...

    def start(self) -> None:
        self._reader.start()

    # --- control ---
    def subscribe(self, *channels: str) -> None:
        for ch in channels:
            self._send_event(self.control_prefix + "subscribe", {"channel": ch})

    def unsubscribe(self, *channels: str) -> None:
        for ch in channels:
            self._send_event(self.control_prefix + "unsubscribe", {"channel": ch})

    def _send_event(self, event: str, data: dict) -> None:
        frame = json.dumps({"event": event, "data": data})
        with self._send_lock:
            self._conn.send(frame)
        log.debug("%s: sent %s", self.name, frame)

    def close(self) -> None:
        if self._done.is_set():
            log.debug("%s: close already requested", self.name)
            return
        self._done.set()

    @property
    def closed(self) -> bool:
        return self._released

    def join(self, timeout: Optional[float] = None) -> bool:
        """reader 종료 대기. 종료됐으면 True"""
        self._reader.join(timeout)
        return not self._reader.is_alive()

    # --- reader ---
    def _handle(self, env: Envelope) -> None:
        """백엔드별 keepalive 처리용 훅"""

    def _push_error(self, exc: Exception) -> None:
        try:
            self.errors.put_nowait(exc)
        except queue.Full:
            log.warning("%s: errors queue full, dropped: %s", self.name, exc)

    def _deliver(self, env: Envelope) -> None:
        # 소비자가 가져갈 때까지 블록. 단, 종료 플래그는 계속 확인
        while not self._done.is_set():
            try:
                self.stream.put(env, timeout=self.poll_interval_s)
                return
            except queue.Full:
                continue

    def _read_loop(self) -> None:
        try:
            while not self._done.is_set():
                try:
                    frame = self._conn.recv(timeout=self.poll_interval_s)
                except Exception as e:
                    self._push_error(e)
                    if not is_retryable(e):
                        log.error("%s: read failed, stopping: %s", self.name, e)
                        return
                    log.warning(
                        "%s: read failed, retrying in %.1fs: %s",
                        self.name,
                        self.retry_delay_s,
                        e,
                    )
                    time.sleep(self.retry_delay_s)
                    continue

                if frame is None:
                    continue

                try:
                    env = Envelope.decode(frame)
                except DecodeError as e:
                    self._push_error(e)
                    continue

                self._handle(env)
                self._deliver(env)
        finally:
            self._release()

    def _release(self) -> None:
        if self._released:
            return
        self._released = True
        try:
            self._conn.close()
        except Exception as e:
            log.warning("%s: error closing connection: %s", self.name, e)
        log.info("%s: connection closed", self.name)


def order_book_channel(symbol: str, bare_default: Optional[str] = None) -> str:
    """order_book_<symbol>. bare_default 마켓이면 접미사 없는 order_book"""
    symbol = symbol.lower()
    if bare_default is not None and symbol == bare_default:
        return "order_book"
    return f"order_book_{symbol}"


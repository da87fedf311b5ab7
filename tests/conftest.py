import queue
import threading
import time

import pytest


class FakeConnection:
    """
    스크립트된 연결.
      - inbox 에 넣은 프레임(str)을 recv 가 돌려준다. 예외 객체면 raise
      - send 는 시작/끝 마커를 wire 에 남긴다 (프레임 경계 검증용)
    """

    def __init__(self, frames=(), send_delay: float = 0.0):
        self.inbox: "queue.Queue" = queue.Queue()
        for f in frames:
            self.inbox.put(f)
        self.send_delay = send_delay
        self.send_error: Exception | None = None
        self.sent: list[str] = []
        self.wire: list[tuple[str, int]] = []
        self.close_calls = 0
        self.recv_after_close = 0
        self._wire_lock = threading.Lock()

    def feed(self, *frames):
        for f in frames:
            self.inbox.put(f)

    def recv(self, timeout=None):
        if self.close_calls:
            self.recv_after_close += 1
        try:
            item = self.inbox.get(timeout=timeout)
        except queue.Empty:
            return None
        if isinstance(item, BaseException):
            raise item
        return item

    def send(self, message: str) -> None:
        if self.send_error is not None:
            raise self.send_error
        ident = threading.get_ident()
        with self._wire_lock:
            self.wire.append(("begin", ident))
        # 보내는 도중 다른 스레드가 끼어들 틈을 준다
        time.sleep(self.send_delay)
        with self._wire_lock:
            self.sent.append(message)
            self.wire.append(("end", ident))

    def close(self) -> None:
        self.close_calls += 1


@pytest.fixture
def conn():
    return FakeConnection()


@pytest.fixture
def make_conn():
    return FakeConnection

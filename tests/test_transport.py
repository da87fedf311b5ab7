import pytest
from websockets.exceptions import ConnectionClosedError

from stampfeed.errors import TransportError
from stampfeed.stream import transport
from stampfeed.stream.transport import WebSocketConnection


class StubWs:
    def __init__(self, exc=None, frame="{}"):
        self.exc = exc
        self.frame = frame
        self.sent = []
        self.closed = 0

    def recv(self, timeout=None):
        if self.exc is not None:
            raise self.exc
        return self.frame

    def send(self, message):
        if self.exc is not None:
            raise self.exc
        self.sent.append(message)

    def close(self):
        self.closed += 1


def test_recv_frame():
    assert WebSocketConnection(StubWs(frame='{"event":"x"}')).recv(0.1) == '{"event":"x"}'


def test_recv_timeout_is_idle():
    assert WebSocketConnection(StubWs(exc=TimeoutError())).recv(0.1) is None


def test_recv_closed_is_fatal():
    with pytest.raises(TransportError) as ei:
        WebSocketConnection(StubWs(exc=ConnectionClosedError(None, None))).recv(0.1)
    assert ei.value.retryable is False


def test_recv_os_error_is_retryable():
    with pytest.raises(TransportError) as ei:
        WebSocketConnection(StubWs(exc=ConnectionResetError("reset"))).recv(0.1)
    assert ei.value.retryable is True


def test_send_and_close():
    ws = StubWs()
    c = WebSocketConnection(ws)
    c.send("hello")
    c.close()
    assert ws.sent == ["hello"] and ws.closed == 1


def test_send_failure():
    with pytest.raises(TransportError):
        WebSocketConnection(StubWs(exc=BrokenPipeError())).send("x")


def test_dial_failure(monkeypatch):
    def boom(url):
        raise ConnectionRefusedError("refused")

    monkeypatch.setattr(transport, "connect", boom)
    with pytest.raises(TransportError, match="error dialing websocket"):
        transport.dial("wss://localhost:1")

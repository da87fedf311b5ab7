# src/stampfeed/stream/transport.py
from __future__ import annotations
import logging
from typing import Optional, Protocol, Union

from websockets.exceptions import ConnectionClosed, WebSocketException
from websockets.sync.client import ClientConnection, connect

from stampfeed.errors import TransportError

log = logging.getLogger("stream")

Frame = Union[str, bytes]


class Connection(Protocol):
    """스트림 클라이언트가 쓰는 최소 연결 인터페이스 (테스트에서는 fake 로 대체)"""

    def recv(self, timeout: Optional[float] = None) -> Optional[Frame]: ...
    def send(self, message: str) -> None: ...
    def close(self) -> None: ...


class WebSocketConnection:
    """websockets sync 클라이언트 래퍼. 라이브러리 예외 → TransportError"""

    def __init__(self, ws: ClientConnection):
        self.ws = ws

    def recv(self, timeout: Optional[float] = None) -> Optional[Frame]:
        # timeout 안에 프레임이 없으면 None (에러 아님)
        try:
            return self.ws.recv(timeout=timeout)
        except TimeoutError:
            return None
        except ConnectionClosed as e:
            raise TransportError(f"connection closed: {e}", retryable=False) from e
        except OSError as e:
            raise TransportError(f"read failed: {e}", retryable=True) from e

    def send(self, message: str) -> None:
        try:
            self.ws.send(message)
        except (ConnectionClosed, OSError) as e:
            raise TransportError(f"write failed: {e}", retryable=False) from e

    def close(self) -> None:
        self.ws.close()


def dial(url: str) -> WebSocketConnection:
    log.info("dialing %s", url)
    try:
        ws = connect(url)
    except (WebSocketException, OSError) as e:
        raise TransportError(f"error dialing websocket {url}: {e}") from e
    return WebSocketConnection(ws)

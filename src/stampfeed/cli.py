import logging
import queue
import threading
from typing import Optional

import typer

from stampfeed.errors import StampfeedError
from stampfeed.exchanges.base import IMarketDataClient
from stampfeed.exchanges.bitstamp import BitstampClient, BitstampCreds
from stampfeed.exchanges.fake import FakeExchange
from stampfeed.feed import FeedOrchestrator
from stampfeed.logging_config import install as install_logging
from stampfeed.models.market import OrderBook
from stampfeed.settings import Settings
from stampfeed.stream.registry import available

log = logging.getLogger("cli")

app = typer.Typer(help="stampfeed: Bitstamp market data CLI")


def _client(
    use_fake: bool, config: Optional[str], credentials: Optional[str] = None
) -> IMarketDataClient:
    if use_fake:
        return FakeExchange()
    s = Settings.load(config)
    if credentials:
        # JSON 자격증명 파일이 설정의 api 값보다 우선
        return BitstampClient.from_config(
            credentials, base_url=s.rest.base_url, timeout=s.rest.timeout_s
        )
    creds = None
    if s.api.user and s.api.password:
        creds = BitstampCreds(user=s.api.user, password=s.api.password)
    return BitstampClient(base_url=s.rest.base_url, creds=creds, timeout=s.rest.timeout_s)


def _fail(e: StampfeedError) -> typer.Exit:
    log.error("%s", e)
    typer.echo(f"error: {e}", err=True)
    return typer.Exit(code=1)


def _fmt_book(book: OrderBook, depth: int) -> str:
    lines = [f"order book @ {book.timestamp.isoformat()}"]
    lines.append("  bids:")
    lines += [f"    {o.price:>14.2f} {o.amount:>14.8f}" for o in book.bids[:depth]]
    lines.append("  asks:")
    lines += [f"    {o.price:>14.2f} {o.amount:>14.8f}" for o in book.asks[:depth]]
    return "\n".join(lines)


@app.command()
def ticker(
    symbol: str = typer.Argument(..., help="예: btcusd"),
    use_fake: bool = typer.Option(False, help="FakeExchange 사용 (네트워크 X)"),
    config: Optional[str] = typer.Option(None, help="YAML 설정 경로"),
    credentials: Optional[str] = typer.Option(None, help="JSON 자격증명 파일 경로"),
):
    try:
        t = _client(use_fake, config, credentials).get_ticker(symbol)
    except StampfeedError as e:
        raise _fail(e)
    typer.echo(
        f"{symbol} last={t.last} bid={t.bid} ask={t.ask} high={t.high} low={t.low}"
    )


@app.command()
def book(
    symbol: str = typer.Argument(..., help="예: btcusd"),
    depth: int = typer.Option(10, help="출력할 호가 레벨 수"),
    use_fake: bool = typer.Option(False, help="FakeExchange 사용 (네트워크 X)"),
    config: Optional[str] = typer.Option(None, help="YAML 설정 경로"),
    credentials: Optional[str] = typer.Option(None, help="JSON 자격증명 파일 경로"),
):
    try:
        ob = _client(use_fake, config, credentials).get_order_book(symbol)
    except StampfeedError as e:
        raise _fail(e)
    typer.echo(_fmt_book(ob, depth))


@app.command()
def trades(
    symbol: str = typer.Argument(..., help="예: btcusd"),
    interval: Optional[str] = typer.Option(None, help="minute / hour / day"),
    limit: int = typer.Option(20, help="출력 개수"),
    use_fake: bool = typer.Option(False, help="FakeExchange 사용 (네트워크 X)"),
    config: Optional[str] = typer.Option(None, help="YAML 설정 경로"),
    credentials: Optional[str] = typer.Option(None, help="JSON 자격증명 파일 경로"),
):
    try:
        rows = _client(use_fake, config, credentials).get_trades(symbol, interval)
    except ValueError as e:
        raise typer.BadParameter(str(e))
    except StampfeedError as e:
        raise _fail(e)
    for tr in rows[:limit]:
        typer.echo(f"{tr.time.isoformat()} {tr.id} {tr.price} {tr.amount}")


@app.command()
def backends():
    for name in available():
        typer.echo(name)


@app.command()
def watch(
    symbol: Optional[str] = typer.Argument(None, help="기본값: 설정의 feed.symbol"),
    backend: Optional[str] = typer.Option(None, help="ws 또는 pusher"),
    limit: int = typer.Option(5, help="받을 스냅샷 수 (0 = 무한)"),
    depth: int = typer.Option(5, help="출력할 호가 레벨 수"),
    config: Optional[str] = typer.Option(None, help="YAML 설정 경로"),
):
    """오더북 스트림 구독. limit 개 받으면 종료 (Ctrl+C 로도 종료)"""
    try:
        s = Settings.load(config)
    except StampfeedError as e:
        raise _fail(e)
    install_logging(s.log)
    if backend:
        if backend not in available():
            raise typer.BadParameter(f"unknown backend {backend!r}; one of {available()}")
        s.stream.backend = backend  # type: ignore[assignment]
    sym = symbol or s.feed.symbol

    feed = FeedOrchestrator.from_settings(s)
    out: "queue.Queue[OrderBook]" = queue.Queue(maxsize=s.feed.queue_size)
    stop = threading.Event()
    failure: list[StampfeedError] = []

    def worker() -> None:
        try:
            feed.subscribe_order_book(sym, out, stop)
        except StampfeedError as e:
            failure.append(e)

    t = threading.Thread(target=worker, name="feed", daemon=True)
    t.start()
    n = 0
    try:
        while (limit <= 0 or n < limit) and t.is_alive():
            try:
                ob = out.get(timeout=0.5)
            except queue.Empty:
                continue
            n += 1
            typer.echo(_fmt_book(ob, depth))
    except KeyboardInterrupt:
        log.info("interrupted")
    finally:
        stop.set()
        t.join(timeout=5)

    if failure:
        raise _fail(failure[0])
    log.info("received %d order book snapshots for %s", n, sym)


if __name__ == "__main__":
    app()

# src/stampfeed/data/mapper.py
"""
JSON 원문(bytes/str) → Ticker / OrderBook / Trade 변환.

2단계 디코드:
  1) pydantic 중간 모델로 느슨하게 파싱 (모르는 필드 무시, 선택 필드 허용)
  2) 필드별 명시적 검증 → 실패 시 DecodeError / ValidationError

REST 응답과 스트림 이벤트가 같은 함수를 쓴다.
"""
from __future__ import annotations
import json
import math
import re
from datetime import datetime, timezone
from typing import Any, Iterable, Optional, Union

import pydantic
from pydantic import BaseModel, ConfigDict, StrictInt, StrictStr, TypeAdapter

from stampfeed.errors import DecodeError, ValidationError
from stampfeed.models.market import Order, OrderBook, Ticker, Trade

Raw = Union[bytes, str]

# 10진수 표기만 허용 (nan/inf, 공백, 밑줄 X)
_DECIMAL_RE = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?$")
_INT_RE = re.compile(r"^[+-]?\d+$")


class _RawOrderBook(BaseModel):
    model_config = ConfigDict(extra="ignore")

    timestamp: Any = None
    bids: list[Any]
    asks: list[Any]


class _RawTrade(BaseModel):
    model_config = ConfigDict(extra="ignore")

    price: StrictStr
    amount: StrictStr
    date: StrictStr
    tid: Union[StrictStr, StrictInt]


class _RawTicker(BaseModel):
    model_config = ConfigDict(extra="ignore")

    last: StrictStr
    high: StrictStr
    low: StrictStr
    ask: StrictStr
    bid: StrictStr
    vwap: Optional[StrictStr] = None
    volume: Optional[StrictStr] = None
    open: Optional[StrictStr] = None
    timestamp: Optional[StrictStr] = None


_ANY_LIST = TypeAdapter(list[Any])


def _describe(exc: pydantic.ValidationError) -> str:
    err = exc.errors()[0]
    loc = ".".join(str(p) for p in err.get("loc", ())) or "<root>"
    return f"{loc}: {err.get('msg', 'invalid')}"


# --- 공통 숫자 파서 ---
def parse_decimal(value: Any, field: str) -> float:
    """10진수 문자열 → float. 실패하면 field 이름을 담은 ValidationError."""
    if not isinstance(value, str):
        raise ValidationError(
            f"{field}: expected decimal string, got {type(value).__name__}", field
        )
    if not _DECIMAL_RE.match(value):
        raise ValidationError(f"{field}: invalid decimal {value!r}", field)
    result = float(value)
    # float 범위 밖 (예: 1e400) 은 inf 가 되므로 거부
    if math.isinf(result):
        raise ValidationError(f"{field}: {value!r} out of range", field)
    return result


def parse_unix(value: Any, field: str) -> datetime:
    """unix 초(10진 정수 문자열) → UTC datetime"""
    if not isinstance(value, str) or not _INT_RE.match(value):
        raise ValidationError(f"invalid {field}: {value!r}", field)
    try:
        return datetime.fromtimestamp(int(value), tz=timezone.utc)
    except (OverflowError, OSError, ValueError) as e:
        raise ValidationError(f"invalid {field}: {value!r} out of range", field) from e


# --- Order book ---
def _parse_side(side: str, rows: Iterable[Any]) -> tuple[Order, ...]:
    out: list[Order] = []
    for i, row in enumerate(rows):
        if not isinstance(row, (list, tuple)) or len(row) != 2:
            raise ValidationError(
                f"{side} parsing error: entry {i} is not a [price, amount] pair", side
            )
        try:
            price = parse_decimal(row[0], "price")
            amount = parse_decimal(row[1], "amount")
        except ValidationError as e:
            raise ValidationError(f"{side} parsing error: entry {i}: {e}", side) from e
        out.append(Order(price=price, amount=amount))
    return tuple(out)


def decode_order_book(data: Raw) -> OrderBook:
    try:
        raw = _RawOrderBook.model_validate_json(data)
    except pydantic.ValidationError as e:
        raise DecodeError(f"order book: {_describe(e)}") from e

    if "timestamp" in raw.model_fields_set:
        if not isinstance(raw.timestamp, str):
            raise ValidationError("invalid timestamp", "timestamp")
        ts = parse_unix(raw.timestamp, "timestamp")
    else:
        ts = datetime.now(timezone.utc)

    return OrderBook(
        timestamp=ts,
        bids=_parse_side("bids", raw.bids),
        asks=_parse_side("asks", raw.asks),
    )


def encode_order_book(book: OrderBook) -> str:
    """
    OrderBook → 와이어 형태 JSON (decode_order_book 의 역).
    timestamp 는 초 단위로만 실린다. 와이어 timestamp 없이 디코드된 책(마이크로초 wall-clock)은
    decode → encode → decode 후 timestamp 가 같지 않다.
    """

    def side(orders: Iterable[Order]) -> list[list[str]]:
        return [[repr(o.price), repr(o.amount)] for o in orders]

    return json.dumps(
        {
            "timestamp": str(int(book.timestamp.timestamp())),
            "bids": side(book.bids),
            "asks": side(book.asks),
        }
    )


# --- Trades ---
def decode_trades(data: Raw) -> list[Trade]:
    """
    트레이드 배열 디코드. 원소 하나라도 잘못되면 배치 전체 실패(DecodeError).
    실패 지점 전까지 만들어진 목록은 DecodeError.partial 로 남긴다.
    """
    try:
        items = _ANY_LIST.validate_json(data)
    except pydantic.ValidationError as e:
        raise DecodeError(f"trades: {_describe(e)}") from e

    trades: list[Trade] = []
    for i, item in enumerate(items):
        try:
            raw = _RawTrade.model_validate(item)
            trade = Trade(
                time=parse_unix(raw.date, "date"),
                id=str(raw.tid),
                price=parse_decimal(raw.price, "price"),
                amount=parse_decimal(raw.amount, "amount"),
            )
        except pydantic.ValidationError as e:
            raise DecodeError(f"trade {i}: {_describe(e)}", partial=trades) from e
        except ValidationError as e:
            raise DecodeError(f"trade {i}: {e}", partial=trades) from e
        trades.append(trade)
    return trades


# --- Ticker ---
def decode_ticker(data: Raw) -> Ticker:
    try:
        raw = _RawTicker.model_validate_json(data)
    except pydantic.ValidationError as e:
        raise DecodeError(f"ticker: {_describe(e)}") from e

    def opt(value: Optional[str], field: str) -> Optional[float]:
        return None if value is None else parse_decimal(value, field)

    return Ticker(
        last=parse_decimal(raw.last, "last"),
        high=parse_decimal(raw.high, "high"),
        low=parse_decimal(raw.low, "low"),
        ask=parse_decimal(raw.ask, "ask"),
        bid=parse_decimal(raw.bid, "bid"),
        vwap=opt(raw.vwap, "vwap"),
        volume=opt(raw.volume, "volume"),
        open=opt(raw.open, "open"),
        timestamp=(
            None if raw.timestamp is None else parse_unix(raw.timestamp, "timestamp")
        ),
    )

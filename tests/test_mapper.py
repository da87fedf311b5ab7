import json
from datetime import datetime, timezone

import pytest

from stampfeed.data.mapper import (
    decode_order_book,
    decode_ticker,
    decode_trades,
    encode_order_book,
    parse_decimal,
)
from stampfeed.errors import DecodeError, ValidationError


def pairs(orders):
    return [(o.price, o.amount) for o in orders]


def test_order_book_keeps_source_order():
    raw = '{"bids":[["100.5","2"],["101","1"]],"asks":[["102","3"]]}'
    ob = decode_order_book(raw)
    # 정렬하지 않고 들어온 순서 그대로
    assert pairs(ob.bids) == [(100.5, 2.0), (101.0, 1.0)]
    assert pairs(ob.asks) == [(102.0, 3.0)]


def test_order_book_default_timestamp_is_decode_time():
    before = datetime.now(timezone.utc)
    ob = decode_order_book(b'{"bids":[],"asks":[]}')
    after = datetime.now(timezone.utc)
    assert before <= ob.timestamp <= after


def test_order_book_explicit_timestamp():
    ob = decode_order_book('{"timestamp":"1700000000","bids":[],"asks":[]}')
    assert ob.timestamp == datetime.fromtimestamp(1700000000, tz=timezone.utc)


@pytest.mark.parametrize("ts", ['1700000000', '"abc"', '"17.5"', "null"])
def test_order_book_invalid_timestamp(ts):
    with pytest.raises(DecodeError, match="invalid timestamp"):
        decode_order_book('{"timestamp":%s,"bids":[],"asks":[]}' % ts)


def test_order_book_bad_price_names_side():
    with pytest.raises(ValidationError) as ei:
        decode_order_book('{"bids":[["x","1"]],"asks":[]}')
    assert ei.value.field == "bids"
    assert "bids" in str(ei.value)
    # 원래 숫자 파싱 에러가 원인으로 남는다
    assert isinstance(ei.value.__cause__, ValidationError)
    assert ei.value.__cause__.field == "price"


def test_order_book_bad_amount_on_asks():
    with pytest.raises(ValidationError) as ei:
        decode_order_book('{"bids":[["1","1"]],"asks":[["2","nan"]]}')
    assert ei.value.field == "asks"


@pytest.mark.parametrize("row", ['["1"]', '["1","2","3"]', '"1,2"', '[1, 2]'])
def test_order_book_arity_and_types(row):
    with pytest.raises(ValidationError) as ei:
        decode_order_book('{"bids":[%s],"asks":[]}' % row)
    assert ei.value.field == "bids"


@pytest.mark.parametrize(
    "raw",
    ["not json", "[]", '{"bids":[]}', '{"asks":[]}', '{"bids":{},"asks":[]}'],
)
def test_order_book_schema_errors(raw):
    with pytest.raises(DecodeError):
        decode_order_book(raw)


def test_order_book_ignores_unknown_fields():
    ob = decode_order_book(
        '{"timestamp":"1","microtimestamp":"1000000","bids":[["1","2"]],"asks":[]}'
    )
    assert pairs(ob.bids) == [(1.0, 2.0)]


def test_order_book_reencode_roundtrip():
    src = json.dumps(
        {
            "timestamp": "1700000000",
            "bids": [["27000.12", "0.5"], ["26999.5", "1e-3"], ["27001", "2"]],
            "asks": [["27002.25", "0.01"]],
        }
    )
    ob = decode_order_book(src)
    again = decode_order_book(encode_order_book(ob))
    assert again == ob


def test_order_book_encode_truncates_default_timestamp_to_seconds():
    ob = decode_order_book('{"bids":[["1","2"]],"asks":[]}')
    again = decode_order_book(encode_order_book(ob))
    # 와이어 timestamp 는 초 단위
    assert again.timestamp == ob.timestamp.replace(microsecond=0)
    assert again.bids == ob.bids


def test_order_book_overflowing_price_names_side():
    with pytest.raises(ValidationError) as ei:
        decode_order_book('{"bids":[["1e400","1"]],"asks":[]}')
    assert ei.value.field == "bids"
    assert "out of range" in str(ei.value)


def test_trades_single():
    out = decode_trades('[{"price":"10","amount":"1","date":"1600000000","tid":"55"}]')
    assert len(out) == 1
    t = out[0]
    assert t.price == 10.0
    assert t.amount == 1.0
    assert t.id == "55"
    assert t.time == datetime.fromtimestamp(1600000000, tz=timezone.utc)


def test_trades_integer_tid_and_extra_fields():
    out = decode_trades(
        '[{"price":"10","amount":"1","date":"1600000000","tid":55,"type":0}]'
    )
    assert out[0].id == "55"


def test_trades_fail_atomically_with_partial():
    raw = json.dumps(
        [
            {"price": "10", "amount": "1", "date": "1600000000", "tid": "1"},
            {"price": "11", "amount": "1", "date": "1600000001", "tid": "2"},
            {"price": "12", "amount": "1", "tid": "3"},
        ]
    )
    with pytest.raises(DecodeError) as ei:
        decode_trades(raw)
    assert "trade 2" in str(ei.value)
    assert "date" in str(ei.value)
    assert [t.id for t in ei.value.partial] == ["1", "2"]


def test_trades_wrong_type_field():
    with pytest.raises(DecodeError, match="price"):
        decode_trades('[{"price":10,"amount":"1","date":"1600000000","tid":"1"}]')


def test_trades_not_a_list():
    with pytest.raises(DecodeError):
        decode_trades('{"price":"10"}')


def test_ticker():
    t = decode_ticker(
        json.dumps(
            {
                "last": "100.1",
                "high": "110",
                "low": "90",
                "ask": "100.2",
                "bid": "100.0",
                "vwap": "99.5",
                "volume": "1234.5",
                "timestamp": "1700000000",
                "percent_change_24h": "1.2",
            }
        )
    )
    assert (t.last, t.high, t.low, t.ask, t.bid) == (100.1, 110.0, 90.0, 100.2, 100.0)
    assert t.vwap == 99.5
    assert t.open is None
    assert t.timestamp == datetime.fromtimestamp(1700000000, tz=timezone.utc)


def test_ticker_missing_field():
    with pytest.raises(DecodeError, match="bid"):
        decode_ticker('{"last":"1","high":"1","low":"1","ask":"1"}')


@pytest.mark.parametrize(
    "value", ["1_000", " 1", "inf", "", "0x10", "1e400", "-1e400", None, 1.5]
)
def test_parse_decimal_rejects(value):
    with pytest.raises(ValidationError) as ei:
        parse_decimal(value, "price")
    assert ei.value.field == "price"


@pytest.mark.parametrize(
    "value,expected", [("1", 1.0), ("-2.5", -2.5), (".5", 0.5), ("1e3", 1000.0)]
)
def test_parse_decimal_accepts(value, expected):
    assert parse_decimal(value, "amount") == expected

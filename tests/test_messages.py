import pytest

from salvo.errors import MalformedMessage
from salvo.messages import (
    Aim,
    Outcome,
    Ready,
    Result,
    Shot,
    Unrecognized,
    decode,
    encode,
    parse_message,
)


@pytest.mark.parametrize(
    "msg",
    [
        Ready(0),
        Ready(4294967295),
        Ready(1234, nonce=99),
        Aim(0, 15),
        Shot(7, 3),
        Shot(2, 9, turn=12),
        Result(Outcome.MISS),
        Result(Outcome.HIT),
        Result(Outcome.SINK, turn=4),
    ],
)
def test_encode_decode_roundtrip(msg):
    assert decode(encode(msg)) == msg


def test_wire_forms():
    assert encode(Ready(200)) == "READY:200"
    assert encode(Aim(3, 4)) == "AIM:3,4"
    assert encode(Shot(3, 4)) == "SHOT:3,4"
    assert encode(Result(Outcome.SINK)) == "RESULT:SINK"
    assert encode(Shot(3, 4, turn=2)) == "SHOT:3,4#2"


def test_legacy_bare_ready_is_timestamp_zero():
    assert parse_message("READY") == Ready(0)
    assert parse_message("READY:") == Ready(0)


def test_ready_timestamp_wraps_to_uint32():
    assert parse_message("READY:4294967296") == Ready(0)
    assert encode(Ready(2**32 + 5)) == "READY:5"


def test_whitespace_and_case_tolerated():
    assert parse_message("  shot:1,2\n") == Shot(1, 2)
    assert parse_message("RESULT:hit") == Result(Outcome.HIT)


def test_negative_coordinates_parse():
    # bounds are the session's business, not the codec's
    assert parse_message("AIM:-1,4") == Aim(-1, 4)


@pytest.mark.parametrize(
    "raw",
    [
        "",
        "   ",
        "HELLO",
        "SHOT:1",
        "SHOT:1,2,3",
        "SHOT:a,b",
        "SHOT:1,2#x",
        "AIM:",
        "RESULT:MAYBE",
        "READY:soon",
        "READY:-5",
    ],
)
def test_malformed_messages(raw):
    with pytest.raises(MalformedMessage):
        parse_message(raw)
    assert isinstance(decode(raw), Unrecognized)


def test_decode_accepts_bytes_and_none():
    assert decode(b"SHOT:1,1") == Shot(1, 1)
    assert decode(b"\xff\xfe") == Unrecognized("\ufffd\ufffd")
    assert decode(None) == Unrecognized("")


def test_encode_rejects_unrecognized():
    with pytest.raises(TypeError):
        encode(Unrecognized("junk"))

import json

import pytest

from overlord.hexcodec import decode_hex, decode_hex_list, encode_hex, encode_hex_list


def test_encode_hex_pinned():
    assert encode_hex(b"\x01\xab") == "01ab"


@pytest.mark.parametrize("data", [b"", b"\x00", bytes(range(256)), b"speech"])
def test_hex_round_trip(data):
    assert decode_hex(encode_hex(data)) == data


def test_decode_accepts_upper_case():
    assert decode_hex("ABCD") == decode_hex("abcd")


@pytest.mark.parametrize("text", ["abc", "zz", "01 ab", "é0"])
def test_decode_rejects_malformed(text):
    with pytest.raises(ValueError):
        decode_hex(text)


def test_decode_rejects_non_string():
    with pytest.raises(ValueError):
        decode_hex(b"01")


def test_encode_list_shape():
    items = [b"\x01", b"\x02\x03"]
    encoded = encode_hex_list(items)
    assert encoded == {
        "inner": [{"inner": encode_hex(b"\x01")}, {"inner": encode_hex(b"\x02\x03")}]
    }


def test_list_round_trip_through_json():
    items = [b"", b"\xff\x00", b"abc"]
    text = json.dumps(encode_hex_list(items))
    assert decode_hex_list(json.loads(text)) == items


def test_decode_list_from_sequence_form():
    items = [b"\x10", b"\x20"]
    seq = [[[encode_hex(item)] for item in items]]
    assert decode_hex_list(seq) == items


def test_decode_list_missing_field():
    with pytest.raises(ValueError, match="missing field"):
        decode_hex_list({})


def test_decode_list_unknown_field():
    with pytest.raises(ValueError, match="unknown field"):
        decode_hex_list({"inner": [], "extra": 1})


def test_decode_list_empty_sequence():
    with pytest.raises(ValueError, match="invalid length"):
        decode_hex_list([])


def test_decode_list_wrapper_missing_field():
    with pytest.raises(ValueError, match="missing field"):
        decode_hex_list({"inner": [{}]})


def test_empty_list_round_trip():
    assert decode_hex_list(encode_hex_list([])) == []
"""Recursive length prefix encoding of byte strings and nested lists."""

from __future__ import annotations

from typing import Union

Item = Union[bytes, list]

_STRING_OFFSET = 0x80
_LONG_STRING_OFFSET = 0xB7
_LIST_OFFSET = 0xC0
_LONG_LIST_OFFSET = 0xF7
_SHORT_LIMIT = 56


class RlpError(ValueError):
    """Data is not a valid encoding, or does not have the expected shape."""


def encode_uint(value: int) -> bytes:
    """Return the minimal big-endian bytes of a non-negative integer; zero is empty."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"expected an integer, got {type(value).__name__}")
    if value < 0:
        raise RlpError("cannot encode a negative integer")
    return value.to_bytes((value.bit_length() + 7) // 8, "big")


def decode_uint(data: Item) -> int:
    """Read an integer from its minimal big-endian bytes."""
    if not isinstance(data, (bytes, bytearray)):
        raise RlpError("expected data, found a list")
    if data and data[0] == 0:
        raise RlpError("integer has a leading zero byte")
    return int.from_bytes(data, "big")


def _encode_length(length: int, offset: int) -> bytes:
    if length < _SHORT_LIMIT:
        return bytes([offset + length])
    length_bytes = encode_uint(length)
    return bytes([offset + _SHORT_LIMIT - 1 + len(length_bytes)]) + length_bytes


def encode(item: object) -> bytes:
    """Encode bytes, non-negative integers and (nested) lists or tuples of them."""
    if isinstance(item, (bytes, bytearray, memoryview)):
        data = bytes(item)
        if len(data) == 1 and data[0] < _STRING_OFFSET:
            return data
        return _encode_length(len(data), _STRING_OFFSET) + data
    if isinstance(item, int) and not isinstance(item, bool):
        return encode(encode_uint(item))
    if isinstance(item, (list, tuple)):
        payload = b"".join(encode(element) for element in item)
        return _encode_length(len(payload), _LIST_OFFSET) + payload
    raise TypeError(f"cannot encode {type(item).__name__}")


def decode(data: bytes) -> Item:
    """Decode one item that must span the whole input."""
    data = bytes(data)
    item, end = _decode_at(data, 0, len(data))
    if end != len(data):
        raise RlpError("trailing bytes after the item")
    return item


def _long_payload(data: bytes, pos: int, length_size: int, limit: int) -> tuple[int, int]:
    length_start = pos + 1
    length_end = length_start + length_size
    if length_end > limit:
        raise RlpError("unexpected end of data")
    length_bytes = data[length_start:length_end]
    if length_bytes[0] == 0:
        raise RlpError("length has a leading zero byte")
    length = int.from_bytes(length_bytes, "big")
    if length < _SHORT_LIMIT:
        raise RlpError("long form used for a short payload")
    end = length_end + length
    if end > limit:
        raise RlpError("unexpected end of data")
    return length_end, end


def _decode_at(data: bytes, pos: int, limit: int) -> tuple[Item, int]:
    if pos >= limit:
        raise RlpError("unexpected end of data")
    prefix = data[pos]
    if prefix < _STRING_OFFSET:
        return data[pos:pos + 1], pos + 1
    if prefix <= _LONG_STRING_OFFSET:
        start = pos + 1
        end = start + prefix - _STRING_OFFSET
        if end > limit:
            raise RlpError("unexpected end of data")
        if end - start == 1 and data[start] < _STRING_OFFSET:
            raise RlpError("single byte below 0x80 must encode as itself")
        return data[start:end], end
    if prefix < _LIST_OFFSET:
        start, end = _long_payload(data, pos, prefix - _LONG_STRING_OFFSET, limit)
        return data[start:end], end
    if prefix <= _LONG_LIST_OFFSET:
        start = pos + 1
        end = start + prefix - _LIST_OFFSET
        if end > limit:
            raise RlpError("unexpected end of data")
    else:
        start, end = _long_payload(data, pos, prefix - _LONG_LIST_OFFSET, limit)
    items: list = []
    cursor = start
    while cursor < end:
        element, cursor = _decode_at(data, cursor, end)
        items.append(element)
    return items, end
"""Hex text forms of byte strings and of lists of byte strings."""

from __future__ import annotations

import binascii
from collections.abc import Mapping, Sequence
from typing import Any, Iterable

_FIELD = "inner"


def encode_hex(data: bytes) -> str:
    """Return the lower-case hex text of the bytes."""
    return bytes(data).hex()


def decode_hex(text: str) -> bytes:
    """Parse hex text into bytes, raising ValueError on malformed input."""
    if not isinstance(text, str):
        raise ValueError("invalid type, expected byte array")
    try:
        return binascii.unhexlify(text)
    except (binascii.Error, ValueError) as exc:
        raise ValueError(f"invalid hex string: {exc}") from exc


def encode_hex_list(items: Iterable[bytes]) -> dict[str, list[dict[str, str]]]:
    """Wrap each item as {"inner": hex} inside {"inner": [...]}."""
    return {_FIELD: [{_FIELD: encode_hex(item)} for item in items]}


def _is_sequence(obj: Any) -> bool:
    return isinstance(obj, Sequence) and not isinstance(obj, (str, bytes, bytearray))


def _unwrap(wrapper: Any) -> bytes:
    if isinstance(wrapper, Mapping):
        if _FIELD not in wrapper:
            raise ValueError("missing field `inner`")
        return decode_hex(wrapper[_FIELD])
    if _is_sequence(wrapper):
        if not wrapper:
            raise ValueError("invalid length 0, expected struct TWrapper")
        return decode_hex(wrapper[0])
    raise ValueError("invalid type, expected struct TWrapper")


def decode_hex_list(obj: Any) -> list[bytes]:
    """Read the structure written by encode_hex_list, as a map or a sequence."""
    if isinstance(obj, Mapping):
        unknown = sorted(str(key) for key in obj if key != _FIELD)
        if unknown:
            raise ValueError(f"unknown field `{unknown[0]}`, expected `inner`")
        if _FIELD not in obj:
            raise ValueError("missing field `inner`")
        wrappers = obj[_FIELD]
    elif _is_sequence(obj):
        if not obj:
            raise ValueError("invalid length 0, expected serde multi")
        wrappers = obj[0]
    else:
        raise ValueError("invalid type, expected serde multi")
    if not _is_sequence(wrappers):
        raise ValueError("invalid type, expected a sequence")
    return [_unwrap(wrapper) for wrapper in wrappers]
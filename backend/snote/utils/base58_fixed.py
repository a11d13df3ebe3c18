"""Fixed-width base58 helpers.

Values are encoded with the bitcoin alphabet and left-padded with the zero
symbol, so the output length never depends on the magnitude of the value.
Padding with ``1`` gives the same string as encoding the big-endian bytes
(one ``1`` per leading zero byte) and padding that, whenever the latter fits.
"""
from __future__ import annotations

import base58

ALPHABET = base58.BITCOIN_ALPHABET.decode("ascii")
ZERO_SYMBOL = ALPHABET[0]

_SYMBOLS = frozenset(ALPHABET)


def is_base58(text: str) -> bool:
    return bool(text) and all(ch in _SYMBOLS for ch in text)


def max_value(width: int) -> int:
    """Largest integer representable in ``width`` symbols."""
    return len(ALPHABET) ** width - 1


def encode_padded(value: int, width: int) -> str:
    if value < 0:
        raise ValueError("negative values cannot be encoded")
    encoded = base58.b58encode_int(value).decode("ascii")
    if len(encoded) > width:
        raise ValueError(f"{value} does not fit into {width} base58 symbols")
    return encoded.rjust(width, ZERO_SYMBOL)


def decode_padded(text: str, size: int) -> int:
    """Decode ``text`` and check the result fits into ``size`` bytes."""
    if not is_base58(text):
        raise ValueError("not a base58 string")
    value = base58.b58decode_int(text)
    if value.bit_length() > size * 8:
        raise ValueError(f"decoded value does not fit into {size} bytes")
    return value

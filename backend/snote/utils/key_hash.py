from __future__ import annotations

import hmac

from snote.utils.base58_fixed import decode_padded, encode_padded, is_base58

KEY_HASH_SIZE = 32
# 58**44 > 2**256, so every 32-byte digest fits into 44 symbols.
KEY_HASH_WIDTH = 44


def is_key_hash(value: str) -> bool:
    return len(value) == KEY_HASH_WIDTH and is_base58(value)


def encode_key_hash(key_hash: bytes) -> str:
    return encode_padded(int.from_bytes(key_hash, "big"), KEY_HASH_WIDTH)


def decode_key_hash(value: str) -> bytes:
    """Decode a 44-symbol base58 key hash into its 32 raw bytes."""
    if len(value) != KEY_HASH_WIDTH:
        raise ValueError(f"key hash must be {KEY_HASH_WIDTH} symbols long")
    number = decode_padded(value, KEY_HASH_SIZE)
    return number.to_bytes(KEY_HASH_SIZE, "big")


def is_authorized(supplied: bytes, stored: bytes) -> bool:
    # constant-time compare
    return hmac.compare_digest(supplied, stored)

"""Public note identifiers.

Storage hands out numeric ids; callers only ever see them as a fixed-width
base58 string grouped as ``XXXX-XXXX-XX``. Small ids are padded, so the
length of an identifier says nothing about how many notes exist.
"""
from __future__ import annotations

import re

from snote.utils.base58_fixed import decode_padded, encode_padded, max_value

ID_BYTES = 8
PAYLOAD_WIDTH = 10
GROUP_WIDTH = 4
SEPARATOR = "-"
PUBLIC_ID_LENGTH = 12

# Ten symbols cover ids below 58**10, which is less than 2**64.
MAX_ID = max_value(PAYLOAD_WIDTH)

_B58 = "[1-9A-HJ-NP-Za-km-z]"
PUBLIC_ID_RE = re.compile(rf"{_B58}{{4}}-{_B58}{{4}}-{_B58}{{2}}")


class InvalidPublicId(ValueError):
    pass


def is_public_id(value: str) -> bool:
    return PUBLIC_ID_RE.fullmatch(value) is not None


class PublicIdCodec:
    """Bijective mapping between note ids and public identifiers."""

    def encode(self, note_id: int) -> str:
        if not 0 <= note_id <= MAX_ID:
            raise ValueError(f"note id {note_id} is outside the public id range")
        payload = encode_padded(note_id, PAYLOAD_WIDTH)
        groups = [payload[i:i + GROUP_WIDTH] for i in range(0, PAYLOAD_WIDTH, GROUP_WIDTH)]
        return SEPARATOR.join(groups)

    def decode(self, public_id: str) -> int:
        # Hyphens are only accepted at offsets 4 and 9.
        if not is_public_id(public_id):
            raise InvalidPublicId(f"malformed public id {public_id!r}")
        payload = public_id[0:4] + public_id[5:9] + public_id[10:12]
        try:
            return decode_padded(payload, ID_BYTES)
        except ValueError as exc:
            raise InvalidPublicId(f"malformed public id {public_id!r}") from exc

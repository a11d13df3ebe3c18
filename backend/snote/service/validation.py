"""Input checks for note creation and lookup.

Every check runs, so a caller sees all problems at once. Nothing here raises;
the service turns a non-empty result into ``ValidationFailed``.
"""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

from snote.errors import FieldError
from snote.service.expiration import InvalidTimeZone, as_local, load_timezone
from snote.utils.base58_fixed import is_base58
from snote.utils.key_hash import KEY_HASH_SIZE, KEY_HASH_WIDTH
from snote.utils.public_ids import PUBLIC_ID_LENGTH, is_public_id

if TYPE_CHECKING:
    from snote.service.notes import NoteRequest

MAX_CONTENT_BYTES = 1_048_576
CLOCK_SKEW_TOLERANCE = timedelta(minutes=1)
MIN_EXPIRES_IN = timedelta(minutes=10)
MAX_EXPIRES_IN = timedelta(days=365)
# One minute below MIN_EXPIRES_IN: absolute expiry times have minute granularity.
MIN_EXPIRES_AT_OFFSET = timedelta(minutes=9)


def _as_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def add_years(dt: datetime, years: int) -> datetime:
    try:
        return dt.replace(year=dt.year + years)
    except ValueError:
        # 29 February
        return dt.replace(year=dt.year + years, month=3, day=1)


def validate_note_request(request: NoteRequest, now: datetime) -> list[FieldError]:
    errors: list[FieldError] = []

    if not request.content:
        errors.append(FieldError("content", "content must not be empty"))
    elif len(request.content) > MAX_CONTENT_BYTES:
        errors.append(FieldError("content", f"content must not exceed {MAX_CONTENT_BYTES} bytes"))

    if len(request.key_hash) != KEY_HASH_SIZE:
        errors.append(FieldError("keyHash", f"key hash must be exactly {KEY_HASH_SIZE} bytes long"))

    created_at = _as_utc(request.created_at)
    now = _as_utc(now)
    if not (now - CLOCK_SKEW_TOLERANCE < created_at <= now):
        errors.append(FieldError("createdAt", "creation time must be within a minute before the server time"))

    is_expires_in_set = bool(request.expires_in)
    is_expires_at_set = request.expires_at is not None and bool(request.expires_at_timezone)
    if is_expires_in_set == is_expires_at_set:
        errors.append(FieldError(
            None,
            "either expiresIn or both expiresAt and expiresAtTimeZone should be provided",
        ))

    if is_expires_in_set and not (MIN_EXPIRES_IN <= request.expires_in <= MAX_EXPIRES_IN):
        errors.append(FieldError("expiresIn", "expiresIn must be between 10 minutes and 365 days"))

    if is_expires_at_set:
        try:
            tz = load_timezone(request.expires_at_timezone)
        except InvalidTimeZone:
            errors.append(FieldError("expiresAtTimeZone", "expiresAtTimeZone must be a valid IANA time zone"))
        else:
            created_local = created_at.astimezone(tz)
            expires_local = as_local(request.expires_at, tz)
            lower = created_local + MIN_EXPIRES_AT_OFFSET
            upper = add_years(created_local, 1)
            if not (lower < expires_local <= upper):
                errors.append(FieldError(
                    "expiresAt",
                    "expiresAt must be more than 9 minutes and at most 1 year after the creation time",
                ))

    return errors


def validate_note_lookup(public_id: str, key_hash: str) -> list[FieldError]:
    errors: list[FieldError] = []

    if len(public_id) != PUBLIC_ID_LENGTH:
        errors.append(FieldError("id", f"id should consist of {PUBLIC_ID_LENGTH} characters"))
    elif not is_public_id(public_id):
        errors.append(FieldError("id", "id should look like XXXX-XXXX-XX with latin letters and/or digits"))

    if len(key_hash) != KEY_HASH_WIDTH:
        errors.append(FieldError("keyHash", f"key hash should consist of {KEY_HASH_WIDTH} letters and/or digits"))
    elif not is_base58(key_hash):
        errors.append(FieldError("keyHash", "key hash should consist of latin letters and/or digits"))

    return errors

"""Create and read-once-and-destroy for self-destructing notes."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional

from snote.errors import DoesNotExist, IntegrityFailure, StorageFailure, ValidationFailed
from snote.service.expiration import InvalidTimeZone, load_timezone, resolve_expiration, utc_now
from snote.service.validation import validate_note_lookup, validate_note_request
from snote.storage.ports import NoteNotFound, NoteRepository, StorageError, StoredNote
from snote.utils.key_hash import KEY_HASH_SIZE, decode_key_hash, is_authorized
from snote.utils.public_ids import PublicIdCodec

logger = logging.getLogger(__name__)

# Never assigned by storage; looked up when a public id cannot be decoded.
SENTINEL_ID = 0


@dataclass(frozen=True)
class NoteRequest:
    content: bytes
    key_hash: bytes
    created_at: datetime
    expires_in: Optional[timedelta] = None
    expires_at: Optional[datetime] = None
    expires_at_timezone: Optional[str] = None

    @classmethod
    def new(
        cls,
        content: bytes,
        key_hash: bytes,
        expires_in: Optional[timedelta] = None,
        expires_at: Optional[datetime] = None,
        expires_at_timezone: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> NoteRequest:
        """Build a request stamped with the server's creation time."""
        return cls(
            content=content,
            key_hash=key_hash,
            created_at=now or utc_now(),
            expires_in=expires_in,
            expires_at=expires_at,
            expires_at_timezone=expires_at_timezone,
        )


@dataclass(frozen=True)
class PublicNote:
    public_id: str
    content: bytes
    created_at: datetime
    expires_at: datetime
    expires_at_timezone: str
    key_hash: bytes


class NoteService:
    def __init__(
        self,
        repo: NoteRepository,
        id_codec: Optional[PublicIdCodec] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.repo = repo
        self.id_codec = id_codec or PublicIdCodec()
        self.clock = clock

    async def create_note(self, request: NoteRequest) -> PublicNote:
        errors = validate_note_request(request, now=self.clock())
        if errors:
            raise ValidationFailed(errors)

        expires_at, tz_id = resolve_expiration(
            request.expires_at,
            request.expires_at_timezone,
            request.expires_in,
            now=self.clock(),
        )

        try:
            stored = await self.repo.create(
                content=request.content,
                created_at=request.created_at,
                expires_at=expires_at,
                expires_at_timezone=tz_id,
                key_hash=request.key_hash,
            )
        except StorageError as exc:
            logger.exception("Note creation failed")
            raise StorageFailure("note creation failed") from exc

        self._check_timezone(stored)
        try:
            public_id = self.id_codec.encode(stored.id)
        except ValueError as exc:
            logger.error("Storage assigned id %d outside the public id range", stored.id)
            raise IntegrityFailure("note creation failed") from exc

        logger.info(
            "Created note %s expiring at %s (%s)",
            public_id, stored.expires_at.isoformat(), stored.expires_at_timezone,
        )
        return PublicNote(
            public_id=public_id,
            content=stored.content,
            created_at=stored.created_at,
            expires_at=stored.expires_at,
            expires_at_timezone=stored.expires_at_timezone,
            key_hash=request.key_hash,
        )

    async def get_note(self, public_id: str, key_hash: str) -> PublicNote:
        """
        Return the note and destroy it.

        Every lookup runs the decode, the storage call and the key comparison,
        whatever fails first, and all denials raise the same DoesNotExist.
        """
        errors = validate_note_lookup(public_id, key_hash)
        if errors:
            raise ValidationFailed(errors)

        got_error = False
        try:
            note_id = self.id_codec.decode(public_id)
        except ValueError:
            note_id = SENTINEL_ID
            got_error = True

        try:
            supplied = decode_key_hash(key_hash)
        except ValueError:
            supplied = bytes(KEY_HASH_SIZE)
            got_error = True

        stored: Optional[StoredNote]
        try:
            stored = await self.repo.get_and_delete(note_id)
        except NoteNotFound:
            stored = None
        except StorageError as exc:
            logger.exception("Note retrieval failed")
            raise StorageFailure("note retrieval failed") from exc

        expected = stored.key_hash if stored is not None else supplied
        authorized = is_authorized(supplied, expected)

        if stored is not None:
            self._check_timezone(stored)

        if stored is None or got_error or not authorized:
            raise DoesNotExist()

        return PublicNote(
            public_id=public_id,
            content=stored.content,
            created_at=stored.created_at,
            expires_at=stored.expires_at,
            expires_at_timezone=stored.expires_at_timezone,
            key_hash=supplied,
        )

    def _check_timezone(self, stored: StoredNote) -> None:
        try:
            load_timezone(stored.expires_at_timezone)
        except InvalidTimeZone as exc:
            logger.error("Note %d has invalid time zone %r", stored.id, stored.expires_at_timezone)
            raise IntegrityFailure("note has invalid time zone") from exc

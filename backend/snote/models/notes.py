from __future__ import annotations

from datetime import datetime, timedelta
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from snote.service.notes import PublicNote
from snote.utils.key_hash import encode_key_hash


class NoteCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    # Ciphertext; its UTF-8 bytes are stored as-is. Size is checked by the service.
    content: str
    key_hash: str = Field(alias="keyHash", max_length=200)
    expires_in: Optional[timedelta] = Field(default=None, alias="expiresIn")
    expires_at: Optional[datetime] = Field(default=None, alias="expiresAt")
    expires_at_timezone: Optional[str] = Field(default=None, alias="expiresAtTimeZone", max_length=64)


class NoteCreated(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    created_at: datetime = Field(alias="createdAt")
    expires_at: datetime = Field(alias="expiresAt")
    expires_at_timezone: str = Field(alias="expiresAtTimeZone")
    key_hash: str = Field(alias="keyHash")

    @classmethod
    def from_note(cls, note: PublicNote) -> NoteCreated:
        return cls(
            id=note.public_id,
            created_at=note.created_at,
            expires_at=note.expires_at,
            expires_at_timezone=note.expires_at_timezone,
            key_hash=encode_key_hash(note.key_hash),
        )


class NoteOut(NoteCreated):
    content: str

    @classmethod
    def from_note(cls, note: PublicNote) -> NoteOut:
        return cls(
            id=note.public_id,
            content=note.content.decode("utf-8"),
            created_at=note.created_at,
            expires_at=note.expires_at,
            expires_at_timezone=note.expires_at_timezone,
            key_hash=encode_key_hash(note.key_hash),
        )

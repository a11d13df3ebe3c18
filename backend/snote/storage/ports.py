import base64
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional, Protocol


class StorageError(Exception):
    pass


class NoteNotFound(LookupError):
    pass


def _b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


@dataclass(frozen=True)
class StoredNote:
    id: int
    content: bytes
    created_at: datetime
    expires_at: datetime
    expires_at_timezone: str
    key_hash: bytes

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "content": _b64(self.content),
            "created_at": self.created_at.isoformat(),
            "expires_at": self.expires_at.isoformat(),
            "expires_at_timezone": self.expires_at_timezone,
            "key_hash": _b64(self.key_hash),
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "StoredNote":
        return cls(
            id=int(raw["id"]),
            content=base64.b64decode(raw["content"]),
            created_at=datetime.fromisoformat(raw["created_at"]),
            expires_at=datetime.fromisoformat(raw["expires_at"]),
            expires_at_timezone=raw["expires_at_timezone"],
            key_hash=base64.b64decode(raw["key_hash"]),
        )

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        return (now or datetime.now(timezone.utc)) >= self.expires_at


class NoteRepository(Protocol):
    """
    Storage consumed by the note service.
    Implementations raise StorageError for anything but a missing note.
    """

    async def create(
        self,
        *,
        content: bytes,
        created_at: datetime,
        expires_at: datetime,
        expires_at_timezone: str,
        key_hash: bytes,
    ) -> StoredNote:
        pass

    async def get_and_delete(self, note_id: int) -> StoredNote:
        """
        Return the note and remove it in one atomic step.
        Of several concurrent callers for one id at most one succeeds;
        the others get NoteNotFound. A caller cancelled while waiting
        leaves the note in place.
        """
        pass

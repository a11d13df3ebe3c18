import asyncio
import json
import logging
import os
import secrets
import threading
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from snote.storage.ports import NoteNotFound, StorageError, StoredNote
from snote.utils.public_ids import MAX_ID

logger = logging.getLogger(__name__)

_MAX_ID_ATTEMPTS = 16


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _notes_dir(base_dir: Path) -> Path:
    return base_dir / "notes"


def _note_path(base_dir: Path, note_id: int) -> Path:
    return _notes_dir(base_dir) / f"{note_id}.json"


def _exclusive_write_json(path: Path, data: dict[str, Any]) -> None:
    """Write ``path`` fully or not at all; FileExistsError if it already exists."""
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_name(f"{path.name}.{uuid.uuid4().hex}.tmp")
    try:
        with tmp_path.open("w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False, indent=2)
            f.flush()
            os.fsync(f.fileno())
        os.link(tmp_path, path)
    finally:
        tmp_path.unlink(missing_ok=True)


class _Claim:
    """Hand-over of a claimed note file from a reader thread to the awaiting caller."""

    def __init__(self, path: Path):
        self.path = path
        self.claimed: Optional[Path] = None
        self.abandoned = False
        self.lock = threading.Lock()


def _release(claimed: Path, path: Path) -> None:
    """Put a claimed note back under its id."""
    try:
        os.link(claimed, path)
    except FileExistsError:
        logger.error("Note id %s was reallocated while claimed, dropping %s", path.stem, claimed.name)
    except OSError:
        logger.exception("Could not restore claimed note %s", claimed.name)
        return
    claimed.unlink(missing_ok=True)


def _discard_result(reading: "asyncio.Future[StoredNote]") -> None:
    # nobody awaits an abandoned read any more
    if not reading.cancelled():
        reading.exception()


class NotesStore:
    """
    One JSON file per note under ``<base_dir>/notes``.

    Ids are random in [1, MAX_ID] and reserved with a hard link, which fails
    if the id is taken. Reads claim the file with a rename, so only one reader
    can ever get a given note. The claimed file is deleted only once the note
    reaches the caller; a cancelled read puts it back.
    """

    def __init__(self, base_dir: Path, max_id: int = MAX_ID):
        self.base_dir = base_dir
        self.max_id = max_id

    async def create(
        self,
        *,
        content: bytes,
        created_at: datetime,
        expires_at: datetime,
        expires_at_timezone: str,
        key_hash: bytes,
    ) -> StoredNote:
        return await asyncio.to_thread(
            self._create, content, created_at, expires_at, expires_at_timezone, key_hash
        )

    async def get_and_delete(self, note_id: int) -> StoredNote:
        claim = _Claim(_note_path(self.base_dir, note_id))
        # worker threads cannot be stopped, so the read is shielded and undone on cancel
        reading = asyncio.ensure_future(asyncio.to_thread(self._take, note_id, claim))
        try:
            note = await asyncio.shield(reading)
        except asyncio.CancelledError:
            with claim.lock:
                claim.abandoned = True
                if claim.claimed is not None:
                    _release(claim.claimed, claim.path)
            reading.add_done_callback(_discard_result)
            raise
        claim.claimed.unlink(missing_ok=True)
        return note

    async def purge_expired(self, now: Optional[datetime] = None) -> int:
        return await asyncio.to_thread(self._purge_expired, now or _utc_now())

    def _create(
        self,
        content: bytes,
        created_at: datetime,
        expires_at: datetime,
        expires_at_timezone: str,
        key_hash: bytes,
    ) -> StoredNote:
        for _ in range(_MAX_ID_ATTEMPTS):
            note = StoredNote(
                id=secrets.randbelow(self.max_id) + 1,
                content=content,
                created_at=created_at,
                expires_at=expires_at,
                expires_at_timezone=expires_at_timezone,
                key_hash=key_hash,
            )
            try:
                _exclusive_write_json(_note_path(self.base_dir, note.id), note.to_dict())
            except FileExistsError:
                continue
            except OSError as exc:
                raise StorageError(f"insertion failed: {exc}") from exc
            return note
        raise StorageError(f"insertion failed: no free id after {_MAX_ID_ATTEMPTS} attempts")

    def _claim(self, path: Path) -> Path:
        claimed = path.with_name(f"{path.name}.{uuid.uuid4().hex}.taken")
        path.rename(claimed)
        return claimed

    def _read_claimed(self, claimed: Path) -> StoredNote:
        try:
            raw = json.loads(claimed.read_text(encoding="utf-8"))
            return StoredNote.from_dict(raw)
        except (KeyError, TypeError, ValueError) as exc:
            raise StorageError(f"corrupted note file {claimed.name}: {exc}") from exc
        except OSError as exc:
            raise StorageError(f"read failed: {exc}") from exc

    def _take(self, note_id: int, claim: _Claim) -> StoredNote:
        try:
            claimed = self._claim(claim.path)
        except FileNotFoundError:
            raise NoteNotFound(note_id) from None
        except OSError as exc:
            raise StorageError(f"read failed: {exc}") from exc

        try:
            note = self._read_claimed(claimed)
        except StorageError:
            claimed.unlink(missing_ok=True)
            raise
        if note.is_expired():
            claimed.unlink(missing_ok=True)
            raise NoteNotFound(note_id)

        with claim.lock:
            if claim.abandoned:
                _release(claimed, claim.path)
                raise NoteNotFound(note_id)
            claim.claimed = claimed
        return note

    def _purge_expired(self, now: datetime) -> int:
        notes_dir = _notes_dir(self.base_dir)
        if not notes_dir.exists():
            return 0
        purged = 0
        for p in sorted(notes_dir.glob("*.json")):
            try:
                note = StoredNote.from_dict(json.loads(p.read_text(encoding="utf-8")))
            except FileNotFoundError:
                # consumed meanwhile
                continue
            except (KeyError, TypeError, ValueError) as exc:
                logger.warning("Skipping corrupted note file %s: %s", p.name, exc)
                continue
            if not note.is_expired(now):
                continue
            try:
                self._claim(p).unlink(missing_ok=True)
            except FileNotFoundError:
                continue
            purged += 1
        return purged

import asyncio

from fastapi import APIRouter, Query

from snote.config import load_settings
from snote.models.notes import NoteCreate, NoteCreated, NoteOut
from snote.service.notes import NoteRequest, NoteService
from snote.storage.notes_store import NotesStore
from snote.utils.key_hash import decode_key_hash

router = APIRouter(prefix="/notes", tags=["notes"])

settings = load_settings()
store = NotesStore(settings.data_dir)
service = NoteService(store)


@router.post("", response_model=NoteCreated, status_code=201)
async def create_note(payload: NoteCreate) -> NoteCreated:
    try:
        key_hash = decode_key_hash(payload.key_hash)
    except ValueError:
        # reported by the service as a wrong-length key hash, together with other problems
        key_hash = b""

    request = NoteRequest.new(
        content=payload.content.encode("utf-8"),
        key_hash=key_hash,
        expires_in=payload.expires_in,
        expires_at=payload.expires_at,
        expires_at_timezone=payload.expires_at_timezone,
    )
    note = await asyncio.wait_for(service.create_note(request), timeout=settings.request_timeout)
    return NoteCreated.from_note(note)


@router.get("/{note_id}", response_model=NoteOut)
async def read_note(note_id: str, key_hash: str = Query(default="", max_length=200)) -> NoteOut:
    # The note is destroyed by this call.
    note = await asyncio.wait_for(service.get_note(note_id, key_hash), timeout=settings.request_timeout)
    return NoteOut.from_note(note)

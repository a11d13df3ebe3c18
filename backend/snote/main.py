import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from starlette.datastructures import Headers

from snote.api import notes
from snote.errors import DoesNotExist, InternalFailure, ValidationFailed
from snote.storage.notes_store import NotesStore
from snote.storage.ports import StorageError

logger = logging.getLogger(__name__)

BODY_TOO_LARGE = "body is too large"


def _details(*items: dict) -> dict:
    return {"details": list(items)}


async def purge_periodically(store: NotesStore, interval: float) -> None:
    """Delete expired notes every ``interval`` seconds until cancelled."""
    while True:
        await asyncio.sleep(interval)
        try:
            purged = await store.purge_expired()
        except (OSError, StorageError):
            logger.exception("Periodic purge failed")
            continue
        if purged:
            logger.info("Purged %d expired notes", purged)


@asynccontextmanager
async def lifespan(app: FastAPI):
    purged = await notes.store.purge_expired()
    if purged:
        logger.info("Purged %d expired notes", purged)
    purging = asyncio.create_task(purge_periodically(notes.store, notes.settings.purge_interval))
    try:
        yield
    finally:
        purging.cancel()
        try:
            await purging
        except asyncio.CancelledError:
            pass


class BodySizeLimit:
    """
    Rejects request bodies over ``max_body_bytes`` with 413.
    Declared lengths are refused up front; streamed bodies are counted as they arrive.
    """

    def __init__(self, app, max_body_bytes: int):
        self.app = app
        self.max_body_bytes = max_body_bytes

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        length = Headers(scope=scope).get("content-length")
        if length is not None and length.isdigit() and int(length) > self.max_body_bytes:
            response = JSONResponse(status_code=413, content=_details({"message": BODY_TOO_LARGE}))
            await response(scope, receive, send)
            return

        received = 0

        async def limited_receive():
            nonlocal received
            message = await receive()
            if message["type"] == "http.request":
                received += len(message.get("body", b""))
                if received > self.max_body_bytes:
                    raise HTTPException(status_code=413, detail=BODY_TOO_LARGE)
            return message

        await self.app(scope, limited_receive, send)


app = FastAPI(title="Self-Destructing Notes API", lifespan=lifespan)
app.include_router(notes.router)
app.add_middleware(BodySizeLimit, max_body_bytes=notes.settings.max_body_bytes)


@app.exception_handler(413)
async def body_too_large(request: Request, exc: HTTPException) -> JSONResponse:
    return JSONResponse(status_code=413, content=_details({"message": BODY_TOO_LARGE}))


@app.exception_handler(ValidationFailed)
async def validation_failed(request: Request, exc: ValidationFailed) -> JSONResponse:
    return JSONResponse(status_code=422, content=_details(*(e.to_dict() for e in exc.errors)))


@app.exception_handler(DoesNotExist)
async def does_not_exist(request: Request, exc: DoesNotExist) -> JSONResponse:
    return JSONResponse(status_code=404, content=_details({"message": "Not Found"}))


@app.exception_handler(InternalFailure)
async def internal_failure(request: Request, exc: InternalFailure) -> JSONResponse:
    # details were logged where the failure happened
    return JSONResponse(status_code=500, content=_details({"message": "Internal Server Error"}))


@app.exception_handler(asyncio.TimeoutError)
async def timed_out(request: Request, exc: asyncio.TimeoutError) -> JSONResponse:
    logger.warning("%s %s timed out", request.method, request.url.path)
    return JSONResponse(status_code=504, content=_details({"message": "Request timed out"}))


@app.get("/health")
def health():
    return {"ok": True}

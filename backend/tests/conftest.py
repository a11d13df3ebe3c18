import hashlib
import importlib
import pytest
from fastapi.testclient import TestClient

from snote.config import CONFIG_FILE_ENV
from snote.service.notes import NoteService
from snote.storage.notes_store import NotesStore
from snote.utils.key_hash import encode_key_hash


@pytest.fixture()
def make_client(tmp_path, monkeypatch):
    def make(**env):
        # isolate data dir per test
        monkeypatch.setenv("APP_DATA_DIR", str(tmp_path))
        monkeypatch.setenv("REQUEST_TIMEOUT_SECONDS", "5")
        monkeypatch.delenv(CONFIG_FILE_ENV, raising=False)
        for name, value in env.items():
            monkeypatch.setenv(name, value)

        # reload modules so that api/notes.py picks up new env vars
        import snote.api.notes
        import snote.main
        importlib.reload(snote.api.notes)
        importlib.reload(snote.main)

        return TestClient(snote.main.app)
    return make


@pytest.fixture()
def client(make_client):
    return make_client()


@pytest.fixture()
def store(tmp_path):
    return NotesStore(tmp_path)


@pytest.fixture()
def service(store):
    return NoteService(store)


@pytest.fixture()
def key_hash() -> bytes:
    return hashlib.sha256(b"correct horse battery staple").digest()


@pytest.fixture()
def key_hash_b58(key_hash) -> str:
    return encode_key_hash(key_hash)

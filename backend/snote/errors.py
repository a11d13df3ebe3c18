"""Errors raised by the note lifecycle.

The HTTP layer maps them to responses in ``snote.main``:
``ValidationFailed`` -> 422, ``DoesNotExist`` -> 404, ``InternalFailure`` -> 500.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Optional


@dataclass(frozen=True)
class FieldError:
    field: Optional[str]
    message: str

    def to_dict(self) -> dict[str, Any]:
        if self.field is None:
            return {"message": self.message}
        return {"field": self.field, "message": self.message}


class NoteError(Exception):
    pass


class ValidationFailed(NoteError):
    """Caller-correctable input problems, reported all at once."""

    def __init__(self, errors: Iterable[FieldError]):
        self.errors = list(errors)
        super().__init__("; ".join(e.message for e in self.errors) or "validation failed")


class DoesNotExist(NoteError):
    """
    Single outcome for a missing, expired, consumed or wrongly keyed note.
    Callers must not be able to tell these cases apart.
    """

    def __init__(self) -> None:
        super().__init__("does not exist")


class InternalFailure(NoteError):
    pass


class StorageFailure(InternalFailure):
    pass


class IntegrityFailure(InternalFailure):
    pass

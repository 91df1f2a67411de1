"""
Jotbox Backend: Note Codec and Response Schemas
===============================================

What:  Pydantic models for every representation of a note:
       - request bodies (NoteCreate, NoteUpdate)
       - wire output (NoteOut)
       - the JSON blob stored by the prefix backend (StoredNote)
       plus the error and health envelopes.
How:   Bodies are validated straight from raw bytes with
       `model_validate_json`; pydantic errors are translated into the
       application's ValidationError. Stored blobs that fail to decode are a
       backend fault, not a client error.

Wire format (camelCase, variant-specific fields omitted rather than null):
    {"id": "...", "title": "...", "content": "...", "createdAt": 1700000000000}
    {"id": "...", "content": "...", "createdAt": 1700000000000, "updatedAt": ...}
"""

from typing import Any, Dict, Optional

import pydantic
from pydantic import BaseModel, ConfigDict, Field, StrictInt, StrictStr, model_validator

from app.exceptions import BackendError, ValidationError
from app.models.note import Note


# ══════════════════════════════════════════════════════════════════════════
# Request Models: what the client sends
# ══════════════════════════════════════════════════════════════════════════


class NoteCreate(BaseModel):
    """Body of POST {prefix}/notes. Unknown keys are ignored."""

    content: StrictStr = Field(description="Note body")
    title: Optional[StrictStr] = Field(
        default=None,
        description="Optional title; relational backend stores a placeholder when empty",
    )


class NoteUpdate(BaseModel):
    """
    Body of PUT {prefix}/notes/{id}.

    Fields are merged into the stored note; absent or null fields keep their
    current value. At least one field must be supplied.
    """

    content: Optional[StrictStr] = Field(default=None, description="New note body")
    title: Optional[StrictStr] = Field(default=None, description="New title")

    @model_validator(mode="after")
    def require_a_field(self) -> "NoteUpdate":
        if self.content is None and self.title is None:
            raise ValueError("Request body must include 'content' or 'title'")
        return self


def _translate(exc: pydantic.ValidationError) -> ValidationError:
    """Convert the first pydantic error into an application ValidationError."""
    error = exc.errors()[0]
    kind = error.get("type", "")
    loc = error.get("loc") or ()

    if kind == "json_invalid":
        return ValidationError(message="Request body must be valid JSON")
    if kind == "model_type":
        return ValidationError(message="Request body must be a JSON object")

    message = str(error.get("msg", "Invalid value"))
    if message.startswith("Value error, "):
        message = message[len("Value error, "):]
    if loc:
        field = str(loc[0])
        if kind == "missing":
            return ValidationError(message=f"Field '{field}' is required", field=field)
        return ValidationError(message=f"Invalid '{field}': {message}", field=field)
    return ValidationError(message=message)


def parse_create_body(raw: bytes) -> NoteCreate:
    """
    Decode and validate a create request body.

    Raises:
        ValidationError: malformed JSON, non-object body, missing `content`,
                         or a non-string field
    """
    try:
        return NoteCreate.model_validate_json(raw or b"")
    except pydantic.ValidationError as e:
        raise _translate(e) from e


def parse_update_body(raw: bytes) -> NoteUpdate:
    """Decode and validate an update request body. Raises ValidationError."""
    try:
        return NoteUpdate.model_validate_json(raw or b"")
    except pydantic.ValidationError as e:
        raise _translate(e) from e


# ══════════════════════════════════════════════════════════════════════════
# Response Models: what the API returns
# ══════════════════════════════════════════════════════════════════════════


class NoteOut(BaseModel):
    """
    Wire representation of a note.

    `scope` is never part of the payload: the caller already holds it and it
    must not be echoed into caches or logs.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(description="Note identifier (UUID v4)")
    title: Optional[str] = Field(default=None, description="Title (relational backend)")
    content: str = Field(description="Note body")
    created_at: int = Field(alias="createdAt", description="Creation time, epoch ms")
    updated_at: Optional[int] = Field(
        default=None,
        alias="updatedAt",
        description="Last update time, epoch ms (prefix backend)",
    )

    @classmethod
    def from_note(cls, note: Note) -> "NoteOut":
        return cls(
            id=note.id,
            title=note.title,
            content=note.content,
            created_at=note.created_at,
            updated_at=note.updated_at,
        )


def note_to_wire(note: Note) -> Dict[str, Any]:
    """Render a note as a JSON-ready dict with camelCase keys."""
    return NoteOut.from_note(note).model_dump(by_alias=True, exclude_none=True)


class DeleteResponse(BaseModel):
    success: bool = True


# ══════════════════════════════════════════════════════════════════════════
# Storage Model: the JSON blob kept under each prefix-backend key
# ══════════════════════════════════════════════════════════════════════════


class StoredNote(BaseModel):
    """
    Value stored at "{namespace}:{scope}:{id}".

    The scope lives in the key, not the blob.
    """

    model_config = ConfigDict(populate_by_name=True, strict=True)

    id: StrictStr
    content: StrictStr
    created_at: StrictInt = Field(alias="createdAt")
    updated_at: StrictInt = Field(alias="updatedAt")


def encode_stored(note: Note) -> str:
    """Serialize a note into its prefix-backend blob."""
    stored = StoredNote(
        id=note.id,
        content=note.content,
        created_at=note.created_at,
        updated_at=note.updated_at if note.updated_at is not None else note.created_at,
    )
    return stored.model_dump_json(by_alias=True)


def decode_stored(raw: Any, scope: str, note_id: str) -> Note:
    """
    Parse a prefix-backend blob back into a Note owned by `scope`.

    Raises:
        BackendError: the blob is not a valid StoredNote, or its `id` differs
                      from the id in its key. Corrupt storage is a server
                      fault and must never read as a client error.
    """
    try:
        stored = StoredNote.model_validate_json(raw)
    except (pydantic.ValidationError, TypeError, ValueError) as e:
        raise BackendError(
            context={"note_id": note_id, "error_type": type(e).__name__},
        ) from e
    if stored.id != note_id:
        # A listed note must stay addressable by update and delete
        raise BackendError(
            context={"note_id": note_id, "error_type": "IdMismatch"},
        )
    return Note(
        id=stored.id,
        scope=scope,
        content=stored.content,
        created_at=stored.created_at,
        updated_at=stored.updated_at,
    )


# ══════════════════════════════════════════════════════════════════════════
# Envelopes
# ══════════════════════════════════════════════════════════════════════════


class ErrorResponse(BaseModel):
    """
    Standardized error body for every API error.

    Example:
        {
            "error": "not_found",
            "message": "note with ID '...' was not found",
            "request_id": "1f2e3d4c"
        }
    """

    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    """Returned by GET /health for monitoring and load balancer probes."""

    status: str = Field(description="Overall service status: healthy, unhealthy")
    version: str = Field(description="Application version")
    backend: str = Field(description="Configured storage backend: relational, prefix")
    storage: str = Field(description="Storage connectivity: connected, disconnected")
    uptime_seconds: float = Field(description="Seconds since service started")



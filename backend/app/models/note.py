"""
Jotbox Backend: Note Data Model
===============================

What:  The Note entity in two forms:
       - `Note`: the backend-neutral record every NoteBackend returns
       - `NoteRecord`: the SQLAlchemy mapping of the `notes` table used by
         the relational backend
Who:   Storage backends produce `Note`; the codec in `app.schemas.note`
       renders it on the wire.

Table Design:
    - id:         36-char canonical UUID string, generated in Python
    - scope:      opaque identity token; every query filters on it
    - title:      never NULL, a placeholder stands in for an empty title
    - content:    note body
    - created_at: epoch milliseconds (BIGINT), the list sort key

    Composite index (scope, created_at): the list query is an index range
    scan on one scope, already in created_at order.
"""

from dataclasses import dataclass, replace
from typing import Optional

from sqlalchemy import BigInteger, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


@dataclass(frozen=True)
class Note:
    """
    A note as returned by any NoteBackend.

    `title` is only modeled by the relational backend and `updated_at` only
    by the prefix backend; the other backend leaves the field as None.
    """

    id: str
    scope: str
    content: str
    created_at: int
    title: Optional[str] = None
    updated_at: Optional[int] = None

    def merged(
        self,
        content: Optional[str] = None,
        title: Optional[str] = None,
        updated_at: Optional[int] = None,
    ) -> "Note":
        """Copy with the supplied fields replaced; None keeps the current value."""
        return replace(
            self,
            content=self.content if content is None else content,
            title=self.title if title is None else title,
            updated_at=self.updated_at if updated_at is None else updated_at,
        )


class NoteRecord(Base):
    """ORM row for the relational backend."""

    __tablename__ = "notes"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        comment="Canonical UUID v4 string",
    )

    scope: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        comment="Opaque identity token that owns this note",
    )

    title: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        comment="Note title, placeholder when the client sent none",
    )

    content: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        comment="Note body",
    )

    created_at: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        comment="Creation time in epoch milliseconds",
    )

    __table_args__ = (
        Index("idx_notes_scope_created_at", "scope", "created_at"),
    )

    def to_note(self) -> Note:
        return Note(
            id=self.id,
            scope=self.scope,
            title=self.title,
            content=self.content,
            created_at=self.created_at,
        )

    def __repr__(self) -> str:
        # scope is the caller's token and stays out of logs
        return f"<NoteRecord(id={self.id}, created_at={self.created_at})>"

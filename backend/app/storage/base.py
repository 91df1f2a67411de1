"""
Jotbox Backend: Abstract Storage Backend Interface
==================================================

What:  Abstract base class defining the contract every note store fulfils.
How:   Concrete backends inherit from NoteBackend and implement the four
       scoped CRUD operations plus ping/close. The dispatcher holds a
       NoteBackend and never branches on which implementation it got.
Who:   Implemented by PrefixStore (Redis keys) and RelationalStore
       (SQLAlchemy table); selected by `app.storage.build_backend`.

Isolation Contract:
    Every operation takes the caller's scope. A note is addressed by the
    (scope, id) pair, never by id alone: a lookup under the wrong scope must
    fail exactly like a lookup of an id that never existed.
"""

import time
import uuid
from abc import ABC, abstractmethod
from typing import Callable, List, Optional

from app.models.note import Note

Clock = Callable[[], int]


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return time.time_ns() // 1_000_000


def new_note_id() -> str:
    """Fresh canonical UUID v4 string."""
    return str(uuid.uuid4())


def sort_newest_first(notes: List[Note]) -> List[Note]:
    """Order by created_at descending, ties broken by id descending."""
    return sorted(notes, key=lambda n: (n.created_at, n.id), reverse=True)


class NoteBackend(ABC):
    """
    Abstract interface for scoped note storage.

    Contract:
        - All methods are coroutines; each call is independently cancellable
        - Library-specific failures are wrapped in BackendError, transport
          failures in BackendUnavailableError
        - Missing (scope, id) pairs raise NotFoundError
        - No method retries internally
    """

    #: Name reported by the health check ("relational", "prefix")
    name: str = "abstract"

    @abstractmethod
    async def list_notes(self, scope: str) -> List[Note]:
        """
        Return every note owned by `scope`, newest first.

        Returns an empty list for a scope with no notes.
        """
        ...

    @abstractmethod
    async def create_note(
        self,
        scope: str,
        content: str,
        title: Optional[str] = None,
    ) -> Note:
        """
        Persist a new note under `scope` and return the full record.

        The backend generates `id` and `created_at` (and `updated_at` where
        modeled). Backends that model titles store a placeholder for an empty
        or absent title.
        """
        ...

    @abstractmethod
    async def update_note(
        self,
        scope: str,
        note_id: str,
        content: Optional[str] = None,
        title: Optional[str] = None,
    ) -> Note:
        """
        Merge the supplied fields into the note addressed by (scope, note_id).

        `id`, `scope` and `created_at` never change. Backends that model
        `updated_at` re-stamp it.

        Raises:
            NotFoundError: no note exists under this exact (scope, note_id)
        """
        ...

    @abstractmethod
    async def delete_note(self, scope: str, note_id: str) -> None:
        """
        Permanently remove the note addressed by (scope, note_id).

        Raises:
            NotFoundError: no note exists under this exact (scope, note_id)
        """
        ...

    @abstractmethod
    async def ping(self) -> bool:
        """Lightweight connectivity probe used by the health check."""
        ...

    async def close(self) -> None:
        """Release clients or pools the backend owns. Default: nothing."""
        return None

"""
Jotbox Backend: Router
======================

What:  Maps (method, path) onto a note Action plus an optional note id.
How:   Two path shapes under the API prefix:

           {prefix}/notes          collection  GET → LIST, POST → CREATE
           {prefix}/notes/<id>     item        PUT → UPDATE, DELETE → DELETE

       Paths outside the prefix resolve to the PASS_THROUGH sentinel so the
       surrounding application can serve them (health check, static assets).
       Paths inside the prefix that match neither shape are 404s; verbs the
       shape does not support are 405s.

Note ids must be canonical hyphenated UUIDs. Matching is case-insensitive
and ids are normalized to lower case, the form uuid4() produces.
"""

import enum
import re
from dataclasses import dataclass
from typing import Optional, Union

from app.exceptions import MethodNotAllowedError, NotFoundError, ValidationError

NOTE_ID_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$",
    re.IGNORECASE,
)

COLLECTION_SEGMENT = "notes"

COLLECTION_METHODS = ("GET", "POST")
ITEM_METHODS = ("PUT", "DELETE")


class Action(str, enum.Enum):
    LIST = "list"
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


class PassThrough(enum.Enum):
    """Sentinel type: the request is not addressed to the notes API."""

    PASS_THROUGH = "pass_through"


PASS_THROUGH = PassThrough.PASS_THROUGH


@dataclass(frozen=True)
class Route:
    action: Action
    note_id: Optional[str] = None


def is_note_id(value: str) -> bool:
    return bool(NOTE_ID_PATTERN.match(value))


def _api_base(api_prefix: str) -> str:
    return "" if api_prefix == "/" else api_prefix


def is_api_path(path: str, api_prefix: str) -> bool:
    """True when `path` is the prefix itself or lies below it."""
    base = _api_base(api_prefix)
    return path == base or path.startswith(base + "/")


def resolve_route(method: str, path: str, api_prefix: str) -> Union[Route, PassThrough]:
    """
    Resolve a request line into a Route.

    Returns:
        Route for a supported (method, shape) pair, PASS_THROUGH for paths
        outside the API prefix.

    Raises:
        NotFoundError:         path is inside the prefix but matches no shape
        ValidationError:       PUT/DELETE on the collection (no note id)
        MethodNotAllowedError: any other verb the matched shape rejects
    """
    if not is_api_path(path, api_prefix):
        return PASS_THROUGH

    method = method.upper()
    remainder = path[len(_api_base(api_prefix)):].strip("/")
    segments = remainder.split("/") if remainder else []

    if not segments or segments[0] != COLLECTION_SEGMENT or len(segments) > 2:
        raise NotFoundError(resource="route", resource_id=path)

    # ── Collection: {prefix}/notes ────────────────────────────────────────
    if len(segments) == 1:
        if method == "GET":
            return Route(Action.LIST)
        if method == "POST":
            return Route(Action.CREATE)
        if method in ITEM_METHODS:
            raise ValidationError(
                message=f"Missing note ID for {method.lower()}.",
                field="id",
            )
        raise MethodNotAllowedError(method, COLLECTION_METHODS)

    # ── Item: {prefix}/notes/<id> ─────────────────────────────────────────
    note_id = segments[1]
    if not is_note_id(note_id):
        raise NotFoundError(resource="route", resource_id=path)
    if method == "PUT":
        return Route(Action.UPDATE, note_id.lower())
    if method == "DELETE":
        return Route(Action.DELETE, note_id.lower())
    raise MethodNotAllowedError(method, ITEM_METHODS)

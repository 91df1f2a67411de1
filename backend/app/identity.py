"""
Jotbox Backend: Identity Resolver
=================================

What:  Extracts the caller's scope token from the request headers.
How:   Reads one configurable header; a missing or empty value fails closed.

The scope is trusted verbatim. Issuing, signing and verifying tokens belongs
to an authentication layer in front of this service.
"""

from typing import Mapping

from app.exceptions import UnauthenticatedError


def resolve_scope(headers: Mapping[str, str], header_name: str) -> str:
    """
    Return the scope token carried by `header_name`.

    `headers` is expected to be case-insensitive (Starlette's `Headers`);
    plain dicts are matched case-insensitively as a fallback.

    Raises:
        UnauthenticatedError: the header is absent or empty.
    """
    scope = headers.get(header_name)
    if scope is None and not hasattr(headers, "getlist"):
        wanted = header_name.lower()
        scope = next(
            (value for key, value in headers.items() if key.lower() == wanted),
            None,
        )
    if not scope:
        raise UnauthenticatedError(header=header_name)
    return scope

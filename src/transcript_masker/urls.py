"""URL acceptability check.

A URL is *acceptable* (left unmasked) when its domain does not start with
a filtered prefix, does not end with a filtered suffix, and its path/query
does not contain a filtered substring.  Text without an ``http(s)://``
scheme is never an acceptable URL.
"""

from __future__ import annotations
import re
from typing import Iterable

_SCHEME = re.compile(r"https?://")


def acceptable_url(
    candidate: str,
    query_string_filters: Iterable[str] = (),
    domain_prefixes: Iterable[str] = (),
    domain_suffixes: Iterable[str] = (),
) -> bool:
    """Return True if candidate references a URL that may be left unmasked."""
    parts = _SCHEME.split(candidate.lower())
    if len(parts) < 2:
        return False
    if len(parts) > 2:
        # A URL referencing another URL: the second reference can't be
        # rebuilt reliably from the parts, so it is always masked.
        return False

    rest = parts[1]
    port_idx = rest.find(":")
    path_idx = rest.find("/")

    if path_idx != -1 and path_idx < len(rest) - 1:
        tail = rest[path_idx + 1:]
        if any(qs in tail for qs in query_string_filters):
            return False

    cuts = [i for i in (port_idx, path_idx) if i != -1]
    domain = rest[:min(cuts)] if cuts else rest

    if any(domain.endswith(suffix) for suffix in domain_suffixes):
        return False
    if any(domain.startswith(prefix) for prefix in domain_prefixes):
        return False
    return True

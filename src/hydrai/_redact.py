"""Helpers for safe debug logging.

hydrai handles bearer tokens both in HTTP headers and in the stream URL
query string.  This module redacts them before they reach DEBUG logs.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

_REDACTED = "<redacted>"

_SENSITIVE_KEYS = frozenset({"token", "authorization", "cookie"})


def redact_url(url: str) -> str:
    """Return *url* with sensitive query parameters replaced."""
    parts = urlsplit(url)
    if not parts.query:
        return url
    query = [
        (key, _REDACTED if key.lower() in _SENSITIVE_KEYS else value)
        for key, value in parse_qsl(parts.query, keep_blank_values=True)
    ]
    return urlunsplit(parts._replace(query=urlencode(query, safe="<>")))


def redact_for_log(value: Any) -> Any:
    """Copy a JSON-like *value* with credential-bearing keys masked.

    Covers request headers, request bodies and decoded responses: nested
    mappings and lists of scalars.
    """
    if isinstance(value, Mapping):
        return {
            str(key): _REDACTED if str(key).lower() in _SENSITIVE_KEYS else redact_for_log(item)
            for key, item in value.items()
        }
    if isinstance(value, (list, tuple)):
        return [redact_for_log(item) for item in value]
    return value

"""Normalization helpers.

Centralizes strict field extraction for inbound frames.  Unlike lenient
coercion, a missing or non-numeric field is an error here: a sample is
either complete or not produced at all.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from typing import Any

from hydrai.exceptions import HydraiDecodeError


class FrameFieldError(HydraiDecodeError, ValueError):
    """A frame field is missing or has the wrong type."""


def is_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def require_number(frame: Mapping[str, Any], key: str) -> float:
    if key not in frame:
        raise FrameFieldError(f"missing numeric field '{key}'")
    value = frame[key]
    if not is_number(value):
        raise FrameFieldError(f"field '{key}' is not a finite number: {value!r}")
    return float(value)


def require_str(frame: Mapping[str, Any], key: str) -> str:
    value = frame.get(key)
    if not isinstance(value, str):
        raise FrameFieldError(f"field '{key}' is not a string: {value!r}")
    return value


def require_mapping(frame: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    value = frame.get(key)
    if not isinstance(value, Mapping):
        raise FrameFieldError(f"field '{key}' is not an object")
    return value


def parse_horizon_key(key: Any) -> int:
    """Parse a forecast map key (``"60"``) into whole seconds."""
    try:
        horizon = int(str(key).strip())
    except ValueError as exc:
        raise FrameFieldError(f"invalid horizon key {key!r}") from exc
    if horizon < 0:
        raise FrameFieldError(f"negative horizon key {key!r}")
    return horizon

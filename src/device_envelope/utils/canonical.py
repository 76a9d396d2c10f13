"""Deterministic JSON encoding for signing and encryption.

Values are encoded as RFC 8785 (JCS) canonical JSON: keys sorted by UTF-16
code units, ECMAScript number formatting and no insignificant whitespace, so
a logical value maps to the same bytes in every conforming implementation.
"""

from __future__ import annotations

import json
from typing import Any

import rfc8785

# Largest integer an IEEE 754 double holds exactly; RFC 8785 rejects larger ints.
MAX_SAFE_INTEGER = 2**53 - 1


def _parse_int(text: str) -> int | float:
    number = int(text)
    if abs(number) > MAX_SAFE_INTEGER:
        return float(text)
    return number


def canonicalize(value: Any) -> bytes:
    """Return the RFC 8785 canonical UTF-8 bytes for ``value``.

    Raises:
        ValueError: If the value contains NaN/Infinity, integers outside the
            IEEE 754 safe range, or types JSON cannot encode.
    """
    try:
        return rfc8785.dumps(value)
    except (rfc8785.CanonicalizationError, TypeError) as err:
        raise ValueError(f"Value is not canonically serializable: {err}") from err


def canonical_json(value: Any) -> str:
    """Return the canonical JSON text for ``value``."""
    return canonicalize(value).decode("utf-8")


def parse_canonical(data: bytes | str) -> Any:
    """Parse canonical bytes (or text) back into a structured value.

    Integers beyond the safe range come back as floats, which is how the
    serializer emitted them.
    """
    if isinstance(data, bytes):
        data = data.decode("utf-8")
    return json.loads(data, parse_int=_parse_int)

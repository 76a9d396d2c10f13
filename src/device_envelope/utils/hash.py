# src/device_envelope/utils/hash.py
"""BLAKE3 hashing helpers used to derive identity and device names."""

from __future__ import annotations

import blake3

from device_envelope.core.settings import settings


def blake3_digest(data: bytes) -> bytes:
    """Return the byte digest of the supplied data."""
    return blake3.blake3(data).digest()


def blake3_hexdigest(data: bytes) -> str:
    """Return the hexadecimal digest of the supplied data."""
    return blake3.blake3(data).hexdigest()


def short_name(data: bytes, length: int | None = None) -> str:
    """Return a truncated hex digest suitable for use as a stable name.

    Args:
        data: Bytes to derive the name from (typically a public key).
        length: Number of hex characters to keep; defaults to
            ``settings.name_digest_length``.

    Returns:
        Lowercase hex string of at most ``length`` characters.
    """
    size = settings.name_digest_length if length is None else length
    if size <= 0:
        raise ValueError("Name length must be positive")
    return blake3_hexdigest(data)[:size]

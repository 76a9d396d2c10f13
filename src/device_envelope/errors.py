"""Exception types raised by the envelope engine."""

from __future__ import annotations

DECRYPTION_FAILED = "Decryption failed"


class EnvelopeError(RuntimeError):
    """Base exception for envelope engine failures."""


class MalformedMessageError(EnvelopeError, ValueError):
    """Raised when a value is not a structurally valid signed object.

    This covers non-mapping input, missing ``signature`` or ``author`` fields,
    and signatures or author keys that cannot be decoded. It is never raised
    for a well-formed message whose signature simply does not match.
    """


class DecryptionError(EnvelopeError, ValueError):
    """Raised when a message cannot be decrypted by the calling device.

    Failures inside the cryptographic primitives are not converted to this
    type: a rejected RSA-OAEP unwrap raises a plain ``ValueError`` and a
    rejected AES-GCM ciphertext raises ``cryptography.exceptions.InvalidTag``.
    Callers that must treat every decryption failure alike should catch
    ``(ValueError, InvalidTag)``.
    """

    def __init__(self, message: str = DECRYPTION_FAILED) -> None:
        super().__init__(message)


class KeyNotFoundError(DecryptionError):
    """Raised when the consulted key map has no entry for the caller's device.

    It is a ``ValueError`` carrying the same text as an RSA-OAEP rejection,
    so catching ``(ValueError, InvalidTag)`` handles a missing key and a
    failed decryption with one clause and without inspecting which occurred.
    """


class DeviceSetInconsistencyError(EnvelopeError):
    """Raised when a device set cannot be wrapped to as given."""


class UnsupportedAlgorithmError(EnvelopeError, ValueError):
    """Raised when a cipher suite names an algorithm or size we do not support."""

"""Signed-message utilities built on Ed25519 primitives.

A signed message is a flat mapping holding the caller's payload plus two
fields: ``author`` (the url-safe base64 Ed25519 verify key, unpadded) and
``signature`` (standard base64). The signature covers the canonical bytes of
every field except ``signature`` itself.
"""
from __future__ import annotations

import base64
import binascii
from collections.abc import Mapping
from typing import Any

from nacl.exceptions import BadSignatureError
from nacl.signing import SigningKey, VerifyKey

from device_envelope.errors import MalformedMessageError
from device_envelope.utils.canonical import canonicalize

AUTHOR_FIELD = "author"
SIGNATURE_FIELD = "signature"
_VERIFY_KEY_BYTES = 32
_SIGNATURE_BYTES = 64


def encode_author(verify_key: VerifyKey) -> str:
    """Return the unpadded url-safe base64 form of a verify key."""
    return base64.urlsafe_b64encode(verify_key.encode()).decode().rstrip("=")


def decode_author(author: str) -> VerifyKey:
    """Decode an author string back into a verify key.

    Raises:
        MalformedMessageError: If the author is not a 32-byte base64 key.
    """
    padding = "=" * (-len(author) % 4)
    try:
        raw = base64.urlsafe_b64decode(author + padding)
    except (binascii.Error, ValueError) as err:
        raise MalformedMessageError(f"Invalid author encoding: {err}") from err
    if len(raw) != _VERIFY_KEY_BYTES:
        raise MalformedMessageError("Ed25519 author keys must be 32 bytes")
    return VerifyKey(raw)


def sign_message(signing_key: SigningKey, payload: Mapping[str, Any]) -> dict[str, Any]:
    """Sign ``payload`` and return it with ``author`` and ``signature`` attached.

    Args:
        signing_key: Ed25519 key of the message author.
        payload: JSON-compatible fields to sign. Must not already carry
            ``author`` or ``signature``.

    Returns:
        A new dict holding the payload, the author key and the signature.
    """
    if AUTHOR_FIELD in payload or SIGNATURE_FIELD in payload:
        raise ValueError("Payload must not contain author or signature fields")

    message = dict(payload)
    message[AUTHOR_FIELD] = encode_author(signing_key.verify_key)
    signed = signing_key.sign(canonicalize(message))
    message[SIGNATURE_FIELD] = base64.b64encode(signed.signature).decode()
    return message


def verify_message(message: Any) -> bool:
    """Verify a signed message produced by :func:`sign_message`.

    Returns:
        True if the signature is valid for the message under its author key;
        False if the message is well-formed but the signature does not match.

    Raises:
        MalformedMessageError: If ``message`` is not a structurally valid signed
            object.
    """
    if not isinstance(message, Mapping):
        raise MalformedMessageError("Signed message must be a mapping")

    signature_b64 = message.get(SIGNATURE_FIELD)
    author = message.get(AUTHOR_FIELD)
    if not isinstance(signature_b64, str) or not signature_b64:
        raise MalformedMessageError("Signed message is missing a signature")
    if not isinstance(author, str) or not author:
        raise MalformedMessageError("Signed message is missing an author")

    try:
        signature = base64.b64decode(signature_b64, validate=True)
    except (binascii.Error, ValueError) as err:
        raise MalformedMessageError(f"Invalid signature encoding: {err}") from err
    if len(signature) != _SIGNATURE_BYTES:
        raise MalformedMessageError("Ed25519 signatures must be 64 bytes")

    verify_key = decode_author(author)
    body = {k: v for k, v in message.items() if k != SIGNATURE_FIELD}
    try:
        signed_bytes = canonicalize(body)
    except ValueError as err:
        raise MalformedMessageError(str(err)) from err

    try:
        verify_key.verify(signed_bytes, signature)
    except BadSignatureError:
        return False
    return True

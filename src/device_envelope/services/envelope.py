# src/device_envelope/services/envelope.py
"""Envelope creation, verification and multi-device hybrid encryption.

An envelope is a signed certificate naming a recipient, a sequence number and
an expiration. Message content travelling in it is encrypted once under a
fresh AES key, and that key is wrapped separately for every device of the
recipient. The same key is also wrapped for every device of the sender, but
those wraps are returned on their own so the sender's devices never appear in
the transmitted message.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol

from cryptography.hazmat.primitives.asymmetric import rsa
from nacl.signing import SigningKey
from pydantic import ValidationError

from device_envelope.core.security import sign_message, verify_message
from device_envelope.errors import (
    DeviceSetInconsistencyError,
    KeyNotFoundError,
    MalformedMessageError,
)
from device_envelope.schemas.envelope import (
    Content,
    EncryptedContent,
    Envelope,
    Keys,
    WrappedMessage,
)
from device_envelope.services.crypto import CipherSuite, CryptoService
from device_envelope.services.identity import DeviceSet
from device_envelope.utils.canonical import canonicalize, parse_canonical

logger = logging.getLogger(__name__)

NO_EXPIRATION = 0


class DeviceSecrets(Protocol):
    """The decrypting side: its own device name and exchange private key."""

    exchange_private_key: rsa.RSAPrivateKey

    def resolve_own_device_name(self) -> str: ...


@dataclass(frozen=True)
class AsRecipient:
    """Decrypt using the key map embedded in the encrypted content."""


@dataclass(frozen=True)
class AsAuthor:
    """Decrypt a message we sent, using the sender key map returned at wrap time."""

    keys: Keys = field(default_factory=dict)


DecryptAs = AsRecipient | AsAuthor


def _now_ms() -> int:
    return int(time.time() * 1000)


def _as_mapping(value: Envelope | Content | Mapping[str, Any]) -> Mapping[str, Any]:
    if isinstance(value, (Envelope, Content)):
        return value.to_wire()
    if isinstance(value, Mapping):
        return value
    raise MalformedMessageError(f"Expected a signed message, got {type(value).__name__}")


def _content_bytes(content: Content | Mapping[str, Any]) -> bytes:
    """Return canonical bytes of signed content, rejecting anything that is not."""
    if isinstance(content, Content):
        message = content.to_wire()
    elif isinstance(content, Mapping):
        try:
            Content.model_validate(content)
        except ValidationError as err:
            raise MalformedMessageError(f"Invalid message content: {err}") from err
        message = content
    else:
        raise MalformedMessageError(f"Expected message content, got {type(content).__name__}")
    try:
        return canonicalize(message)
    except ValueError as err:
        raise MalformedMessageError(str(err)) from err


def _read_int(message: Mapping[str, Any], name: str, default: int | None = None) -> int:
    value = message.get(name, default)
    if isinstance(value, bool) or not isinstance(value, int):
        raise MalformedMessageError(f"Envelope field {name!r} must be an integer")
    return value


class EnvelopeService:
    """Builds, validates and opens envelopes for one cipher suite."""

    def __init__(
        self,
        suite: CipherSuite | None = None,
        crypto: CryptoService | None = None,
    ) -> None:
        self.crypto = crypto or CryptoService(suite)
        self.suite = self.crypto.suite

    # --- Envelope lifecycle ---------------------------------------------------------
    def create(
        self,
        signing_key: SigningKey,
        *,
        username: str,
        seq: int,
        expiration: int = NO_EXPIRATION,
    ) -> Envelope:
        """Create a signed envelope addressed to ``username``.

        No ordering check happens here: the caller must pick a ``seq`` greater
        than any it has issued before for this recipient.

        Args:
            signing_key: Ed25519 key of the envelope author.
            username: The recipient's username.
            seq: Always-incrementing sequence number.
            expiration: Unix epoch milliseconds, or 0 for no expiration.
        """
        signed = sign_message(
            signing_key,
            {"seq": seq, "expiration": expiration, "recipient": username},
        )
        logger.debug("Created envelope seq=%d for %s", seq, username)
        return Envelope.model_validate(signed)

    def is_expired(self, envelope: Envelope | Mapping[str, Any]) -> bool:
        """Return True if the envelope has a non-zero expiration in the past."""
        expiration = _read_int(_as_mapping(envelope), "expiration", NO_EXPIRATION)
        return expiration != NO_EXPIRATION and _now_ms() > expiration

    def verify(
        self,
        envelope: Envelope | Mapping[str, Any],
        current_seq: int | None = None,
    ) -> bool:
        """Check an envelope's sequence number, expiration and signature.

        The checks run in that order and the first failing one decides the
        result, so the signature is only checked for envelopes that are fresh.

        Args:
            envelope: The envelope to check.
            current_seq: Last sequence number seen for this author/recipient
                pair. When given, the envelope must carry a strictly greater one.

        Returns:
            True if the envelope is valid.

        Raises:
            MalformedMessageError: If ``envelope`` is not a signed envelope.
        """
        message = _as_mapping(envelope)
        seq = _read_int(message, "seq")

        if current_seq is not None and seq <= current_seq:
            logger.warning("Rejected envelope with stale seq %d (last %d)", seq, current_seq)
            return False

        if self.is_expired(message):
            logger.warning("Rejected expired envelope seq=%d", seq)
            return False

        return verify_message(message)

    # --- Message content ------------------------------------------------------------
    def create_content(
        self,
        signing_key: SigningKey,
        *,
        username: str,
        text: str,
        mentions: list[str] | None = None,
    ) -> Content:
        """Create signed message content from ``username``."""
        payload: dict[str, Any] = {"from": {"username": username}, "text": text}
        if mentions is not None:
            payload["mentions"] = list(mentions)
        return Content.model_validate(sign_message(signing_key, payload))

    def verify_content(self, content: Content | Mapping[str, Any]) -> bool:
        """Verify the signature on message content."""
        return verify_message(_as_mapping(content))

    # --- Hybrid encryption ----------------------------------------------------------
    def encrypt_keys(self, devices: DeviceSet, key: bytes) -> Keys:
        """Wrap ``key`` for every device in ``devices``."""
        self._check_device_set(devices)
        return {
            name: self.crypto.wrap_key(key, device.exchange_key)
            for name, device in devices.items()
        }

    def encrypt_content(self, key: bytes, data: bytes, recipient: DeviceSet) -> EncryptedContent:
        """Encrypt ``data`` with ``key`` and wrap the key for every recipient device."""
        if not recipient:
            raise DeviceSetInconsistencyError("Recipient has no devices to encrypt to")
        self._check_device_set(recipient)
        ciphertext = self.crypto.encrypt(data, key)
        return EncryptedContent(key=self.encrypt_keys(recipient, key), content=ciphertext)

    def wrap_message(
        self,
        me: DeviceSet,
        recipient: DeviceSet,
        envelope: Envelope,
        content: Content | Mapping[str, Any],
    ) -> tuple[WrappedMessage, Keys]:
        """Encrypt content to the recipient and put it in an envelope.

        Args:
            me: Snapshot of the sender's devices.
            recipient: Snapshot of the recipient's devices.
            envelope: The envelope carrying the message.
            content: Signed message content.

        Raises:
            MalformedMessageError: If ``content`` is not signed message content.

        Returns:
            ``(message, keys)`` where ``keys`` maps each sender device to the
            wrapped content key. It is returned separately so the sender's
            device names are not part of the message.
        """
        self._check_device_set(me)
        data = _content_bytes(content)
        key = self.crypto.generate_key()
        message = self.encrypt_content(key, data, recipient)
        keys = self.encrypt_keys(me, key)
        logger.debug(
            "Wrapped message for %d recipient and %d sender devices",
            len(message.key),
            len(keys),
        )
        return WrappedMessage(envelope=envelope, message=message), keys

    async def wrap_message_async(
        self,
        me: DeviceSet,
        recipient: DeviceSet,
        envelope: Envelope,
        content: Content | Mapping[str, Any],
    ) -> tuple[WrappedMessage, Keys]:
        """Same as :meth:`wrap_message`, wrapping every device concurrently."""
        if not recipient:
            raise DeviceSetInconsistencyError("Recipient has no devices to encrypt to")
        self._check_device_set(recipient)
        self._check_device_set(me)

        data = _content_bytes(content)
        key = self.crypto.generate_key()
        recipient_names = list(recipient)
        sender_names = list(me)

        ciphertext, *wrapped = await asyncio.gather(
            asyncio.to_thread(self.crypto.encrypt, data, key),
            *(
                asyncio.to_thread(self.crypto.wrap_key, key, device.exchange_key)
                for device in [*recipient.values(), *me.values()]
            ),
        )
        recipient_keys = dict(zip(recipient_names, wrapped[: len(recipient_names)]))
        sender_keys = dict(zip(sender_names, wrapped[len(recipient_names):]))

        message = EncryptedContent(key=recipient_keys, content=ciphertext)
        return WrappedMessage(envelope=envelope, message=message), sender_keys

    # --- Hybrid decryption ----------------------------------------------------------
    def decrypt_message(
        self,
        device: DeviceSecrets,
        message: EncryptedContent | Mapping[str, Any],
        role: DecryptAs,
    ) -> Content:
        """Decrypt message content with the calling device's key.

        Args:
            device: The decrypting device's secrets.
            message: Encrypted content as produced by :meth:`wrap_message`.
            role: ``AsRecipient()`` to use the key map inside the message, or
                ``AsAuthor(keys)`` to use the sender key map from wrap time.

        Callers that must not reveal why decryption failed should catch
        ``(ValueError, InvalidTag)``, which covers every failure listed below.

        Raises:
            KeyNotFoundError: If the consulted key map has no entry for this device.
            MalformedMessageError: If the encrypted content is not well-formed.
            ValueError: If the wrapped key cannot be unwrapped with this device's key.
            cryptography.exceptions.InvalidTag: If the ciphertext fails authentication.
        """
        encrypted = self._as_encrypted_content(message)

        if isinstance(role, AsAuthor):
            key_map = role.keys
        elif isinstance(role, AsRecipient):
            key_map = encrypted.key
        else:
            raise TypeError(f"Unknown decryption role: {role!r}")

        device_name = device.resolve_own_device_name()
        wrapped = key_map.get(device_name)
        if wrapped is None:
            logger.debug("No wrapped key for this device (%s)", type(role).__name__)
            raise KeyNotFoundError()

        key = self.crypto.unwrap_key(wrapped, device.exchange_private_key)
        plaintext = self.crypto.decrypt(encrypted.content, key)
        try:
            return Content.model_validate(parse_canonical(plaintext))
        except (ValidationError, ValueError) as err:
            raise MalformedMessageError(f"Decrypted content is not valid: {err}") from err

    # --- Helpers --------------------------------------------------------------------
    @staticmethod
    def _check_device_set(devices: DeviceSet) -> None:
        for name, device in devices.items():
            if device.name != name:
                raise DeviceSetInconsistencyError(
                    f"Device set entry {name!r} holds device {device.name!r}"
                )

    @staticmethod
    def _as_encrypted_content(
        message: EncryptedContent | Mapping[str, Any],
    ) -> EncryptedContent:
        if isinstance(message, EncryptedContent):
            return message
        if not isinstance(message, Mapping):
            raise MalformedMessageError("Encrypted content must be a mapping")
        try:
            return EncryptedContent.model_validate(message)
        except ValidationError as err:
            raise MalformedMessageError(f"Invalid encrypted content: {err}") from err


def get_envelope_service(suite: CipherSuite | None = None) -> EnvelopeService:
    """Return an envelope service for ``suite`` (the configured one by default)."""
    return EnvelopeService(suite)

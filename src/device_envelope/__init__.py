"""Signed, expiring envelopes carrying content encrypted to every device of an identity."""

from device_envelope.errors import (
    DecryptionError,
    DeviceSetInconsistencyError,
    EnvelopeError,
    KeyNotFoundError,
    MalformedMessageError,
    UnsupportedAlgorithmError,
)
from device_envelope.schemas import Content, EncryptedContent, Envelope, Keys, WrappedMessage
from device_envelope.services import (
    AsAuthor,
    AsRecipient,
    CipherSuite,
    CryptoService,
    Device,
    EnvelopeService,
    Identity,
    Keychain,
    get_envelope_service,
)

__version__ = "0.1.0"

__all__ = [
    "AsAuthor",
    "AsRecipient",
    "CipherSuite",
    "Content",
    "CryptoService",
    "DecryptionError",
    "Device",
    "DeviceSetInconsistencyError",
    "EncryptedContent",
    "Envelope",
    "EnvelopeError",
    "EnvelopeService",
    "Identity",
    "Keychain",
    "Keys",
    "KeyNotFoundError",
    "MalformedMessageError",
    "UnsupportedAlgorithmError",
    "WrappedMessage",
    "get_envelope_service",
]

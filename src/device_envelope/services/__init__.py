# src/device_envelope/services/__init__.py
"""Envelope engine services."""

from .crypto import CipherSuite, CryptoService
from .envelope import AsAuthor, AsRecipient, EnvelopeService, get_envelope_service
from .identity import Device, Identity, Keychain

__all__ = [
    "AsAuthor",
    "AsRecipient",
    "CipherSuite",
    "CryptoService",
    "Device",
    "EnvelopeService",
    "Identity",
    "Keychain",
    "get_envelope_service",
]

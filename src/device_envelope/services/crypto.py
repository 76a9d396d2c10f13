# src/device_envelope/services/crypto.py
"""Cryptographic primitives for the envelope engine.

Content is sealed with AES-GCM under a one-time key; that key is wrapped per
device with RSA-OAEP. Everything that crosses the wire is base64 text.
"""

from __future__ import annotations

import base64
import binascii
import os
from dataclasses import dataclass
from typing import Final

from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from device_envelope.core.settings import Settings, settings
from device_envelope.errors import MalformedMessageError, UnsupportedAlgorithmError

NONCE_BYTES: Final[int] = 12
RSA_PUBLIC_EXPONENT: Final[int] = 65537

SUPPORTED_SYMM_ALGORITHMS: Final[frozenset[str]] = frozenset({"AES-GCM"})
SUPPORTED_SYMM_KEY_LENGTHS: Final[frozenset[int]] = frozenset({128, 192, 256})
SUPPORTED_OAEP_HASHES: Final[dict[str, type[hashes.HashAlgorithm]]] = {
    "sha256": hashes.SHA256,
    "sha384": hashes.SHA384,
    "sha512": hashes.SHA512,
}
MIN_EXCHANGE_KEY_SIZE: Final[int] = 2048


@dataclass(frozen=True)
class CipherSuite:
    """Fixed algorithm/parameter set used for one family of messages.

    A suite is validated on construction, so an engine holding one never
    discovers an unsupported parameter mid-message.
    """

    symm_algorithm: str = "AES-GCM"
    symm_key_length: int = 256
    oaep_hash: str = "sha256"
    exchange_key_size: int = 2048

    def __post_init__(self) -> None:
        if self.symm_algorithm not in SUPPORTED_SYMM_ALGORITHMS:
            raise UnsupportedAlgorithmError(
                f"Unsupported symmetric algorithm: {self.symm_algorithm}"
            )
        if self.symm_key_length not in SUPPORTED_SYMM_KEY_LENGTHS:
            raise UnsupportedAlgorithmError(
                f"Unsupported symmetric key length: {self.symm_key_length}"
            )
        if self.oaep_hash.lower() not in SUPPORTED_OAEP_HASHES:
            raise UnsupportedAlgorithmError(f"Unsupported OAEP hash: {self.oaep_hash}")
        if self.exchange_key_size < MIN_EXCHANGE_KEY_SIZE:
            raise UnsupportedAlgorithmError(
                f"Exchange keys must be at least {MIN_EXCHANGE_KEY_SIZE} bits"
            )

    @classmethod
    def from_settings(cls, source: Settings | None = None) -> CipherSuite:
        """Build a suite from application settings (the global ones by default)."""
        cfg = source or settings
        return cls(
            symm_algorithm=cfg.symm_algorithm,
            symm_key_length=cfg.symm_key_length,
            oaep_hash=cfg.oaep_hash,
            exchange_key_size=cfg.exchange_key_size,
        )

    def oaep_padding(self) -> padding.OAEP:
        """Return the OAEP padding configured for this suite."""
        algorithm = SUPPORTED_OAEP_HASHES[self.oaep_hash.lower()]
        return padding.OAEP(
            mgf=padding.MGF1(algorithm=algorithm()),
            algorithm=algorithm(),
            label=None,
        )


class CryptoService:
    """Service handling the symmetric and key-wrap primitives for one suite."""

    def __init__(self, suite: CipherSuite | None = None) -> None:
        self.suite = suite or CipherSuite.from_settings()

    # --- Encoding -------------------------------------------------------------------
    @staticmethod
    def b64encode(data: bytes) -> str:
        """Encode bytes as standard padded base64 text."""
        return base64.b64encode(data).decode()

    @staticmethod
    def b64decode(data: str) -> bytes:
        """Decode standard base64 text.

        Raises:
            MalformedMessageError: If ``data`` is not valid base64 text.
        """
        if not isinstance(data, str):
            raise MalformedMessageError("Expected base64 text")
        try:
            return base64.b64decode(data, validate=True)
        except (binascii.Error, ValueError) as err:
            raise MalformedMessageError(f"Invalid base64 encoding: {err}") from err

    # --- Symmetric cipher -----------------------------------------------------------
    def generate_key(self) -> bytes:
        """Generate a fresh symmetric content key."""
        return AESGCM.generate_key(bit_length=self.suite.symm_key_length)

    def encrypt(self, data: bytes, key: bytes) -> str:
        """Encrypt ``data`` with AES-GCM.

        Returns:
            Base64 of ``nonce || ciphertext || tag``.
        """
        nonce = os.urandom(NONCE_BYTES)
        ciphertext = AESGCM(key).encrypt(nonce, data, None)
        return self.b64encode(nonce + ciphertext)

    def decrypt(self, ciphertext_b64: str, key: bytes) -> bytes:
        """Decrypt the output of :meth:`encrypt`.

        Raises:
            MalformedMessageError: If the ciphertext is not base64 or too short.
            cryptography.exceptions.InvalidTag: If authentication fails.
        """
        blob = self.b64decode(ciphertext_b64)
        if len(blob) <= NONCE_BYTES:
            raise MalformedMessageError("Ciphertext is too short")
        nonce, ciphertext = blob[:NONCE_BYTES], blob[NONCE_BYTES:]
        return AESGCM(key).decrypt(nonce, ciphertext, None)

    # --- Key wrapping ---------------------------------------------------------------
    def generate_exchange_key(self) -> rsa.RSAPrivateKey:
        """Generate an RSA key pair for a device's key exchange."""
        return rsa.generate_private_key(
            public_exponent=RSA_PUBLIC_EXPONENT,
            key_size=self.suite.exchange_key_size,
        )

    def wrap_key(self, key: bytes, public_key: rsa.RSAPublicKey) -> str:
        """Encrypt a symmetric key to one device's exchange public key."""
        wrapped = public_key.encrypt(key, self.suite.oaep_padding())
        return self.b64encode(wrapped)

    def unwrap_key(self, wrapped_b64: str, private_key: rsa.RSAPrivateKey) -> bytes:
        """Recover a symmetric key wrapped by :meth:`wrap_key`.

        Raises:
            MalformedMessageError: If the wrapped key is not base64.
            ValueError: If OAEP decryption fails (wrong key or tampered data).
        """
        wrapped = self.b64decode(wrapped_b64)
        return private_key.decrypt(wrapped, self.suite.oaep_padding())

    # --- Public key encoding --------------------------------------------------------
    @staticmethod
    def public_key_der(public_key: rsa.RSAPublicKey) -> bytes:
        """Return the SubjectPublicKeyInfo DER bytes of a public key."""
        return public_key.public_bytes(
            serialization.Encoding.DER,
            serialization.PublicFormat.SubjectPublicKeyInfo,
        )

    @staticmethod
    def export_public_key(public_key: rsa.RSAPublicKey) -> str:
        """Return a PEM string for a public key."""
        return public_key.public_bytes(
            serialization.Encoding.PEM,
            serialization.PublicFormat.SubjectPublicKeyInfo,
        ).decode()

    @staticmethod
    def load_public_key(pem: str) -> rsa.RSAPublicKey:
        """Load an RSA public key from PEM text."""
        key = serialization.load_pem_public_key(pem.encode())
        if not isinstance(key, rsa.RSAPublicKey):
            raise ValueError("Exchange keys must be RSA public keys")
        return key

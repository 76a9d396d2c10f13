# src/device_envelope/schemas/envelope.py
"""Envelope and message-related Pydantic schemas."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

# Map of device name to the base64 symmetric key wrapped for that device.
Keys = dict[str, str]


class Envelope(BaseModel):
    """Signed routing certificate addressed to a recipient username.

    The author is only recoverable from the signature metadata; ``recipient``
    is the username the envelope is addressed to.
    """

    seq: int = Field(..., description="Always-increasing sequence number chosen by the author")
    expiration: int = Field(0, description="Unix epoch milliseconds; 0 means it never expires")
    recipient: str = Field(..., description="Username of the recipient")
    author: str = Field(..., description="Url-safe base64 Ed25519 key of the signer")
    signature: str = Field(..., description="Base64 Ed25519 signature")

    model_config = ConfigDict(frozen=True, extra="forbid")

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump()


class Sender(BaseModel):
    """Sender block inside message content."""

    username: str

    model_config = ConfigDict(extra="allow")


class Content(BaseModel):
    """Plaintext message content, signed independently of its envelope."""

    from_: Sender = Field(..., alias="from")
    text: str
    mentions: list[str] | None = None
    author: str
    signature: str

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    def to_wire(self) -> dict[str, Any]:
        """Return the signed mapping exactly as it was signed.

        Only fields present in the source mapping are emitted, so explicit
        ``null`` values survive and absent optional fields stay absent.
        """
        return self.model_dump(by_alias=True, exclude_unset=True)


class EncryptedContent(BaseModel):
    """Ciphertext of the canonical content plus the key wrapped per recipient device."""

    key: Keys = Field(default_factory=dict, description="Device name to wrapped key")
    content: str = Field(..., description="Base64 AES-GCM ciphertext of the content")

    model_config = ConfigDict(extra="forbid")

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump()


class WrappedMessage(BaseModel):
    """An envelope travelling with the encrypted content it carries."""

    envelope: Envelope
    message: EncryptedContent

    def to_wire(self) -> dict[str, Any]:
        return {"envelope": self.envelope.to_wire(), "message": self.message.to_wire()}

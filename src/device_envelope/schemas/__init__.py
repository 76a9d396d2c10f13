"""Pydantic schemas for envelopes and encrypted message content."""

from .envelope import Content, EncryptedContent, Envelope, Keys, Sender, WrappedMessage

__all__ = [
    "Content",
    "EncryptedContent",
    "Envelope",
    "Keys",
    "Sender",
    "WrappedMessage",
]

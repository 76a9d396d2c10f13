"""Envelope engine settings and configuration.

This module defines the process-wide defaults for the envelope engine.
Settings are loaded from environment variables with sensible defaults.
"""

from __future__ import annotations

import logging

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Envelope engine settings loaded from environment variables.

    Settings can be overridden via environment variables or .env files. The
    cryptographic defaults are only read when a cipher suite is built from
    them; an engine may be handed a different suite explicitly.
    """

    # Symmetric content cipher
    symm_algorithm: str = Field(default="AES-GCM", alias="ENVELOPE_SYMM_ALGORITHM")
    symm_key_length: int = Field(default=256, alias="ENVELOPE_SYMM_KEY_LENGTH")

    # Asymmetric key wrapping (per-device exchange keys)
    exchange_key_size: int = Field(default=2048, alias="ENVELOPE_EXCHANGE_KEY_SIZE")
    oaep_hash: str = Field(default="sha256", alias="ENVELOPE_OAEP_HASH")

    # Identity directory naming
    name_digest_length: int = Field(default=32, alias="ENVELOPE_NAME_DIGEST_LENGTH")

    log_level: str = Field(default="WARNING", alias="ENVELOPE_LOG_LEVEL")

    model_config = SettingsConfigDict(
        env_file=".env",
        validate_assignment=True,
        extra="ignore",
    )


settings = Settings()


def configure_logging(level: str | None = None) -> logging.Logger:
    """Apply the configured log level to the package logger.

    Args:
        level: Optional level name overriding ``settings.log_level``.

    Returns:
        The ``device_envelope`` logger.
    """
    logger = logging.getLogger("device_envelope")
    logger.setLevel((level or settings.log_level).upper())
    return logger

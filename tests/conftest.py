# tests/conftest.py
from __future__ import annotations

from collections.abc import Iterator

import pytest

from device_envelope.schemas.envelope import Content, Envelope
from device_envelope.services.crypto import CipherSuite, CryptoService
from device_envelope.services.envelope import EnvelopeService
from device_envelope.services.identity import Keychain

_SUITE = CipherSuite()
_CRYPTO = CryptoService(_SUITE)


@pytest.fixture(scope="session")
def suite() -> CipherSuite:
    return _SUITE


@pytest.fixture(scope="session")
def crypto() -> CryptoService:
    return _CRYPTO


@pytest.fixture()
def service() -> EnvelopeService:
    return EnvelopeService(crypto=_CRYPTO)


@pytest.fixture(scope="session")
def alice() -> Keychain:
    """Recipient identity with a single phone device."""
    return Keychain.create("alice", "phone", crypto=_CRYPTO)


@pytest.fixture(scope="session")
def bob() -> Keychain:
    """Sender identity with a single phone device."""
    return Keychain.create("bob", "phone", crypto=_CRYPTO)


@pytest.fixture(scope="session")
def carol() -> Keychain:
    """Third identity that is party to nothing."""
    return Keychain.create("carol", "laptop", crypto=_CRYPTO)


@pytest.fixture()
def alices_envelope(alice: Keychain) -> Envelope:
    return EnvelopeService(crypto=_CRYPTO).create(
        alice.signing_key, username=alice.username, seq=1
    )


@pytest.fixture()
def hello_from_bob(bob: Keychain) -> Content:
    return EnvelopeService(crypto=_CRYPTO).create_content(
        bob.signing_key, username=bob.username, text="hello"
    )


@pytest.fixture()
def two_device_alice() -> Iterator[tuple[Keychain, Keychain]]:
    """Alice with a phone and a linked laptop."""
    phone = Keychain.create("alice", "phone", crypto=_CRYPTO)
    laptop = Keychain.link(phone.identity, "laptop", crypto=_CRYPTO)
    yield phone, laptop

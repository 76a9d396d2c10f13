# tests/services/test_identity.py
"""Tests for the identity and device directory."""

from __future__ import annotations

import pytest

from device_envelope.errors import DeviceSetInconsistencyError
from device_envelope.services.identity import Device, Identity, Keychain, device_name_for
from device_envelope.utils.hash import short_name

NAME_LENGTH = 32


def test_create_keychain(alice: Keychain) -> None:
    assert alice.identity.human_name == "alice"
    assert len(alice.username) == NAME_LENGTH
    assert alice.username == short_name(alice.signing_key.verify_key.encode())
    assert list(alice.devices) == [alice.resolve_own_device_name()]


def test_device_name_is_deterministic(alice: Keychain) -> None:
    public_key = alice.exchange_private_key.public_key()
    assert device_name_for(public_key) == alice.resolve_own_device_name()
    assert alice.resolve_own_device_name() == alice.resolve_own_device_name()


def test_devices_returns_snapshot(alice: Keychain) -> None:
    snapshot = alice.identity.devices
    snapshot.clear()
    assert alice.identity.devices


def test_link_adds_device(two_device_alice) -> None:
    phone, laptop = two_device_alice

    assert phone.identity is laptop.identity
    assert set(phone.devices) == {
        phone.resolve_own_device_name(),
        laptop.resolve_own_device_name(),
    }
    assert phone.devices[laptop.resolve_own_device_name()].human_name == "laptop"


def test_add_device_rejects_name_collision(alice: Keychain, carol: Keychain) -> None:
    identity = Identity("someone", "someone", alice.devices)
    carols_key = carol.exchange_private_key.public_key()
    forged = Device(name=alice.resolve_own_device_name(), human_name="x", exchange_key=carols_key)

    with pytest.raises(DeviceSetInconsistencyError):
        identity.add_device(forged)


def test_add_same_device_twice_is_idempotent(alice: Keychain) -> None:
    identity = Identity("someone", "someone", alice.devices)
    identity.add_device(alice.devices[alice.resolve_own_device_name()])
    assert len(identity.devices) == 1


def test_keychain_rejects_mismatched_device_name(alice: Keychain, carol: Keychain) -> None:
    with pytest.raises(DeviceSetInconsistencyError):
        Keychain(
            alice.identity,
            alice.resolve_own_device_name(),
            carol.signing_key,
            carol.exchange_private_key,
        )


def test_identity_dict_round_trip(two_device_alice) -> None:
    phone, _ = two_device_alice
    loaded = Identity.from_dict(phone.identity.to_dict())

    assert loaded.username == phone.username
    assert set(loaded.devices) == set(phone.devices)
    assert set(loaded.exchange_keys()) == set(phone.devices)

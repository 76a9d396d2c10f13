"""Identity and device directory for the envelope engine.

An identity is a username plus the devices registered under it. Each device
publishes an RSA exchange key that message keys are wrapped to. The local
:class:`Keychain` holds the secrets for exactly one of those devices.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from cryptography.hazmat.primitives.asymmetric import rsa
from nacl.signing import SigningKey

from device_envelope.errors import DeviceSetInconsistencyError
from device_envelope.services.crypto import CryptoService
from device_envelope.utils.hash import short_name

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Device:
    """One registered key pair belonging to an identity."""

    name: str
    human_name: str
    exchange_key: rsa.RSAPublicKey

    @classmethod
    def from_exchange_key(cls, human_name: str, exchange_key: rsa.RSAPublicKey) -> Device:
        """Build a device whose name is derived from its exchange key."""
        return cls(
            name=device_name_for(exchange_key),
            human_name=human_name,
            exchange_key=exchange_key,
        )

    def to_dict(self) -> dict[str, str]:
        return {
            "name": self.name,
            "humanName": self.human_name,
            "exchangeKey": CryptoService.export_public_key(self.exchange_key),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Device:
        return cls(
            name=data["name"],
            human_name=data["humanName"],
            exchange_key=CryptoService.load_public_key(data["exchangeKey"]),
        )


DeviceSet = Mapping[str, Device]


def device_name_for(exchange_key: rsa.RSAPublicKey) -> str:
    """Return the deterministic device name for an exchange public key."""
    return short_name(CryptoService.public_key_der(exchange_key))


class Identity:
    """A username and the devices registered under it.

    ``devices`` always returns a fresh snapshot, so code that wraps keys to a
    device set is unaffected by devices added afterwards.
    """

    def __init__(
        self,
        username: str,
        human_name: str,
        devices: Mapping[str, Device] | None = None,
    ) -> None:
        self.username = username
        self.human_name = human_name
        self._devices: dict[str, Device] = {}
        for device in (devices or {}).values():
            self.add_device(device)

    def __repr__(self) -> str:
        return f"Identity(username={self.username!r}, devices={sorted(self._devices)!r})"

    @property
    def devices(self) -> dict[str, Device]:
        """Snapshot of ``{device name: device}``."""
        return dict(self._devices)

    def add_device(self, device: Device) -> None:
        """Register a device.

        Raises:
            DeviceSetInconsistencyError: If another key is already registered
                under the same device name.
        """
        existing = self._devices.get(device.name)
        if existing is not None and existing.exchange_key.public_numbers() != (
            device.exchange_key.public_numbers()
        ):
            raise DeviceSetInconsistencyError(
                f"Device name {device.name!r} is already bound to a different key"
            )
        self._devices[device.name] = device
        logger.debug("Registered device %s for %s", device.name, self.username)

    def exchange_keys(self) -> dict[str, rsa.RSAPublicKey]:
        """Return ``{device name: exchange public key}`` for every device."""
        return {name: device.exchange_key for name, device in self._devices.items()}

    def to_dict(self) -> dict[str, Any]:
        return {
            "username": self.username,
            "humanName": self.human_name,
            "devices": {name: device.to_dict() for name, device in self._devices.items()},
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Identity:
        devices = {
            name: Device.from_dict(entry) for name, entry in data.get("devices", {}).items()
        }
        return cls(data["username"], data["humanName"], devices)


class Keychain:
    """Secrets for the local device of an identity."""

    def __init__(
        self,
        identity: Identity,
        device_name: str,
        signing_key: SigningKey,
        exchange_private_key: rsa.RSAPrivateKey,
    ) -> None:
        if device_name_for(exchange_private_key.public_key()) != device_name:
            raise DeviceSetInconsistencyError(
                "Device name does not match the local exchange key"
            )
        self.identity = identity
        self._device_name = device_name
        self.signing_key = signing_key
        self.exchange_private_key = exchange_private_key

    @property
    def username(self) -> str:
        return self.identity.username

    @property
    def devices(self) -> dict[str, Device]:
        return self.identity.devices

    def resolve_own_device_name(self) -> str:
        """Return the name of the device these secrets belong to."""
        return self._device_name

    @classmethod
    def create(
        cls,
        human_name: str,
        device_label: str,
        crypto: CryptoService | None = None,
    ) -> Keychain:
        """Create a new identity with a single local device.

        The username is derived from the first device's signing key.
        """
        crypto = crypto or CryptoService()
        signing_key = SigningKey.generate()
        exchange_key = crypto.generate_exchange_key()
        device = Device.from_exchange_key(device_label, exchange_key.public_key())

        identity = Identity(
            username=short_name(signing_key.verify_key.encode()),
            human_name=human_name,
            devices={device.name: device},
        )
        logger.debug("Created identity %s", identity.username)
        return cls(identity, device.name, signing_key, exchange_key)

    @classmethod
    def link(
        cls,
        identity: Identity,
        device_label: str,
        crypto: CryptoService | None = None,
    ) -> Keychain:
        """Enrol a new local device under an existing identity."""
        crypto = crypto or CryptoService()
        exchange_key = crypto.generate_exchange_key()
        device = Device.from_exchange_key(device_label, exchange_key.public_key())
        identity.add_device(device)
        return cls(identity, device.name, SigningKey.generate(), exchange_key)

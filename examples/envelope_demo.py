#!/usr/bin/env python3
"""Demonstration of sending an envelope between two identities.

This script shows how to:
1. Create identities for a recipient (two devices) and a sender
2. Create and verify an envelope addressed to the recipient
3. Wrap signed content for every device, then open it on each side

Usage:
    python examples/envelope_demo.py
"""

import json
import sys

# Add the src directory to the path so we can import device_envelope modules
sys.path.insert(0, "src")

from device_envelope import (
    AsAuthor,
    AsRecipient,
    EnvelopeService,
    KeyNotFoundError,
    Keychain,
)


def demonstrate_envelope_workflow() -> None:
    """Demonstrate the complete envelope workflow."""
    print("✉️  Envelope Demonstration")
    print("=" * 50)

    service = EnvelopeService()

    alice_phone = Keychain.create("alice", "phone", crypto=service.crypto)
    alice_laptop = Keychain.link(alice_phone.identity, "laptop", crypto=service.crypto)
    bob = Keychain.create("bob", "phone", crypto=service.crypto)
    carol = Keychain.create("carol", "laptop", crypto=service.crypto)

    print(f"Alice: {alice_phone.username} ({len(alice_phone.devices)} devices)")
    print(f"Bob:   {bob.username} ({len(bob.devices)} devices)")
    print()

    envelope = service.create(alice_phone.signing_key, username=alice_phone.username, seq=1)
    print("Envelope:")
    print(json.dumps(envelope.to_wire(), indent=2))
    print(f"Valid: {service.verify(envelope)}")
    print(f"Valid after seq 1: {service.verify(envelope, 1)}")
    print()

    content = service.create_content(bob.signing_key, username=bob.username, text="hello")
    wrapped, keys = service.wrap_message(bob.devices, alice_phone.devices, envelope, content)
    print(f"Recipient devices in message: {sorted(wrapped.message.key)}")
    print(f"Sender devices kept aside:    {sorted(keys)}")
    print()

    for label, device in (("alice/phone", alice_phone), ("alice/laptop", alice_laptop)):
        decrypted = service.decrypt_message(device, wrapped.message, AsRecipient())
        print(f"{label} reads: {decrypted.text!r}")

    decrypted = service.decrypt_message(bob, wrapped.message, AsAuthor(keys))
    print(f"bob re-reads:  {decrypted.text!r}")

    try:
        service.decrypt_message(carol, wrapped.message, AsRecipient())
    except KeyNotFoundError as err:
        print(f"carol cannot read it: {err}")


if __name__ == "__main__":
    demonstrate_envelope_workflow()

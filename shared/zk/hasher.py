"""
Commitment Hashing
==================

Field-element hashing used to build claim commitments.

The core treats the hash as an opaque capability: anything satisfying
`Hasher` (Poseidon bindings, MiMC, ...) can be plugged in, as long as the
same function is used by the claim circuit. `Sha256FieldHasher` is the
reference implementation used by tooling and tests.

Version: 0.1.0
"""

import hashlib
from collections.abc import Sequence
from typing import Protocol


# BN254 scalar field order
FIELD_ORDER = 21888242871839275222246405745257275088548364400416034343698204186575808495617

FIELD_ELEMENT_BYTES = 32


class Hasher(Protocol):
    """Collision-resistant hash over field elements."""

    def hash(self, elements: Sequence[int]) -> int:
        """Hash a sequence of field elements to a single field element."""
        ...


def is_field_element(value: object) -> bool:
    """Check that a value is an integer in [0, FIELD_ORDER)."""
    return isinstance(value, int) and not isinstance(value, bool) and 0 <= value < FIELD_ORDER


def bytes_to_field(data: bytes) -> int:
    """
    Map arbitrary bytes to a field element.

    Uses SHA-256 and reduces mod field order.
    """
    digest = hashlib.sha256(data).digest()
    return int.from_bytes(digest, "big") % FIELD_ORDER


def identity_to_field(identity: str) -> int:
    """Map a claimant identity (address, user id) to a field element."""
    return bytes_to_field(identity.strip().lower().encode())


def secret_to_field(secret: str) -> int:
    """Map a claim secret ("password") to a field element."""
    return bytes_to_field(secret.encode())


class Sha256FieldHasher:
    """SHA-256 over fixed-width big-endian encodings, reduced mod field order."""

    def hash(self, elements: Sequence[int]) -> int:
        if not elements:
            raise ValueError("Cannot hash an empty sequence")

        buf = bytearray()
        for element in elements:
            if not is_field_element(element):
                raise ValueError(f"Not a field element: {element!r}")
            buf += element.to_bytes(FIELD_ELEMENT_BYTES, "big")
        return bytes_to_field(bytes(buf))


def claim_leaf(hasher: Hasher, claimant: str, secret: str) -> int:
    """
    Derive the commitment leaf for one eligible claim record.

    The leaf binds the claimant identity and the shared secret; the packet
    binding is carried by the proof's public inputs and the nullifier key.
    """
    return hasher.hash([identity_to_field(claimant), secret_to_field(secret)])


def claim_public_inputs(packet_id: int, leaf: int, claimant: str) -> list[int]:
    """Public input prefix every claim proof must expose."""
    return [packet_id, leaf, identity_to_field(claimant)]

"""
Mock ZK Backend
===============

Deterministic stand-in for a proving system, for development and testing.

A mock proof commits to its public inputs: `pi_a[0]` is the hash of the
signals. The mock verifier accepts a proof iff that commitment matches the
public inputs it is checked against, so replaying a proof with different
inputs (another packet, another claimant) is rejected just as a real
verifier would reject it.

Version: 0.1.0
"""

from collections.abc import Sequence

from shared.logging import get_logger
from shared.zk.hasher import Hasher, Sha256FieldHasher, is_field_element
from shared.zk.models import ZKProof


logger = get_logger(__name__)

MOCK_PROTOCOL = "mock"


def _commitment(hasher: Hasher, public_inputs: Sequence[int]) -> int:
    return hasher.hash(list(public_inputs))


class MockProver:
    """Produces mock proofs bound to a list of public inputs."""

    def __init__(self, hasher: Hasher | None = None) -> None:
        self.hasher = hasher or Sha256FieldHasher()

    def prove(self, public_inputs: Sequence[int]) -> ZKProof:
        commitment = _commitment(self.hasher, public_inputs)
        return ZKProof(
            pi_a=[str(commitment), "0", "1"],
            pi_b=[["0", "0"], ["0", "0"], ["1", "0"]],
            pi_c=["0", "0", "1"],
            protocol=MOCK_PROTOCOL,
        )


class MockVerifier:
    """
    In-memory verifier for mock proofs.

    Set `reject_all` to simulate a verifier that refuses every proof.
    """

    def __init__(self, hasher: Hasher | None = None) -> None:
        self.hasher = hasher or Sha256FieldHasher()
        self.reject_all = False
        self.calls = 0

    async def verify(self, proof: ZKProof, public_inputs: Sequence[int]) -> bool:
        self.calls += 1

        if self.reject_all or proof.protocol != MOCK_PROTOCOL:
            return False
        if not public_inputs or not all(is_field_element(v) for v in public_inputs):
            return False

        expected = str(_commitment(self.hasher, public_inputs))
        valid = bool(proof.pi_a) and proof.pi_a[0] == expected

        logger.debug("mock_proof_verified", valid=valid, signals=len(public_inputs))
        return valid

    def clear(self) -> None:
        """Reset counters and flags (for testing)."""
        self.reject_all = False
        self.calls = 0

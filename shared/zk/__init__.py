"""
ZK-SNARK Integration Module
===========================

Commitment hashing, Merkle membership and proof verification for
packet claims.

Usage:
    from shared.zk import MerkleTree, claim_leaf, get_verifier

    leaves = [claim_leaf(hasher, c, secret) for c in claimants]
    tree = MerkleTree(leaves)

    is_valid = await get_verifier().verify(proof, public_inputs)

Version: 1.0.0
"""

from shared.zk.commitment import (
    ClaimBundle,
    Commitment,
    EligibleClaimant,
    build_commitment,
)
from shared.zk.hasher import (
    FIELD_ORDER,
    Hasher,
    Sha256FieldHasher,
    claim_leaf,
    claim_public_inputs,
    identity_to_field,
    is_field_element,
    secret_to_field,
)
from shared.zk.merkle import (
    MerkleMembershipChecker,
    MerkleTree,
    tree_depth_for,
)
from shared.zk.mock import MockProver, MockVerifier
from shared.zk.models import (
    ProofMetadata,
    ProofWithMetadata,
    PublicSignals,
    VerificationResult,
    ZKProof,
)
from shared.zk.prover import ClaimInput, ClaimProver
from shared.zk.verifier import (
    ProofVerifier,
    SnarkjsVerifier,
    get_verifier,
    reset_verifier,
    set_verifier,
)


__all__ = [
    # Hashing
    "FIELD_ORDER",
    "Hasher",
    "Sha256FieldHasher",
    "claim_leaf",
    "claim_public_inputs",
    "identity_to_field",
    "is_field_element",
    "secret_to_field",
    # Commitments
    "ClaimBundle",
    "Commitment",
    "EligibleClaimant",
    "build_commitment",
    # Merkle
    "MerkleMembershipChecker",
    "MerkleTree",
    "tree_depth_for",
    # Prover
    "ClaimProver",
    "ClaimInput",
    "MockProver",
    # Verifier
    "ProofVerifier",
    "SnarkjsVerifier",
    "MockVerifier",
    "get_verifier",
    "set_verifier",
    "reset_verifier",
    # Models
    "ZKProof",
    "PublicSignals",
    "ProofMetadata",
    "ProofWithMetadata",
    "VerificationResult",
]

"""
Commitment Builder
==================

Creator-side helper: derives claim leaves from (claimant, secret) pairs,
builds the Merkle commitment and hands out each claimant's proof path.

Secrets never leave this function's inputs; the bundle only carries
leaves, paths and (optionally) public signals.

Version: 0.1.0
"""

from collections.abc import Sequence
from typing import Any

from pydantic import BaseModel, Field

from shared.zk.hasher import Hasher, Sha256FieldHasher, claim_leaf, claim_public_inputs
from shared.zk.merkle import MerkleTree
from shared.zk.mock import MockProver


class EligibleClaimant(BaseModel):
    """One eligible claim record before hashing."""

    claimant: str = Field(..., min_length=1)
    secret: str = Field(..., min_length=1)


class ClaimBundle(BaseModel):
    """What a single claimant needs to submit a claim."""

    claimant: str
    index: int
    leaf: str
    merkle_proof: list[str]
    public_signals: list[str] | None = None
    proof: dict[str, Any] | None = None


class Commitment(BaseModel):
    """Root and per-claimant bundles for one packet."""

    commitment_root: str
    tree_depth: int
    count: int
    claims: list[ClaimBundle]


def build_commitment(
    entries: Sequence[EligibleClaimant],
    hasher: Hasher | None = None,
    packet_id: int | None = None,
    mock_proofs: bool = False,
) -> Commitment:
    """
    Build the commitment for a list of eligible claimants.

    Args:
        entries: Eligible (claimant, secret) records
        hasher: Commitment hash (default SHA-256 field hasher)
        packet_id: If given, include each claimant's public signals
        mock_proofs: Also attach mock proofs (requires packet_id)

    Raises:
        ValueError: No entries, duplicate claim records, or mock proofs
            requested without a packet id
    """
    if not entries:
        raise ValueError("At least one eligible claimant is required")
    if mock_proofs and packet_id is None:
        raise ValueError("Mock proofs need a packet id")

    hasher = hasher or Sha256FieldHasher()
    leaves = [claim_leaf(hasher, e.claimant, e.secret) for e in entries]
    if len(set(leaves)) != len(leaves):
        raise ValueError("Duplicate claim records")

    tree = MerkleTree(leaves, hasher)
    prover = MockProver(hasher) if mock_proofs else None

    claims = []
    for index, (entry, leaf) in enumerate(zip(entries, leaves)):
        bundle = ClaimBundle(
            claimant=entry.claimant,
            index=index,
            leaf=str(leaf),
            merkle_proof=[str(s) for s in tree.proof(index)],
        )
        if packet_id is not None:
            inputs = claim_public_inputs(packet_id, leaf, entry.claimant)
            bundle.public_signals = [str(v) for v in inputs]
            if prover is not None:
                bundle.proof = prover.prove(inputs).model_dump()
        claims.append(bundle)

    return Commitment(
        commitment_root=str(tree.root),
        tree_depth=tree.depth,
        count=len(leaves),
        claims=claims,
    )

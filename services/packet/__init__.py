"""
Private Red Packet Service.

Pooled value split among a fixed number of claimants, each eligible
record redeemable once. Claimants prove membership of a committed leaf
and knowledge of its secret with a zero-knowledge proof.

Key Features:
- FIXED and RANDOM split policies with value conservation
- Merkle membership and proof verification per claim
- Nullifier ledger against replayed claims
- Creator refunds after expiry
"""

"""
ZK-SNARK Data Models
====================

Pydantic models for claim proof data.

Version: 1.0.0
"""

import json
from datetime import UTC, datetime

from pydantic import BaseModel, Field, field_validator


class ZKProof(BaseModel):
    """
    A zero-knowledge proof.

    Compatible with snarkjs Groth16 proof format.
    """

    # Proof points (G1 and G2 elements)
    pi_a: list[str] = Field(..., description="Proof point A (G1)")
    pi_b: list[list[str]] = Field(..., description="Proof point B (G2)")
    pi_c: list[str] = Field(..., description="Proof point C (G1)")

    # Protocol info
    protocol: str = Field(default="groth16")
    curve: str = Field(default="bn128")

    def to_calldata(self) -> list[int]:
        """Convert to Solidity calldata format (8 uint256)."""
        return [
            int(self.pi_a[0]),
            int(self.pi_a[1]),
            int(self.pi_b[0][0]),
            int(self.pi_b[0][1]),
            int(self.pi_b[1][0]),
            int(self.pi_b[1][1]),
            int(self.pi_c[0]),
            int(self.pi_c[1]),
        ]

    def to_hex(self) -> str:
        """Convert to hex string for storage."""
        return json.dumps(self.model_dump()).encode().hex()

    @classmethod
    def from_hex(cls, hex_str: str) -> "ZKProof":
        """Create from hex string."""
        data = json.loads(bytes.fromhex(hex_str).decode())
        return cls(**data)


class PublicSignals(BaseModel):
    """
    Public inputs of a claim proof.

    Layout: [packet_id, leaf, claimant_field, ...circuit-specific signals]
    """

    signals: list[str] = Field(..., description="Public signals as decimal strings")

    @field_validator("signals")
    @classmethod
    def signals_must_be_decimal(cls, v: list[str]) -> list[str]:
        for signal in v:
            if not signal.isdigit():
                raise ValueError(f"Public signal is not a decimal string: {signal!r}")
        return v

    @classmethod
    def from_ints(cls, values: list[int]) -> "PublicSignals":
        return cls(signals=[str(v) for v in values])

    def to_int_list(self) -> list[int]:
        """Convert to list of integers."""
        return [int(s) for s in self.signals]


class ProofMetadata(BaseModel):
    """Metadata about a generated proof."""

    circuit_name: str
    generated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    proving_time_ms: int = Field(..., ge=0)
    packet_id: int
    leaf: str


class ProofWithMetadata(BaseModel):
    """Complete proof with public signals and metadata."""

    proof: ZKProof
    public_signals: PublicSignals
    metadata: ProofMetadata


class VerificationResult(BaseModel):
    """Result of proof verification."""

    valid: bool
    verified_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    verification_time_ms: int = Field(..., ge=0)

    # Error info
    error: str | None = None

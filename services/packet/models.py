"""
Packet Models
=============

Packet records, claim receipts and operation results.

Version: 0.1.0
"""

from dataclasses import dataclass
from enum import Enum

from pydantic import BaseModel, Field, model_validator


class SplitPolicy(str, Enum):
    """How a packet's value is divided among claimants."""

    FIXED = "fixed"
    RANDOM = "random"


class PacketStatus(str, Enum):
    """Packet lifecycle states. FINISHED and EXPIRED are terminal."""

    ACTIVE = "active"
    FINISHED = "finished"
    EXPIRED = "expired"


class ConsumeResult(str, Enum):
    """Outcome of a nullifier check-and-set."""

    CONSUMED = "consumed"
    ALREADY_CONSUMED = "already_consumed"


class ClaimReceipt(BaseModel):
    """One redeemed slot. Claimant identity is deliberately not recorded."""

    sequence: int = Field(..., ge=1)
    leaf: int = Field(..., ge=0)
    amount: int = Field(..., gt=0)
    claimed_at: int


class Packet(BaseModel):
    """A pooled value distributed to a fixed number of claimants."""

    packet_id: int = Field(..., ge=1)
    creator: str = Field(..., min_length=1)
    policy: SplitPolicy
    status: PacketStatus = PacketStatus.ACTIVE

    total_amount: int = Field(..., gt=0)
    remaining_amount: int = Field(..., ge=0)
    count: int = Field(..., ge=1)
    remaining_count: int = Field(..., ge=0)

    commitment_root: int = Field(..., ge=0)
    tree_depth: int = Field(..., ge=0)

    created_at: int
    expires_at: int

    claims: list[ClaimReceipt] = Field(default_factory=list)

    # Bumped on every committed change; stores reject stale writes
    version: int = Field(default=0, ge=0)

    @model_validator(mode="after")
    def check_invariants(self) -> "Packet":
        if self.remaining_amount > self.total_amount:
            raise ValueError("remaining_amount exceeds total_amount")
        if self.remaining_count > self.count:
            raise ValueError("remaining_count exceeds count")
        if (self.remaining_count == 0) != (self.status == PacketStatus.FINISHED):
            raise ValueError("remaining_count == 0 must coincide with FINISHED")
        if self.expires_at <= self.created_at:
            raise ValueError("expires_at must be after created_at")
        return self

    @property
    def claimed_amount(self) -> int:
        return self.total_amount - self.remaining_amount

    def is_active(self) -> bool:
        return self.status == PacketStatus.ACTIVE

    def is_expired_at(self, now: int) -> bool:
        return now >= self.expires_at


@dataclass
class ClaimResult:
    """Result of a successful claim."""

    packet_id: int
    amount: int
    remaining_amount: int
    remaining_count: int
    status: PacketStatus
    tx_hash: str | None = None


@dataclass
class RefundResult:
    """Result of a successful refund."""

    packet_id: int
    amount: int
    status: PacketStatus
    tx_hash: str | None = None

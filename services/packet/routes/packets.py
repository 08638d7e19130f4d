"""
Packet Routes
=============

Open, claim, refund and inspect red packets.

Field elements (roots, leaves, proof paths, public signals) travel as
decimal strings, the same encoding snarkjs uses for public signals.
Packet rejections propagate as `PacketError` and are rendered by the
application's exception handler.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Path, Query, status
from pydantic import BaseModel, Field

from services.packet.dependencies import get_ledger
from services.packet.ledger import PacketLedger
from services.packet.models import Packet, PacketStatus, SplitPolicy
from shared.auth import User, get_current_user, get_optional_user
from shared.logging import get_logger
from shared.zk import ZKProof


logger = get_logger(__name__)
router = APIRouter()

FIELD_PATTERN = r"^[0-9]{1,78}$"

FieldElement = Annotated[str, Field(pattern=FIELD_PATTERN)]


# ============================================================================
# Request/Response Models
# ============================================================================


class OpenPacketRequest(BaseModel):
    """Request to open a packet. The caller becomes its creator."""

    policy: SplitPolicy
    count: int = Field(..., description="Number of claim slots")
    total_amount: int = Field(..., description="Pooled value in the smallest unit")
    commitment_root: FieldElement = Field(..., description="Merkle root of claim leaves")
    duration: int = Field(..., description="Validity window in seconds")
    tree_depth: int | None = Field(
        default=None,
        description=(
            "Merkle depth of the commitment. Defaults to the depth of a tree over "
            "`count` leaves; send the builder's depth whenever more claimants are "
            "eligible than there are slots, or every claim fails membership"
        ),
    )

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "policy": "random",
                    "count": 5,
                    "total_amount": 1000,
                    "commitment_root": "1234567890",
                    "duration": 86400,
                }
            ]
        }
    }


class ClaimRequest(BaseModel):
    """Claim one slot. The caller is the claimant and payout recipient."""

    leaf: FieldElement
    merkle_proof: list[FieldElement] = Field(default_factory=list)
    proof: ZKProof
    public_signals: list[FieldElement] = Field(..., min_length=1)


class ClaimReceiptResponse(BaseModel):
    sequence: int
    leaf: str
    amount: int
    claimed_at: int


class PacketResponse(BaseModel):
    """Public view of a packet."""

    packet_id: int
    creator: str
    policy: SplitPolicy
    status: PacketStatus
    total_amount: int
    remaining_amount: int
    claimed_amount: int
    count: int
    remaining_count: int
    commitment_root: str
    tree_depth: int
    created_at: int
    expires_at: int
    claims: list[ClaimReceiptResponse] = Field(default_factory=list)

    @classmethod
    def from_packet(cls, packet: Packet) -> "PacketResponse":
        return cls(
            packet_id=packet.packet_id,
            creator=packet.creator,
            policy=packet.policy,
            status=packet.status,
            total_amount=packet.total_amount,
            remaining_amount=packet.remaining_amount,
            claimed_amount=packet.claimed_amount,
            count=packet.count,
            remaining_count=packet.remaining_count,
            commitment_root=str(packet.commitment_root),
            tree_depth=packet.tree_depth,
            created_at=packet.created_at,
            expires_at=packet.expires_at,
            claims=[
                ClaimReceiptResponse(
                    sequence=c.sequence,
                    leaf=str(c.leaf),
                    amount=c.amount,
                    claimed_at=c.claimed_at,
                )
                for c in packet.claims
            ],
        )


class PacketListResponse(BaseModel):
    packets: list[PacketResponse]
    total: int


class ClaimResponse(BaseModel):
    success: bool = True
    packet_id: int
    amount: int
    remaining_amount: int
    remaining_count: int
    status: PacketStatus
    tx_hash: str | None = None


class RefundResponse(BaseModel):
    success: bool = True
    packet_id: int
    amount: int
    status: PacketStatus
    tx_hash: str | None = None


class NullifierStatusResponse(BaseModel):
    packet_id: int
    leaf: str
    claimed: bool


LedgerDep = Annotated[PacketLedger, Depends(get_ledger)]
UserDep = Annotated[User, Depends(get_current_user)]


# ============================================================================
# Endpoints
# ============================================================================


@router.post("", response_model=PacketResponse, status_code=status.HTTP_201_CREATED)
async def open_packet(
    request: OpenPacketRequest,
    user: UserDep,
    ledger: LedgerDep,
) -> PacketResponse:
    """
    Open a packet.

    The commitment root binds the eligible claim leaves; creators build it
    off-line (see scripts/build_commitment.py) and hand each claimant their
    secret and proof path out of band. Send the builder's `tree_depth`
    unless exactly `count` claimants are eligible.
    """
    packet = await ledger.open(
        creator=user.id,
        policy=request.policy,
        count=request.count,
        total_amount=request.total_amount,
        commitment_root=int(request.commitment_root),
        duration=request.duration,
        tree_depth=request.tree_depth,
    )
    return PacketResponse.from_packet(packet)


@router.get("", response_model=PacketListResponse)
async def list_packets(
    ledger: LedgerDep,
    user: Annotated[User | None, Depends(get_optional_user)],
    status_filter: Annotated[PacketStatus | None, Query(alias="status")] = None,
    mine: bool = False,
) -> PacketListResponse:
    """List packets, optionally only those opened by the caller."""
    if mine and user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required to list own packets",
            headers={"WWW-Authenticate": "Bearer"},
        )

    packets = await ledger.list_packets(
        creator=user.id if mine and user else None,
        status=status_filter,
    )
    return PacketListResponse(
        packets=[PacketResponse.from_packet(p) for p in packets],
        total=len(packets),
    )


@router.get("/refundable", response_model=PacketListResponse)
async def list_refundable(user: UserDep, ledger: LedgerDep) -> PacketListResponse:
    """Caller's packets that have expired with value left to refund."""
    packets = await ledger.refundable(creator=user.id)
    return PacketListResponse(
        packets=[PacketResponse.from_packet(p) for p in packets],
        total=len(packets),
    )


@router.get("/{packet_id}", response_model=PacketResponse)
async def get_packet(
    packet_id: Annotated[int, Path(ge=1)],
    ledger: LedgerDep,
) -> PacketResponse:
    packet = await ledger.get_packet(packet_id)
    return PacketResponse.from_packet(packet)


@router.get("/{packet_id}/nullifiers/{leaf}", response_model=NullifierStatusResponse)
async def get_nullifier_status(
    packet_id: Annotated[int, Path(ge=1)],
    leaf: Annotated[str, Path(pattern=FIELD_PATTERN)],
    ledger: LedgerDep,
) -> NullifierStatusResponse:
    """Whether a leaf has already redeemed a slot of the packet."""
    claimed = await ledger.is_claimed(packet_id, int(leaf))
    return NullifierStatusResponse(packet_id=packet_id, leaf=leaf, claimed=claimed)


@router.post("/{packet_id}/claim", response_model=ClaimResponse)
async def claim_packet(
    packet_id: Annotated[int, Path(ge=1)],
    request: ClaimRequest,
    user: UserDep,
    ledger: LedgerDep,
) -> ClaimResponse:
    """
    Claim one slot of a packet.

    The proof's public signals must start with the packet id, the leaf and
    the field encoding of the caller's identity.
    """
    result = await ledger.claim(
        packet_id=packet_id,
        claimant=user.id,
        leaf=int(request.leaf),
        merkle_proof=[int(s) for s in request.merkle_proof],
        zk_proof=request.proof,
        public_inputs=[int(s) for s in request.public_signals],
    )
    return ClaimResponse(
        packet_id=result.packet_id,
        amount=result.amount,
        remaining_amount=result.remaining_amount,
        remaining_count=result.remaining_count,
        status=result.status,
        tx_hash=result.tx_hash,
    )


@router.post("/{packet_id}/refund", response_model=RefundResponse)
async def refund_packet(
    packet_id: Annotated[int, Path(ge=1)],
    user: UserDep,
    ledger: LedgerDep,
) -> RefundResponse:
    """Return an expired packet's unclaimed value to its creator."""
    result = await ledger.refund(packet_id, caller=user.id)
    return RefundResponse(
        packet_id=result.packet_id,
        amount=result.amount,
        status=result.status,
        tx_hash=result.tx_hash,
    )

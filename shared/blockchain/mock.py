"""
Mock Blockchain Client
======================

In-memory mock implementation for development and testing.

Version: 0.1.0
"""

import asyncio
import hashlib
import uuid
from typing import Any

from shared.blockchain.client import (
    BlockchainClient,
    TransferError,
    TransferReceipt,
)
from shared.config import BlockchainMode
from shared.logging import get_logger

logger = get_logger(__name__)


class MockBlockchainClient(BlockchainClient):
    """
    In-memory mock blockchain client.

    Simulates escrow payouts without requiring actual blockchain
    infrastructure. Data is stored in memory and lost on restart.

    Set `fail_transfers` to make every transfer raise TransferError.
    """

    def __init__(self, escrow_address: str = "0xescrow") -> None:
        """Initialize mock client with in-memory storage."""
        self.escrow_address = escrow_address
        self.fail_transfers = False

        self._connected = False
        self._block_number = 1000

        # In-memory storage
        self._transfers: dict[str, TransferReceipt] = {}
        self._balances: dict[str, int] = {}

        # Index by recipient
        self._recipient_transfers: dict[str, list[str]] = {}

        logger.debug("mock_blockchain_initialized")

    @property
    def mode(self) -> BlockchainMode:
        return BlockchainMode.MOCK

    async def connect(self) -> None:
        """Simulate connection."""
        self._connected = True
        logger.info("mock_blockchain_connected")

    async def disconnect(self) -> None:
        """Simulate disconnection."""
        self._connected = False
        logger.info("mock_blockchain_disconnected")

    async def health_check(self) -> dict[str, Any]:
        """Check mock blockchain health."""
        return {
            "status": "healthy",
            "mode": self.mode.value,
            "connected": self._connected,
            "block_number": self._block_number,
            "transfers": len(self._transfers),
        }

    def _generate_tx_hash(self) -> str:
        """Generate a mock transaction hash."""
        return "0x" + hashlib.sha256(uuid.uuid4().bytes).hexdigest()

    def _next_block(self) -> int:
        """Get next block number."""
        self._block_number += 1
        return self._block_number

    # =========================================================================
    # Transfers
    # =========================================================================

    async def transfer(
        self,
        recipient: str,
        amount: int,
        memo: str = "",
    ) -> TransferReceipt:
        """Credit a recipient from escrow."""
        # Yield so concurrent callers interleave as they would on a network
        await asyncio.sleep(0)

        if self.fail_transfers:
            logger.warning("mock_transfer_failed", memo=memo, amount=amount)
            raise TransferError("Mock transfer failure")
        if amount <= 0:
            raise TransferError(f"Transfer amount must be positive, got {amount}")
        if not recipient:
            raise TransferError("Recipient address is required")

        receipt = TransferReceipt(
            id=f"transfer:{uuid.uuid4()}",
            sender=self.escrow_address,
            recipient=recipient,
            amount=amount,
            memo=memo,
            tx_hash=self._generate_tx_hash(),
            block_number=self._next_block(),
        )

        self._transfers[receipt.id] = receipt
        self._balances[recipient] = self._balances.get(recipient, 0) + amount
        self._recipient_transfers.setdefault(recipient, []).append(receipt.id)

        logger.debug(
            "mock_transfer_recorded",
            transfer_id=receipt.id,
            amount=amount,
            memo=memo,
            tx_hash=receipt.tx_hash,
        )

        return receipt

    async def get_transfers(
        self,
        recipient: str,
        limit: int = 100,
    ) -> list[TransferReceipt]:
        """Get transfers credited to a recipient."""
        if recipient not in self._recipient_transfers:
            return []

        transfer_ids = self._recipient_transfers[recipient][-limit:]
        return [self._transfers[tid] for tid in reversed(transfer_ids)]

    # =========================================================================
    # Test Utilities
    # =========================================================================

    def balance_of(self, address: str) -> int:
        """Total credited to an address."""
        return self._balances.get(address, 0)

    @property
    def total_paid_out(self) -> int:
        return sum(t.amount for t in self._transfers.values())

    def clear_all(self) -> None:
        """Clear all mock data (for testing)."""
        self._transfers.clear()
        self._balances.clear()
        self._recipient_transfers.clear()
        self._block_number = 1000
        self.fail_transfers = False
        logger.debug("mock_blockchain_cleared")

    def get_stats(self) -> dict[str, int]:
        """Get storage statistics."""
        return {
            "transfers": len(self._transfers),
            "recipients": len(self._balances),
            "total_paid_out": self.total_paid_out,
            "block_number": self._block_number,
        }

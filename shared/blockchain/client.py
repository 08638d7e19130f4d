"""
Blockchain Client Interface
===========================

Abstract base class and models for value transfers out of packet escrow.

The packet ledger decides when a transfer is authorized and how much it
must be; moving the value is delegated to a client implementing this
interface.

Version: 0.1.0
"""

from abc import ABC, abstractmethod
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, Field

from shared.config import BlockchainMode, settings
from shared.logging import get_logger

logger = get_logger(__name__)


class TransferError(Exception):
    """A value transfer was not executed."""


class TransferReceipt(BaseModel):
    """Receipt for an executed transfer."""

    id: str = Field(..., description="Unique transfer ID")
    sender: str = Field(..., description="Escrow address funds left from")
    recipient: str = Field(..., description="Address credited")
    amount: int = Field(..., gt=0)
    memo: str = Field(default="", description="Reference, e.g. packet:7:claim")
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
    tx_hash: str | None = Field(default=None, description="Blockchain transaction hash")
    block_number: int | None = Field(default=None, description="Block number")


class BlockchainClient(ABC):
    """
    Abstract base class for blockchain clients.

    Implements the Strategy pattern for different blockchain modes.
    """

    @property
    @abstractmethod
    def mode(self) -> BlockchainMode:
        """Get the blockchain mode."""
        ...

    @abstractmethod
    async def connect(self) -> None:
        """Connect to the blockchain network."""
        ...

    @abstractmethod
    async def disconnect(self) -> None:
        """Disconnect from the blockchain network."""
        ...

    @abstractmethod
    async def health_check(self) -> dict[str, Any]:
        """Check blockchain health."""
        ...

    @abstractmethod
    async def transfer(
        self,
        recipient: str,
        amount: int,
        memo: str = "",
    ) -> TransferReceipt:
        """
        Transfer value from escrow to a recipient.

        Args:
            recipient: Address to credit
            amount: Amount in the smallest unit, strictly positive
            memo: Free-form reference recorded with the transfer

        Returns:
            TransferReceipt with transaction details

        Raises:
            TransferError: If the transfer was not executed
        """
        ...

    @abstractmethod
    async def get_transfers(
        self,
        recipient: str,
        limit: int = 100,
    ) -> list[TransferReceipt]:
        """
        Get transfers credited to a recipient.

        Returns:
            List of TransferReceipts, newest first
        """
        ...


# Global client instance
_client: BlockchainClient | None = None


def get_blockchain_client() -> BlockchainClient:
    """
    Get the configured blockchain client instance.

    Returns:
        BlockchainClient instance based on settings
    """
    global _client

    if _client is None:
        mode = settings.blockchain.mode

        if mode == BlockchainMode.MOCK:
            from shared.blockchain.mock import MockBlockchainClient

            _client = MockBlockchainClient(escrow_address=settings.blockchain.escrow_address)
        elif mode in (BlockchainMode.TESTNET, BlockchainMode.MAINNET):
            raise NotImplementedError(
                f"Blockchain mode '{mode}' not yet implemented. "
                "Use BLOCKCHAIN_MODE=mock for development."
            )
        else:
            raise ValueError(f"Unknown blockchain mode: {mode}")

        logger.info(
            "blockchain_client_initialized",
            mode=mode.value,
        )

    return _client


def set_blockchain_client(client: BlockchainClient) -> None:
    """
    Set a custom blockchain client.

    Args:
        client: BlockchainClient instance
    """
    global _client
    _client = client
    logger.info(
        "blockchain_client_set",
        mode=client.mode.value,
    )


def reset_blockchain_client() -> None:
    """Reset the client to be re-initialized."""
    global _client
    _client = None

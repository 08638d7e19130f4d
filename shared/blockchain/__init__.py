"""
Blockchain Module
=================

Abstraction layer for escrow payouts.

Supports:
- Mock (development/testing)
- Testnet / Mainnet (not yet implemented)

Usage:
    from shared.blockchain import get_blockchain_client

    client = get_blockchain_client()

    receipt = await client.transfer(
        recipient="0xabc...",
        amount=25,
        memo="packet:7:claim",
    )
"""

from shared.blockchain.client import (
    BlockchainClient,
    TransferError,
    TransferReceipt,
    get_blockchain_client,
    reset_blockchain_client,
    set_blockchain_client,
)
from shared.blockchain.mock import MockBlockchainClient

__all__ = [
    # Client
    "BlockchainClient",
    "get_blockchain_client",
    "set_blockchain_client",
    "reset_blockchain_client",
    # Models
    "TransferReceipt",
    "TransferError",
    # Implementations
    "MockBlockchainClient",
]

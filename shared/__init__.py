"""
Red Packet Shared Library
=========================

Cross-cutting code used by the packet service and tooling.

Modules:
    - config: Configuration management with Pydantic Settings
    - logging: Structured logging with structlog
    - auth: JWT bearer authentication
    - database: Redis client and distributed lock
    - zk: Commitment hashing, Merkle membership, proof verification
    - blockchain: Value-transfer interface (mock/testnet/mainnet)
    - models: Shared Pydantic response models

Version: 0.1.0
"""

__version__ = "0.1.0"

from shared.config import settings
from shared.logging import get_logger, setup_logging

__all__ = [
    "settings",
    "get_logger",
    "setup_logging",
    "__version__",
]

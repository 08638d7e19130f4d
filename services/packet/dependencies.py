"""
Packet Service Dependencies
===========================

Process-wide packet ledger wired from settings.
"""

from services.packet.ledger import PacketLedger
from services.packet.store import get_store
from shared.blockchain import get_blockchain_client
from shared.logging import get_logger
from shared.zk import get_verifier


logger = get_logger(__name__)

# Global ledger instance
_ledger: PacketLedger | None = None


def get_ledger() -> PacketLedger:
    """
    Get or create the packet ledger.

    Usable as a FastAPI dependency; tests replace it through
    `app.dependency_overrides` or `set_ledger`.
    """
    global _ledger

    if _ledger is None:
        _ledger = PacketLedger(
            store=get_store(),
            verifier=get_verifier(),
            transfers=get_blockchain_client(),
        )
        logger.info("packet_ledger_created", store=type(_ledger.store).__name__)

    return _ledger


def set_ledger(ledger: PacketLedger) -> None:
    """Set the global ledger (for testing)."""
    global _ledger
    _ledger = ledger


def reset_ledger() -> None:
    """Reset the global ledger."""
    global _ledger
    _ledger = None

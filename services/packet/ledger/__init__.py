"""Claim authorization and accounting."""

from services.packet.ledger.core import PacketLedger, settings_pause_guard
from services.packet.ledger.expiry import ExpiryRefundManager, system_clock
from services.packet.ledger.nullifiers import NullifierLedger
from services.packet.ledger.split import (
    BeaconEntropy,
    EntropySource,
    SplitEngine,
    SystemEntropy,
)

__all__ = [
    "PacketLedger",
    "ExpiryRefundManager",
    "NullifierLedger",
    "SplitEngine",
    "EntropySource",
    "SystemEntropy",
    "BeaconEntropy",
    "settings_pause_guard",
    "system_clock",
]

"""
Red Packet Services
===================

Services:
- packet: private red packet ledger and its HTTP API
"""

__all__ = [
    "packet",
]

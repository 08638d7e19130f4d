"""Packet API routes."""

from services.packet.routes.packets import router as packets_router

__all__ = [
    "packets_router",
]

"""
Packet Errors
=============

Rejections raised by the packet ledger. Every rejection happens before any
state is committed; none is retried internally.
"""

from fastapi import status


class PacketError(Exception):
    """Base class for packet protocol rejections."""

    error_code = "packet_error"
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, packet_id: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.packet_id = packet_id


class InvalidParameters(PacketError):
    error_code = "invalid_parameters"
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY


class PacketNotFound(PacketError):
    error_code = "packet_not_found"
    status_code = status.HTTP_404_NOT_FOUND


class NotActive(PacketError):
    error_code = "not_active"
    status_code = status.HTTP_409_CONFLICT


class Expired(PacketError):
    error_code = "expired"
    status_code = status.HTTP_409_CONFLICT


class InvalidMembership(PacketError):
    error_code = "invalid_membership"
    status_code = status.HTTP_400_BAD_REQUEST


class InvalidProof(PacketError):
    error_code = "invalid_proof"
    status_code = status.HTTP_400_BAD_REQUEST


class AlreadyClaimed(PacketError):
    error_code = "already_claimed"
    status_code = status.HTTP_409_CONFLICT


class NotExpired(PacketError):
    error_code = "not_expired"
    status_code = status.HTTP_409_CONFLICT


class NotCreator(PacketError):
    error_code = "not_creator"
    status_code = status.HTTP_403_FORBIDDEN


class Paused(PacketError):
    error_code = "paused"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


class PacketBusy(PacketError):
    error_code = "packet_busy"
    status_code = status.HTTP_409_CONFLICT


class TransferFailed(PacketError):
    error_code = "transfer_failed"
    status_code = status.HTTP_502_BAD_GATEWAY

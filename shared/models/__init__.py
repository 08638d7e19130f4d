"""
Shared Models
=============

Pydantic response envelopes shared by services.
"""

from shared.models.common import (
    ErrorResponse,
    HealthResponse,
)

__all__ = [
    "ErrorResponse",
    "HealthResponse",
]

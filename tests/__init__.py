"""
Red Packet Test Suite
=====================

Test organization:
- tests/unit/             - Unit tests for shared building blocks and stores
- tests/services/packet/  - Ledger, expiry and HTTP API tests

Run tests:
    pytest                          # All tests
    pytest tests/unit               # Unit tests only
    pytest tests/services/packet    # Packet service only
"""

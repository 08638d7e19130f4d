"""
Tests for the Packet Service HTTP API.
"""

from collections.abc import Callable
from typing import Any

import pytest
from httpx import AsyncClient

from services.packet.models import SplitPolicy
from tests.conftest import ClaimKit, PacketFactory


def claim_body(kit: ClaimKit) -> dict[str, Any]:
    return {
        "leaf": str(kit.leaf),
        "merkle_proof": [str(s) for s in kit.merkle_proof],
        "proof": kit.zk_proof.model_dump(),
        "public_signals": [str(v) for v in kit.public_inputs],
    }


class TestHealthEndpoints:
    """Tests for health and root endpoints."""

    @pytest.mark.asyncio
    async def test_health_check(self, packet_client: AsyncClient) -> None:
        """Test health reports store and blockchain components."""
        response = await packet_client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["service"] == "packet"
        assert data["components"]["store"]["backend"] == "memory"
        assert "blockchain" in data["components"]

    @pytest.mark.asyncio
    async def test_health_degraded_when_paused(
        self,
        packet_client: AsyncClient,
        paused: dict[str, bool],
    ) -> None:
        paused["value"] = True

        response = await packet_client.get("/health")

        assert response.json()["status"] == "degraded"

    @pytest.mark.asyncio
    async def test_root(self, packet_client: AsyncClient) -> None:
        response = await packet_client.get("/")

        assert response.status_code == 200
        assert response.json()["service"] == "Red Packet Service"

    @pytest.mark.asyncio
    async def test_request_id_echoed(self, packet_client: AsyncClient) -> None:
        """Test the request id header is propagated."""
        response = await packet_client.get("/", headers={"X-Request-ID": "req-123"})

        assert response.headers["X-Request-ID"] == "req-123"


class TestOpenEndpoint:
    """Tests for POST /api/v1/packets."""

    @pytest.mark.asyncio
    async def test_open_packet(
        self,
        packet_client: AsyncClient,
        auth_headers: dict[str, str],
    ) -> None:
        """Test opening a packet makes the caller its creator."""
        response = await packet_client.post(
            "/api/v1/packets",
            json={
                "policy": "random",
                "count": 5,
                "total_amount": 1000,
                "commitment_root": "123456789",
                "duration": 3600,
            },
            headers=auth_headers,
        )

        assert response.status_code == 201
        data = response.json()
        assert data["packet_id"] == 1
        assert data["creator"] == "0xcreator"
        assert data["status"] == "active"
        assert data["commitment_root"] == "123456789"
        assert data["remaining_count"] == 5
        assert data["tree_depth"] == 3

    @pytest.mark.asyncio
    async def test_open_requires_auth(self, packet_client: AsyncClient) -> None:
        response = await packet_client.post(
            "/api/v1/packets",
            json={
                "policy": "fixed",
                "count": 1,
                "total_amount": 1,
                "commitment_root": "1",
                "duration": 60,
            },
        )

        assert response.status_code == 401
        assert response.json()["success"] is False

    @pytest.mark.asyncio
    async def test_open_invalid_parameters(
        self,
        packet_client: AsyncClient,
        auth_headers: dict[str, str],
    ) -> None:
        """Test ledger rejections carry their error code."""
        response = await packet_client.post(
            "/api/v1/packets",
            json={
                "policy": "fixed",
                "count": 3,
                "total_amount": 10,
                "commitment_root": "1",
                "duration": 60,
            },
            headers=auth_headers,
        )

        assert response.status_code == 422
        data = response.json()
        assert data["success"] is False
        assert data["error_code"] == "invalid_parameters"
        assert data["status_code"] == 422

    @pytest.mark.asyncio
    async def test_open_while_paused(
        self,
        packet_client: AsyncClient,
        auth_headers: dict[str, str],
        paused: dict[str, bool],
    ) -> None:
        paused["value"] = True

        response = await packet_client.post(
            "/api/v1/packets",
            json={
                "policy": "fixed",
                "count": 1,
                "total_amount": 1,
                "commitment_root": "1",
                "duration": 60,
            },
            headers=auth_headers,
        )

        assert response.status_code == 503
        assert response.json()["error_code"] == "paused"


class TestReadEndpoints:
    """Tests for packet queries."""

    @pytest.mark.asyncio
    async def test_get_packet(self, packet_client: AsyncClient, factory: PacketFactory) -> None:
        packet = await factory.open()

        response = await packet_client.get(f"/api/v1/packets/{packet.packet_id}")

        assert response.status_code == 200
        assert response.json()["packet_id"] == packet.packet_id

    @pytest.mark.asyncio
    async def test_get_unknown_packet(self, packet_client: AsyncClient) -> None:
        response = await packet_client.get("/api/v1/packets/404")

        assert response.status_code == 404
        assert response.json()["error_code"] == "packet_not_found"

    @pytest.mark.asyncio
    async def test_list_mine(
        self,
        packet_client: AsyncClient,
        factory: PacketFactory,
        ledger,
        auth_headers: dict[str, str],
    ) -> None:
        """Test `mine` restricts the listing to the caller's packets."""
        await factory.open()
        await ledger.open(
            creator="0xother",
            policy=SplitPolicy.FIXED,
            count=1,
            total_amount=1,
            commitment_root=1,
            duration=60,
        )

        everything = await packet_client.get("/api/v1/packets")
        mine = await packet_client.get("/api/v1/packets?mine=true", headers=auth_headers)

        assert everything.json()["total"] == 2
        assert mine.json()["total"] == 1
        assert mine.json()["packets"][0]["creator"] == "0xcreator"

    @pytest.mark.asyncio
    async def test_list_mine_requires_auth(self, packet_client: AsyncClient) -> None:
        response = await packet_client.get("/api/v1/packets?mine=true")

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_list_by_status(
        self,
        packet_client: AsyncClient,
        factory: PacketFactory,
    ) -> None:
        packet = await factory.open(policy=SplitPolicy.FIXED, count=1, total_amount=1)
        await factory.claim(packet.packet_id, 0)
        await factory.open()

        response = await packet_client.get("/api/v1/packets?status=finished")

        assert [p["packet_id"] for p in response.json()["packets"]] == [packet.packet_id]


class TestClaimEndpoint:
    """Tests for POST /api/v1/packets/{id}/claim."""

    @pytest.mark.asyncio
    async def test_claim(
        self,
        packet_client: AsyncClient,
        factory: PacketFactory,
        make_auth_headers: Callable[[str], dict[str, str]],
    ) -> None:
        """Test a valid claim pays the caller."""
        packet = await factory.open(policy=SplitPolicy.FIXED, count=5, total_amount=50)
        kit = factory.kit(packet.packet_id, 0)

        response = await packet_client.post(
            f"/api/v1/packets/{packet.packet_id}/claim",
            json=claim_body(kit),
            headers=make_auth_headers(kit.claimant),
        )

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["amount"] == 10
        assert data["remaining_count"] == 4
        assert data["tx_hash"].startswith("0x")

        nullifier = await packet_client.get(
            f"/api/v1/packets/{packet.packet_id}/nullifiers/{kit.leaf}"
        )
        assert nullifier.json()["claimed"] is True

    @pytest.mark.asyncio
    async def test_repeat_claim_conflicts(
        self,
        packet_client: AsyncClient,
        factory: PacketFactory,
        make_auth_headers: Callable[[str], dict[str, str]],
    ) -> None:
        packet = await factory.open()
        kit = factory.kit(packet.packet_id, 0)
        headers = make_auth_headers(kit.claimant)
        url = f"/api/v1/packets/{packet.packet_id}/claim"

        await packet_client.post(url, json=claim_body(kit), headers=headers)
        response = await packet_client.post(url, json=claim_body(kit), headers=headers)

        assert response.status_code == 409
        assert response.json()["error_code"] == "already_claimed"

    @pytest.mark.asyncio
    async def test_claim_as_other_identity(
        self,
        packet_client: AsyncClient,
        factory: PacketFactory,
        make_auth_headers: Callable[[str], dict[str, str]],
    ) -> None:
        """Test a proof bound to one identity fails when another submits it."""
        packet = await factory.open()
        kit = factory.kit(packet.packet_id, 0)

        response = await packet_client.post(
            f"/api/v1/packets/{packet.packet_id}/claim",
            json=claim_body(kit),
            headers=make_auth_headers("0xthief"),
        )

        assert response.status_code == 400
        assert response.json()["error_code"] == "invalid_proof"

    @pytest.mark.asyncio
    async def test_claim_with_bad_path(
        self,
        packet_client: AsyncClient,
        factory: PacketFactory,
        make_auth_headers: Callable[[str], dict[str, str]],
    ) -> None:
        packet = await factory.open()
        kit = factory.kit(packet.packet_id, 0)
        body = claim_body(kit)
        body["merkle_proof"] = body["merkle_proof"][:-1]

        response = await packet_client.post(
            f"/api/v1/packets/{packet.packet_id}/claim",
            json=body,
            headers=make_auth_headers(kit.claimant),
        )

        assert response.status_code == 400
        assert response.json()["error_code"] == "invalid_membership"

    @pytest.mark.asyncio
    async def test_claim_rejects_non_decimal_signals(
        self,
        packet_client: AsyncClient,
        factory: PacketFactory,
        make_auth_headers: Callable[[str], dict[str, str]],
    ) -> None:
        packet = await factory.open()
        kit = factory.kit(packet.packet_id, 0)
        body = claim_body(kit)
        body["public_signals"][0] = "0x01"

        response = await packet_client.post(
            f"/api/v1/packets/{packet.packet_id}/claim",
            json=body,
            headers=make_auth_headers(kit.claimant),
        )

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_claim_after_expiry(
        self,
        packet_client: AsyncClient,
        factory: PacketFactory,
        clock,
        make_auth_headers: Callable[[str], dict[str, str]],
    ) -> None:
        packet = await factory.open()
        kit = factory.kit(packet.packet_id, 0)
        clock.now = packet.expires_at

        response = await packet_client.post(
            f"/api/v1/packets/{packet.packet_id}/claim",
            json=claim_body(kit),
            headers=make_auth_headers(kit.claimant),
        )

        assert response.status_code == 409
        assert response.json()["error_code"] == "expired"

    @pytest.mark.asyncio
    async def test_claim_transfer_failure(
        self,
        packet_client: AsyncClient,
        factory: PacketFactory,
        transfers,
        make_auth_headers: Callable[[str], dict[str, str]],
    ) -> None:
        packet = await factory.open()
        kit = factory.kit(packet.packet_id, 0)
        transfers.fail_transfers = True

        response = await packet_client.post(
            f"/api/v1/packets/{packet.packet_id}/claim",
            json=claim_body(kit),
            headers=make_auth_headers(kit.claimant),
        )

        assert response.status_code == 502
        assert response.json()["error_code"] == "transfer_failed"


class TestRefundEndpoint:
    """Tests for refund routes."""

    @pytest.mark.asyncio
    async def test_refund_flow(
        self,
        packet_client: AsyncClient,
        factory: PacketFactory,
        clock,
        auth_headers: dict[str, str],
    ) -> None:
        """Test refundable listing, refund, and a repeated refund."""
        packet = await factory.open(policy=SplitPolicy.FIXED, count=5, total_amount=5)
        url = f"/api/v1/packets/{packet.packet_id}/refund"

        early = await packet_client.post(url, headers=auth_headers)
        assert early.status_code == 409
        assert early.json()["error_code"] == "not_expired"

        clock.now = packet.expires_at
        listed = await packet_client.get("/api/v1/packets/refundable", headers=auth_headers)
        assert listed.json()["total"] == 1

        response = await packet_client.post(url, headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["amount"] == 5
        assert response.json()["status"] == "expired"

        again = await packet_client.post(url, headers=auth_headers)
        assert again.status_code == 409
        assert again.json()["error_code"] == "not_active"

    @pytest.mark.asyncio
    async def test_refund_by_non_creator(
        self,
        packet_client: AsyncClient,
        factory: PacketFactory,
        clock,
        make_auth_headers: Callable[[str], dict[str, str]],
    ) -> None:
        packet = await factory.open()
        clock.now = packet.expires_at

        response = await packet_client.post(
            f"/api/v1/packets/{packet.packet_id}/refund",
            headers=make_auth_headers("0xsomeone"),
        )

        assert response.status_code == 403
        assert response.json()["error_code"] == "not_creator"

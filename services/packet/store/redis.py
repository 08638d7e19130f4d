"""
Redis Packet Store
==================

Packet records as JSON strings, nullifiers as Redis sets and a
SET NX EX lock per packet, so several service processes can share state.
Commits are WATCH/MULTI compare-and-sets on the packet version, so a
holder whose lock lease ran out cannot overwrite a newer write.

Keys:
    {prefix}:packet_seq          INCR counter for packet ids
    {prefix}:packet:{id}         packet record (JSON)
    {prefix}:nullifiers:{id}     spent leaves (set of decimal strings)
    lock:{prefix}:packet:{id}    per-packet lock

Version: 0.1.0
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from redis.asyncio import Redis
from redis.exceptions import WatchError

from services.packet.errors import PacketBusy
from services.packet.models import Packet
from services.packet.store.base import PacketStore
from shared.database.redis import RedisClient, redis_lock
from shared.logging import get_logger


logger = get_logger(__name__)


class RedisPacketStore(PacketStore):
    """Packet store backed by Redis."""

    def __init__(
        self,
        client: Redis | None = None,  # type: ignore[type-arg]
        prefix: str = "redpacket",
        lock_timeout_seconds: int = 10,
    ) -> None:
        self._client = client
        self.prefix = prefix
        self.lock_timeout_seconds = lock_timeout_seconds

    @property
    def client(self) -> Redis:  # type: ignore[type-arg]
        if self._client is None:
            self._client = RedisClient.get_client()
        return self._client

    def _seq_key(self) -> str:
        return f"{self.prefix}:packet_seq"

    def _packet_key(self, packet_id: int) -> str:
        return f"{self.prefix}:packet:{packet_id}"

    def _nullifier_key(self, packet_id: int) -> str:
        return f"{self.prefix}:nullifiers:{packet_id}"

    async def next_packet_id(self) -> int:
        return int(await self.client.incr(self._seq_key()))

    async def get_packet(self, packet_id: int) -> Packet | None:
        raw = await self.client.get(self._packet_key(packet_id))
        if raw is None:
            return None
        return Packet.model_validate_json(raw)

    async def save_packet(self, packet: Packet) -> None:
        await self.client.set(self._packet_key(packet.packet_id), packet.model_dump_json())

    async def commit_packet(
        self,
        packet: Packet,
        expected_version: int,
        consume: int | None = None,
        release: int | None = None,
    ) -> bool:
        packet_key = self._packet_key(packet.packet_id)
        nullifier_key = self._nullifier_key(packet.packet_id)

        async with self.client.pipeline(transaction=True) as pipe:
            try:
                # MULTI aborts if either key changes after WATCH
                await pipe.watch(packet_key, nullifier_key)

                raw = await pipe.get(packet_key)
                current = Packet.model_validate_json(raw) if raw is not None else None
                if current is None or current.version != expected_version:
                    raise self._conflict(packet.packet_id)
                if consume is not None and await pipe.sismember(nullifier_key, str(consume)):
                    return False

                pipe.multi()
                pipe.set(packet_key, packet.model_dump_json())
                if consume is not None:
                    pipe.sadd(nullifier_key, str(consume))
                if release is not None:
                    pipe.srem(nullifier_key, str(release))
                await pipe.execute()
            except WatchError as e:
                raise self._conflict(packet.packet_id) from e

        return True

    def _conflict(self, packet_id: int) -> PacketBusy:
        logger.warning("packet_commit_conflict", packet_id=packet_id)
        return PacketBusy(
            f"Packet {packet_id} changed concurrently, retry later",
            packet_id=packet_id,
        )

    async def list_packets(self) -> list[Packet]:
        last = await self.client.get(self._seq_key())
        if last is None:
            return []

        keys = [self._packet_key(pid) for pid in range(1, int(last) + 1)]
        packets = []
        for raw in await self.client.mget(keys):
            if raw is not None:
                packets.append(Packet.model_validate_json(raw))
        return packets

    async def add_nullifier(self, packet_id: int, leaf: int) -> bool:
        added = await self.client.sadd(self._nullifier_key(packet_id), str(leaf))
        return added == 1

    async def remove_nullifier(self, packet_id: int, leaf: int) -> None:
        await self.client.srem(self._nullifier_key(packet_id), str(leaf))

    async def has_nullifier(self, packet_id: int, leaf: int) -> bool:
        return bool(await self.client.sismember(self._nullifier_key(packet_id), str(leaf)))

    @asynccontextmanager
    async def lock(self, packet_id: int) -> AsyncIterator[None]:
        async with redis_lock(
            self._packet_key(packet_id),
            timeout_seconds=self.lock_timeout_seconds,
            client=self.client,
        ) as acquired:
            if not acquired:
                logger.warning("packet_lock_timeout", packet_id=packet_id)
                raise PacketBusy(
                    f"Packet {packet_id} is being modified, retry later",
                    packet_id=packet_id,
                )
            yield

    async def health_check(self) -> dict[str, Any]:
        health = await RedisClient.health_check(self.client)
        return {**health, "backend": "redis"}

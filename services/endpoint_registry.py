import logging
from enum import Enum
from typing import Dict, List

from redis.asyncio import Redis
from redis.exceptions import RedisError

from models.endpoint import EndpointPayload
from services.endpoint_codec import KEY_PREFIX, endpoint_key, from_store_hash, to_store_hash
from services.errors import EndpointNotFound, IdentityMismatch, MalformedStoredRecord, StoreUnavailable

logger = logging.getLogger(__name__)


class WriteOutcome(str, Enum):
    CREATED = "created"
    UPDATED = "updated"


class EndpointRegistry:
    """Reads and writes canary endpoint definitions in the key-value store.

    The registry keeps no state of its own; the store client is shared by
    all concurrent requests and only ever invoked.
    """

    def __init__(self, client: Redis):
        self.client = client

    # --- STORE ROUND-TRIPS ---

    async def _read_hash(self, key: str) -> Dict[str, str]:
        try:
            return await self.client.hgetall(key)
        except RedisError as exc:
            logger.error("hgetall %s: %s", key, exc)
            raise StoreUnavailable("hgetall", key) from exc

    async def _list_keys(self) -> List[str]:
        pattern = f"{KEY_PREFIX}*"
        try:
            # SCAN may report a key more than once
            keys = [key async for key in self.client.scan_iter(match=pattern)]
            return list(dict.fromkeys(keys))
        except RedisError as exc:
            logger.error("scan %s: %s", pattern, exc)
            raise StoreUnavailable("scan", pattern) from exc

    async def _replace(self, key: str, fields: Dict[str, str]) -> bool:
        """Replace the whole hash at key; returns whether a record existed before.

        The existence check and the write are two separate round-trips, so
        two writers racing on one key may both see "absent". An atomic
        conditional write would only need to change this method.
        """
        existed = bool(await self._read_hash(key))
        try:
            async with self.client.pipeline(transaction=True) as pipe:
                pipe.delete(key)
                pipe.hset(key, mapping=fields)
                await pipe.execute()
        except RedisError as exc:
            logger.error("hset %s: %s", key, exc)
            raise StoreUnavailable("hset", key) from exc
        return existed

    def _decode(self, key: str, fields: Dict[str, str]) -> EndpointPayload:
        try:
            return from_store_hash(fields)
        except MalformedStoredRecord as exc:
            logger.error("convert stored hash %s to endpoint: %s", key, exc)
            raise

    # --- OPERATIONS ---

    async def read_one(self, identifier: str) -> EndpointPayload:
        key = endpoint_key(identifier)
        fields = await self._read_hash(key)
        if not fields:
            raise EndpointNotFound(identifier)
        return self._decode(key, fields)

    async def write_one(self, identifier: str, endpoint: EndpointPayload) -> WriteOutcome:
        """Create or fully overwrite the endpoint stored under identifier"""
        if identifier != endpoint.identifier:
            raise IdentityMismatch(identifier, endpoint.identifier)

        key = endpoint_key(identifier)
        existed = await self._replace(key, to_store_hash(endpoint))
        outcome = WriteOutcome.UPDATED if existed else WriteOutcome.CREATED
        logger.info("endpoint %s %s", identifier, outcome.value)
        return outcome

    async def list_all(self) -> List[EndpointPayload]:
        """All registered endpoints, in no particular order.

        A hash that vanished after the scan is skipped. A hash that exists
        but does not decode aborts the whole listing: a monitoring system
        should surface corruption rather than quietly drop an endpoint.
        """
        endpoints = []
        for key in await self._list_keys():
            fields = await self._read_hash(key)
            if not fields:
                continue
            endpoints.append(self._decode(key, fields))
        return endpoints

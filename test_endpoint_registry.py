import json
from unittest.mock import AsyncMock, MagicMock

import pytest
from fakeredis import FakeAsyncRedis, FakeServer
from redis.exceptions import ConnectionError as RedisConnectionError

from services.endpoint_codec import from_json
from services.endpoint_registry import EndpointRegistry, WriteOutcome
from services.errors import (
    EndpointNotFound, IdentityMismatch, MalformedStoredRecord, StoreUnavailable,
)

def make_endpoint(identifier="my-canary", **overrides):
    data = {
        "identifier": identifier,
        "url": "https://example.com/health",
        "method": "GET",
        "status_online": 200,
        "frequency": "30s",
        "fail_after": 3,
    }
    data.update(overrides)
    return from_json(json.dumps(data))

@pytest.fixture
def store():
    return FakeAsyncRedis(server=FakeServer(), decode_responses=True)

@pytest.fixture
def registry(store):
    return EndpointRegistry(store)

@pytest.fixture
def failing_registry():
    client = MagicMock()
    client.hgetall = AsyncMock(side_effect=RedisConnectionError("connection refused"))
    return EndpointRegistry(client)

# --- READ ---

@pytest.mark.asyncio
async def test_read_missing_endpoint(registry):
    with pytest.raises(EndpointNotFound):
        await registry.read_one("unregistered-id")

@pytest.mark.asyncio
async def test_write_then_read(registry, store):
    endpoint = make_endpoint()
    assert await registry.write_one("my-canary", endpoint) is WriteOutcome.CREATED

    stored = await store.hgetall("endpoints:my-canary")
    assert stored["status_online"] == "200"
    assert stored["fail_after"] == "3"

    assert (await registry.read_one("my-canary")).model_dump() == endpoint.model_dump()

@pytest.mark.asyncio
async def test_read_corrupted_hash(registry, store):
    await store.hset("endpoints:broken", mapping={
        "identifier": "broken",
        "url": "https://example.com",
        "status_online": "200",
        "frequency": "30s",
        "fail_after": "3",
    })
    with pytest.raises(MalformedStoredRecord):
        await registry.read_one("broken")

# --- WRITE ---

@pytest.mark.asyncio
async def test_second_write_updates_and_replaces(registry, store):
    await registry.write_one("my-canary", make_endpoint())
    changed = make_endpoint(url="https://example.org/", method="HEAD", fail_after=10, frequency="1m0s")

    assert await registry.write_one("my-canary", changed) is WriteOutcome.UPDATED
    assert (await registry.read_one("my-canary")).model_dump() == changed.model_dump()

@pytest.mark.asyncio
async def test_write_drops_stale_fields(registry, store):
    await store.hset("endpoints:my-canary", mapping={"leftover": "x"})

    assert await registry.write_one("my-canary", make_endpoint()) is WriteOutcome.UPDATED
    assert "leftover" not in await store.hgetall("endpoints:my-canary")

@pytest.mark.asyncio
async def test_identity_mismatch_writes_nothing(registry, store):
    with pytest.raises(IdentityMismatch):
        await registry.write_one("foo", make_endpoint("bar"))
    assert await store.exists("endpoints:foo", "endpoints:bar") == 0

# --- LIST ---

@pytest.mark.asyncio
async def test_list_empty(registry):
    assert await registry.list_all() == []

@pytest.mark.asyncio
async def test_list_returns_every_endpoint(registry, store):
    await registry.write_one("a-b", make_endpoint("a-b"))
    await registry.write_one("c-d", make_endpoint("c-d", status_online=204))
    await store.set("unrelated", "value")

    listed = {endpoint.identifier: endpoint.model_dump() for endpoint in await registry.list_all()}
    assert set(listed) == {"a-b", "c-d"}
    for identifier, endpoint in listed.items():
        assert endpoint == (await registry.read_one(identifier)).model_dump()

@pytest.mark.asyncio
async def test_list_skips_hashes_that_vanished(registry, store):
    await registry.write_one("a-b", make_endpoint("a-b"))
    original_hgetall = store.hgetall

    async def hgetall(key):
        if key == "endpoints:a-b":
            await store.delete(key)
        return await original_hgetall(key)

    store.hgetall = hgetall
    assert await registry.list_all() == []

@pytest.mark.asyncio
async def test_list_reports_each_endpoint_once(registry, store):
    await registry.write_one("a-b", make_endpoint("a-b"))
    original_scan_iter = store.scan_iter

    async def scan_iter(*args, **kwargs):
        async for key in original_scan_iter(*args, **kwargs):
            yield key
            yield key

    store.scan_iter = scan_iter
    listed = await registry.list_all()
    assert [endpoint.identifier for endpoint in listed] == ["a-b"]

@pytest.mark.asyncio
async def test_list_fails_on_corrupted_hash(registry, store):
    await registry.write_one("a-b", make_endpoint("a-b"))
    await store.hset("endpoints:broken", mapping={"identifier": "broken"})

    with pytest.raises(MalformedStoredRecord):
        await registry.list_all()

# --- STORE FAILURES ---

@pytest.mark.asyncio
async def test_read_store_failure(failing_registry):
    with pytest.raises(StoreUnavailable) as excinfo:
        await failing_registry.read_one("my-canary")
    assert excinfo.value.operation == "hgetall"
    assert excinfo.value.key == "endpoints:my-canary"
    assert isinstance(excinfo.value.__cause__, RedisConnectionError)

@pytest.mark.asyncio
async def test_write_store_failure(failing_registry):
    with pytest.raises(StoreUnavailable):
        await failing_registry.write_one("my-canary", make_endpoint())

@pytest.mark.asyncio
async def test_list_store_failure(registry, store):
    async def scan_iter(*args, **kwargs):
        raise RedisConnectionError("connection refused")
        yield

    store.scan_iter = scan_iter
    with pytest.raises(StoreUnavailable) as excinfo:
        await registry.list_all()
    assert excinfo.value.operation == "scan"
    assert excinfo.value.key == "endpoints:*"
    assert isinstance(excinfo.value.__cause__, RedisConnectionError)

# pyright: standard

import asyncio

import httpx
import pytest

from chatsync.cloud import upstash
from chatsync.cloud.upstash import UpstashClient
from chatsync.consts import STORAGE_KEY
from chatsync.exceptions import MalformedRemoteStateError, TransportError
from tests.support.fake_upstash import FAKE_ENDPOINT, FakeUpstash


def test_empty_username_falls_back_to_default_store_key() -> None:
    client = UpstashClient("", httpx.AsyncClient())
    assert client.store_key == STORAGE_KEY
    assert client.chunk_count_key == f"{STORAGE_KEY}-chunk-count"
    assert client.chunk_key(3) == f"{STORAGE_KEY}-chunk-3"


def test_chunk_size_respects_byte_ceiling() -> None:
    # Four bytes is the widest UTF-8 character.
    assert upstash.CHUNK_SIZE * 4 <= upstash.MAX_VALUE_BYTES


@pytest.mark.asyncio
async def test_set_writes_chunks_in_order_then_count(
    upstash_client: UpstashClient, fake_upstash: FakeUpstash, monkeypatch: pytest.MonkeyPatch
) -> None:
    # GIVEN a tiny chunk size so the payload spans several chunks
    monkeypatch.setattr(upstash, "CHUNK_SIZE", 4)

    # WHEN a 10-character value is stored
    await upstash_client.set("0123456789")

    # THEN chunks are written in index order and the count is written last
    assert fake_upstash.writes == [
        "tester-chunk-0",
        "tester-chunk-1",
        "tester-chunk-2",
        "tester-chunk-count",
    ]
    assert fake_upstash.data["tester-chunk-count"] == "3"
    assert fake_upstash.data["tester-chunk-2"] == "89"


@pytest.mark.asyncio
async def test_failed_chunk_write_never_publishes_count(
    upstash_client: UpstashClient, fake_upstash: FakeUpstash, monkeypatch: pytest.MonkeyPatch
) -> None:
    # GIVEN a backend that rejects the second chunk
    monkeypatch.setattr(upstash, "CHUNK_SIZE", 4)
    fake_upstash.fail_keys.add("tester-chunk-1")

    # WHEN storing a multi-chunk value
    # THEN the failure surfaces and the count key is never written
    with pytest.raises(TransportError):
        await upstash_client.set("0123456789")
    assert "tester-chunk-count" not in fake_upstash.data
    assert fake_upstash.writes == ["tester-chunk-0"]


@pytest.mark.asyncio
async def test_get_reassembles_chunks_in_index_order_despite_completion_order(
    upstash_client: UpstashClient, fake_upstash: FakeUpstash
) -> None:
    # GIVEN three chunks where the first one is the slowest to arrive
    fake_upstash.data.update(
        {
            "tester-chunk-count": "3",
            "tester-chunk-0": "aaa",
            "tester-chunk-1": "bbb",
            "tester-chunk-2": "c",
        }
    )
    fake_upstash.delays = {"tester-chunk-0": 0.05, "tester-chunk-1": 0.02}

    # WHEN reading the value
    value = await upstash_client.get()

    # THEN chunks are joined by index, not by arrival
    assert value == "aaabbbc"
    # AND the count was read before any chunk
    assert fake_upstash.reads[0] == "tester-chunk-count"
    # AND the chunk reads completed out of order, i.e. concurrently
    assert fake_upstash.reads[1:] == ["tester-chunk-2", "tester-chunk-1", "tester-chunk-0"]


@pytest.mark.asyncio
async def test_set_then_get_round_trips_large_value(
    upstash_client: UpstashClient, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setattr(upstash, "CHUNK_SIZE", 7)
    payload = '{"sessions": ["' + "ü" * 50 + '"]}'

    await upstash_client.set(payload)

    assert await upstash_client.get() == payload


@pytest.mark.asyncio
async def test_get_without_count_means_no_remote_state(upstash_client: UpstashClient) -> None:
    assert await upstash_client.get() is None


@pytest.mark.asyncio
@pytest.mark.parametrize("raw_count", ["abc", "-1", "1.5", ""])
async def test_get_with_invalid_count_means_no_remote_state(
    upstash_client: UpstashClient, fake_upstash: FakeUpstash, raw_count: str
) -> None:
    fake_upstash.data["tester-chunk-count"] = raw_count

    assert await upstash_client.get() is None
    # No chunk reads are attempted
    assert fake_upstash.reads == ["tester-chunk-count"]


@pytest.mark.asyncio
async def test_zero_count_returns_empty_without_fetching(
    upstash_client: UpstashClient, fake_upstash: FakeUpstash
) -> None:
    # GIVEN an empty value was stored
    await upstash_client.set("")

    # THEN the published count is zero and get returns empty without chunk reads
    assert fake_upstash.data["tester-chunk-count"] == "0"
    fake_upstash.reads.clear()
    assert await upstash_client.get() == ""
    assert fake_upstash.reads == ["tester-chunk-count"]


@pytest.mark.asyncio
async def test_get_fails_when_any_chunk_read_fails(upstash_client: UpstashClient, fake_upstash: FakeUpstash) -> None:
    fake_upstash.data.update({"tester-chunk-count": "2", "tester-chunk-0": "a", "tester-chunk-1": "b"})
    fake_upstash.fail_keys.add("tester-chunk-1")

    with pytest.raises(TransportError):
        _ = await upstash_client.get()


@pytest.mark.asyncio
async def test_get_fails_when_a_referenced_chunk_is_missing(
    upstash_client: UpstashClient, fake_upstash: FakeUpstash
) -> None:
    fake_upstash.data.update({"tester-chunk-count": "2", "tester-chunk-0": "a"})

    with pytest.raises(MalformedRemoteStateError):
        _ = await upstash_client.get()


@pytest.mark.asyncio
async def test_get_rejects_unexpected_response_body() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>not json</html>")

    async with httpx.AsyncClient(base_url=FAKE_ENDPOINT, transport=httpx.MockTransport(handler)) as http:
        with pytest.raises(MalformedRemoteStateError):
            _ = await UpstashClient("tester", http).get()


@pytest.mark.asyncio
async def test_check_reports_success_only_on_200(fake_upstash: FakeUpstash, upstash_client: UpstashClient) -> None:
    assert await upstash_client.check() is True

    fake_upstash.fail_keys.add("tester")
    assert await upstash_client.check() is False


@pytest.mark.asyncio
async def test_check_swallows_transport_failures() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("unreachable", request=request)

    async with httpx.AsyncClient(base_url=FAKE_ENDPOINT, transport=httpx.MockTransport(handler)) as http:
        assert await UpstashClient("tester", http).check() is False


@pytest.mark.asyncio
async def test_transport_failure_on_set_is_raised() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("unreachable", request=request)

    async with httpx.AsyncClient(base_url=FAKE_ENDPOINT, transport=httpx.MockTransport(handler)) as http:
        with pytest.raises(TransportError):
            await UpstashClient("tester", http).set("value")


@pytest.mark.asyncio
async def test_requests_carry_configured_auth_header(fake_upstash: FakeUpstash) -> None:
    seen: list[str | None] = []

    async def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.headers.get("Authorization"))
        return await fake_upstash.handler(request)

    async with httpx.AsyncClient(
        base_url=FAKE_ENDPOINT,
        headers={"Authorization": "Bearer secret"},
        transport=httpx.MockTransport(handler),
    ) as http:
        await UpstashClient("tester", http).set("x")

    assert seen and all(h == "Bearer secret" for h in seen)


@pytest.mark.asyncio
async def test_drop_all_deletes_prefixed_keys_and_tolerates_failures(
    upstash_client: UpstashClient, fake_upstash: FakeUpstash
) -> None:
    # GIVEN keys for this store, one of which cannot be deleted, and an unrelated key
    fake_upstash.data.update(
        {
            "tester-chunk-count": "2",
            "tester-chunk-0": "a",
            "tester-chunk-1": "b",
            "someone-else-chunk-count": "1",
        }
    )
    fake_upstash.fail_keys.add("tester-chunk-1")

    # WHEN dropping everything
    deleted = await upstash_client.drop_all()

    # THEN deletable keys are gone, the failing one is skipped, unrelated data stays
    assert deleted == 2
    assert set(fake_upstash.data) == {"tester-chunk-1", "someone-else-chunk-count"}


@pytest.mark.asyncio
async def test_drop_all_does_not_count_cancelled_deletes(
    upstash_client: UpstashClient, fake_upstash: FakeUpstash, monkeypatch: pytest.MonkeyPatch
) -> None:
    # GIVEN two keys, the delete of one of which gets cancelled
    fake_upstash.data.update({"tester-chunk-count": "1", "tester-chunk-0": "a"})
    delete = upstash_client.redis_del

    async def cancelling_delete(key: str) -> None:
        if key == "tester-chunk-0":
            raise asyncio.CancelledError
        await delete(key)

    monkeypatch.setattr(upstash_client, "redis_del", cancelling_delete)

    # WHEN dropping everything
    deleted = await upstash_client.drop_all()

    # THEN only the completed delete is counted
    assert deleted == 1
    assert set(fake_upstash.data) == {"tester-chunk-0"}


@pytest.mark.asyncio
async def test_keys_with_reserved_characters_stay_in_one_path_segment(fake_upstash: FakeUpstash) -> None:
    # GIVEN a store key containing URL delimiters
    paths: list[bytes] = []

    async def handler(request: httpx.Request) -> httpx.Response:
        paths.append(request.url.raw_path)
        return await fake_upstash.handler(request)

    async with httpx.AsyncClient(base_url=FAKE_ENDPOINT, transport=httpx.MockTransport(handler)) as http:
        client = UpstashClient("team/a?b", http)

        # WHEN storing and reading back a value
        await client.set("hello")
        value = await client.get()

    # THEN every key is escaped into a single segment and routes to the right entry
    assert value == "hello"
    assert fake_upstash.data["team/a?b-chunk-count"] == "1"
    assert b"/set/team%2Fa%3Fb-chunk-0" in paths
    assert all(b"?" not in p for p in paths)

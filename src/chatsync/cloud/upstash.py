import asyncio
import logging
from typing import override
from urllib.parse import quote

import httpx
import msgspec
from msgspec import Struct

from chatsync import chunking
from chatsync.cloud.base import SyncClient
from chatsync.consts import STORAGE_KEY
from chatsync.exceptions import MalformedRemoteStateError, TransportError

logger = logging.getLogger(__name__)

# Upstash rejects requests above 1 MB on the free and pay-as-you-go plans.
MAX_VALUE_BYTES = 1_000_000
# A character is at most 4 bytes in UTF-8.
CHUNK_SIZE = MAX_VALUE_BYTES // 4


class _StringResult(Struct):
    result: str | None = None


class _KeysResult(Struct):
    result: list[str] = msgspec.field(default_factory=list)


def _path_segment(key: str) -> str:
    return quote(key, safe="")


def _parse_count(raw: str | None) -> int | None:
    if raw is None:
        return None
    try:
        count = int(raw)
    except ValueError:
        return None
    return count if count >= 0 else None


class UpstashClient(SyncClient):
    """
    Chunked storage on an Upstash Redis REST endpoint.

    A document is stored as `{key}-chunk-0 .. {key}-chunk-{n-1}` plus
    `{key}-chunk-count`. Chunks are written in order and the count last, so a
    reader that sees a count can rely on every chunk it references existing.
    Chunks left over from a previous, longer document are not removed, and
    only a single writer per key is supported.
    """

    store_key: str
    _http: httpx.AsyncClient

    def __init__(self, username: str, http: httpx.AsyncClient) -> None:
        self.store_key = username or STORAGE_KEY
        self._http = http

    @property
    def chunk_count_key(self) -> str:
        return f"{self.store_key}-chunk-count"

    def chunk_key(self, index: int) -> str:
        return f"{self.store_key}-chunk-{index}"

    # ---------- Public API ----------

    @override
    async def check(self) -> bool:
        try:
            res = await self._http.get(f"get/{_path_segment(self.store_key)}")
        except httpx.HTTPError as e:
            logger.error("[Upstash] failed to check: %s", e)
            return False
        logger.info("[Upstash] check %s %s", res.status_code, res.reason_phrase)
        return res.status_code == 200

    @override
    async def get(self) -> str | None:
        count = _parse_count(await self.redis_get(self.chunk_count_key))
        if count is None:
            return None
        if count == 0:
            return ""

        chunks = await asyncio.gather(*(self.redis_get(self.chunk_key(i)) for i in range(count)))
        missing = [i for i, chunk in enumerate(chunks) if chunk is None]
        if missing:
            raise MalformedRemoteStateError(f"Remote chunks missing for '{self.store_key}': {missing}")
        return chunking.join(c for c in chunks if c is not None)

    @override
    async def set(self, value: str) -> None:
        chunks = chunking.split(value, CHUNK_SIZE)
        # The count is published only after every chunk is stored.
        for index, chunk in enumerate(chunks):
            await self.redis_set(self.chunk_key(index), chunk)
        await self.redis_set(self.chunk_count_key, str(len(chunks)))

    async def drop_all(self) -> int:
        """
        Deletes every key under the store prefix. Individual delete failures are logged and skipped.

        Returns the number of keys deleted.
        """
        keys = await self.redis_keys(f"{self.store_key}*")
        results = await asyncio.gather(*(self.redis_del(key) for key in keys), return_exceptions=True)

        deleted = 0
        for key, result in zip(keys, results, strict=True):
            if isinstance(result, BaseException):
                logger.error("[Upstash] failed to delete key %s: %s", key, result)
            else:
                deleted += 1
        logger.info("[Upstash] dropped %d of %d keys", deleted, len(keys))
        return deleted

    # ---------- Redis REST primitives ----------

    async def redis_get(self, key: str) -> str | None:
        res = await self._request("GET", f"get/{_path_segment(key)}")
        logger.debug("[Upstash] get key = %s %s", key, res.status_code)
        return self._decode(_StringResult, res).result

    async def redis_set(self, key: str, value: str) -> None:
        res = await self._request("POST", f"set/{_path_segment(key)}", content=value.encode("utf-8"))
        logger.debug("[Upstash] set key = %s %s", key, res.status_code)

    async def redis_keys(self, pattern: str) -> list[str]:
        res = await self._request("GET", f"keys/{_path_segment(pattern)}")
        return self._decode(_KeysResult, res).result

    async def redis_del(self, key: str) -> None:
        _ = await self._request("POST", f"del/{_path_segment(key)}")

    # ---------- Internal ----------

    async def _request(self, method: str, path: str, content: bytes | None = None) -> httpx.Response:
        try:
            res = await self._http.request(method, path, content=content)
        except httpx.HTTPError as e:
            raise TransportError(f"Upstash {method} {path} failed: {e}") from e
        if res.status_code != 200:
            raise TransportError(f"Upstash {method} {path} returned {res.status_code} {res.reason_phrase}")
        return res

    def _decode[T](self, type_spec: type[T], res: httpx.Response) -> T:
        try:
            return msgspec.json.decode(res.content, type=type_spec)
        except msgspec.DecodeError as e:
            raise MalformedRemoteStateError(f"Unexpected Upstash response body: {e}") from e

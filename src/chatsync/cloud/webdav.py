import logging
from typing import override

import httpx

from chatsync.cloud.base import SyncClient
from chatsync.exceptions import TransportError

logger = logging.getLogger(__name__)

FOLDER = "chatgpt-next-web"
FILE_NAME = "backup.json"

# MKCOL answers 405 when the folder already exists; some servers redirect or 404 on collections.
_CHECK_OK_STATUSES = frozenset({200, 201, 404, 405, 301, 302, 307, 308})


class WebDavClient(SyncClient):
    """Stores the whole document as a single file on a WebDAV server."""

    _http: httpx.AsyncClient

    def __init__(self, http: httpx.AsyncClient) -> None:
        self._http = http

    @property
    def file_path(self) -> str:
        return f"{FOLDER}/{FILE_NAME}"

    @override
    async def check(self) -> bool:
        try:
            res = await self._http.request("MKCOL", f"{FOLDER}/")
        except httpx.HTTPError as e:
            logger.error("[WebDav] failed to check: %s", e)
            return False
        logger.info("[WebDav] check %s %s", res.status_code, res.reason_phrase)
        return res.status_code in _CHECK_OK_STATUSES

    @override
    async def get(self) -> str | None:
        try:
            res = await self._http.get(self.file_path)
        except httpx.HTTPError as e:
            raise TransportError(f"WebDAV GET {self.file_path} failed: {e}") from e

        logger.debug("[WebDav] get %s %s", self.file_path, res.status_code)
        if res.status_code == 404:
            return None
        if not res.is_success:
            raise TransportError(f"WebDAV GET {self.file_path} returned {res.status_code} {res.reason_phrase}")
        return res.text

    @override
    async def set(self, value: str) -> None:
        try:
            res = await self._http.put(self.file_path, content=value.encode("utf-8"))
        except httpx.HTTPError as e:
            raise TransportError(f"WebDAV PUT {self.file_path} failed: {e}") from e

        logger.debug("[WebDav] set %s %s", self.file_path, res.status_code)
        if not res.is_success:
            raise TransportError(f"WebDAV PUT {self.file_path} returned {res.status_code} {res.reason_phrase}")

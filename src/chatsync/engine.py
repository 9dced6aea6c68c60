# pyright: standard
from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import datetime
from enum import Enum
from pathlib import Path

import msgspec

from chatsync.cloud.base import SyncClient
from chatsync.exceptions import (
    ImportParseError,
    MalformedRemoteStateError,
    SyncError,
    SyncInProgressError,
)
from chatsync.fs import atomic_write_text
from chatsync.local_state import LocalStores
from chatsync.merge import merge_app_state
from chatsync.models import AppState, SyncOutcome, SyncOutcomeKind
from chatsync.serialization import convert, to_json_text
from chatsync.settings import ForceDirection, SettingsStore

logger = logging.getLogger(__name__)


class SyncPhase(str, Enum):
    IDLE = "idle"
    FETCHING_REMOTE = "fetching_remote"
    MERGING = "merging"
    PERSISTING_LOCAL = "persisting_local"
    PUSHING_REMOTE = "pushing_remote"


def decode_app_state(raw: str | bytes | None) -> AppState | None:
    """
    Decodes a serialized snapshot. Returns None for an empty document or an empty object.

    Store records are kept whole; only the fields the merge policies read are type-checked.
    Raises msgspec.DecodeError / msgspec.ValidationError when the document has the wrong shape.
    """
    if not raw:
        return None
    doc = msgspec.json.decode(raw)
    if isinstance(doc, dict) and not doc:
        return None
    state = convert(doc, AppState)
    state.check()
    return state


def backup_file_name(now: datetime) -> str:
    return f"Backup-{now:%Y_%m_%d %H_%M_%S}.json"


class SyncEngine:
    """
    Runs sync and import cycles against one set of local stores.

    Only one cycle may be in flight at a time. A failed sync leaves local
    stores exactly as far as the cycle got: a failed push after a local
    write does not roll the local write back.
    """

    phase: SyncPhase

    def __init__(
        self,
        stores: LocalStores,
        client: SyncClient,
        settings: SettingsStore,
        on_reload: Callable[[], None] | None = None,
    ) -> None:
        self._stores = stores
        self._client = client
        self._settings = settings
        self._on_reload = on_reload
        self._in_flight = False
        self.phase = SyncPhase.IDLE

    # ---------- Public API ----------

    async def check(self) -> bool:
        return await self._client.check()

    async def sync(self, force: bool | None = None) -> SyncOutcome:
        """
        Runs one full sync cycle. Failures are logged and reported in the outcome, never raised,
        except for SyncInProgressError when another cycle is running.
        """
        with self._cycle():
            force = self._settings.settings.force_sync if force is None else force
            logger.info("[Sync] force sync: %s", force)
            try:
                return await self._run_sync(force)
            except (SyncError, OSError) as e:
                message = e.message if isinstance(e, SyncError) else str(e)
                logger.error("[Sync] Error during synchronization in phase %s: %s", self.phase.value, message)
                return SyncOutcome(kind=SyncOutcomeKind.FAILED, error=message)
            finally:
                self.phase = SyncPhase.IDLE

    def import_state(self, raw: str | bytes, force: bool | None = None) -> AppState:
        """
        Merges (or, when forced, substitutes) an exported snapshot into the local stores
        and asks the host to reload. Nothing is written unless the document parses.
        """
        with self._cycle():
            force = self._settings.settings.force_sync if force is None else force
            try:
                imported = decode_app_state(raw)
            except msgspec.DecodeError as e:
                raise ImportParseError(f"Import failed: not a valid backup document ({e})") from e
            if imported is None:
                raise ImportParseError("Import failed: backup document is empty")

            result = imported if force else merge_app_state(self._stores.read_all(), imported)
            self._stores.write_all(result)
            logger.info("[Import] applied backup (force=%s)", force)

            if self._on_reload is not None:
                self._on_reload()
            return result

    def import_file(self, path: Path, force: bool | None = None) -> AppState:
        try:
            raw = path.read_bytes()
        except OSError as e:
            raise ImportParseError(f"Import failed: cannot read {path}: {e}") from e
        return self.import_state(raw, force)

    def export_state(self, dest_dir: Path, now: datetime | None = None) -> Path:
        """Writes the current snapshot to `Backup-<local timestamp>.json` inside `dest_dir`."""
        now = now or datetime.now()
        path = dest_dir / backup_file_name(now)
        atomic_write_text(path, to_json_text(self._stores.read_all()))
        return path

    # ---------- Internal ----------

    @contextmanager
    def _cycle(self) -> Iterator[None]:
        if self._in_flight:
            raise SyncInProgressError("Another sync or import is already running.")
        self._in_flight = True
        try:
            yield
        finally:
            self._in_flight = False

    async def _run_sync(self, force: bool) -> SyncOutcome:
        self.phase = SyncPhase.FETCHING_REMOTE
        local = self._stores.read_all()
        remote = self._decode_remote(await self._client.get())

        if remote is None:
            logger.info("[Sync] Remote state is empty. Creating new sync entry.")
            self.phase = SyncPhase.PUSHING_REMOTE
            await self._client.set(to_json_text(local))
            self._settings.mark_sync_time()
            return SyncOutcome(kind=SyncOutcomeKind.FIRST_SYNC)

        self.phase = SyncPhase.MERGING
        if force:
            match self._settings.settings.force_direction:
                case ForceDirection.REMOTE:
                    merged = remote
                case ForceDirection.LOCAL:
                    merged = local
        else:
            merged = merge_app_state(local, remote)

        self.phase = SyncPhase.PERSISTING_LOCAL
        self._stores.write_all(merged)

        self.phase = SyncPhase.PUSHING_REMOTE
        await self._client.set(to_json_text(merged))
        self._settings.mark_sync_time()

        return SyncOutcome(kind=SyncOutcomeKind.FORCED if force else SyncOutcomeKind.MERGED)

    @staticmethod
    def _decode_remote(raw: str | None) -> AppState | None:
        try:
            return decode_app_state(raw)
        except msgspec.DecodeError as e:
            raise MalformedRemoteStateError(f"Remote state is not a valid snapshot: {e}") from e

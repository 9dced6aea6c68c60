# pyright: standard
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol

import msgspec

from chatsync.exceptions import StoreIntegrityError
from chatsync.fs import atomic_write_text, read_bytes_if_exists
from chatsync.models import AppState, Record, StoreKey, check_record
from chatsync.serialization import clone, from_json, to_json


class StoreHandle(Protocol):
    """Read/write accessors for one live store's serializable record."""

    def to_record(self) -> Record: ...

    def from_record(self, record: Record) -> None: ...


class PersistedStore:
    """
    A live store that keeps its record in memory and mirrors it to a JSON file.

    `to_record` hands out a deep copy, so a captured snapshot is never affected
    by later writes to the store. A missing file is an empty store; a file that
    cannot be read or decoded raises StoreIntegrityError instead.
    """

    key: StoreKey
    path: Path
    _record: Record

    def __init__(self, key: StoreKey, path: Path) -> None:
        self.key = key
        self.path = path
        self._record = self._load()

    def to_record(self) -> Record:
        return clone(self._record)

    def from_record(self, record: Record) -> None:
        self._record = clone(record)
        atomic_write_text(self.path, to_json(self._record))

    def _load(self) -> Record:
        try:
            raw = read_bytes_if_exists(self.path)
        except OSError as e:
            raise StoreIntegrityError(f"Cannot read store file {self.path}: {e}") from e
        if raw is None:
            return {}
        try:
            record = from_json(dict[str, Any], raw)
            check_record(self.key, record)
        except msgspec.DecodeError as e:
            raise StoreIntegrityError(f"Corrupt store file {self.path}: {e}") from e
        return record


@dataclass(slots=True, frozen=True)
class LocalStores:
    chat: StoreHandle
    access: StoreHandle
    config: StoreHandle
    mask: StoreHandle
    prompt: StoreHandle

    @classmethod
    def open(cls, data_dir: Path) -> LocalStores:
        def _store(key: StoreKey) -> PersistedStore:
            return PersistedStore(key, data_dir / f"{key.value}.json")

        return cls(
            chat=_store(StoreKey.CHAT),
            access=_store(StoreKey.ACCESS),
            config=_store(StoreKey.CONFIG),
            mask=_store(StoreKey.MASK),
            prompt=_store(StoreKey.PROMPT),
        )

    def read_all(self) -> AppState:
        return AppState(
            chat=self.chat.to_record(),
            access=self.access.to_record(),
            config=self.config.to_record(),
            mask=self.mask.to_record(),
            prompt=self.prompt.to_record(),
        )

    def write_all(self, state: AppState) -> None:
        # Stores are independent; a failure part-way leaves earlier stores written.
        self.chat.from_record(state.chat)
        self.access.from_record(state.access)
        self.config.from_record(state.config)
        self.mask.from_record(state.mask)
        self.prompt.from_record(state.prompt)

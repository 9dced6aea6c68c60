# pyright: standard
from __future__ import annotations

from enum import Enum
from typing import Any

from msgspec import Struct, ValidationError, field

from chatsync.serialization import convert


class StoreKey(str, Enum):
    CHAT = "chat-next-web-store"
    ACCESS = "access-control"
    CONFIG = "app-config"
    MASK = "mask-store"
    PROMPT = "prompt-store"
    SYNC = "sync"


APP_STORE_KEYS: tuple[StoreKey, ...] = (
    StoreKey.CHAT,
    StoreKey.ACCESS,
    StoreKey.CONFIG,
    StoreKey.MASK,
    StoreKey.PROMPT,
)

# A store's serialized state: the JSON object the client persists, carried as-is.
type Record = dict[str, Any]

# Dates and timestamps as the client writes them: epoch ms or a date string.
type Timestamp = int | float | str | None


class MessageShape(Struct, rename="camel"):
    id: str
    date: Timestamp = None


class SessionShape(Struct, rename="camel"):
    id: str
    messages: list[MessageShape] = field(default_factory=list)
    last_update: Timestamp = None


class ChatShape(Struct):
    sessions: list[SessionShape] = field(default_factory=list)


class PromptShape(Struct):
    prompts: dict[str, Any] = field(default_factory=dict)


class MaskShape(Struct):
    masks: dict[str, Any] = field(default_factory=dict)


class UpdateTimeShape(Struct, rename="camel"):
    last_update_time: int | float | None = None


# The fields each merge policy reads. Everything else in a record is opaque.
STORE_SHAPES: dict[StoreKey, type[Struct]] = {
    StoreKey.CHAT: ChatShape,
    StoreKey.ACCESS: UpdateTimeShape,
    StoreKey.CONFIG: UpdateTimeShape,
    StoreKey.MASK: MaskShape,
    StoreKey.PROMPT: PromptShape,
}


def check_record(key: StoreKey, record: Record) -> None:
    """Raises msgspec.ValidationError when a field the merge relies on has the wrong type."""
    _ = convert(record, STORE_SHAPES[key])


class AppState(Struct):
    """
    Aggregate snapshot of every synchronized store, keyed on the wire by StoreKey.
    """

    chat: Record = field(name=StoreKey.CHAT.value)
    access: Record = field(name=StoreKey.ACCESS.value)
    config: Record = field(name=StoreKey.CONFIG.value)
    mask: Record = field(name=StoreKey.MASK.value)
    prompt: Record = field(name=StoreKey.PROMPT.value)

    def store(self, key: StoreKey) -> Record:
        match key:
            case StoreKey.CHAT:
                return self.chat
            case StoreKey.ACCESS:
                return self.access
            case StoreKey.CONFIG:
                return self.config
            case StoreKey.MASK:
                return self.mask
            case StoreKey.PROMPT:
                return self.prompt
            case _:
                raise KeyError(f"{key.value} is not part of the app state")

    def check(self) -> None:
        for key in APP_STORE_KEYS:
            try:
                check_record(key, self.store(key))
            except ValidationError as e:
                raise ValidationError(f"{e} - in `{key.value}`") from e

    @classmethod
    def from_stores(cls, records: dict[StoreKey, Record]) -> AppState:
        return cls(
            chat=records[StoreKey.CHAT],
            access=records[StoreKey.ACCESS],
            config=records[StoreKey.CONFIG],
            mask=records[StoreKey.MASK],
            prompt=records[StoreKey.PROMPT],
        )


def empty_app_state() -> AppState:
    return AppState(chat={}, access={}, config={}, mask={}, prompt={})


class SyncOutcomeKind(str, Enum):
    FIRST_SYNC = "first_sync"
    MERGED = "merged"
    FORCED = "forced"
    FAILED = "failed"


class SyncOutcome(Struct, frozen=True):
    kind: SyncOutcomeKind
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.kind is not SyncOutcomeKind.FAILED

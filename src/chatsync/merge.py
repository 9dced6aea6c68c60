# pyright: standard
"""
Per-store reconciliation policies.

Every policy takes `(primary, secondary)` and returns a new record; neither
input is modified. Primary is the side whose values win on conflict unless
the policy says otherwise. Records are plain JSON objects: a policy touches
only the fields it reconciles and carries every other key through unchanged.
"""

from __future__ import annotations

import math
from collections.abc import Callable, Mapping
from datetime import UTC, datetime
from types import MappingProxyType
from typing import Any

from chatsync.models import APP_STORE_KEYS, AppState, Record, StoreKey
from chatsync.serialization import clone

type Merger = Callable[[Record, Record], Record]

# Formats produced by `Date.prototype.toLocaleString()` in common locales.
_LOCALE_DATE_FORMATS = (
    "%m/%d/%Y, %I:%M:%S %p",  # en-US
    "%d/%m/%Y, %H:%M:%S",  # en-GB
    "%Y/%m/%d %H:%M:%S",  # zh-CN
    "%d.%m.%Y, %H:%M:%S",  # de-DE
)


def _parse_date_string(text: str) -> datetime | None:
    text = text.strip().replace("\u202f", " ")
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        pass
    for fmt in _LOCALE_DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    return None


def _finite(number: float) -> float:
    return number if math.isfinite(number) else -math.inf


def to_epoch_ms(value: Any) -> float:
    """
    Milliseconds since the epoch for a message date or session timestamp.

    Accepts epoch numbers, numeric strings, ISO-8601 and `toLocaleString()` output.
    Naive dates are read as UTC. Anything else maps to -inf so it sorts first.
    """
    match value:
        case bool() | None:
            return -math.inf
        case int() | float():
            return _finite(float(value))
        case str():
            try:
                return _finite(float(value))
            except ValueError:
                pass
            parsed = _parse_date_string(value)
            if parsed is None:
                return -math.inf
            if parsed.tzinfo is None:
                parsed = parsed.replace(tzinfo=UTC)
            return parsed.timestamp() * 1000
        case _:
            return -math.inf


def fill_gaps(winner: Record, loser: Record) -> Record:
    """Copy of `winner` with every top-level key it lacks taken from `loser`."""
    return {**clone(loser), **clone(winner)}


def _without(record: Record, key: str) -> Record:
    return {k: v for k, v in record.items() if k != key}


def merge_chat(primary: Record, secondary: Record) -> Record:
    merged = fill_gaps(primary, _without(secondary, "sessions"))
    sessions: list[Record] = merged.get("sessions", [])
    by_id: dict[str, Record] = {s["id"]: s for s in sessions}

    for incoming in clone(secondary).get("sessions", []):
        # Empty sessions never contribute anything
        if not incoming.get("messages"):
            continue

        existing = by_id.get(incoming["id"])
        if existing is None:
            sessions.append(incoming)
            by_id[incoming["id"]] = incoming
            continue

        existing.update(fill_gaps(existing, _without(incoming, "messages")))
        messages: list[Record] = existing.setdefault("messages", [])
        known = {m["id"]: m for m in messages}
        for message in incoming["messages"]:
            if (mine := known.get(message["id"])) is not None:
                mine.update(fill_gaps(mine, message))
            else:
                messages.append(message)
                known[message["id"]] = message
        messages.sort(key=lambda m: to_epoch_ms(m.get("date")))

    sessions.sort(key=lambda s: to_epoch_ms(s.get("lastUpdate")), reverse=True)
    if sessions or "sessions" in merged:
        merged["sessions"] = sessions
    return merged


def _merge_keyed(field_name: str, primary: Record, secondary: Record) -> Record:
    merged = fill_gaps(primary, _without(secondary, field_name))
    if field_name not in primary and field_name not in secondary:
        return merged
    merged[field_name] = {**clone(secondary).get(field_name, {}), **merged.get(field_name, {})}
    return merged


def merge_prompts(primary: Record, secondary: Record) -> Record:
    return _merge_keyed("prompts", primary, secondary)


def merge_masks(primary: Record, secondary: Record) -> Record:
    return _merge_keyed("masks", primary, secondary)


def merge_with_update(primary: Record, secondary: Record) -> Record:
    """
    The record with the newer `lastUpdateTime` wins; the older one only fills its gaps.

    A missing timestamp counts as 0 on the primary side and 1 on the secondary
    side, so when neither side has one the secondary record wins.
    """
    primary_time = primary.get("lastUpdateTime")
    secondary_time = secondary.get("lastUpdateTime")
    primary_time = 0 if primary_time is None else primary_time
    secondary_time = 1 if secondary_time is None else secondary_time

    if primary_time < secondary_time:
        return fill_gaps(secondary, primary)
    return fill_gaps(primary, secondary)


MERGE_POLICIES: Mapping[StoreKey, Merger] = MappingProxyType(
    {
        StoreKey.CHAT: merge_chat,
        StoreKey.ACCESS: merge_with_update,
        StoreKey.CONFIG: merge_with_update,
        StoreKey.MASK: merge_masks,
        StoreKey.PROMPT: merge_prompts,
    }
)


def merge_app_state(local: AppState, remote: AppState, prefer_remote: bool = False) -> AppState:
    """Merges two snapshots store by store. Local is primary unless `prefer_remote` is set."""
    primary, secondary = (remote, local) if prefer_remote else (local, remote)
    merged = {key: MERGE_POLICIES[key](primary.store(key), secondary.store(key)) for key in APP_STORE_KEYS}
    return AppState.from_stores(merged)

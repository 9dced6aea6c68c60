# pyright: standard

from collections.abc import Sequence
from typing import Any

from chatsync.models import AppState, Record


def make_message(id: str, date: str, content: Any = None) -> Record:
    return {"id": id, "date": date, "role": "user", "content": content or f"message {id}"}


def make_session(id: str, messages: Sequence[Record] = (), last_update: int = 0) -> Record:
    return {"id": id, "topic": f"topic {id}", "messages": list(messages), "lastUpdate": last_update}


def make_state(
    sessions: Sequence[Record] = (),
    config: Record | None = None,
    access: Record | None = None,
    mask: Record | None = None,
    prompt: Record | None = None,
) -> AppState:
    return AppState(
        chat={"sessions": list(sessions), "currentSessionIndex": 0},
        access=access or {},
        config=config or {},
        mask=mask or {},
        prompt=prompt or {},
    )

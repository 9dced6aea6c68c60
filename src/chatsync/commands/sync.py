import asyncio

import typer

from chatsync.exceptions import TransportError
from chatsync.models import SyncOutcomeKind
from chatsync.runtime import load_settings, open_engine, require_configured

_MESSAGES = {
    SyncOutcomeKind.FIRST_SYNC: "Remote was empty; uploaded local state.",
    SyncOutcomeKind.MERGED: "Sync complete: local and remote state merged.",
    SyncOutcomeKind.FORCED: "Force sync complete: {direction} state replaced the other side.",
}


def sync(force: bool | None) -> None:
    settings = load_settings()
    require_configured(settings)

    async def _run():
        async with open_engine(settings) as engine:
            return await engine.sync(force=force)

    outcome = asyncio.run(_run())
    if outcome.kind is SyncOutcomeKind.FAILED:
        raise TransportError(f"Sync failed: {outcome.error}")

    direction = settings.settings.force_direction.value
    typer.echo(_MESSAGES[outcome.kind].format(direction=direction))

import asyncio
from pathlib import Path

import typer

from chatsync.models import AppState
from chatsync.runtime import load_settings, open_engine


def _notify_reload() -> None:
    typer.echo("Local stores replaced. Restart any running client to pick up the imported data.")


def import_backup(file_path: Path, force: bool | None) -> None:
    settings = load_settings()

    async def _run() -> AppState:
        async with open_engine(settings, on_reload=_notify_reload) as engine:
            return engine.import_file(file_path, force=force)

    state = asyncio.run(_run())
    typer.echo(f"Imported {len(state.chat.get('sessions', []))} chat session(s) from {file_path}")

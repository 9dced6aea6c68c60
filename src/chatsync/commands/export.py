import asyncio
from pathlib import Path

import typer

from chatsync.runtime import load_settings, open_engine


def export(dest: Path) -> None:
    settings = load_settings()

    async def _run() -> Path:
        async with open_engine(settings) as engine:
            return engine.export_state(dest)

    path = asyncio.run(_run())
    typer.echo(f"Exported backup to {path}")

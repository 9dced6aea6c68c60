import asyncio

import typer

from chatsync.runtime import load_settings, open_engine, require_configured


def check() -> None:
    settings = load_settings()
    require_configured(settings)

    async def _run() -> bool:
        async with open_engine(settings) as engine:
            return await engine.check()

    provider = settings.settings.provider.value
    if asyncio.run(_run()):
        typer.echo(f"Remote '{provider}' is reachable.")
    else:
        typer.secho(f"Remote '{provider}' check failed.", err=True, fg=typer.colors.RED)
        raise typer.Exit(code=1)

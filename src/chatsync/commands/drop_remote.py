import asyncio

import typer

from chatsync.cloud.transport import build_http_client
from chatsync.cloud.upstash import UpstashClient
from chatsync.exceptions import ConfigurationError
from chatsync.runtime import load_settings, require_configured
from chatsync.settings import ProviderType


def drop_remote(yes: bool) -> None:
    settings = load_settings()
    require_configured(settings)
    if settings.settings.provider is not ProviderType.UPSTASH:
        raise ConfigurationError("drop-remote is only supported for the upstash provider.")
    if not yes:
        typer.echo("Refusing to delete remote data without --yes.", err=True)
        raise typer.Exit(code=1)

    async def _run() -> int:
        async with build_http_client(settings.settings) as http:
            return await UpstashClient(settings.settings.upstash.username, http).drop_all()

    deleted = asyncio.run(_run())
    typer.echo(f"Deleted {deleted} remote key(s).")

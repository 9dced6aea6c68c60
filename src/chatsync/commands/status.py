from datetime import datetime

from rich.console import Console
from rich.table import Table

from chatsync.fs import resolve_data_dir
from chatsync.runtime import load_settings


def _mask(secret: str) -> str:
    if not secret:
        return ""
    return secret[:2] + "*" * max(len(secret) - 2, 0)


def _format_sync_time(ms: int) -> str:
    if ms <= 0:
        return "never"
    return datetime.fromtimestamp(ms / 1000).strftime("%Y-%m-%d %H:%M:%S")


def status() -> None:
    settings = load_settings().settings

    table = Table(title="chatsync status", show_header=False, box=None)
    table.add_column(style="bold")
    table.add_column()

    table.add_row("Data directory", str(resolve_data_dir()))
    table.add_row("Provider", settings.provider.value)
    table.add_row("Configured", "yes" if settings.is_configured() else "[red]no[/red]")
    table.add_row("Proxy", settings.effective_proxy_url or "off")
    table.add_row("Force sync", f"{settings.force_sync} ({settings.force_direction.value} wins)")

    config = settings.provider_config
    table.add_row("Endpoint", config.endpoint)
    table.add_row("Username", config.username)
    secret = settings.upstash.api_key if config is settings.upstash else settings.webdav.password
    table.add_row("Secret", _mask(secret))

    table.add_row("Last sync", _format_sync_time(settings.last_sync_time))
    table.add_row("Last provider", settings.last_provider or "-")

    Console().print(table)

from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager

import httpx

from chatsync.cloud.router import create_sync_client
from chatsync.cloud.transport import build_http_client
from chatsync.engine import SyncEngine
from chatsync.exceptions import ConfigurationError
from chatsync.fs import resolve_data_dir
from chatsync.local_state import LocalStores
from chatsync.settings import SettingsStore


def load_settings() -> SettingsStore:
    return SettingsStore.open(resolve_data_dir())


def require_configured(settings: SettingsStore) -> None:
    if not settings.settings.is_configured():
        provider = settings.settings.provider.value
        raise ConfigurationError(f"Sync provider '{provider}' is not fully configured. Run 'chatsync configure' first.")


@asynccontextmanager
async def open_engine(
    settings: SettingsStore,
    on_reload: Callable[[], None] | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> AsyncIterator[SyncEngine]:
    """
    Wires local stores, the provider's HTTP client and the sync client into an engine.

    The HTTP client is closed when the context exits.
    """
    stores = LocalStores.open(resolve_data_dir())
    async with build_http_client(settings.settings, transport=transport) as http:
        client = create_sync_client(settings.settings, http)
        yield SyncEngine(stores, client, settings, on_reload=on_reload)

import httpx

from chatsync.cloud.base import SyncClient
from chatsync.cloud.upstash import UpstashClient
from chatsync.cloud.webdav import WebDavClient
from chatsync.settings import ProviderType, SyncSettings


def create_sync_client(settings: SyncSettings, http: httpx.AsyncClient) -> SyncClient:
    """Returns the backend adapter for the configured provider, bound to an already-configured HTTP client."""
    match settings.provider:
        case ProviderType.UPSTASH:
            return UpstashClient(settings.upstash.username, http)
        case ProviderType.WEBDAV:
            return WebDavClient(http)

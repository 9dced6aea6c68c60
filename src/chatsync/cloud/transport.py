import httpx

from chatsync.settings import ProviderType, SyncSettings

DEFAULT_TIMEOUT = 30.0


def build_http_client(settings: SyncSettings, transport: httpx.AsyncBaseTransport | None = None) -> httpx.AsyncClient:
    """
    Builds the HTTP client for the selected provider: base URL, credentials and optional forward proxy.
    """
    headers: dict[str, str] = {}
    auth: httpx.Auth | None = None

    match settings.provider:
        case ProviderType.UPSTASH:
            endpoint = settings.upstash.endpoint
            headers["Authorization"] = f"Bearer {settings.upstash.api_key}"
        case ProviderType.WEBDAV:
            endpoint = settings.webdav.endpoint
            auth = httpx.BasicAuth(settings.webdav.username, settings.webdav.password)

    # An explicit transport bypasses the proxy.
    proxy = settings.effective_proxy_url if transport is None else None

    return httpx.AsyncClient(
        base_url=endpoint,
        headers=headers,
        auth=auth,
        proxy=proxy,
        transport=transport,
        timeout=DEFAULT_TIMEOUT,
    )

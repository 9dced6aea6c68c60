from dataclasses import replace
from typing import Any

import typer

from chatsync.runtime import load_settings
from chatsync.settings import ForceDirection, ProviderType


def configure(
    provider: ProviderType | None,
    endpoint: str | None,
    username: str | None,
    secret: str | None,
    proxy_url: str | None,
    use_proxy: bool | None,
    force_sync: bool | None,
    force_direction: ForceDirection | None,
) -> None:
    store = load_settings()
    settings = store.settings

    changes: dict[str, Any] = {}
    if provider is not None:
        changes["provider"] = provider
    if proxy_url is not None:
        changes["proxy_url"] = proxy_url
    if use_proxy is not None:
        changes["use_proxy"] = use_proxy
    if force_direction is not None:
        changes["force_direction"] = force_direction

    target = provider or settings.provider
    provider_changes = {
        k: v for k, v in {"endpoint": endpoint, "username": username}.items() if v is not None
    }
    match target:
        case ProviderType.UPSTASH:
            if secret is not None:
                provider_changes["api_key"] = secret
            if force_sync is not None:
                provider_changes["force_sync"] = force_sync
            if provider_changes:
                changes["upstash"] = replace(settings.upstash, **provider_changes)
        case ProviderType.WEBDAV:
            if secret is not None:
                provider_changes["password"] = secret
            if force_sync is not None:
                # forceSync lives with the upstash settings but governs every provider
                changes["upstash"] = replace(settings.upstash, force_sync=force_sync)
            if provider_changes:
                changes["webdav"] = replace(settings.webdav, **provider_changes)

    _ = store.update(**changes)
    typer.echo(f"Saved sync settings to {store.path}")

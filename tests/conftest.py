# pyright: standard
from pathlib import Path

import httpx
import pytest

from chatsync.cloud.upstash import UpstashClient
from chatsync.local_state import LocalStores
from chatsync.settings import SettingsStore
from tests.support.fake_upstash import FakeUpstash


@pytest.fixture
def data_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Points CHATSYNC_HOME at an empty temporary directory."""
    path = tmp_path / "home"
    path.mkdir()
    monkeypatch.setenv("CHATSYNC_HOME", str(path))
    return path


@pytest.fixture
def fake_upstash() -> FakeUpstash:
    return FakeUpstash()


@pytest.fixture
def upstash_http(fake_upstash: FakeUpstash) -> httpx.AsyncClient:
    return fake_upstash.http_client()


@pytest.fixture
def upstash_client(upstash_http: httpx.AsyncClient) -> UpstashClient:
    return UpstashClient("tester", upstash_http)


@pytest.fixture
def stores(data_dir: Path) -> LocalStores:
    return LocalStores.open(data_dir)


@pytest.fixture
def settings_store(data_dir: Path) -> SettingsStore:
    return SettingsStore.open(data_dir)

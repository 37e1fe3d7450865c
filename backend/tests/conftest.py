from __future__ import annotations

import sys
from pathlib import Path
from typing import Any, Callable, Iterator

import pytest
from fastapi.testclient import TestClient

BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from transit_insights.core.clock import Clock, FixedClock, get_clock  # noqa: E402
from transit_insights.core.config import Settings, get_settings  # noqa: E402
from transit_insights.main import create_app  # noqa: E402
from transit_insights.persistence.dependencies import get_record_store  # noqa: E402
from transit_insights.persistence.store import JsonFileRecordStore  # noqa: E402

from tests.factories import NOW, TickingClock  # noqa: E402


@pytest.fixture()
def fixed_clock() -> FixedClock:
    return FixedClock(NOW)


@pytest.fixture()
def ticking_clock() -> TickingClock:
    return TickingClock(NOW)


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    return Settings(_env_file=None, DATA_STORE_PATH=tmp_path / "db.json")


@pytest.fixture()
def store_path(settings: Settings) -> Path:
    return settings.data_store_path


@pytest.fixture()
def store(store_path: Path) -> JsonFileRecordStore:
    return JsonFileRecordStore(store_path)


@pytest.fixture()
def make_client(
    store: JsonFileRecordStore, settings: Settings
) -> Iterator[Callable[..., TestClient]]:
    """Build TestClients wired to the temporary store and a chosen clock."""
    apps = []

    def factory(clock: Clock | None = None, **client_kwargs: Any) -> TestClient:
        app = create_app()
        app.dependency_overrides[get_record_store] = lambda: store
        app.dependency_overrides[get_settings] = lambda: settings
        app.dependency_overrides[get_clock] = lambda: clock or FixedClock(NOW)
        apps.append(app)
        return TestClient(app, **client_kwargs)

    yield factory

    for app in apps:
        app.dependency_overrides.clear()


@pytest.fixture()
def api_client(make_client: Callable[..., TestClient]) -> Iterator[TestClient]:
    with make_client() as client:
        yield client

import sys
from pathlib import Path as _Path
sys.path.insert(0, str(_Path(__file__).resolve().parents[1] / "src"))

import importlib
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from wikimaps.infra.db import Store


@pytest.fixture()
def db_url(tmp_path: Path) -> str:
    return f"sqlite:///{tmp_path / 'wikimaps-test.db'}"


@pytest.fixture()
def app_env(db_url, monkeypatch):
    """Environment for an isolated app: temp SQLite file, fixed secret and API key."""
    monkeypatch.setenv("DATABASE_URL", db_url)
    monkeypatch.setenv("DATABASE_ECHO", "false")
    monkeypatch.setenv("SECRET_KEY", "test-secret")
    monkeypatch.setenv("GOOGLEMAPS_APIKEY", "test-maps-key")
    monkeypatch.setenv("ENV", "test")
    monkeypatch.setenv("WIKIMAPS_LOG_LEVEL", "WARNING")


@pytest.fixture()
def store(db_url, app_env) -> Store:
    s = Store.from_url(db_url)
    s.init_db()
    yield s
    s.dispose()


@pytest.fixture()
def app_module(app_env):
    import wikimaps.app as module

    module = importlib.reload(module)
    yield module
    module.app.state.store.dispose()


@pytest.fixture()
def client(app_module) -> TestClient:
    return TestClient(app_module.app)


@pytest.fixture()
def app_store(app_module) -> Store:
    return app_module.app.state.store

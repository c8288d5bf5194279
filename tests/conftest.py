import sys
from pathlib import Path as _Path
sys.path.insert(0, str(_Path(__file__).resolve().parents[1] / "src"))

from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from loginlab.app import create_app
from loginlab.config import Settings
from loginlab.infra.db import create_db_engine, init_schema
from loginlab.infra.session_store import MemorySessionStore
from loginlab.variants import get_variant

TEST_SECRET = "test-session-secret"


@pytest.fixture()
def engine(tmp_path: Path):
    """Fresh SQLite database (file-backed so pooled connections share it)."""
    eng = create_db_engine(f"sqlite:///{tmp_path / 'loginlab.db'}", pool_size=2)
    init_schema(eng)
    yield eng
    eng.dispose()


@pytest.fixture()
def settings() -> Settings:
    return Settings(session_secret=TEST_SECRET, session_store="memory", session_store_secret=TEST_SECRET)


@pytest.fixture()
def store() -> MemorySessionStore:
    return MemorySessionStore()


@pytest.fixture(params=["unsafe", "safe"])
def variant_name(request) -> str:
    return request.param


@pytest.fixture()
def make_client(engine, settings, store):
    """Build a TestClient for a given variant over the shared engine/store."""

    def _make(name: str, **overrides) -> TestClient:
        app_settings = overrides.pop("settings", settings)
        kwargs = {"variant": get_variant(name), "engine": engine, "session_store": store}
        kwargs.update(overrides)
        app = create_app(app_settings, **kwargs)
        return TestClient(app)

    return _make


@pytest.fixture()
def client(make_client, variant_name) -> TestClient:
    return make_client(variant_name)

import asyncio
import os
import tempfile
from datetime import datetime, timedelta, timezone

# Settings are read at import time; keep the module-level repo and log file
# out of the working tree before anything from the package is imported.
_TMP = tempfile.mkdtemp(prefix="twilight-test-")
os.environ.setdefault("SQLITE_PATH", os.path.join(_TMP, "default.db"))
os.environ["LOG_FILE"] = ""

import pytest
from fastapi.testclient import TestClient

from twilight_switch.core.config import settings
from twilight_switch.services.twilight import TwilightService
from twilight_switch.storage.sqlite_repo import SQLiteRepository

T0 = datetime(2026, 1, 1, 0, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    """Returns T0, T0+step, T0+2*step, ... on successive calls."""

    def __init__(self, start: datetime = T0, step: timedelta = timedelta(seconds=1)) -> None:
        self.now = start
        self.step = step

    def __call__(self) -> datetime:
        current = self.now
        self.now = self.now + self.step
        return current


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
async def repo(tmp_path, clock):
    r = SQLiteRepository(str(tmp_path / "events.db"), clock=clock)
    await r.init()
    return r


@pytest.fixture
def service(repo):
    return TwilightService(repo)


@pytest.fixture
def api_repo(tmp_path, clock):
    r = SQLiteRepository(str(tmp_path / "api.db"), clock=clock)
    asyncio.run(r.init())
    return r


@pytest.fixture
def client(api_repo):
    import twilight_switch.api.routes as routes_module
    from twilight_switch.main import app

    saved = dict(app.dependency_overrides)
    svc = TwilightService(api_repo)
    app.dependency_overrides[routes_module.get_repo] = lambda: api_repo
    app.dependency_overrides[routes_module.get_service] = lambda: svc
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
        app.dependency_overrides.update(saved)


@pytest.fixture
def operator_token(monkeypatch):
    monkeypatch.setattr(settings, "api_token", "s3cret")
    return "s3cret"

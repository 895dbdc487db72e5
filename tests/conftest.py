"""Test fixtures for Pastebin Lite."""
import fakeredis
import pytest
from fastapi.testclient import TestClient

from pastebin.config import Settings
from pastebin.database import RedisPasteStorage, SQLitePasteStorage
from pastebin.main import create_app
from pastebin.service import PasteService

# 2023-11-14T22:13:20.000Z
START_MS = 1_700_000_000_000


class FakeClock:
    """Manually advanced millisecond clock used as the storage time source."""

    def __init__(self, now: int = START_MS):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sqlite_storage(tmp_path, clock):
    storage = SQLitePasteStorage(tmp_path / "pastes.db", clock=clock)
    storage.initialize()
    yield storage
    storage.close()


@pytest.fixture
def redis_storage(clock):
    client = fakeredis.FakeRedis(server=fakeredis.FakeServer(), decode_responses=True)
    storage = RedisPasteStorage(client, clock=clock)
    storage.initialize()
    yield storage
    storage.close()


@pytest.fixture(params=["sqlite", "redis"])
def storage(request):
    """Every storage contract test runs against both backends."""
    return request.getfixturevalue(f"{request.param}_storage")


@pytest.fixture
def service(storage) -> PasteService:
    return PasteService(storage)


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        {
            "TEST_MODE": "1",
            "DATABASE_PATH": str(tmp_path / "pastes.db"),
            "APP_DOMAIN": "http://paste.test",
        }
    )


@pytest.fixture
def client(settings, storage):
    app = create_app(settings=settings, storage=storage)
    with TestClient(app) as test_client:
        yield test_client

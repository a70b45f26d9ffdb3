import asyncio
import os
import tempfile
from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient
from redis.exceptions import ConnectionError as RedisConnectionError
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

os.environ["ENVIRONMENT"] = "development"
os.environ["JWT_SECRET"] = "unit-test-signing-secret-for-user-auth-service"
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(tempfile.gettempdir(), 'user-auth-service-tests.db')}"

import app.models  # noqa: F401
from app.core.config import settings
from app.core.keys import SigningKey
from app.core.rate_limiter import limiter
from app.core.security import TokenIssuer, TokenVerifier
from app.db.base_class import Base
from app.db.session import get_db
from app.main import create_app
from app.services.revocation_store import RevocationStore


class FakeClock:
    """Manually advanced wall clock, seconds since the epoch."""

    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeRedis:
    """In-memory stand-in for the async Redis commands the revocation store uses."""

    def __init__(self, clock: FakeClock):
        self.clock = clock
        self.values: dict[str, tuple[str, float | None]] = {}
        self.set_calls = 0
        self.closed = False

    def _evict_expired(self, key: str) -> None:
        entry = self.values.get(key)
        if entry and entry[1] is not None and self.clock() >= entry[1]:
            del self.values[key]

    async def exists(self, *keys: str) -> int:
        found = 0
        for key in keys:
            self._evict_expired(key)
            if key in self.values:
                found += 1
        return found

    async def set(self, key: str, value: str, px: int | None = None) -> bool:
        expires_at = self.clock() + px / 1000 if px is not None else None
        self.values[key] = (value, expires_at)
        self.set_calls += 1
        return True

    async def ping(self) -> bool:
        return True

    async def aclose(self) -> None:
        self.closed = True


class UnreachableRedis:
    async def exists(self, *keys: str) -> int:
        raise RedisConnectionError("Error 111 connecting to localhost:6379. Connection refused.")

    async def set(self, key: str, value: str, px: int | None = None) -> bool:
        raise RedisConnectionError("Error 111 connecting to localhost:6379. Connection refused.")

    async def ping(self) -> bool:
        raise RedisConnectionError("Error 111 connecting to localhost:6379. Connection refused.")

    async def aclose(self) -> None:
        pass


class SlowRedis:
    async def exists(self, *keys: str) -> int:
        await asyncio.sleep(5)
        return 0

    async def set(self, key: str, value: str, px: int | None = None) -> bool:
        await asyncio.sleep(5)
        return True

    async def ping(self) -> bool:
        await asyncio.sleep(5)
        return True

    async def aclose(self) -> None:
        pass


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def fake_redis(clock: FakeClock) -> FakeRedis:
    return FakeRedis(clock)


@pytest.fixture()
def unreachable_redis() -> UnreachableRedis:
    return UnreachableRedis()


@pytest.fixture()
def slow_redis() -> SlowRedis:
    return SlowRedis()


@pytest.fixture()
def signing_key() -> SigningKey:
    return SigningKey.from_secret(settings.JWT_SECRET, settings.JWT_ALGORITHM)


@pytest.fixture()
def issuer(signing_key: SigningKey, clock: FakeClock) -> TokenIssuer:
    return TokenIssuer(signing_key, ttl_ms=60_000, clock=clock)


@pytest.fixture()
def verifier(signing_key: SigningKey, clock: FakeClock) -> TokenVerifier:
    return TokenVerifier(signing_key, clock=clock)


@pytest.fixture()
def revocation_store(fake_redis: FakeRedis) -> RevocationStore:
    return RevocationStore(fake_redis, key_prefix="jwt:blacklist:", timeout=0.05)


@pytest.fixture()
def db_session() -> Generator[Session, None, None]:
    db_file = tempfile.NamedTemporaryFile(suffix=".db", delete=False)
    db_file.close()

    engine = create_engine(
        f"sqlite:///{db_file.name}",
        connect_args={"check_same_thread": False},
    )
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()
        os.unlink(db_file.name)


@pytest.fixture()
def make_client(db_session: Session, clock: FakeClock, fake_redis: FakeRedis):
    """Build a TestClient around a fresh app; keyword arguments override settings."""
    clients: list[TestClient] = []

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    def _make(redis_client=None, **overrides) -> TestClient:
        test_settings = settings.model_copy(update=overrides) if overrides else settings
        application = create_app(
            test_settings,
            redis_client=redis_client if redis_client is not None else fake_redis,
            clock=clock,
        )
        application.dependency_overrides[get_db] = override_get_db
        application.state.limiter.reset()
        test_client = TestClient(application)
        test_client.__enter__()
        clients.append(test_client)
        return test_client

    yield _make

    for test_client in clients:
        test_client.__exit__(None, None, None)
    limiter.reset()


@pytest.fixture()
def client(make_client) -> TestClient:
    return make_client()

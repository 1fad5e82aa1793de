"""Shared fixtures for the waitlist API tests.

Collaborators are replaced with in-process fakes: an in-memory SQLite store,
an in-memory sliding window limiter and a scripted reCAPTCHA verifier, each
recording how often it was called.
"""
import pytest
from fastapi.testclient import TestClient

import models
from config.waitlist_config import WaitlistConfig
from database import make_engine, make_sessionmaker
from main import create_app
from services.rate_limiter import InMemorySlidingWindowRateLimiter
from services.recaptcha import RecaptchaResult
from services.waitlist_service import WaitlistService
from services.waitlist_store import WaitlistStore

CLIENT_IP = "203.0.113.7"


class FakeClock:
    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


class CountingRateLimiter:
    """Wraps a limiter and records the keys it was asked about"""

    def __init__(self, inner):
        self.inner = inner
        self.calls = []

    async def limit(self, key):
        self.calls.append(key)
        return await self.inner.limit(key)


class FakeVerifier:
    """Scripted stand-in for RecaptchaVerifier"""

    def __init__(self, score: float = 0.9, success: bool = True):
        self.score = score
        self.success = success
        self.calls = []

    async def verify(self, token, remote_ip=None):
        self.calls.append((token, remote_ip))
        return RecaptchaResult(
            success=self.success,
            score=self.score,
            error_codes=[] if self.success else ["invalid-input-response"],
        )

    async def aclose(self):
        return None


class CountingStore:
    """Wraps a WaitlistStore and counts insert attempts"""

    def __init__(self, inner: WaitlistStore):
        self.inner = inner
        self.add_calls = 0

    def add(self, name, email):
        self.add_calls += 1
        return self.inner.add(name, email)

    def count_by_email(self, email):
        return self.inner.count_by_email(email)

    def close(self):
        self.inner.close()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def config():
    return WaitlistConfig(
        recaptcha_secret_key="test-secret",
        database_url="sqlite://",
        rate_limit_backend="memory",
    )


@pytest.fixture
def waitlist_store():
    engine = make_engine("sqlite://")
    models.WaitlistEntry.metadata.create_all(bind=engine)
    store = WaitlistStore(make_sessionmaker(engine))
    yield store
    store.close()


@pytest.fixture
def store(waitlist_store):
    return CountingStore(waitlist_store)


@pytest.fixture
def rate_limiter(clock):
    return CountingRateLimiter(InMemorySlidingWindowRateLimiter(max_requests=5, window_seconds=5, clock=clock))


@pytest.fixture
def verifier():
    return FakeVerifier()


@pytest.fixture
def service(config, rate_limiter, verifier, store):
    return WaitlistService(config=config, rate_limiter=rate_limiter, verifier=verifier, store=store)


@pytest.fixture
def app(config, service):
    return create_app(config=config, service=service)


@pytest.fixture
def client(app):
    with TestClient(app, headers={"X-Forwarded-For": CLIENT_IP}) as c:
        yield c


@pytest.fixture
def anonymous_client(app):
    """Client that sends no X-Forwarded-For header"""
    with TestClient(app) as c:
        yield c

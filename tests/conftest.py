# tests/conftest.py
import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("ADMIN_API_TOKEN", "test-admin-token")
os.environ.setdefault("IMPORT_SECRET_TOKEN", "test-cron-token")
os.environ["ENABLE_REDIS"] = "false"

import threading

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from dealership import models  # noqa: F401
from dealership.cache import InvalidationResult
from dealership.connectors.base import Connector
from dealership.db import Base


class RecordingCache:
    """In-memory stand-in for `dealership.cache.Cache`."""

    def __init__(self, fail=False):
        self.store = {}
        self.invalidated = []
        self.fail = fail

    def get(self, key):
        return self.store.get(key)

    def set(self, key, value, ttl_seconds=60):
        self.store[key] = value
        return True

    def invalidate(self, pattern):
        self.invalidated.append(pattern)
        if self.fail:
            return InvalidationResult(ok=False, error="connection refused")
        prefix = pattern.rstrip("*")
        keys = [k for k in self.store if k.startswith(prefix)]
        for k in keys:
            del self.store[k]
        return InvalidationResult(ok=True, deleted=len(keys))


class StaticConnector(Connector):
    """Serves a fixed list of records already in the incoming vehicle shape."""

    def __init__(self, name, records=None):
        self.name = name
        self.records = list(records or [])
        self.fetch_calls = 0

    def fetch(self):
        self.fetch_calls += 1
        return super().fetch()

    def fetch_raw(self):
        return list(self.records)

    def map_record(self, raw):
        return dict(raw)

    def external_id_of(self, raw):
        return str(raw.get("external_id", "?"))


class ExplodingConnector(Connector):
    def __init__(self, name, message="source exploded"):
        self.name = name
        self.message = message

    def fetch(self):
        raise RuntimeError(self.message)

    def fetch_raw(self):
        return []

    def map_record(self, raw):
        return raw


class BlockingConnector(Connector):
    """fetch() waits until `release` is set; used to simulate a stuck source."""

    def __init__(self, name):
        self.name = name
        self.started = threading.Event()
        self.release = threading.Event()

    def fetch_raw(self):
        self.started.set()
        self.release.wait(5)
        return []

    def map_record(self, raw):
        return raw


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def cache():
    return RecordingCache()


@pytest.fixture
def record():
    """Factory for a valid incoming record; keyword arguments override fields."""
    def _make(**overrides):
        data = {
            "external_id": "EXT-001",
            "type": "USED",
            "make": "BMW",
            "model": "X3",
            "year": 2022,
            "price_gross": 180000,
        }
        data.update(overrides)
        return data
    return _make


@pytest.fixture
def connectors():
    """Connector doubles, exposed as a namespace so tests can build registries."""
    class _Doubles:
        static = StaticConnector
        exploding = ExplodingConnector
        blocking = BlockingConnector
        recording_cache = RecordingCache
    return _Doubles

"""Pytest configuration and fixtures for photoshare tests.

Test isolation strategy:
- Every test that touches the metadata store gets a fresh in-memory
  SQLite database built from the ORM metadata
- Object storage is a FakeStorageBackend handed out by a broker pinned to it
- Notifications are recorded, never sent
- API tests use a client with auth middleware and MockJwtVerifier
"""

import os
import sys
from collections.abc import Generator
from pathlib import Path

# Settings are read when the app is created; provide what validation requires.
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("OIDC_ISSUER", "test-issuer")
os.environ.setdefault("OIDC_CLIENT_ID", "test-audience")
os.environ.setdefault("PHOTOSHARE_ENV", "test")

# Add repo root to sys.path for importing top-level packages (e.g., apps)
_repo_root = Path(__file__).parent.parent.parent
if str(_repo_root) not in sys.path:
    sys.path.insert(0, str(_repo_root))

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import Engine
from sqlalchemy.orm import Session, sessionmaker

from photoshare.app import add_request_id_middleware, create_app
from photoshare.config import clear_settings_cache
from photoshare.db.engine import create_db_engine
from photoshare.db.models import Base
from photoshare.db.session import create_session_factory
from photoshare.db.store import SqlMetadataStore
from photoshare.storage.broker import CredentialBroker
from photoshare.storage.client import FakeStorageBackend
from tests.helpers import RecordingNotifier, RegisteredUser, register
from tests.support.test_verifier import MockJwtVerifier


@pytest.fixture
def engine() -> Generator[Engine, None, None]:
    """A fresh in-memory database with the full schema."""
    engine = create_db_engine("sqlite://")
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine: Engine) -> sessionmaker[Session]:
    return create_session_factory(engine)


@pytest.fixture
def store(session_factory: sessionmaker[Session]) -> SqlMetadataStore:
    return SqlMetadataStore(session_factory)


@pytest.fixture
def storage() -> FakeStorageBackend:
    return FakeStorageBackend()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def alice(store: SqlMetadataStore) -> RegisteredUser:
    return register(store, "alice-subject", phone="+15550000001", email="alice@example.com")


@pytest.fixture
def bob(store: SqlMetadataStore) -> RegisteredUser:
    return register(store, "bob-subject", phone="+15550000002", email="bob@example.com")


@pytest.fixture
def carol(store: SqlMetadataStore) -> RegisteredUser:
    return register(store, "carol-subject", phone="+15550000003")


@pytest.fixture
def app(
    store: SqlMetadataStore, storage: FakeStorageBackend, notifier: RecordingNotifier
) -> FastAPI:
    """The full application wired to test collaborators."""
    broker = CredentialBroker(
        storage,
        role_arn="arn:aws:iam::123456789012:role/TestRole",
        role_session_name="test",
    )
    app = create_app(
        token_verifier=MockJwtVerifier(),
        store=store,
        credential_broker=broker,
        notifier=notifier,
    )
    add_request_id_middleware(app, log_requests=False)
    return app


@pytest.fixture
def client(app: FastAPI) -> Generator[TestClient, None, None]:
    with TestClient(app) as client:
        yield client


@pytest.fixture(autouse=True)
def reset_settings_cache():
    """Reset the settings cache before each test."""
    clear_settings_cache()
    yield
    clear_settings_cache()

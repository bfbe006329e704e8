"""
Test configuration and fixtures.
Uses SQLite in-memory for fast tests and a tmp_path blob storage root.
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.ext.compiler import compiles
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from webhook_client.domain import models  # noqa: F401
from webhook_client.domain.webhook_config import WebhookConfig, WebhookConfigRepository
from webhook_client.infrastructure.db.base import Base
from webhook_client.infrastructure.storage.blob_storage import LocalBlobStorage

DEFAULT_HANDLER = "webhook_client.application.services.webhook_handlers:log_webhook_call"


# Register JSONB as JSON for SQLite compatibility in tests
@compiles(JSONB, "sqlite")
def _compile_jsonb_sqlite(type_, compiler, **kw):
    return "JSON"


@pytest.fixture
def db_engine():
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
def db(db_engine):
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    session = testing_session_local()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def storage(tmp_path):
    return LocalBlobStorage(tmp_path / "storage")


@pytest.fixture
def webhook_configs():
    return WebhookConfigRepository(
        [
            WebhookConfig(name="default", store_headers="*", process_webhook_job=DEFAULT_HANDLER),
            WebhookConfig(name="github", store_headers=["X-Sig"], process_webhook_job=DEFAULT_HANDLER),
            WebhookConfig(name="archive", store_headers=[]),
        ]
    )


@pytest.fixture
def enqueued(monkeypatch):
    calls = []
    monkeypatch.setattr(
        "webhook_client.application.services.webhook_processing_service.process_webhook_call_async",
        calls.append,
    )
    return calls


@pytest.fixture
def client(db, storage, webhook_configs, enqueued):
    from main import app
    from webhook_client.infrastructure.db.session import get_db
    from webhook_client.infrastructure.storage.blob_storage import get_blob_storage
    from webhook_client.interfaces.api.deps import get_webhook_configs

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_blob_storage] = lambda: storage
    app.dependency_overrides[get_webhook_configs] = lambda: webhook_configs
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()

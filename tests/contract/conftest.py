"""Test client wired to the in-memory session and local collaborators."""

import pytest
from fastapi.testclient import TestClient

from strata.api.deps import get_blob_store, get_email_sender
from strata.main import app
from strata.services import get_db
from strata.services.collaborators import FileSystemBlobStore, LoggingEmailSender

AUTH_HEADERS = {"X-User-Id": "7", "X-Organisation-Id": "1"}


@pytest.fixture
def client(db_session, tmp_path):
    """Create test client with database and storage dependency overrides."""

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_blob_store] = lambda: FileSystemBlobStore(root=tmp_path, secret="test-secret")
    app.dependency_overrides[get_email_sender] = LoggingEmailSender
    yield TestClient(app, raise_server_exceptions=False)
    app.dependency_overrides.clear()


@pytest.fixture
def headers():
    return dict(AUTH_HEADERS)

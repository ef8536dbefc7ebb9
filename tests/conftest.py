"""Pytest configuration and fixtures for the creative studio gateway tests."""

import os
import sys
import tempfile
from pathlib import Path

# Keep local storage out of the project tree; must run before studio_core imports
TEST_DATA_DIR = Path(tempfile.mkdtemp(prefix="studio_test_"))
os.environ.setdefault("STUDIO_DATA_DIR", str(TEST_DATA_DIR))
os.environ.setdefault("STORAGE_BACKEND", "local")

sys.path.insert(0, os.path.dirname(__file__))

import logging
import shutil
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from mock_providers import FakeAnthropicClient, FakeClipdropClient, ReplicateFactory, make_png_bytes
from studio_core.processors import PromptEnhancer
from studio_core.persistence import LocalBlobStore, LocalCreationRepository
from studio_core.services import GenerationGateway
from studio_core.workflow import WorkflowSequencer, WorkflowSessionManager, WorkflowStore

# Configure logging for tests
logging.basicConfig(level=logging.DEBUG)


@pytest.fixture(scope="session", autouse=True)
def setup_test_environment():
    """Clean up the temporary data directory after the session."""
    yield
    if TEST_DATA_DIR.exists():
        shutil.rmtree(TEST_DATA_DIR)


@pytest.fixture
def provider_credentials(monkeypatch):
    """Provider credentials as the gateway reads them."""
    monkeypatch.setenv("REPLICATE_API_TOKEN", "r8_test_token_123")
    monkeypatch.setenv("CLIPDROP_API_KEY", "clipdrop-test-key")
    monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-ant-test")


@pytest.fixture
def no_credentials(monkeypatch):
    for name in ("REPLICATE_API_TOKEN", "CLIPDROP_API_KEY", "ANTHROPIC_API_KEY"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def store():
    """A fresh store per test."""
    return WorkflowStore()


@pytest.fixture
def sequencer(store):
    seq = WorkflowSequencer(store)
    seq.attach()
    yield seq
    seq.detach()


@pytest.fixture
def sample_png():
    return make_png_bytes()


@pytest.fixture
def replicate_factory():
    return ReplicateFactory()


@pytest.fixture
def clipdrop_client():
    return FakeClipdropClient()


@pytest.fixture
def llm_client():
    return FakeAnthropicClient()


@pytest.fixture
def gateway(replicate_factory, clipdrop_client, llm_client):
    """Real gateway wired to fake provider clients."""
    return GenerationGateway(
        replicate_factory=replicate_factory,
        clipdrop_factory=clipdrop_client,
        prompt_enhancer=PromptEnhancer(client_factory=llm_client),
    )


@pytest.fixture
def blob_store(tmp_path):
    return LocalBlobStore(tmp_path / "blobs", url_prefix="http://testserver/blobs")


@pytest.fixture
def repository(tmp_path, blob_store):
    return LocalCreationRepository(tmp_path / "data", blob_store=blob_store)


@pytest.fixture
def session_manager():
    return WorkflowSessionManager(ttl=3600)


@pytest.fixture
def mock_gateway():
    """A MagicMock gateway for route-only tests."""
    gateway = MagicMock(spec=GenerationGateway)
    gateway.generate_image = AsyncMock()
    gateway.download_image = AsyncMock()
    return gateway


@pytest.fixture
def api_client(gateway, repository, blob_store, session_manager):
    """FastAPI test client with services replaced by test instances."""
    from studio_backend import services
    from studio_backend.main import app

    app.dependency_overrides[services.get_generation_gateway] = lambda: gateway
    app.dependency_overrides[services.get_creation_repository] = lambda: repository
    app.dependency_overrides[services.get_blob_store] = lambda: blob_store
    app.dependency_overrides[services.get_session_manager] = lambda: session_manager

    yield TestClient(app)

    app.dependency_overrides.clear()


# Markers for different test categories
def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "slow: marks tests as slow")
    config.addinivalue_line("markers", "api: marks API tests")
    config.addinivalue_line("markers", "integration: marks tests that run local HTTP servers")

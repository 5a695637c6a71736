"""
Test configuration and fixtures for the Clinical Analyzer.

- Function-scoped, freshly seeded in-memory repository
- Mock generator in place of the HTTP adapter
- TestClient with storage and adapter dependency overrides
"""

from typing import Generator

import pytest
from fastapi.testclient import TestClient

from api.main import app
from config import Settings
from intelligence import get_adapter
from storage import Repository, get_storage
from storage.seed import seed_defaults
from tests.fixtures.mocks import FailingRepository, MockDiagnosisEngine


# =============================================================================
# Storage Fixtures
# =============================================================================


@pytest.fixture
def settings() -> Settings:
    return Settings(generator_base_url="http://generator.test/v1", generator_api_key="test-key")


@pytest.fixture
def storage(settings: Settings) -> Repository:
    """A fresh repository with regions and the demo reviewer loaded."""
    repository = Repository()
    seed_defaults(repository, settings)
    return repository


@pytest.fixture
def failing_storage(settings: Settings) -> FailingRepository:
    """Seeded repository that can be told to fail writes per collection."""
    repository = FailingRepository()
    seed_defaults(repository, settings)
    return repository


# =============================================================================
# Generator Fixtures
# =============================================================================


@pytest.fixture
def engine() -> MockDiagnosisEngine:
    return MockDiagnosisEngine()


# =============================================================================
# TestClient Fixtures
# =============================================================================


@pytest.fixture
def client(storage: Repository, engine: MockDiagnosisEngine) -> Generator[TestClient, None, None]:
    """TestClient with the repository and generator injected."""
    app.dependency_overrides[get_storage] = lambda: storage
    app.dependency_overrides[get_adapter] = lambda: engine

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()

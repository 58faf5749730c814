"""Shared fixtures: an app wired to an in-memory store and a temp mirror file."""

import pytest
from fastapi.testclient import TestClient

from api_server import create_app
from browserscan.config import Settings
from browserscan.telemetry import MemoryLogStore, MirrorFile, get_store, get_mirror


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        log_file=str(tmp_path / "logs.json"),
        rate_limit_enabled=False,
    )


@pytest.fixture
def store() -> MemoryLogStore:
    return MemoryLogStore()


@pytest.fixture
def mirror(settings) -> MirrorFile:
    return MirrorFile(settings.log_file)


@pytest.fixture
def app(settings, store, mirror):
    app = create_app(settings)
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_mirror] = lambda: mirror
    return app


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)

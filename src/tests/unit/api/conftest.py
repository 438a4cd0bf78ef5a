"""Fixtures for API unit tests."""

import time
from typing import Callable
from unittest.mock import AsyncMock, MagicMock

import jwt
import pytest
from fastapi.testclient import TestClient

from minerr.api.dependencies import get_runtime, reset_runtime
from minerr.main import app
from minerr.runtimes.docker.models import InstanceDescriptor

TEST_SECRET = "test-secret"


def _make_token(sub: str = "user-1", secret: str = TEST_SECRET, **claims) -> str:
    payload = {"sub": sub, "username": "steve", "exp": int(time.time()) + 3600}
    payload.update(claims)
    return jwt.encode(payload, secret, algorithm="HS256")


@pytest.fixture
def make_token() -> Callable[..., str]:
    """Factory for signed access tokens."""
    return _make_token


@pytest.fixture
def token() -> str:
    return _make_token()


@pytest.fixture
def auth_headers(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def descriptor() -> InstanceDescriptor:
    return InstanceDescriptor(
        id="abc123",
        name="minerr-survival-1700000000000",
        image="itzg/minecraft-server:java17",
        env=["EULA=TRUE", "VERSION=1.20.1"],
        status="running",
        port=25565,
    )


@pytest.fixture
def mock_runtime(descriptor: InstanceDescriptor) -> MagicMock:
    """Create mock runtime."""
    runtime = MagicMock()
    runtime.inspector.list_all = AsyncMock(return_value=[])
    runtime.provisioner.create = AsyncMock(return_value=descriptor)
    runtime.actions.execute = AsyncMock()
    runtime.commands.get = MagicMock()
    runtime.logs.open = AsyncMock()
    return runtime


@pytest.fixture
def client(mock_runtime: MagicMock) -> TestClient:
    """Create test client with mocked runtime."""
    app.dependency_overrides[get_runtime] = lambda: mock_runtime

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()
    reset_runtime()

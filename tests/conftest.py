"""
Pytest configuration and shared fixtures.

The CloudBees provider is stubbed with ``httpx.MockTransport``; every request
the client makes is recorded so tests can assert on the number of calls.
"""
import base64
import sys
from pathlib import Path

import httpx
import pytest

# Позволяет запускать тесты без установки пакета
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.domain.config import IntegrationConfig
from src.logger.logger import init_logger, reset_logger
from src.logger.types import Level
from src.services.cloudbees import APIClient

VALID_USER_ID = "integration-user"
VALID_API_KEY = "11a2b3c4d5e6f7-super-secret-token"
VALID_HOSTNAME = "h.example.com"


class StubProvider:
    """Fake CloudBees server that accepts a single user/api-key pair."""

    def __init__(self, user_id: str = VALID_USER_ID, api_key: str = VALID_API_KEY):
        token = base64.b64encode(f"{user_id}:{api_key}".encode()).decode()
        self.expected_auth = f"Basic {token}"
        self.requests: list[httpx.Request] = []
        self.status_override: int | None = None
        self.error: Exception | None = None

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        if self.status_override is not None:
            return httpx.Response(self.status_override)

        if request.headers.get("Authorization") != self.expected_auth:
            return httpx.Response(401, json={"message": "Unauthorized"})
        return httpx.Response(
            200,
            json={"anonymous": False, "authenticated": True, "name": VALID_USER_ID},
        )

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def client_factory(self, config: IntegrationConfig) -> APIClient:
        return APIClient(config, transport=self.transport)


@pytest.fixture(autouse=True)
def test_logger():
    """Fresh stdout logger for every test."""
    logger = init_logger("cloudbees-integration-test", "test", level=Level.TRACE)
    yield logger
    reset_logger()


@pytest.fixture
def stub_provider():
    return StubProvider()


@pytest.fixture
def valid_config():
    return IntegrationConfig(
        user_id=VALID_USER_ID,
        api_key=VALID_API_KEY,
        hostname=VALID_HOSTNAME,
    )
